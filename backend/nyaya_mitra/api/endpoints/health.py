"""
Health check
"""
import time

from fastapi import APIRouter

from nyaya_mitra.core.config import settings
from nyaya_mitra.utils.helpers import isoformat_utc

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get("")
def health():
    return {
        "status": "OK",
        "timestamp": isoformat_utc(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "version": settings.VERSION,
    }
