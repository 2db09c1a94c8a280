"""
Utility helper functions
"""
from datetime import datetime, timezone
import math
import re
import secrets
import string
import time
from typing import Optional

from pydantic import BaseModel


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: Optional[datetime] = None) -> str:
    """ISO-8601 with a trailing Z, e.g. 2025-01-15T10:00:00.000Z"""
    value = value or utcnow()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def safe_filename(filename: str, max_length: int = 120) -> str:
    """Strip directory parts and anything outside [A-Za-z0-9._-]."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    if not name:
        name = "document"
    return name[-max_length:]


def random_token(length: int = 5, alphabet: str = string.ascii_uppercase + string.digits) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_report_id() -> str:
    """Public whistleblower id: WB-<epoch ms>-<5 uppercase alnum>"""
    return f"WB-{int(time.time() * 1000)}-{random_token(5)}"


def feedback_tracking_number(feedback_id: int) -> str:
    return f"CF-{feedback_id:06d}"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def paginate(query, page: int, limit: int):
    """Apply offset/limit to a SQLAlchemy query. Returns (items, Pagination)."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
    )
