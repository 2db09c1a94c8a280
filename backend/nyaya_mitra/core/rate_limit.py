"""
Rate limiting (slowapi), keyed by client IP.

Usage:
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)   # default limit on every route

    @router.post("/login")
    @limiter.limit(settings.RATE_LIMIT_AUTH)
    def login(request: Request, ...):
        ...
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from nyaya_mitra.core.config import settings


def get_client_ip(request: Request) -> str:
    """
    First hop of X-Forwarded-For, then X-Real-IP, then the peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
