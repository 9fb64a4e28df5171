"""
Rate limits for login and bulk endpoints (slowapi, keyed by client IP).

Rate-limited endpoints must accept a `request: Request` parameter.
RATE_LIMIT_ENABLED=false switches every limit off.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from app.config import settings

logger = logging.getLogger(__name__)


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the peer address"""
    forwarded_for = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return forwarded_for or request.headers.get("X-Real-IP") or get_remote_address(request)


limiter = Limiter(key_func=client_address, enabled=settings.rate_limit_enabled)


class RateLimits:
    LOGIN = "5/minute"
    BULK_OPERATIONS = "10/minute"   # bulk price update, quote expiry sweep


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    retry_after = exc.limit.limit.get_expiry()
    logger.warning(
        f"Rate limit {exc.detail} exceeded by {client_address(request)} on {request.method} {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many requests, limit is {exc.detail}"},
        headers={"Retry-After": str(retry_after)},
    )
