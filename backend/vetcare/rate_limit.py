"""
Throttling for the public confirmation link.

Counters live in ``RATE_LIMIT_STORAGE_URI`` (``memory://`` for a single
worker, a ``redis://`` URI when several workers share the limit).
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from vetcare.config import get_settings
from vetcare.utils.logger import get_logger

logger = get_logger("rate_limit")
settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer in the same error shape as ``AppointmentError``."""
    logger.warning(f"🚫 Rate limit hit by {get_remote_address(request)} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMITED",
            "detail": f"Too many requests: {exc.detail}",
            "status_code": 429,
        },
    )
