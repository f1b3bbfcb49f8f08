"""Rate limiting for booking traffic.

slowapi keyed by caller: the bearer credential when present (so members
behind one gym Wi-Fi don't share a budget), otherwise the client IP.
Storage comes from ``RATE_LIMIT_STORAGE_URI``; ``memory://`` suits a single
process, ``redis://...`` a scaled-out deployment.
"""

import hashlib
from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

ADMIN_RATE_LIMIT = "200/minute"


def client_ip(request: Request) -> str:
    """First hop of ``X-Forwarded-For`` when behind the gateway."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def caller_key(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if auth_header:
        digest = hashlib.sha256(auth_header.encode()).hexdigest()[:16]
        return f"caller:{digest}"
    return f"ip:{client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=caller_key,
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Answer in the same error envelope the booking endpoints use."""
    message = f"Too many requests: limit is {exc.detail}." if exc.detail else (
        "Too many requests."
    )
    logger.warning("Rate limit hit on %s by %s", request.url.path, caller_key(request))
    return JSONResponse(
        status_code=429,
        content={
            "error": {"code": "RATE_LIMITED", "message": message},
            "detail": message,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def booking_limit(func: Callable) -> Callable:
    """Per-caller ceiling on booking attempts (``BOOKING_RATE_LIMIT``)."""
    return limiter.limit(get_settings().BOOKING_RATE_LIMIT)(func)


def admin_limit(func: Callable) -> Callable:
    return limiter.limit(ADMIN_RATE_LIMIT)(func)
