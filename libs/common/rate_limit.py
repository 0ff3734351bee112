"""Rate limiting for store endpoints.

Uses slowapi. Storage defaults to in-process memory; point
RATE_LIMIT_STORAGE_URI at Redis to share limits across instances.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, handling proxies.

    Checks X-Forwarded-For header first (for proxied requests),
    then falls back to direct connection IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain (original client)
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    """Create and return a cached Limiter instance."""
    settings = get_settings()
    return Limiter(
        key_func=_get_client_ip,
        default_limits=["100/minute"],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 in the same shape as the store's other errors."""
    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded. Try again in {retry_after}.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def payment_limit(func: Callable) -> Callable:
    """Strict limit for endpoints that open or poll gateway transactions."""
    return limiter.limit("10/minute")(func)
