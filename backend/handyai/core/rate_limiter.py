"""
Rate limiting for the HandyAI API.
Uses SlowAPI with an optional Redis backend for distributed rate limiting.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from handyai.core.config import settings

logger = logging.getLogger("handyai.rate_limiter")


def get_real_client_ip(request: Request) -> str:
    """
    Get the real client IP, accounting for reverse proxies.
    Checks X-Forwarded-For header first, then falls back to direct IP.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    # Check X-Real-IP header (common in nginx)
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def _storage_uri() -> str:
    if settings.REDIS_URL:
        # Mask password in logs
        logged_url = settings.REDIS_URL.split("@")[-1]
        logger.info(f"Rate limiter using Redis backend: {logged_url}")
        return settings.REDIS_URL

    if settings.is_production:
        logger.warning(
            "PRODUCTION WARNING: Rate limiting is using in-memory storage. "
            "Limits won't sync across instances. Configure REDIS_URL for distributed rate limiting."
        )
    return "memory://"


limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=_storage_uri(),
    strategy="fixed-window",
    headers_enabled=False,
    enabled=settings.RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.
    Returns a JSON response with retry information.
    """
    logger.warning(
        f"Rate limit exceeded for {get_real_client_ip(request)} "
        f"on {request.method} {request.url.path}"
    )

    retry_after = getattr(exc, "retry_after", 60)

    return JSONResponse(
        status_code=429,
        content={
            "error": "Zu viele Anfragen",
            "details": f"Too many requests. Please retry after {retry_after} seconds.",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
