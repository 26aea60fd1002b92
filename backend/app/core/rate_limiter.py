"""
Rate Limiting for SBTE Portal API
=================================
Implements rate limiting using slowapi. Storage defaults to in-memory;
point RATE_LIMIT_STORAGE_URI at Redis in multi-worker deployments.

- Default: RATE_LIMIT_PER_MINUTE (100/min) per user or IP
- /auth/login: 5 req/min (brute force protection)
- /auth/password-reset/initiate: 3 req/min
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
from jose import JWTError, jwt

from app.core.config import settings
from app.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Rate limit key.

    Priority:
    1. Authenticated user ID (JWT "sub")
    2. IP address
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            payload = jwt.decode(
                auth_header[7:],
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
            )
            if payload.get("sub"):
                return f"user:{payload['sub']}"
        except JWTError:
            pass

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "details": {"limit": str(exc.detail)},
        },
        headers={"Retry-After": "60"},
    )


def auth_rate_limit():
    """Rate limit for login (5/min)"""
    return limiter.limit("5/minute")


def strict_rate_limit():
    """Very strict rate limit for sensitive operations (3/min)"""
    return limiter.limit("3/minute")
