"""
Rate Limiting for the union site API
====================================
slowapi with in-memory storage.

Everything shares RATE_LIMIT_PER_MINUTE per client; the auth endpoints
carry their own tighter limits:
- /auth/login: LOGIN_RATE_LIMIT (brute force protection)
- /auth/signup: SIGNUP_RATE_LIMIT
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from unionsite.core.config import settings
from unionsite.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """Rate limit key: authenticated user when known, else client address"""
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """JSON 429 with a Retry-After header"""
    retry_after = exc.detail.split(":")[-1].strip() if exc.detail else "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": "요청이 너무 많습니다. 잠시 후 다시 시도해주세요.",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": retry_after if retry_after.isdigit() else "60"},
    )
