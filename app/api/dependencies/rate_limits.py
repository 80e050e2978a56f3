from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from infrastructure.logging import get_module_logger
from infrastructure.services.providers import get_settings

logger = get_module_logger()

TELEGRAM_SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

limiter = Limiter(
    key_func=get_remote_address,
)


async def rate_limit_handler(request: Request, exc: Exception):
    """Custom rate limit handler that returns a 429 status code and a custom error message."""
    if isinstance(exc, RateLimitExceeded):
        logger.warning(
            "rate_limit_exceeded",
            path=request.url.path,
            limit=str(exc.detail),
        )
        return JSONResponse(
            status_code=429,
            content={"message": "Rate limit exceeded"},
        )


def webhook_key_func(request: Request) -> Optional[str]:
    """Rate limit key for the Telegram webhook.

    Requests carrying the configured secret come from Telegram and are not
    limited (a None key skips the limit). Every other caller is limited per
    address.
    """
    secret = get_settings().telegram.TELEGRAM_WEBHOOK_SECRET
    if secret and request.headers.get(TELEGRAM_SECRET_HEADER) == secret:
        return None
    return get_remote_address(request)


def setup_rate_limiter(app: FastAPI):
    """
    Setup rate limiting for the FastAPI application.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


def get_limiter():
    """
    Returns the limiter instance.
    """
    return limiter
