"""Request rate limiting.

Every route is limited per client IP by RATE_LIMIT_DEFAULT. The assistant chat
endpoint, which spends a completion request (often several) per call, also
carries the tighter RATE_LIMIT_CHAT.
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from spendsense.config import settings

logger = logging.getLogger(__name__)


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)


def chat_rate_limit() -> str:
    """Limit for the chat endpoint, read per request so it follows settings."""
    return settings.RATE_LIMIT_CHAT


limit_chat = limiter.limit(chat_rate_limit)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer in the same `{"detail": ...}` shape as the API's HTTPExceptions."""
    logger.warning(
        f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}: {exc.detail}"
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


def setup_rate_limiting(app):
    """Configure rate limiting for the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
