"""Rate limiting using slowapi"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .responses import PrettyJSONResponse

_settings = get_settings()


def get_rate_limit_key(request: Request) -> str:
    """Client IP, honouring the first X-Forwarded-For hop behind a proxy"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_rate_limit_key,
    storage_uri=_settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=_settings.RATE_LIMIT_ENABLED,
)

# Login, signup and password reset share one budget per client
auth_limiter = limiter.shared_limit(lambda: get_settings().RATE_LIMIT_AUTH, scope="auth")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return PrettyJSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": f"Too many requests. {exc.detail}"
        }
    )
