"""Shared rate limiter instance.

Lives outside main.py so route modules can apply per-endpoint limits via
``@limiter.limit()`` without importing the application.
"""

from jose import JWTError
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.auth.security import decode_access_token
from app.config import get_settings


def _get_client_ip(request: Request) -> str:
    """Extract the real client IP, respecting X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First entry is the original client; proxies append their own.
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _rate_limit_key(request: Request) -> str:
    """Authenticated callers are limited per user, everyone else per IP."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{decode_access_token(token)['sub']}"
        except JWTError:
            pass
    return f"ip:{_get_client_ip(request)}"


limiter = Limiter(
    key_func=_rate_limit_key,
    default_limits=[get_settings().rate_limit_default],
)
