"""JWT token utilities.

Tokens are issued by the identity service that owns user accounts; this
service only *validates* them. Token creation helpers live in
``tests/helpers/token_factory.py`` and must never be imported from
production code.

Both the request dependencies (:mod:`app.auth.dependencies`) and the
response cache middleware derive the acting user from the same
:func:`decode_access_token`, so a token the API would reject is never used
as a cache identity.
"""

from typing import Any

from jose import JWTError, jwt

from app.config import get_settings


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token. Raises JWTError on failure."""
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode *token* and require an access token with a subject.

    Raises:
        JWTError: If the signature, expiry, type or subject is invalid.
    """
    payload = decode_token(token)
    if payload.get("sub") is None or payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload
