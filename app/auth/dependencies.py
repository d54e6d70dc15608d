"""FastAPI dependencies for authentication and RBAC."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from app.auth.security import decode_access_token
from app.auth.token_revocation import is_payload_revoked
from app.models.user import UserRole
from app.schemas.auth import TokenUser

# Token issuance is owned by the identity service.
# The tokenUrl below is used only for Swagger UI's "Authorize" dialog.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    request: Request,
    token: Annotated[str, Depends(oauth2_scheme)],
) -> TokenUser:
    """Decode JWT, check deny-list, and return user from token claims."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise credentials_exception from exc

    redis = getattr(request.app.state, "redis", None)
    if await is_payload_revoked(redis, payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenUser(
        id=payload["sub"],
        username=payload.get("username", ""),
        role=payload.get("role", ""),
        email=payload.get("email", ""),
    )


# Convenience type alias
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]


def require_role(*allowed_roles: str | UserRole):
    """Dependency factory that enforces role-based access.

    Usage:
        @router.post("/backup/trigger", dependencies=[Depends(require_role("admin"))])
    """
    allowed = {UserRole(r) if isinstance(r, str) else r for r in allowed_roles}

    async def _check_role(current_user: CurrentUser) -> TokenUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _check_role
