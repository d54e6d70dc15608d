"""Audit logging for privileged actions."""

import logging
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser
from app.dependencies import DBSession
from app.repositories.audit_repository import AuditRepository

logger = logging.getLogger("audit")


def _client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    return request.client.host if request.client else None


async def record_action(
    session: AsyncSession,
    action: str,
    *,
    actor_id: str | None = None,
    resource: str | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> None:
    """Persist an audit entry inside the caller's transaction.

    The insert runs in a savepoint; a failure is logged and rolled back
    without affecting the caller's own writes.
    """
    try:
        async with session.begin_nested():
            await AuditRepository(session).create(
                action,
                resource=resource,
                details=details,
                actor_id=actor_id,
                ip_address=_client_ip(request),
                user_agent=request.headers.get("user-agent") if request else None,
            )
    except Exception:
        logger.exception("Failed to record audit action %s", action)
        return
    logger.info("AUDIT action=%s user=%s resource=%s", action, actor_id or "system", resource)


def audit_logged(action: str):
    """Dependency factory that logs and persists privileged actions.

    The entry joins the request's unit of work, so it is discarded when
    the handler fails.

    Usage::

        @router.post("/backup/trigger", dependencies=[Depends(audit_logged("TRIGGER_BACKUP"))])
    """

    async def _log(request: Request, current_user: CurrentUser, db: DBSession) -> None:
        request_id = getattr(request.state, "request_id", "n/a")
        logger.info(
            "AUDIT action=%s user=%s role=%s ip=%s request_id=%s path=%s",
            action,
            current_user.username,
            current_user.role,
            _client_ip(request) or "unknown",
            request_id,
            request.url.path,
        )
        await AuditRepository(db).create(
            action,
            resource=request.url.path,
            details={"method": request.method, "request_id": request_id},
            actor_id=current_user.id,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )

    return _log
