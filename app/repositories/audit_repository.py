"""Repository for the append-only audit trail."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog


class AuditRepository:
    """Insert and query audit entries. Entries are never updated or deleted."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        action: str,
        *,
        resource: str | None = None,
        details: dict[str, Any] | None = None,
        actor_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            resource=resource,
            details=details or {},
            actor_id=actor_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_recent(self, limit: int = 100) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog).order_by(AuditLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def count_since(self, actions: Iterable[str], since: datetime) -> int:
        query = (
            select(func.count())
            .select_from(AuditLog)
            .where(AuditLog.action.in_(list(actions)), AuditLog.created_at >= since)
        )
        return await self.session.scalar(query) or 0

    async def list_since(
        self, actions: Iterable[str], since: datetime, limit: int = 10
    ) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.action.in_(list(actions)), AuditLog.created_at >= since)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
