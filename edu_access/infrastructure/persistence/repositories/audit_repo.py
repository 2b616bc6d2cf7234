from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.infrastructure.persistence.models.audit import AuditEntry
from edu_access.infrastructure.persistence.repositories.base import BaseRepository


@dataclass
class AuditLogFilter:
    """Filters accepted by the audit log listing. None means 'any'."""

    user_id: str | None = None
    table_name: str | None = None
    record_id: str | None = None
    action_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    is_soft_delete: bool | None = None
    limit: int = 50


class AuditRepository(BaseRepository[AuditEntry]):
    """Insert-only access to the audit trail plus filtered reads."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, AuditEntry)

    async def list_entries(self, filters: AuditLogFilter | None = None) -> list[AuditEntry]:
        """Newest first, capped at filters.limit"""
        filters = filters or AuditLogFilter()
        query = select(AuditEntry)

        if filters.user_id:
            query = query.where(AuditEntry.user_id == filters.user_id)
        if filters.table_name:
            query = query.where(AuditEntry.table_name == filters.table_name)
        if filters.record_id:
            query = query.where(AuditEntry.record_id == filters.record_id)
        if filters.action_type:
            query = query.where(AuditEntry.action_type == filters.action_type)
        if filters.start:
            query = query.where(AuditEntry.created_at >= filters.start)
        if filters.end:
            query = query.where(AuditEntry.created_at <= filters.end)
        if filters.is_soft_delete is not None:
            query = query.where(AuditEntry.is_soft_delete.is_(filters.is_soft_delete))

        result = await self.db.execute(
            query.order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc()).limit(filters.limit)
        )
        return list(result.scalars().all())
