from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.infrastructure.persistence.models.mixins import SoftDeleteMixin
from edu_access.infrastructure.persistence.repositories.base import BaseRepository

SoftDeletableModel = TypeVar("SoftDeletableModel", bound=SoftDeleteMixin)


class SoftDeleteRepository(BaseRepository, Generic[SoftDeletableModel]):
    """
    Reads over a soft-deletable table.

    get_active is the normal read path and never returns
    deleted rows; get_any, list_deleted and list_expired exist for audit, restore and purge.
    """

    def __init__(self, db: AsyncSession, model: type[SoftDeletableModel]):
        super().__init__(db, model)

    async def get_any(self, record_id: Any) -> SoftDeletableModel | None:
        """Row regardless of its soft-delete state"""
        return await self.get_by_id(record_id)

    async def get_active(self, record_id: Any) -> SoftDeletableModel | None:
        model: Any = self.model
        result = await self.db.execute(
            select(model).where(model.id == record_id, model.active_only())
        )
        return result.scalar_one_or_none()

    async def list_deleted(self, limit: int = 50) -> list[SoftDeletableModel]:
        model: Any = self.model
        result = await self.db.execute(
            select(model)
            .where(model.is_deleted.is_(True))
            .order_by(model.deleted_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_expired(self, cutoff: datetime) -> list[SoftDeletableModel]:
        """Rows soft-deleted before `cutoff`"""
        model: Any = self.model
        result = await self.db.execute(
            select(model)
            .where(model.is_deleted.is_(True), model.deleted_at < cutoff)
            .order_by(model.deleted_at)
        )
        return list(result.scalars().all())
