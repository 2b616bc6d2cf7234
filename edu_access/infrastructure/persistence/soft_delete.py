"""
Registry of tables that support soft delete and restore.

Each entry ties a table name (as used in audit entries and URLs) to its
model, the page that guards it, a human label for audit summaries, and an
optional dependent check supplied by the domain layer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.domain.entities import DependentSummary
from edu_access.domain.exceptions import ValidationException
from edu_access.infrastructure.persistence.models.mixins import SoftDeleteMixin
from edu_access.infrastructure.persistence.models.school import SchoolClass, Teacher

DependentCheck = Callable[[AsyncSession, Any], Awaitable[DependentSummary]]


@dataclass(frozen=True)
class SoftDeleteTarget:
    table_name: str
    model: type[SoftDeleteMixin]
    resource_name: str
    entity_label: str
    label_field: str | None = None
    dependent_check: DependentCheck | None = None

    def describe(self, row: Any) -> str | None:
        """Display name of a row for audit summaries, e.g. the teacher's full name"""
        if self.label_field is None:
            return None
        value = getattr(row, self.label_field, None)
        return str(value) if value else None


class SoftDeleteRegistry:
    """Lookup of soft-deletable tables by name."""

    def __init__(self) -> None:
        self._targets: dict[str, SoftDeleteTarget] = {}

    def register(self, target: SoftDeleteTarget) -> None:
        if not issubclass(target.model, SoftDeleteMixin):
            raise TypeError(f"{target.model.__name__} does not support soft delete")
        self._targets[target.table_name] = target

    def find(self, table_name: str) -> SoftDeleteTarget | None:
        return self._targets.get(table_name)

    def get(self, table_name: str) -> SoftDeleteTarget:
        target = self.find(table_name)
        if target is None:
            raise ValidationException(
                f"Table does not support soft delete: {table_name}", field="table"
            )
        return target


async def count_assigned_classes(db: AsyncSession, teacher: Teacher) -> DependentSummary:
    """Active classes still assigned to a teacher"""
    result = await db.execute(
        select(func.count(SchoolClass.id)).where(
            SchoolClass.teacher_id == teacher.id, SchoolClass.active_only()
        )
    )
    return DependentSummary.of(int(result.scalar_one()), "classes")


def build_default_registry() -> SoftDeleteRegistry:
    registry = SoftDeleteRegistry()
    registry.register(
        SoftDeleteTarget(
            table_name=Teacher.__tablename__,
            model=Teacher,
            resource_name="teachers",
            entity_label="Teacher",
            label_field="full_name",
            dependent_check=count_assigned_classes,
        )
    )
    registry.register(
        SoftDeleteTarget(
            table_name=SchoolClass.__tablename__,
            model=SchoolClass,
            resource_name="classes",
            entity_label="Class",
            label_field="name",
        )
    )
    return registry


soft_delete_registry = build_default_registry()
