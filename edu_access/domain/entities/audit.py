"""
Audit domain entities.

A ChangeRecord is what callers hand to the audit recorder; the recorder
turns it into an immutable AuditEntry row.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from edu_access.domain.entities.actor import AuthorizedActor
from edu_access.domain.enums import AuditActionType


@dataclass
class ChangeRecord:
    """A single change to be written to the audit trail."""

    actor: AuthorizedActor
    action_type: AuditActionType
    table_name: str
    record_id: str | None = None
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    changes_summary: str | None = None
    is_soft_delete: bool = False
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.action_type == AuditActionType.READ


@dataclass(frozen=True)
class DependentSummary:
    """
    Result of a per-domain dependent check run before a soft delete.

    Dependents never block the delete; the description ends up in the
    audit summary so operators can see what was left dangling.
    """

    has_blocking_dependents: bool
    count: int = 0
    description: str = ""

    @classmethod
    def none(cls) -> "DependentSummary":
        return cls(has_blocking_dependents=False)

    @classmethod
    def of(cls, count: int, noun: str) -> "DependentSummary":
        """e.g. DependentSummary.of(3, "classes") -> '3 classes assigned'"""
        return cls(
            has_blocking_dependents=count > 0,
            count=count,
            description=f"{count} {noun} assigned" if count > 0 else "",
        )


@dataclass(frozen=True)
class DeletedRecord:
    """A soft-deleted row as listed on the restore screen."""

    table_name: str
    record_id: str
    label: str | None
    deleted_at: datetime | None
    deleted_by: str | None
    delete_reason: str | None
    restore_deadline: datetime | None
    can_restore: bool
