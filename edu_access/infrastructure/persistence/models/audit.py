from datetime import datetime
from typing import Any

from sqlalchemy import (JSON, Boolean, Connection, DateTime, Index, String,
                        Text, event)
from sqlalchemy.orm import Mapped, Mapper, mapped_column
from sqlalchemy.sql import func

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import CuidMixin
from edu_access.shared.utils import utc_now


class AuditEntry(CuidMixin, Base):
    """
    Immutable change record.

    The actor columns are a snapshot taken at write time, deliberately not
    foreign keys, so entries stay meaningful after the actor is removed.
    Rows are insert-only: ORM updates and deletes are rejected below.
    """

    __tablename__ = "audit_entry"

    # Actor snapshot
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String, nullable=False)
    user_role: Mapped[str] = mapped_column(String, nullable=False)

    # What changed
    action_type: Mapped[str] = mapped_column(String, nullable=False, index=True)  # CREATE, UPDATE, ...
    table_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    record_id: Mapped[str | None] = mapped_column(String, nullable=True)
    old_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    changes: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )  # {field: {"before": ..., "after": ...}}
    changes_summary: Mapped[str] = mapped_column(Text, nullable=False)
    is_soft_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Request origin
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    context: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_entry_table_record", "table_name", "record_id"),
        Index("ix_audit_entry_created_at", "created_at"),
    )


@event.listens_for(AuditEntry, "before_update")
def prevent_audit_entry_updates(
    _mapper: Mapper[Any],
    _connection: Connection,
    _target: "AuditEntry",
) -> None:
    """Audit entries are written once and never modified."""
    raise ValueError("Audit entries are immutable and cannot be updated.")


@event.listens_for(AuditEntry, "before_delete")
def prevent_audit_entry_deletes(
    _mapper: Mapper[Any],
    _connection: Connection,
    _target: "AuditEntry",
) -> None:
    """Audit entries are never deleted."""
    raise ValueError("Audit entries are immutable and cannot be deleted.")
