"""
SQLAlchemy mixins for common model patterns.

    - CuidMixin: CUID string primary key
    - TimestampMixin: created_at / updated_at
    - SoftDeleteMixin: reversible deletion marker (is_deleted, deleted_at,
      deleted_by, delete_reason)
"""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from edu_access.shared.utils import generate_cuid


class CuidMixin:
    """
    Mixin for models using CUID as primary key.

    Usage:
        class MyModel(CuidMixin, Base):
            __tablename__ = "my_model"
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TimestampMixin:
    """
    Mixin for timestamp tracking.

    Provides:
        - created_at: Timestamp set on creation (server-side default)
        - updated_at: Timestamp updated on modification
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    """
    Reversible deletion marker.

    Provides:
        - is_deleted: True while the record is soft deleted
        - deleted_at: When it was deleted
        - deleted_by: Actor id captured at delete time (no FK: the actor may
          itself be deleted later)
        - delete_reason: Free text supplied by the actor

    Usage:
        # Normal reads exclude deleted rows:
        select(Teacher).where(Teacher.active_only())
        # Audit / restore screens query them explicitly:
        select(Teacher).where(Teacher.is_deleted.is_(True))
    """

    SOFT_DELETE_FIELDS = ("is_deleted", "deleted_at", "deleted_by", "delete_reason")

    @declared_attr
    def is_deleted(cls) -> Mapped[bool]:
        return mapped_column(Boolean, nullable=False, default=False, index=True)

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def deleted_by(cls) -> Mapped[str | None]:
        return mapped_column(String, nullable=True)

    @declared_attr
    def delete_reason(cls) -> Mapped[str | None]:
        return mapped_column(Text, nullable=True)

    @classmethod
    def active_only(cls):
        """WHERE criterion excluding soft-deleted rows"""
        return cls.is_deleted.is_(False)

    def mark_deleted(self, actor_id: str, reason: str | None, at: datetime) -> None:
        self.is_deleted = True
        self.deleted_at = at
        self.deleted_by = actor_id
        self.delete_reason = reason

    def clear_deleted(self) -> None:
        self.is_deleted = False
        self.deleted_at = None
        self.deleted_by = None
        self.delete_reason = None
