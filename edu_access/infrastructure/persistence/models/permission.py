from sqlalchemy import (Boolean, CheckConstraint, ForeignKey, Index, Integer,
                        String, UniqueConstraint)
from sqlalchemy.orm import Mapped, mapped_column

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class RolePagePermission(CuidMixin, TimestampMixin, Base):
    """
    Resource-tier grant: can this role use this page at all.
    """

    __tablename__ = "role_page_permission"

    role: Mapped[str] = mapped_column(String, nullable=False)
    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("page.id", ondelete="CASCADE"), nullable=False
    )
    is_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("role", "page_id", name="uq_role_page_permission"),
        Index("ix_role_page_permission_role", "role"),
    )


class PageActionPermission(CuidMixin, TimestampMixin, Base):
    """
    Action-tier grant: may this role perform this action on this page.

    Authoritative when present, including an explicit is_allowed=False.
    """

    __tablename__ = "page_action_permission"

    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("page.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String, nullable=False)
    action_name: Mapped[str] = mapped_column(String, nullable=False)  # view, create, ...
    is_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("page_id", "role", "action_name", name="uq_page_action_permission"),
        Index("ix_page_action_permission_role", "role"),
        CheckConstraint("action_name <> ''", name="ck_page_action_permission_action"),
    )
