from typing import Any

from sqlalchemy import (JSON, Boolean, CheckConstraint, ForeignKey, Index,
                        Integer, String, Text)
from sqlalchemy.orm import Mapped, mapped_column

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import TimestampMixin


class Page(TimestampMixin, Base):
    """
    A protected unit of functionality and navigation target.

    Pages are structural: created by setup/migrations, edited by
    administrators, never deleted (soft or otherwise). The integer id is
    the final tiebreak when ordering menu siblings.
    """

    __tablename__ = "page"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    page_path: Mapped[str | None] = mapped_column(String, nullable=True)

    # Display metadata
    page_title: Mapped[str | None] = mapped_column(String, nullable=True)
    page_title_km: Mapped[str | None] = mapped_column(String, nullable=True)  # Khmer label
    icon_name: Mapped[str | None] = mapped_column(String, nullable=True)
    badge_text: Mapped[str | None] = mapped_column(String, nullable=True)
    badge_color: Mapped[str | None] = mapped_column(String, nullable=True)
    css_classes: Mapped[str | None] = mapped_column(String, nullable=True)
    external_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    opens_in_new_tab: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Hierarchy
    parent_page_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("page.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_parent_menu: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    menu_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Display control
    is_displayed_in_menu: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    menu_visibility: Mapped[str] = mapped_column(String, nullable=False, default="visible")
    menu_group: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "menu_visibility IN ('visible', 'hidden', 'conditional')",
            name="ck_page_menu_visibility",
        ),
    )


class MenuDisplayCondition(Base):
    """
    Conditional-display rule attached to a page.

    All active conditions on a page are combined with AND.
    """

    __tablename__ = "menu_display_condition"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("page.id", ondelete="CASCADE"), nullable=False
    )
    condition_type: Mapped[str] = mapped_column(String, nullable=False)  # e.g. 'role'
    condition_operator: Mapped[str] = mapped_column(String, nullable=False)  # e.g. 'in'
    condition_value: Mapped[Any] = mapped_column(JSON, nullable=False)  # e.g. ["admin"]
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_menu_display_condition_page", "page_id", "is_active"),)
