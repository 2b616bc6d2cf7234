from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class UserMenuCustomization(CuidMixin, TimestampMixin, Base):
    """
    Per-user menu overlay (hide, pin, rename, reorder).

    Created lazily on the first customization and updated in place.
    Presentation only: it can hide what a role may see but never reveal
    what it may not.
    """

    __tablename__ = "user_menu_customization"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("page.id", ondelete="CASCADE"), nullable=False
    )
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_label: Mapped[str | None] = mapped_column(String, nullable=True)
    custom_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "page_id", name="uq_user_menu_customization"),
    )
