from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class Role(CuidMixin, TimestampMixin, Base):
    """
    Named actor class (e.g. 'admin', 'director', 'teacher').

    Roles are flat: grants reference them by name and no hierarchy is
    stored. Who may create whom is decided outside this package.
    """

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )  # System roles cannot be renamed or removed
