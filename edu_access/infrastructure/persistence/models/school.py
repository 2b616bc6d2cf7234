"""
Domain tables that support reversible deletion.

Only the columns the authorization and audit flows touch are modelled;
the rest of the school domain lives outside this package.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from edu_access.infrastructure.persistence.database import Base
from edu_access.infrastructure.persistence.models.mixins import (
    CuidMixin, SoftDeleteMixin, TimestampMixin)


class Teacher(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "teacher"

    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    school_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)


class SchoolClass(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "school_class"

    name: Mapped[str] = mapped_column(String, nullable=False)
    grade: Mapped[str | None] = mapped_column(String, nullable=True)
    teacher_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("teacher.id", ondelete="SET NULL"), nullable=True, index=True
    )
