from edu_access.infrastructure.persistence.models.audit import AuditEntry
from edu_access.infrastructure.persistence.models.menu import UserMenuCustomization
# Mixins for model composition
from edu_access.infrastructure.persistence.models.mixins import (
    CuidMixin, SoftDeleteMixin, TimestampMixin)
from edu_access.infrastructure.persistence.models.page import (
    MenuDisplayCondition, Page)
from edu_access.infrastructure.persistence.models.permission import (
    PageActionPermission, RolePagePermission)
from edu_access.infrastructure.persistence.models.role import Role
from edu_access.infrastructure.persistence.models.school import (SchoolClass,
                                                                 Teacher)

__all__ = [
    # Models
    "AuditEntry",
    "MenuDisplayCondition",
    "Page",
    "PageActionPermission",
    "Role",
    "RolePagePermission",
    "SchoolClass",
    "Teacher",
    "UserMenuCustomization",
    # Mixins
    "CuidMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
]
