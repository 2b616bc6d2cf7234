"""Application services."""

from edu_access.application.services.audit_recorder import AuditRecorder
from edu_access.application.services.authorization import AuthorizationFacade
from edu_access.application.services.menu_composer import MenuComposer
from edu_access.application.services.permission_admin import \
    PermissionAdminService
from edu_access.application.services.permission_resolver import (
    PermissionResolver, decide)

__all__ = [
    "AuditRecorder",
    "AuthorizationFacade",
    "MenuComposer",
    "PermissionAdminService",
    "PermissionResolver",
    "decide",
]
