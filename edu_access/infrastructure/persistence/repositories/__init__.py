""" Repository module for the persistence layer. """

from edu_access.infrastructure.persistence.repositories.audit_repo import (
    AuditLogFilter, AuditRepository)
from edu_access.infrastructure.persistence.repositories.base import BaseRepository
from edu_access.infrastructure.persistence.repositories.permission_store import \
    SqlPermissionStore
from edu_access.infrastructure.persistence.repositories.soft_delete_repo import \
    SoftDeleteRepository

__all__ = [
    "AuditLogFilter",
    "AuditRepository",
    "BaseRepository",
    "SoftDeleteRepository",
    "SqlPermissionStore",
]
