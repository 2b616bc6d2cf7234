"""Application ports."""

from edu_access.application.interfaces.permission_store import IPermissionStore

__all__ = ["IPermissionStore"]
