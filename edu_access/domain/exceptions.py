"""
Domain exceptions for EduAccess.

Every error raised by the authorization, audit and menu services derives
from EduAccessException so the HTTP layer can render it uniformly.
Messages are safe to show to end users; anything internal (driver errors,
grant-table state) goes to the logs only.
"""

from typing import Any


class EduAccessException(Exception):
    """
    Base exception for all EduAccess errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(EduAccessException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(EduAccessException):
    """Raised when no usable actor identity is available."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "AUTHENTICATION_ERROR")


class ForbiddenError(EduAccessException):
    """The resolver denied the action. Never retried automatically."""

    def __init__(self, resource: str, action: str):
        self.resource = resource
        self.action = action
        super().__init__(
            f"You don't have permission to {action} on {resource}",
            "FORBIDDEN",
            {"resource": resource, "action": action},
        )


class StoreUnavailableError(EduAccessException):
    """
    The permission store could not be reached or did not answer in time.

    Always treated as a denial. Safe to retry with backoff.
    """

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        self.reason = reason
        super().__init__("Service temporarily unavailable", "STORE_UNAVAILABLE")


class InvalidGrantSpecError(EduAccessException):
    """A grant or condition write is malformed. Raised before touching the store."""

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        action: str | None = None,
    ):
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "INVALID_GRANT_SPEC", details)


class AuditWriteFailedError(EduAccessException):
    """A transactional audit entry could not be written; the caller's transaction must abort."""

    def __init__(self, action_type: str, table_name: str, transactional: bool = True):
        self.transactional = transactional
        super().__init__(
            f"Failed to record {action_type} audit entry for {table_name}",
            "AUDIT_WRITE_FAILED",
            {"action_type": action_type, "table_name": table_name},
        )


class ResourceNotFoundException(EduAccessException):
    """Raised when a requested record is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class RestoreWindowExpiredError(EduAccessException):
    """Raised when a soft-deleted record is past its retention period."""

    def __init__(self, table_name: str, record_id: str):
        super().__init__(
            f"{table_name} {record_id} can no longer be restored",
            "RESTORE_WINDOW_EXPIRED",
            {"table_name": table_name, "record_id": record_id},
        )
