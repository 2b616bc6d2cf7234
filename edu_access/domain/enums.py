"""
Enumerations shared by the authorization, audit and menu services.
"""

from enum import Enum


class PageAction(str, Enum):
    """Fine-grained actions that can be granted on a page"""

    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    BULK_UPDATE = "bulk_update"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class AuditActionType(str, Enum):
    """Kinds of change recorded in the audit trail"""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    READ = "READ"
    RESTORE = "RESTORE"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class MenuVisibility(str, Enum):
    """Display mode of a page in the navigation menu"""

    VISIBLE = "visible"
    HIDDEN = "hidden"
    CONDITIONAL = "conditional"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [visibility.value for visibility in cls]


class ConditionType(str, Enum):
    """Display condition variants. Only ROLE is evaluated; the rest always pass."""

    ROLE = "role"
    USER_COUNT = "user_count"
    FEATURE_FLAG = "feature_flag"
    TIME_BASED = "time_based"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [condition.value for condition in cls]


class ConditionOperator(str, Enum):
    """Comparison operators usable in display conditions"""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [operator.value for operator in cls]
