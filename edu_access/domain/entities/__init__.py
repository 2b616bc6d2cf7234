"""Domain entities."""

from edu_access.domain.entities.actor import AuthorizedActor
from edu_access.domain.entities.audit import (ChangeRecord, DeletedRecord,
                                              DependentSummary)
from edu_access.domain.entities.menu import MenuNode
from edu_access.domain.entities.page import (
    DisplayConditionRecord,
    MenuCustomizationRecord,
    PageRecord,
)

__all__ = [
    "AuthorizedActor",
    "ChangeRecord",
    "DeletedRecord",
    "DependentSummary",
    "DisplayConditionRecord",
    "MenuCustomizationRecord",
    "MenuNode",
    "PageRecord",
]
