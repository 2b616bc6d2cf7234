"""
Permission store interface (port).

The resolver, the menu composer and the permission admin service only
talk to this protocol, never to a session or connection directly, so
tests can swap in an in-memory store. Implementations raise
StoreUnavailableError when the backing store cannot be reached.
"""

from __future__ import annotations

from typing import Any, Protocol

from edu_access.domain.entities import (
    DisplayConditionRecord,
    MenuCustomizationRecord,
    PageRecord,
)


class IPermissionStore(Protocol):
    """Read/write contract over pages, grants, conditions and customizations (DIP)"""

    # Grants
    async def get_action_grant(self, role: str, page_name: str, action: str) -> bool | None:
        """Action-tier value, or None when no row exists"""
        ...

    async def get_resource_grant(self, role: str, page_name: str) -> bool | None:
        """Resource-tier value, or None when no row exists"""
        ...

    async def has_any_grants(self) -> bool:
        """False only when neither grant table holds a single row"""
        ...

    async def list_resource_grants(self, role: str) -> dict[str, bool]:
        """page_name -> allowed for one role"""
        ...

    async def list_action_grants(self, role: str) -> dict[str, dict[str, bool]]:
        """page_name -> {action: allowed} for one role"""
        ...

    async def upsert_resource_grant(self, page_id: int, role: str, allowed: bool) -> bool | None:
        """Write a resource grant, returning the previous value (None if new)"""
        ...

    async def upsert_action_grant(
        self, page_id: int, role: str, action: str, allowed: bool
    ) -> bool | None:
        """Write an action grant, returning the previous value (None if new)"""
        ...

    # Pages and conditions
    async def list_pages(self) -> list[PageRecord]:
        ...

    async def get_page_by_name(self, page_name: str) -> PageRecord | None:
        ...

    async def get_page(self, page_id: int) -> PageRecord | None:
        ...

    async def update_page(self, page_id: int, changes: dict[str, Any]) -> PageRecord:
        """Apply already-validated metadata changes and return the updated page"""
        ...

    async def set_sort_orders(self, orders: dict[int, int]) -> None:
        """page_id -> sort_order for several pages at once"""
        ...


    async def list_display_conditions(
        self, page_ids: list[int]
    ) -> dict[int, list[DisplayConditionRecord]]:
        """Active conditions keyed by page id"""
        ...

    async def add_display_condition(
        self, page_id: int, condition_type: str, operator: str, value: Any
    ) -> DisplayConditionRecord:
        ...

    # Per-user overlay
    async def list_customizations(self, user_id: str) -> dict[int, MenuCustomizationRecord]:
        """Customizations keyed by page id"""
        ...

    async def save_customization(
        self,
        user_id: str,
        page_id: int,
        *,
        is_hidden: bool | None = None,
        is_pinned: bool | None = None,
        custom_label: str | None = None,
        custom_order: int | None = None,
    ) -> MenuCustomizationRecord:
        """Create on first use, otherwise update only the fields that are not None"""
        ...
