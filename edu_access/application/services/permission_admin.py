"""
Administrative writes to grants, display conditions and page metadata.

Every write is validated before the store is touched and recorded through
the audit recorder in the caller's transaction. Cached permission matrices
are only dropped by apply_cache_invalidations(), which the caller runs once
that transaction has committed; a rolled-back write leaves the cache alone.
The first grant written to an empty store changes the superuser fallback
for every role, so it drops every cached matrix, not just one role's.
"""

from __future__ import annotations

from typing import Any

import jsonschema

from edu_access.application.interfaces.permission_store import IPermissionStore
from edu_access.application.services.audit_recorder import AuditRecorder
from edu_access.application.services.permission_resolver import (
    PermissionResolver, normalize_action)
from edu_access.domain.entities import (AuthorizedActor, ChangeRecord,
                                        DisplayConditionRecord, PageRecord)
from edu_access.domain.enums import (AuditActionType, ConditionOperator,
                                     ConditionType, MenuVisibility)
from edu_access.domain.exceptions import (InvalidGrantSpecError,
                                          ValidationException)
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)

_ROLE_OPERATORS = {
    ConditionOperator.IN.value,
    ConditionOperator.NOT_IN.value,
    ConditionOperator.EQUALS.value,
    ConditionOperator.NOT_EQUALS.value,
}

CONDITION_VALUE_SCHEMAS: dict[ConditionType, dict[str, Any]] = {
    ConditionType.ROLE: {
        "oneOf": [
            {"type": "string", "minLength": 1},
            {
                "type": "array",
                "items": {"type": "string", "minLength": 1},
                "minItems": 1,
            },
        ]
    },
    ConditionType.USER_COUNT: {"type": "integer", "minimum": 0},
    ConditionType.FEATURE_FLAG: {"type": ["string", "boolean"]},
    ConditionType.TIME_BASED: {
        "type": "object",
        "properties": {
            "start": {"type": "string"},
            "end": {"type": "string"},
        },
        "minProperties": 1,
        "additionalProperties": False,
    },
}

# page_name is the key grants are resolved by, so it stays fixed
EDITABLE_PAGE_FIELDS = frozenset(
    {
        "page_path",
        "page_title",
        "page_title_km",
        "icon_name",
        "badge_text",
        "badge_color",
        "css_classes",
        "external_url",
        "opens_in_new_tab",
        "parent_page_id",
        "is_parent_menu",
        "menu_level",
        "sort_order",
        "is_displayed_in_menu",
        "menu_visibility",
        "menu_group",
    }
)

REQUIRED_PAGE_FIELDS = frozenset(
    {"opens_in_new_tab", "is_parent_menu", "menu_level", "is_displayed_in_menu", "menu_visibility"}
)


def _was(previous: bool | None) -> str:
    if previous is None:
        return ""
    return " (was granted)" if previous else " (was revoked)"


class PermissionAdminService:
    """Audited management of grants, display conditions and menu pages."""

    def __init__(
        self,
        store: IPermissionStore,
        recorder: AuditRecorder,
        resolver: PermissionResolver,
    ):
        self.store = store
        self.recorder = recorder
        self.resolver = resolver
        self._stale_roles: set[str] = set()
        self._stale_all = False

    async def set_action_grant(
        self,
        actor: AuthorizedActor,
        role: str,
        page_name: str,
        action: str,
        allowed: bool,
    ) -> bool | None:
        """
        Create or update an action-tier grant.

        Returns:
            The previous value, or None if the grant did not exist

        Raises:
            InvalidGrantSpecError: empty role, unknown action or unknown page
        """
        role = self._require_role(role)
        action = normalize_action(action)
        page = await self._require_page(page_name, action)

        had_grants = await self.store.has_any_grants()
        previous = await self.store.upsert_action_grant(page.id, role, action, allowed)
        verb = "Granted" if allowed else "Revoked"
        await self.recorder.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.CREATE if previous is None else AuditActionType.UPDATE,
                table_name="page_action_permission",
                record_id=f"{page.id}:{role}:{action}",
                old_data=None if previous is None else {"is_allowed": previous},
                new_data={
                    "page_name": page.page_name,
                    "role": role,
                    "action_name": action,
                    "is_allowed": allowed,
                },
                changes_summary=(
                    f"{verb} '{action}' permission for role '{role}' "
                    f"on page '{page.page_name}'{_was(previous)}"
                ),
            )
        )
        self._mark_stale(role, had_grants)
        logger.info("%s %s on %s for role %s", verb, action, page.page_name, role)
        return previous

    async def set_resource_grant(
        self,
        actor: AuthorizedActor,
        role: str,
        page_name: str,
        allowed: bool,
    ) -> bool | None:
        """Create or update a resource-tier grant; returns the previous value"""
        role = self._require_role(role)
        page = await self._require_page(page_name)

        had_grants = await self.store.has_any_grants()
        previous = await self.store.upsert_resource_grant(page.id, role, allowed)
        verb = "Granted" if allowed else "Revoked"
        await self.recorder.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.CREATE if previous is None else AuditActionType.UPDATE,
                table_name="role_page_permission",
                record_id=f"{page.id}:{role}",
                old_data=None if previous is None else {"is_allowed": previous},
                new_data={"page_name": page.page_name, "role": role, "is_allowed": allowed},
                changes_summary=(
                    f"{verb} access to page '{page.page_name}' "
                    f"for role '{role}'{_was(previous)}"
                ),
            )
        )
        self._mark_stale(role, had_grants)
        logger.info("%s access to %s for role %s", verb, page.page_name, role)
        return previous

    async def add_display_condition(
        self,
        actor: AuthorizedActor,
        page_name: str,
        condition_type: str,
        operator: str,
        value: Any,
    ) -> DisplayConditionRecord:
        """Attach a validated display condition to a page"""
        condition_type, operator = self.validate_condition(condition_type, operator, value)
        page = await self._require_page(page_name)

        condition = await self.store.add_display_condition(page.id, condition_type, operator, value)
        await self.recorder.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.CREATE,
                table_name="menu_display_condition",
                record_id=str(page.id),
                new_data={
                    "page_name": page.page_name,
                    "condition_type": condition_type,
                    "condition_operator": operator,
                    "condition_value": value,
                },
                changes_summary=(
                    f"Added {condition_type} display condition ({operator} {value!r}) "
                    f"to page '{page.page_name}'"
                ),
            )
        )
        return condition

    async def update_page(
        self, actor: AuthorizedActor, page_name: str, changes: dict[str, Any]
    ) -> PageRecord:
        """
        Edit a page's menu metadata. Only fields whose value actually
        changes are written and audited.

        Raises:
            InvalidGrantSpecError: unknown page
            ValidationException: a field is not editable or has a bad value
        """
        page = await self._require_page(page_name)
        self._validate_page_changes(changes)
        if "parent_page_id" in changes:
            await self._validate_parent(page, changes["parent_page_id"])

        old_data: dict[str, Any] = {}
        new_data: dict[str, Any] = {}
        for name, value in changes.items():
            current = getattr(page, name)
            if isinstance(current, MenuVisibility):
                current = current.value
            if current != value:
                old_data[name] = current
                new_data[name] = value
        if not new_data:
            return page

        updated = await self.store.update_page(page.id, new_data)
        await self.recorder.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.UPDATE,
                table_name="page",
                record_id=str(page.id),
                old_data=old_data,
                new_data=new_data,
                changes_summary=f'Updated page "{page.page_name}" ({updated.page_path})',
                context={"page_id": page.id, "page_path": updated.page_path},
            )
        )
        logger.info("Updated page %s: %s", page.page_name, ", ".join(sorted(new_data)))
        return updated

    async def reorder_pages(self, actor: AuthorizedActor, orders: dict[str, int]) -> int:
        """Set sort_order for several pages in one audited change; returns the page count"""
        if not orders:
            raise ValidationException("At least one page order is required", field="orders")
        if any(order < 0 for order in orders.values()):
            raise ValidationException("Sort order must not be negative", field="orders")

        pages = [await self._require_page(page_name) for page_name in orders]
        await self.store.set_sort_orders({page.id: orders[page.page_name] for page in pages})
        await self.recorder.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.UPDATE,
                table_name="page",
                old_data={page.page_name: page.sort_order for page in pages},
                new_data=dict(orders),
                changes_summary=f"Reordered menu items ({len(pages)} pages affected)",
                context={"page_count": len(pages), "action": "reorder"},
            )
        )
        return len(pages)

    async def apply_cache_invalidations(self) -> None:
        """Drop cached matrices made stale by this service's writes"""
        if self._stale_all:
            await self.resolver.invalidate_all()
        else:
            for role in sorted(self._stale_roles):
                await self.resolver.invalidate_role_cache(role)
        self._stale_roles.clear()
        self._stale_all = False

    def _mark_stale(self, role: str, had_grants: bool) -> None:
        if had_grants:
            self._stale_roles.add(role)
        else:
            self._stale_all = True

    @staticmethod
    def _validate_page_changes(changes: dict[str, Any]) -> None:
        if not changes:
            raise ValidationException("No page fields to update")
        locked = sorted(set(changes) - EDITABLE_PAGE_FIELDS)
        if locked:
            raise ValidationException(
                f"Page field(s) cannot be changed: {', '.join(locked)}", field=locked[0]
            )
        for name in sorted(REQUIRED_PAGE_FIELDS & set(changes)):
            if changes[name] is None:
                raise ValidationException(f"Page field '{name}' cannot be null", field=name)
        visibility = changes.get("menu_visibility")
        if visibility is not None and visibility not in MenuVisibility.values():
            raise ValidationException(
                f"Unknown menu visibility '{visibility}'", field="menu_visibility"
            )

    async def _validate_parent(self, page: PageRecord, parent_page_id: int | None) -> None:
        if parent_page_id is None:
            return
        if parent_page_id == page.id:
            raise ValidationException("A page cannot be its own parent", field="parent_page_id")
        if await self.store.get_page(parent_page_id) is None:
            raise ValidationException(
                f"Parent page {parent_page_id} does not exist", field="parent_page_id"
            )

    @staticmethod
    def validate_condition(condition_type: str, operator: str, value: Any) -> tuple[str, str]:
        """Check type, operator and value shape; returns the canonical (type, operator)"""
        try:
            kind = ConditionType(condition_type)
        except ValueError as e:
            raise InvalidGrantSpecError(
                f"Unknown condition type '{condition_type}'. "
                f"Expected one of: {', '.join(ConditionType.values())}"
            ) from e

        if operator not in ConditionOperator.values():
            raise InvalidGrantSpecError(f"Unknown condition operator '{operator}'")
        if kind == ConditionType.ROLE and operator not in _ROLE_OPERATORS:
            raise InvalidGrantSpecError(
                f"Operator '{operator}' is not supported for role conditions"
            )

        try:
            jsonschema.validate(instance=value, schema=CONDITION_VALUE_SCHEMAS[kind])
        except jsonschema.ValidationError as e:
            raise InvalidGrantSpecError(
                f"Invalid value for {kind.value} condition: {e.message}"
            ) from e
        return kind.value, operator

    @staticmethod
    def _require_role(role: str) -> str:
        role = (role or "").strip()
        if not role:
            raise InvalidGrantSpecError("Role must not be empty")
        return role

    async def _require_page(self, page_name: str, action: str | None = None) -> PageRecord:
        page = await self.store.get_page_by_name(page_name) if page_name else None
        if page is None:
            raise InvalidGrantSpecError(
                f"Unknown resource '{page_name}'", resource=page_name, action=action
            )
        return page
