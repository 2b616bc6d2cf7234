"""
SQLAlchemy implementation of the permission store.

Rows are converted to the plain records in edu_access.domain.entities so
callers never hold ORM objects. Connectivity failures are translated into
StoreUnavailableError; integrity errors on writes propagate unchanged.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.domain.entities import (
    DisplayConditionRecord,
    MenuCustomizationRecord,
    PageRecord,
)
from edu_access.domain.enums import MenuVisibility
from edu_access.domain.exceptions import StoreUnavailableError
from edu_access.infrastructure.persistence.models.menu import UserMenuCustomization
from edu_access.infrastructure.persistence.models.page import MenuDisplayCondition, Page
from edu_access.infrastructure.persistence.models.permission import (
    PageActionPermission,
    RolePagePermission,
)
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_CONNECTIVITY_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    ConnectionError,
    OSError,
)


def store_operation(name: str):
    """Translate connectivity failures of a store method into StoreUnavailableError."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except _CONNECTIVITY_ERRORS as e:
                logger.error("Permission store operation %s failed: %s", name, e)
                raise StoreUnavailableError(name, str(e)) from e

        return wrapper

    return decorator


def _to_page_record(page: Page) -> PageRecord:
    try:
        visibility = MenuVisibility(page.menu_visibility)
    except ValueError:
        visibility = MenuVisibility.HIDDEN
    return PageRecord(
        id=page.id,
        page_name=page.page_name,
        page_path=page.page_path,
        page_title=page.page_title,
        page_title_km=page.page_title_km,
        icon_name=page.icon_name,
        parent_page_id=page.parent_page_id,
        is_parent_menu=page.is_parent_menu,
        menu_level=page.menu_level,
        sort_order=page.sort_order,
        is_displayed_in_menu=page.is_displayed_in_menu,
        menu_visibility=visibility,
        menu_group=page.menu_group,
        badge_text=page.badge_text,
        badge_color=page.badge_color,
        css_classes=page.css_classes,
        external_url=page.external_url,
        opens_in_new_tab=page.opens_in_new_tab,
    )


def _to_customization_record(row: UserMenuCustomization) -> MenuCustomizationRecord:
    return MenuCustomizationRecord(
        user_id=row.user_id,
        page_id=row.page_id,
        is_hidden=row.is_hidden,
        is_pinned=row.is_pinned,
        custom_label=row.custom_label,
        custom_order=row.custom_order,
    )


class SqlPermissionStore:
    """Permission store backed by the relational database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Grants
    @store_operation("get_action_grant")
    async def get_action_grant(self, role: str, page_name: str, action: str) -> bool | None:
        result = await self.db.execute(
            select(PageActionPermission.is_allowed)
            .join(Page, Page.id == PageActionPermission.page_id)
            .where(
                PageActionPermission.role == role,
                Page.page_name == page_name,
                PageActionPermission.action_name == action,
            )
        )
        return result.scalar_one_or_none()

    @store_operation("get_resource_grant")
    async def get_resource_grant(self, role: str, page_name: str) -> bool | None:
        result = await self.db.execute(
            select(RolePagePermission.is_allowed)
            .join(Page, Page.id == RolePagePermission.page_id)
            .where(RolePagePermission.role == role, Page.page_name == page_name)
        )
        return result.scalar_one_or_none()

    @store_operation("has_any_grants")
    async def has_any_grants(self) -> bool:
        for model in (RolePagePermission, PageActionPermission):
            result = await self.db.execute(select(model.id).limit(1))
            if result.scalar_one_or_none() is not None:
                return True
        return False

    @store_operation("list_resource_grants")
    async def list_resource_grants(self, role: str) -> dict[str, bool]:
        result = await self.db.execute(
            select(Page.page_name, RolePagePermission.is_allowed)
            .join(Page, Page.id == RolePagePermission.page_id)
            .where(RolePagePermission.role == role)
        )
        return {page_name: allowed for page_name, allowed in result.all()}

    @store_operation("list_action_grants")
    async def list_action_grants(self, role: str) -> dict[str, dict[str, bool]]:
        result = await self.db.execute(
            select(Page.page_name, PageActionPermission.action_name, PageActionPermission.is_allowed)
            .join(Page, Page.id == PageActionPermission.page_id)
            .where(PageActionPermission.role == role)
        )
        grants: dict[str, dict[str, bool]] = defaultdict(dict)
        for page_name, action_name, allowed in result.all():
            grants[page_name][action_name] = allowed
        return dict(grants)

    @store_operation("upsert_resource_grant")
    async def upsert_resource_grant(self, page_id: int, role: str, allowed: bool) -> bool | None:
        result = await self.db.execute(
            select(RolePagePermission).where(
                RolePagePermission.page_id == page_id, RolePagePermission.role == role
            )
        )
        grant = result.scalar_one_or_none()
        if grant is None:
            self.db.add(RolePagePermission(page_id=page_id, role=role, is_allowed=allowed))
            await self.db.flush()
            return None

        previous = grant.is_allowed
        grant.is_allowed = allowed
        await self.db.flush()
        return previous

    @store_operation("upsert_action_grant")
    async def upsert_action_grant(
        self, page_id: int, role: str, action: str, allowed: bool
    ) -> bool | None:
        result = await self.db.execute(
            select(PageActionPermission).where(
                PageActionPermission.page_id == page_id,
                PageActionPermission.role == role,
                PageActionPermission.action_name == action,
            )
        )
        grant = result.scalar_one_or_none()
        if grant is None:
            self.db.add(
                PageActionPermission(
                    page_id=page_id, role=role, action_name=action, is_allowed=allowed
                )
            )
            await self.db.flush()
            return None

        previous = grant.is_allowed
        grant.is_allowed = allowed
        await self.db.flush()
        return previous

    # Pages and conditions
    @store_operation("list_pages")
    async def list_pages(self) -> list[PageRecord]:
        result = await self.db.execute(select(Page).order_by(Page.id))
        return [_to_page_record(page) for page in result.scalars().all()]

    @store_operation("get_page_by_name")
    async def get_page_by_name(self, page_name: str) -> PageRecord | None:
        result = await self.db.execute(select(Page).where(Page.page_name == page_name))
        page = result.scalar_one_or_none()
        return _to_page_record(page) if page else None

    @store_operation("get_page")
    async def get_page(self, page_id: int) -> PageRecord | None:
        page = await self.db.get(Page, page_id)
        return _to_page_record(page) if page else None

    @store_operation("update_page")
    async def update_page(self, page_id: int, changes: dict[str, Any]) -> PageRecord:
        page = await self.db.get(Page, page_id)
        for name, value in changes.items():
            setattr(page, name, value)
        await self.db.flush()
        await self.db.refresh(page)
        return _to_page_record(page)

    @store_operation("set_sort_orders")
    async def set_sort_orders(self, orders: dict[int, int]) -> None:
        for page_id, sort_order in orders.items():
            await self.db.execute(
                update(Page).where(Page.id == page_id).values(sort_order=sort_order)
            )


    @store_operation("list_display_conditions")
    async def list_display_conditions(
        self, page_ids: list[int]
    ) -> dict[int, list[DisplayConditionRecord]]:
        if not page_ids:
            return {}
        result = await self.db.execute(
            select(MenuDisplayCondition)
            .where(
                MenuDisplayCondition.is_active.is_(True),
                MenuDisplayCondition.page_id.in_(page_ids),
            )
            .order_by(MenuDisplayCondition.id)
        )
        conditions: dict[int, list[DisplayConditionRecord]] = defaultdict(list)
        for row in result.scalars().all():
            conditions[row.page_id].append(
                DisplayConditionRecord(
                    page_id=row.page_id,
                    condition_type=row.condition_type,
                    condition_operator=row.condition_operator,
                    condition_value=row.condition_value,
                )
            )
        return dict(conditions)

    @store_operation("add_display_condition")
    async def add_display_condition(
        self, page_id: int, condition_type: str, operator: str, value: Any
    ) -> DisplayConditionRecord:
        self.db.add(
            MenuDisplayCondition(
                page_id=page_id,
                condition_type=condition_type,
                condition_operator=operator,
                condition_value=value,
            )
        )
        await self.db.flush()
        return DisplayConditionRecord(
            page_id=page_id,
            condition_type=condition_type,
            condition_operator=operator,
            condition_value=value,
        )

    # Per-user overlay
    @store_operation("list_customizations")
    async def list_customizations(self, user_id: str) -> dict[int, MenuCustomizationRecord]:
        result = await self.db.execute(
            select(UserMenuCustomization).where(UserMenuCustomization.user_id == user_id)
        )
        return {
            row.page_id: _to_customization_record(row) for row in result.scalars().all()
        }

    @store_operation("save_customization")
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
        result = await self.db.execute(
            select(UserMenuCustomization).where(
                UserMenuCustomization.user_id == user_id,
                UserMenuCustomization.page_id == page_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = UserMenuCustomization(
                user_id=user_id,
                page_id=page_id,
                is_hidden=bool(is_hidden),
                is_pinned=bool(is_pinned),
                custom_label=custom_label,
                custom_order=custom_order,
            )
            self.db.add(row)
        else:
            if is_hidden is not None:
                row.is_hidden = is_hidden
            if is_pinned is not None:
                row.is_pinned = is_pinned
            if custom_label is not None:
                row.custom_label = custom_label
            if custom_order is not None:
                row.custom_order = custom_order
        await self.db.flush()
        return _to_customization_record(row)
