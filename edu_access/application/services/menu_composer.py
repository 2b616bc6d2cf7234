"""
Menu composition.

Builds the per-user navigation tree from page metadata, the role's view
access, display conditions and the user's own overlay. Composition only
decides what is shown: navigating to a page must still go through
`has_page_access`, and a user's overlay can hide or reorder entries but
never reveal one the role cannot view.
"""

from __future__ import annotations

from edu_access.application.interfaces.permission_store import IPermissionStore
from edu_access.application.services.display_conditions import (
    ConditionContext, conditions_pass)
from edu_access.application.services.permission_resolver import \
    PermissionResolver
from edu_access.domain.entities import (MenuCustomizationRecord, MenuNode,
                                        PageRecord)
from edu_access.domain.enums import MenuVisibility, PageAction
from edu_access.domain.exceptions import (ResourceNotFoundException,
                                          ValidationException)
from edu_access.infrastructure.config.settings import get_settings
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)

MAX_CUSTOM_LABEL_LENGTH = 100


def _sort_key(node: MenuNode) -> tuple[bool, int, int]:
    order = node.effective_order
    return (order is None, order if order is not None else 0, node.id)


def break_parent_cycles(parents: dict[int, int | None]) -> dict[int, int | None]:
    """
    Return a parent map without cycles or dangling parents.

    A parent that is not itself in the map makes the page a root. In a
    cycle, the member with the lowest id is promoted to root so every page
    still appears exactly once.
    """
    resolved = {
        page_id: (parent_id if parent_id in parents and parent_id != page_id else None)
        for page_id, parent_id in parents.items()
    }

    for start in sorted(resolved):
        path: list[int] = []
        seen: set[int] = set()
        current: int | None = start
        while current is not None and current not in seen:
            seen.add(current)
            path.append(current)
            current = resolved[current]
        if current is not None:
            cycle = path[path.index(current):]
            root = min(cycle)
            logger.warning(f"Menu parent cycle {cycle}; promoting page {root} to root")
            resolved[root] = None
    return resolved


def build_tree(
    pages: list[PageRecord],
    customizations: dict[int, MenuCustomizationRecord],
) -> list[MenuNode]:
    """Nest visible pages under their parents and order every sibling group."""
    nodes = {
        page.id: MenuNode(page=page, customization=customizations.get(page.id))
        for page in pages
    }
    parents = break_parent_cycles({page.id: page.parent_page_id for page in pages})

    roots: list[MenuNode] = []
    for page_id, node in nodes.items():
        parent_id = parents[page_id]
        if parent_id is None:
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    for node in nodes.values():
        node.children.sort(key=_sort_key)
    roots.sort(key=_sort_key)
    return roots


class MenuComposer:
    """Per-user navigation menu built on the permission resolver."""

    def __init__(self, store: IPermissionStore, resolver: PermissionResolver):
        self.store = store
        self.resolver = resolver
        self.default_group = get_settings().default_menu_group

    async def compose_menu(self, user_id: str, role: str) -> list[MenuNode]:
        pages = await self.store.list_pages()
        customizations = await self.store.list_customizations(user_id)
        matrix = await self.resolver.get_effective_permissions(role)

        conditional_ids = [
            page.id for page in pages if page.menu_visibility == MenuVisibility.CONDITIONAL
        ]
        conditions = await self.store.list_display_conditions(conditional_ids)
        context = ConditionContext(user_id=user_id, role=role)

        visible: list[PageRecord] = []
        for page in pages:
            customization = customizations.get(page.id)
            if customization and customization.is_hidden:
                continue
            if not page.is_displayed_in_menu:
                continue
            if page.menu_visibility == MenuVisibility.HIDDEN:
                continue
            if page.menu_visibility == MenuVisibility.CONDITIONAL and not conditions_pass(
                conditions.get(page.id, []), context
            ):
                continue
            if not matrix.get(page.page_name, {}).get(PageAction.VIEW.value, False):
                continue
            visible.append(page)

        return build_tree(visible, customizations)

    async def compose_grouped_menu(self, user_id: str, role: str) -> dict[str, list[MenuNode]]:
        """Roots grouped by menu_group, keeping their order within each group"""
        grouped: dict[str, list[MenuNode]] = {}
        for root in await self.compose_menu(user_id, role):
            group = root.page.menu_group or self.default_group
            grouped.setdefault(group, []).append(root)
        return grouped

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
        """Create or update the user's overlay for one page; unset fields are kept"""
        if custom_label is not None and len(custom_label) > MAX_CUSTOM_LABEL_LENGTH:
            raise ValidationException(
                f"custom_label must be at most {MAX_CUSTOM_LABEL_LENGTH} characters",
                field="custom_label",
            )
        if await self.store.get_page(page_id) is None:
            raise ResourceNotFoundException("Page", str(page_id))

        return await self.store.save_customization(
            user_id,
            page_id,
            is_hidden=is_hidden,
            is_pinned=is_pinned,
            custom_label=custom_label,
            custom_order=custom_order,
        )

    async def has_page_access(self, role: str, page_name: str) -> bool:
        """Navigation check, independent of what the menu shows"""
        return await self.resolver.can_perform(role, page_name, PageAction.VIEW.value)
