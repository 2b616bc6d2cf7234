"""
Read models handed out by the permission store.

They are plain dataclasses rather than ORM rows so the resolver and the
menu composer work the same against the SQL store and the in-memory fake.
"""

from dataclasses import dataclass
from typing import Any

from edu_access.domain.enums import MenuVisibility


@dataclass
class PageRecord:
    """A protected page and its menu metadata."""

    id: int
    page_name: str
    page_path: str | None = None
    page_title: str | None = None
    page_title_km: str | None = None
    icon_name: str | None = None
    parent_page_id: int | None = None
    is_parent_menu: bool = False
    menu_level: int = 0
    sort_order: int | None = None
    is_displayed_in_menu: bool = True
    menu_visibility: MenuVisibility = MenuVisibility.VISIBLE
    menu_group: str | None = None
    badge_text: str | None = None
    badge_color: str | None = None
    css_classes: str | None = None
    external_url: str | None = None
    opens_in_new_tab: bool = False


@dataclass
class DisplayConditionRecord:
    """One (type, operator, value) rule attached to a page."""

    page_id: int
    condition_type: str
    condition_operator: str
    condition_value: Any


@dataclass
class MenuCustomizationRecord:
    """Per-user presentation overlay for one page. Never grants access."""

    user_id: str
    page_id: int
    is_hidden: bool = False
    is_pinned: bool = False
    custom_label: str | None = None
    custom_order: int | None = None
