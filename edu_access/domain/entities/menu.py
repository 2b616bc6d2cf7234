"""Menu tree node produced by the menu composer."""

from dataclasses import dataclass, field
from typing import Any

from edu_access.domain.entities.page import MenuCustomizationRecord, PageRecord


@dataclass
class MenuNode:
    """A visible page in the navigation tree."""

    page: PageRecord
    customization: MenuCustomizationRecord | None = None
    children: list["MenuNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.page.id

    @property
    def label(self) -> str:
        if self.customization and self.customization.custom_label:
            return self.customization.custom_label
        return self.page.page_title or self.page.page_name

    @property
    def is_pinned(self) -> bool:
        return bool(self.customization and self.customization.is_pinned)

    @property
    def effective_order(self) -> int | None:
        if self.customization and self.customization.custom_order is not None:
            return self.customization.custom_order
        return self.page.sort_order

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        page = self.page
        return {
            "id": page.id,
            "page_name": page.page_name,
            "page_path": page.page_path,
            "label": self.label,
            "label_km": page.page_title_km,
            "icon_name": page.icon_name,
            "menu_group": page.menu_group,
            "menu_level": page.menu_level,
            "badge_text": page.badge_text,
            "badge_color": page.badge_color,
            "css_classes": page.css_classes,
            "external_url": page.external_url,
            "opens_in_new_tab": page.opens_in_new_tab,
            "is_pinned": self.is_pinned,
            "children": [child.to_dict() for child in self.children],
        }
