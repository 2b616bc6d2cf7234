from pydantic import BaseModel, ConfigDict, Field


class MenuItemResponse(BaseModel):
    """A visible menu entry and its visible children"""

    id: int
    page_name: str
    page_path: str | None = None
    label: str
    label_km: str | None = None
    icon_name: str | None = None
    menu_group: str | None = None
    menu_level: int = 0
    badge_text: str | None = None
    badge_color: str | None = None
    css_classes: str | None = None
    external_url: str | None = None
    opens_in_new_tab: bool = False
    is_pinned: bool = False
    children: list["MenuItemResponse"] = Field(default_factory=list)


class MenuResponse(BaseModel):
    items: list[MenuItemResponse]


class GroupedMenuResponse(BaseModel):
    groups: dict[str, list[MenuItemResponse]]


class MenuCustomizationUpdate(BaseModel):
    """Fields left out keep their current value"""

    is_hidden: bool | None = None
    is_pinned: bool | None = None
    custom_label: str | None = Field(None, min_length=1, max_length=100)
    custom_order: int | None = None


class MenuCustomizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    page_id: int
    is_hidden: bool
    is_pinned: bool
    custom_label: str | None = None
    custom_order: int | None = None
