from pydantic import BaseModel, Field


class PermissionCheckResponse(BaseModel):
    role: str
    resource: str
    action: str
    allowed: bool


class PermissionMatrixResponse(BaseModel):
    """Every page with every action for one role"""

    role: str
    permissions: dict[str, dict[str, bool]]
    available_actions: list[str]


class ActionGrantUpdate(BaseModel):
    """Schema for setting an action-tier grant"""

    role: str = Field(..., min_length=1, max_length=100)
    page_name: str = Field(..., min_length=1, max_length=255)
    action: str = Field(..., min_length=1, max_length=50, description="e.g. view, delete, export")
    allowed: bool


class ResourceGrantUpdate(BaseModel):
    """Schema for setting a resource-tier grant"""

    role: str = Field(..., min_length=1, max_length=100)
    page_name: str = Field(..., min_length=1, max_length=255)
    allowed: bool


class GrantChangeResponse(BaseModel):
    role: str
    page_name: str
    action: str | None = None
    allowed: bool
    previous: bool | None = Field(None, description="Value before the change; null if newly created")


class PageUpdate(BaseModel):
    """Editable page metadata; only fields present in the request are changed"""

    page_path: str | None = Field(None, max_length=500)
    page_title: str | None = Field(None, max_length=255)
    page_title_km: str | None = Field(None, max_length=255)
    icon_name: str | None = Field(None, max_length=100)
    badge_text: str | None = Field(None, max_length=50)
    badge_color: str | None = Field(None, max_length=50)
    css_classes: str | None = None
    external_url: str | None = None
    opens_in_new_tab: bool | None = None
    parent_page_id: int | None = None
    is_parent_menu: bool | None = None
    menu_level: int | None = Field(None, ge=0)
    sort_order: int | None = Field(None, ge=0)
    is_displayed_in_menu: bool | None = None
    menu_visibility: str | None = Field(None, description="visible, hidden or conditional")
    menu_group: str | None = Field(None, max_length=100)


class PageResponse(BaseModel):
    id: int
    page_name: str
    page_path: str | None = None
    page_title: str | None = None
    parent_page_id: int | None = None
    sort_order: int | None = None
    is_displayed_in_menu: bool
    menu_visibility: str
    menu_group: str | None = None


class MenuOrderUpdate(BaseModel):
    """page_name -> sort_order"""

    orders: dict[str, int] = Field(..., min_length=1)


class MenuOrderResponse(BaseModel):
    pages_affected: int
