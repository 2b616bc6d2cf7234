from typing import Annotated

from fastapi import APIRouter, Depends, Query

from edu_access.application.services.permission_admin import \
    PermissionAdminService
from edu_access.application.services.permission_resolver import \
    PermissionResolver
from edu_access.domain.entities import AuthorizedActor
from edu_access.presentation.api.dependencies import (
    get_current_actor, get_permission_admin_service, get_permission_resolver,
    require_action)
from edu_access.presentation.api.v1.schemas.permission import (
    ActionGrantUpdate, GrantChangeResponse, MenuOrderResponse, MenuOrderUpdate,
    PageResponse, PageUpdate, PermissionCheckResponse, PermissionMatrixResponse,
    ResourceGrantUpdate)
from edu_access.shared.context import ActorContext

router = APIRouter()

# Page that guards permission administration
PERMISSIONS_PAGE = "page_permissions"


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
    resource: Annotated[str, Query(min_length=1)],
    action: Annotated[str, Query(min_length=1)] = "view",
):
    """Whether the current user's role may perform an action on a page"""
    allowed = await resolver.can_perform(actor.role, resource, action)
    return PermissionCheckResponse(
        role=actor.role, resource=resource, action=action.lower(), allowed=allowed
    )


@router.get("/matrix/{role}", response_model=PermissionMatrixResponse)
async def get_permission_matrix(
    role: str,
    _: Annotated[AuthorizedActor, Depends(require_action(PERMISSIONS_PAGE, "view"))],
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
):
    """Effective permissions of a role on every page"""
    return PermissionMatrixResponse(
        role=role,
        permissions=await resolver.get_effective_permissions(role),
        available_actions=resolver.get_available_actions(),
    )


@router.put("/actions", response_model=GrantChangeResponse)
async def set_action_grant(
    data: ActionGrantUpdate,
    actor: Annotated[AuthorizedActor, Depends(require_action(PERMISSIONS_PAGE, "update"))],
    admin: Annotated[PermissionAdminService, Depends(get_permission_admin_service)],
):
    """Grant or revoke one action on a page for a role"""
    previous = await admin.set_action_grant(
        actor, data.role, data.page_name, data.action, data.allowed
    )
    return GrantChangeResponse(
        role=data.role,
        page_name=data.page_name,
        action=data.action.lower(),
        allowed=data.allowed,
        previous=previous,
    )


@router.put("/resources", response_model=GrantChangeResponse)
async def set_resource_grant(
    data: ResourceGrantUpdate,
    actor: Annotated[AuthorizedActor, Depends(require_action(PERMISSIONS_PAGE, "update"))],
    admin: Annotated[PermissionAdminService, Depends(get_permission_admin_service)],
):
    """Grant or revoke page access for a role"""
    previous = await admin.set_resource_grant(actor, data.role, data.page_name, data.allowed)
    return GrantChangeResponse(
        role=data.role, page_name=data.page_name, allowed=data.allowed, previous=previous
    )


@router.put("/pages/order", response_model=MenuOrderResponse)
async def reorder_pages(
    data: MenuOrderUpdate,
    actor: Annotated[AuthorizedActor, Depends(require_action(PERMISSIONS_PAGE, "update"))],
    admin: Annotated[PermissionAdminService, Depends(get_permission_admin_service)],
):
    """Reorder menu items in one audited change"""
    return MenuOrderResponse(pages_affected=await admin.reorder_pages(actor, data.orders))


@router.patch("/pages/{page_name}", response_model=PageResponse)
async def update_page(
    page_name: str,
    data: PageUpdate,
    actor: Annotated[AuthorizedActor, Depends(require_action(PERMISSIONS_PAGE, "update"))],
    admin: Annotated[PermissionAdminService, Depends(get_permission_admin_service)],
):
    """Edit a page's menu metadata"""
    page = await admin.update_page(actor, page_name, data.model_dump(exclude_unset=True))
    return PageResponse(
        id=page.id,
        page_name=page.page_name,
        page_path=page.page_path,
        page_title=page.page_title,
        parent_page_id=page.parent_page_id,
        sort_order=page.sort_order,
        is_displayed_in_menu=page.is_displayed_in_menu,
        menu_visibility=page.menu_visibility.value,
        menu_group=page.menu_group,
    )
