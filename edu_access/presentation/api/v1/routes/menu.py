from typing import Annotated

from fastapi import APIRouter, Depends, Query

from edu_access.application.services.menu_composer import MenuComposer
from edu_access.presentation.api.dependencies import (
    get_current_actor, get_menu_composer, get_menu_composer_transactional)
from edu_access.presentation.api.v1.schemas.menu import (
    GroupedMenuResponse, MenuCustomizationResponse, MenuCustomizationUpdate,
    MenuItemResponse, MenuResponse)
from edu_access.shared.context import ActorContext

router = APIRouter()


@router.get("", response_model=MenuResponse | GroupedMenuResponse)
async def get_menu(
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    composer: Annotated[MenuComposer, Depends(get_menu_composer)],
    grouped: Annotated[bool, Query(description="Group root entries by menu_group")] = False,
):
    """Navigation menu for the current user"""
    if grouped:
        groups = await composer.compose_grouped_menu(actor.user_id, actor.role)
        return GroupedMenuResponse(
            groups={
                name: [MenuItemResponse.model_validate(node.to_dict()) for node in nodes]
                for name, nodes in groups.items()
            }
        )

    roots = await composer.compose_menu(actor.user_id, actor.role)
    return MenuResponse(items=[MenuItemResponse.model_validate(node.to_dict()) for node in roots])


@router.put("/customizations/{page_id}", response_model=MenuCustomizationResponse)
async def customize_menu_item(
    page_id: int,
    data: MenuCustomizationUpdate,
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    composer: Annotated[MenuComposer, Depends(get_menu_composer_transactional)],
):
    """Hide, pin, relabel or reorder one entry of the current user's menu"""
    record = await composer.save_customization(
        actor.user_id,
        page_id,
        is_hidden=data.is_hidden,
        is_pinned=data.is_pinned,
        custom_label=data.custom_label,
        custom_order=data.custom_order,
    )
    return MenuCustomizationResponse.model_validate(record)
