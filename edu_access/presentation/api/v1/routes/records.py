from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edu_access.application.services.audit_recorder import AuditRecorder
from edu_access.application.services.authorization import AuthorizationFacade
from edu_access.domain.entities import AuthorizedActor
from edu_access.domain.enums import PageAction
from edu_access.domain.exceptions import ForbiddenError
from edu_access.infrastructure.persistence.soft_delete import (
    SoftDeleteTarget, soft_delete_registry)
from edu_access.presentation.api.dependencies import (
    get_audit_recorder, get_audit_recorder_transactional,
    get_authorization_facade, get_current_actor)
from edu_access.presentation.api.v1.schemas.audit import (
    DeletedRecordResponse, PurgeResponse, RecordActionResponse, RestoreRequest)
from edu_access.shared.context import ActorContext

router = APIRouter()


async def _authorize_table(
    facade: AuthorizationFacade, actor: ActorContext, table: str, action: PageAction
) -> tuple[SoftDeleteTarget, AuthorizedActor]:
    """Unregistered tables are refused like any other forbidden resource"""
    target = soft_delete_registry.find(table)
    if target is None:
        raise ForbiddenError(table, action.value)
    return target, await facade.authorize(actor, target.resource_name, action.value)


@router.get("/{table}/deleted", response_model=list[DeletedRecordResponse])
async def list_deleted_records(
    table: str,
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    facade: Annotated[AuthorizationFacade, Depends(get_authorization_facade)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
):
    """Soft-deleted records of a table with their restore deadline"""
    await _authorize_table(facade, actor, table, PageAction.VIEW)
    deleted = await recorder.list_deleted(table, limit)
    return [DeletedRecordResponse.model_validate(record) for record in deleted]


@router.post("/{table}/purge", response_model=PurgeResponse)
async def purge_deleted_records(
    table: str,
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    facade: Annotated[AuthorizationFacade, Depends(get_authorization_facade)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder_transactional)],
    older_than_days: Annotated[int | None, Query(ge=0)] = None,
):
    """Permanently remove records soft-deleted longer ago than the threshold"""
    target, authorized = await _authorize_table(facade, actor, table, PageAction.DELETE)
    deleted_count = await recorder.purge_expired(table, authorized, older_than_days)
    days = older_than_days if older_than_days is not None else recorder.purge_after_days
    return PurgeResponse(
        table_name=table,
        deleted_count=deleted_count,
        older_than_days=days,
        message=f"Permanently deleted {deleted_count} old {target.entity_label.lower()} records",
    )


@router.delete("/{table}/{record_id}", response_model=RecordActionResponse)
async def soft_delete_record(
    table: str,
    record_id: str,
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    facade: Annotated[AuthorizationFacade, Depends(get_authorization_facade)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder_transactional)],
    reason: Annotated[str | None, Query(max_length=1000)] = None,
):
    """Soft delete a record (reversible until the retention window ends)"""
    target, authorized = await _authorize_table(facade, actor, table, PageAction.DELETE)

    if not await recorder.soft_delete(table, record_id, authorized, reason):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete {target.entity_label.lower()}",
        )
    return RecordActionResponse(
        table_name=table,
        record_id=record_id,
        success=True,
        message=f"{target.entity_label} deleted",
    )


@router.post("/{table}/{record_id}/restore", response_model=RecordActionResponse)
async def restore_record(
    table: str,
    record_id: str,
    actor: Annotated[ActorContext, Depends(get_current_actor)],
    facade: Annotated[AuthorizationFacade, Depends(get_authorization_facade)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder_transactional)],
    data: RestoreRequest | None = None,
):
    """Restore a soft-deleted record"""
    target, authorized = await _authorize_table(facade, actor, table, PageAction.UPDATE)

    if not await recorder.restore(table, record_id, authorized, data.reason if data else None):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{target.entity_label} is not deleted",
        )
    return RecordActionResponse(
        table_name=table,
        record_id=record_id,
        success=True,
        message=f"{target.entity_label} restored",
    )
