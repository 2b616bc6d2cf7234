from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from edu_access.application.services.audit_recorder import AuditRecorder
from edu_access.domain.entities import AuthorizedActor, ChangeRecord
from edu_access.domain.enums import AuditActionType
from edu_access.infrastructure.persistence.repositories import AuditLogFilter
from edu_access.presentation.api.dependencies import (get_audit_recorder,
                                                      require_action)
from edu_access.presentation.api.v1.schemas.audit import (AuditEntryResponse,
                                                          AuditLogResponse)

router = APIRouter()


@router.get("", response_model=AuditLogResponse)
async def list_audit_logs(
    actor: Annotated[AuthorizedActor, Depends(require_action("audit_logs", "view"))],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    user_id: str | None = None,
    table_name: str | None = None,
    record_id: str | None = None,
    action_type: AuditActionType | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    is_soft_delete: bool | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
):
    """Audit trail, newest first (the listing itself is recorded as a READ)"""
    entries = await recorder.list_entries(
        AuditLogFilter(
            user_id=user_id,
            table_name=table_name,
            record_id=record_id,
            action_type=action_type.value if action_type else None,
            start=start,
            end=end,
            is_soft_delete=is_soft_delete,
            limit=limit,
        )
    )
    response = AuditLogResponse(
        entries=[AuditEntryResponse.model_validate(entry) for entry in entries],
        count=len(entries),
    )

    await recorder.record_change(
        ChangeRecord(
            actor=actor,
            action_type=AuditActionType.READ,
            table_name="audit_entry",
            changes_summary=f"Viewed {len(entries)} audit log entries",
            context={"filters": {"table_name": table_name, "user_id": user_id}},
        )
    )
    return response
