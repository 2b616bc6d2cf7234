from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditEntryResponse(BaseModel):
    """Schema for audit entry response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    username: str
    user_role: str
    action_type: str
    table_name: str
    record_id: str | None = None
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    changes_summary: str
    is_soft_delete: bool
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime


class AuditLogResponse(BaseModel):
    entries: list[AuditEntryResponse]
    count: int


class DeletedRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    table_name: str
    record_id: str
    label: str | None = None
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    delete_reason: str | None = None
    restore_deadline: datetime | None = None
    can_restore: bool


class RestoreRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class RecordActionResponse(BaseModel):
    table_name: str
    record_id: str
    success: bool
    message: str


class PurgeResponse(BaseModel):
    table_name: str
    deleted_count: int
    older_than_days: int
    message: str
