"""Test audit log API endpoints"""

import pytest
from fastapi import status
from sqlalchemy import select

from edu_access.infrastructure.persistence.models import AuditEntry, Teacher


@pytest.fixture
async def deleted_teacher(client, test_db, auth_headers, seeded_pages):
    teacher = Teacher(full_name="Chan Sophea")
    test_db.add(teacher)
    await test_db.commit()
    await test_db.refresh(teacher)
    await client.delete(
        f"/records/teacher/{teacher.id}", headers=auth_headers("admin", name="Admin User")
    )
    return teacher


@pytest.mark.asyncio
async def test_list_audit_logs(client, auth_headers, deleted_teacher):
    response = await client.get(
        "/audit-logs", params={"table_name": "teacher"}, headers=auth_headers("admin")
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["count"] == 1
    [entry] = data["entries"]
    assert entry["action_type"] == "DELETE"
    assert entry["is_soft_delete"] is True
    assert entry["record_id"] == deleted_teacher.id
    assert entry["changes_summary"] == 'Teacher "Chan Sophea" deleted by Admin User'


@pytest.mark.asyncio
async def test_listing_is_recorded_as_read(client, test_db, auth_headers, deleted_teacher):
    await client.get("/audit-logs", headers=auth_headers("admin", name="Admin User"))

    result = await test_db.execute(
        select(AuditEntry).where(AuditEntry.action_type == "READ")
    )
    [entry] = result.scalars().all()
    assert entry.table_name == "audit_entry"
    assert entry.changes_summary == "Viewed 1 audit log entries"


@pytest.mark.asyncio
async def test_filter_by_action_type(client, auth_headers, deleted_teacher):
    response = await client.get(
        "/audit-logs", params={"action_type": "RESTORE"}, headers=auth_headers("admin")
    )

    assert response.json()["count"] == 0


@pytest.mark.asyncio
async def test_invalid_limit_rejected(client, auth_headers, seeded_pages):
    response = await client.get(
        "/audit-logs", params={"limit": 0}, headers=auth_headers("admin")
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_teacher_cannot_view_audit_logs(client, auth_headers, seeded_pages):
    response = await client.get("/audit-logs", headers=auth_headers("teacher"))

    assert response.status_code == status.HTTP_403_FORBIDDEN
