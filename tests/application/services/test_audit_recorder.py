"""Tests for AuditRecorder against SQLite"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from freezegun import freeze_time
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from edu_access.application.services.audit_recorder import (AuditRecorder,
                                                            build_summary,
                                                            compute_changes,
                                                            sanitize_data)
from edu_access.domain.entities import ChangeRecord, DependentSummary
from edu_access.domain.enums import AuditActionType
from edu_access.domain.exceptions import (AuditWriteFailedError,
                                          ResourceNotFoundException,
                                          RestoreWindowExpiredError,
                                          ValidationException)
from edu_access.infrastructure.persistence.models import (AuditEntry,
                                                          SchoolClass,
                                                          Teacher)
from edu_access.infrastructure.persistence.repositories import AuditLogFilter
from edu_access.shared.utils import utc_now

BOOKKEEPING = {"updated_at", *Teacher.SOFT_DELETE_FIELDS}


@pytest.fixture
def recorder(test_db):
    return AuditRecorder(test_db, retention_days=30)


@pytest.fixture
async def teacher(test_db):
    """A teacher with three active classes and one deleted class"""
    teacher = Teacher(full_name="Sok Dara", email="dara@example.com", school_id="school-1")
    test_db.add(teacher)
    await test_db.flush()
    for name in ("Grade 4A", "Grade 4B", "Grade 5A"):
        test_db.add(SchoolClass(name=name, grade="4", teacher_id=teacher.id))
    test_db.add(SchoolClass(name="Old class", teacher_id=teacher.id, is_deleted=True))
    await test_db.commit()
    await test_db.refresh(teacher)
    return teacher


async def entries_for(db, record_id):
    result = await db.execute(
        select(AuditEntry)
        .where(AuditEntry.record_id == record_id)
        .order_by(AuditEntry.created_at, AuditEntry.id)
    )
    return list(result.scalars().all())


def db_error():
    return OperationalError("INSERT INTO audit_entry", {}, Exception("disk I/O error"))


class TestHelpers:
    def test_sanitize_redacts_sensitive_fields(self):
        data = sanitize_data({"full_name": "Dara", "password_hash": "abc", "Token": "t"})

        assert data == {"full_name": "Dara", "password_hash": "[REDACTED]", "Token": "[REDACTED]"}

    def test_compute_changes_lists_only_differences(self):
        changes = compute_changes(
            {"full_name": "Dara", "email": "a@x.com"},
            {"full_name": "Dara", "email": "b@x.com", "phone": "012"},
        )

        assert changes == {
            "email": {"before": "a@x.com", "after": "b@x.com"},
            "phone": {"before": None, "after": "012"},
        }

    def test_summary_uses_name_and_actor(self, admin_actor):
        entry = ChangeRecord(
            actor=admin_actor,
            action_type=AuditActionType.UPDATE,
            table_name="school_class",
            record_id="c1",
            new_data={"name": "Grade 4A"},
        )

        assert build_summary(entry) == 'School class "Grade 4A" updated by Admin User'


class TestRecordChange:
    async def test_update_entry_written_with_diff(self, recorder, test_db, admin_actor):
        """
        GIVEN an UPDATE change without a summary
        WHEN recording it
        THEN the entry has a generated summary, per-field diff and actor snapshot
        """
        entry_id = await recorder.record_change(
            ChangeRecord(
                actor=admin_actor,
                action_type=AuditActionType.UPDATE,
                table_name="teacher",
                record_id="t1",
                old_data={"full_name": "Sok Dara", "password": "old"},
                new_data={"full_name": "Sok Dara", "email": "dara@example.com", "password": "new"},
            )
        )

        entry = await test_db.get(AuditEntry, entry_id)
        assert entry.changes_summary == 'Teacher "Sok Dara" updated by Admin User'
        assert entry.changes == {"email": {"before": None, "after": "dara@example.com"}}
        assert entry.new_data["password"] == "[REDACTED]"
        assert (entry.user_id, entry.username, entry.user_role) == ("user-admin", "Admin User", "admin")
        assert (entry.ip_address, entry.user_agent) == ("10.0.0.1", "pytest")

    async def test_caller_summary_kept(self, recorder, test_db, admin_actor):
        entry_id = await recorder.record_change(
            ChangeRecord(
                actor=admin_actor,
                action_type=AuditActionType.CREATE,
                table_name="school_registration",
                record_id="r1",
                new_data={"name": "Hun Sen High"},
                changes_summary="Approved school registration",
            )
        )

        entry = await test_db.get(AuditEntry, entry_id)
        assert entry.changes_summary == "Approved school registration"
        assert entry.changes is None

    async def test_transactional_failure_raises(self, recorder, test_db, admin_actor, monkeypatch):
        monkeypatch.setattr(test_db, "flush", AsyncMock(side_effect=db_error()))

        with pytest.raises(AuditWriteFailedError) as exc_info:
            await recorder.record_change(
                ChangeRecord(actor=admin_actor, action_type=AuditActionType.DELETE, table_name="teacher")
            )

        assert exc_info.value.transactional is True

    async def test_read_failure_is_swallowed(self, test_db, admin_actor):
        def broken_factory():
            raise db_error()

        recorder = AuditRecorder(test_db, session_factory=broken_factory)

        result = await recorder.record_change(
            ChangeRecord(actor=admin_actor, action_type=AuditActionType.READ, table_name="teacher")
        )

        assert result is None

    async def test_read_written_in_separate_session(self, session_factory, admin_actor):
        async with session_factory() as request_db:
            recorder = AuditRecorder(request_db, session_factory=session_factory)
            entry_id = await recorder.record_change(
                ChangeRecord(actor=admin_actor, action_type=AuditActionType.READ, table_name="teacher")
            )
            # The request session never commits
            await request_db.rollback()

        async with session_factory() as check_db:
            entry = await check_db.get(AuditEntry, entry_id)

        assert entry is not None
        assert entry.changes_summary == "Teacher records viewed by Admin User"

    async def test_read_uses_savepoint_without_factory(self, recorder, test_db, admin_actor):
        entry_id = await recorder.record_change(
            ChangeRecord(actor=admin_actor, action_type=AuditActionType.READ, table_name="teacher")
        )

        assert await test_db.get(AuditEntry, entry_id) is not None


class TestSoftDelete:
    async def test_teacher_with_classes_still_deleted(self, recorder, test_db, teacher, admin_actor):
        """
        GIVEN a teacher with 3 active classes
        WHEN soft deleting
        THEN the teacher is deleted and the summary mentions the classes
        """
        result = await recorder.soft_delete("teacher", teacher.id, admin_actor, reason="Left school")
        await test_db.commit()

        assert result is True
        await test_db.refresh(teacher)
        assert teacher.is_deleted is True
        assert teacher.deleted_by == "user-admin"
        assert teacher.delete_reason == "Left school"

        [entry] = await entries_for(test_db, teacher.id)
        assert entry.action_type == "DELETE"
        assert entry.is_soft_delete is True
        assert "3 classes assigned" in entry.changes_summary
        assert entry.changes_summary.startswith('Teacher "Sok Dara" deleted by Admin User')
        assert entry.changes["is_deleted"] == {"before": False, "after": True}
        assert entry.context["dependent_count"] == 3

    async def test_dependent_check_failure_does_not_block(self, recorder, test_db, teacher, admin_actor):
        failing_check = AsyncMock(side_effect=RuntimeError("classes table unavailable"))

        result = await recorder.soft_delete(
            "teacher", teacher.id, admin_actor, dependent_check=failing_check
        )

        assert result is True
        [entry] = await entries_for(test_db, teacher.id)
        assert "assigned" not in entry.changes_summary

    async def test_custom_dependent_check(self, recorder, test_db, teacher, admin_actor):
        check = AsyncMock(return_value=DependentSummary.of(2, "observations"))

        await recorder.soft_delete("teacher", teacher.id, admin_actor, dependent_check=check)

        [entry] = await entries_for(test_db, teacher.id)
        assert "2 observations assigned" in entry.changes_summary

    async def test_row_update_failure_returns_false(
        self, recorder, test_db, teacher, admin_actor, monkeypatch
    ):
        monkeypatch.setattr(test_db, "flush", AsyncMock(side_effect=db_error()))

        result = await recorder.soft_delete("teacher", teacher.id, admin_actor)

        assert result is False
        monkeypatch.undo()
        assert await entries_for(test_db, teacher.id) == []

    async def test_deleted_record_excluded_from_normal_reads(self, recorder, test_db, teacher, admin_actor):
        await recorder.soft_delete("teacher", teacher.id, admin_actor)

        result = await test_db.execute(select(Teacher).where(Teacher.active_only()))
        assert result.scalars().all() == []

        with pytest.raises(ResourceNotFoundException):
            await recorder.soft_delete("teacher", teacher.id, admin_actor)

    async def test_unknown_table_rejected(self, recorder, admin_actor):
        with pytest.raises(ValidationException):
            await recorder.soft_delete("page", "1", admin_actor)

    async def test_missing_record(self, recorder, admin_actor):
        with pytest.raises(ResourceNotFoundException):
            await recorder.soft_delete("teacher", "does-not-exist", admin_actor)


class TestRestore:
    async def test_round_trip_restores_state_with_two_entries(
        self, recorder, test_db, teacher, admin_actor
    ):
        """
        GIVEN a teacher
        WHEN soft deleting then restoring
        THEN the row matches its pre-delete image and exactly DELETE, RESTORE were recorded
        """
        await recorder.soft_delete("teacher", teacher.id, admin_actor)
        result = await recorder.restore("teacher", teacher.id, admin_actor, reason="Rehired")
        await test_db.commit()

        assert result is True
        delete_entry, restore_entry = await entries_for(test_db, teacher.id)
        assert [delete_entry.action_type, restore_entry.action_type] == ["DELETE", "RESTORE"]

        before = {k: v for k, v in delete_entry.old_data.items() if k not in BOOKKEEPING}
        after = {k: v for k, v in restore_entry.new_data.items() if k not in BOOKKEEPING}
        assert before == after
        assert restore_entry.old_data["is_deleted"] is True
        assert restore_entry.new_data["is_deleted"] is False
        assert restore_entry.is_soft_delete is False
        assert restore_entry.changes_summary == 'Teacher "Sok Dara" restored by Admin User. Reason: Rehired'

        await test_db.refresh(teacher)
        assert teacher.is_deleted is False
        assert teacher.deleted_at is None

    async def test_restore_active_record_returns_false(self, recorder, test_db, teacher, admin_actor):
        assert await recorder.restore("teacher", teacher.id, admin_actor) is False
        assert await entries_for(test_db, teacher.id) == []

    async def test_restore_after_retention_rejected(self, recorder, test_db, teacher, admin_actor):
        teacher.mark_deleted("user-admin", None, utc_now() - timedelta(days=31))
        await test_db.commit()

        with pytest.raises(RestoreWindowExpiredError):
            await recorder.restore("teacher", teacher.id, admin_actor)


class TestPurge:
    async def test_only_expired_rows_removed(self, recorder, test_db, teacher, admin_actor):
        """
        GIVEN one teacher deleted 400 days ago and one deleted yesterday
        WHEN purging records older than 365 days
        THEN only the old one is removed, with a non-soft DELETE entry
        """
        recent = Teacher(full_name="Lim Pisey")
        test_db.add(recent)
        await test_db.flush()
        teacher.mark_deleted("user-admin", "Left", utc_now() - timedelta(days=400))
        recent.mark_deleted("user-admin", None, utc_now() - timedelta(days=1))
        await test_db.commit()
        teacher_id, recent_id = teacher.id, recent.id

        assert await recorder.purge_expired("teacher", admin_actor, older_than_days=365) == 1
        await test_db.commit()

        assert await test_db.get(Teacher, teacher_id) is None
        assert (await test_db.get(Teacher, recent_id)).is_deleted is True
        [entry] = await entries_for(test_db, teacher_id)
        assert entry.action_type == "DELETE"
        assert entry.is_soft_delete is False
        assert entry.old_data["full_name"] == "Sok Dara"
        assert entry.changes_summary == 'Teacher "Sok Dara" permanently deleted by Admin User'
        assert entry.context == {"permanent": True, "older_than_days": 365}

    async def test_active_rows_never_purged(self, recorder, test_db, teacher, admin_actor):
        assert await recorder.purge_expired("teacher", admin_actor, older_than_days=30) == 0
        assert await entries_for(test_db, teacher.id) == []

    async def test_threshold_inside_restore_window_rejected(self, recorder, admin_actor):
        with pytest.raises(ValidationException) as exc_info:
            await recorder.purge_expired("teacher", admin_actor, older_than_days=7)

        assert exc_info.value.message == "Cannot permanently delete records newer than 30 days"


class TestQueries:
    async def test_list_entries_filters_newest_first(self, recorder, test_db, teacher, admin_actor, teacher_actor):
        await recorder.soft_delete("teacher", teacher.id, admin_actor)
        await recorder.restore("teacher", teacher.id, admin_actor)
        await recorder.record_change(
            ChangeRecord(actor=teacher_actor, action_type=AuditActionType.UPDATE, table_name="school_class")
        )

        teacher_entries = await recorder.list_entries(AuditLogFilter(table_name="teacher"))
        deletes = await recorder.list_entries(AuditLogFilter(is_soft_delete=True))
        by_user = await recorder.list_entries(AuditLogFilter(user_id="user-teacher"))

        assert [entry.action_type for entry in teacher_entries] == ["RESTORE", "DELETE"]
        assert [entry.action_type for entry in deletes] == ["DELETE"]
        assert [entry.table_name for entry in by_user] == ["school_class"]

    async def test_list_deleted_includes_restore_deadline(self, recorder, test_db, teacher, admin_actor):
        await recorder.soft_delete("teacher", teacher.id, admin_actor, reason="Left")

        [record] = await recorder.list_deleted("teacher")

        assert record.record_id == teacher.id
        assert record.label == "Sok Dara"
        assert record.delete_reason == "Left"
        assert record.can_restore is True
        assert record.restore_deadline - record.deleted_at == timedelta(days=30)


class TestImmutability:
    async def test_entries_cannot_be_updated(self, recorder, test_db, admin_actor):
        entry_id = await recorder.record_change(
            ChangeRecord(actor=admin_actor, action_type=AuditActionType.CREATE, table_name="teacher")
        )
        entry = await test_db.get(AuditEntry, entry_id)

        entry.changes_summary = "tampered"
        with pytest.raises(ValueError, match="immutable"):
            await test_db.flush()

    async def test_entries_cannot_be_deleted(self, recorder, test_db, admin_actor):
        entry_id = await recorder.record_change(
            ChangeRecord(actor=admin_actor, action_type=AuditActionType.CREATE, table_name="teacher")
        )
        entry = await test_db.get(AuditEntry, entry_id)

        await test_db.delete(entry)
        with pytest.raises(ValueError, match="immutable"):
            await test_db.flush()


class TestRestoreWindow:
    FROZEN_TIME = "2026-03-31T12:00:00Z"

    @pytest.fixture
    def window_recorder(self):
        return AuditRecorder(MagicMock(), retention_days=30)

    @freeze_time(FROZEN_TIME)
    def test_deleted_inside_window(self, window_recorder):
        row = SimpleNamespace(deleted_at=datetime(2026, 3, 2, 12, 0, tzinfo=UTC))

        assert window_recorder._within_window(row) is True

    @freeze_time(FROZEN_TIME)
    def test_deleted_outside_window(self, window_recorder):
        row = SimpleNamespace(deleted_at=datetime(2026, 3, 1, 11, 59))  # naive, as SQLite returns it

        assert window_recorder._within_window(row) is False
        assert window_recorder.restore_deadline(row.deleted_at) == datetime(
            2026, 3, 31, 11, 59, tzinfo=UTC
        )
