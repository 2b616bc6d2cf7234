"""
Audit Recorder for change tracking, soft delete and restore.

Entries that document a state change (CREATE, UPDATE, DELETE, RESTORE) are
written in the caller's session, so they commit or roll back together with
the domain mutation; a failure raises AuditWriteFailedError and the
caller's transaction must abort. READ entries are informational only: they
are written in their own session (or a savepoint when no session factory
is configured) and any failure is logged and swallowed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.domain.entities import (AuthorizedActor, ChangeRecord,
                                        DeletedRecord, DependentSummary)
from edu_access.domain.enums import AuditActionType
from edu_access.domain.exceptions import (AuditWriteFailedError,
                                          ResourceNotFoundException,
                                          RestoreWindowExpiredError,
                                          ValidationException)
from edu_access.infrastructure.config.settings import get_settings
from edu_access.infrastructure.persistence.models.audit import AuditEntry
from edu_access.infrastructure.persistence.repositories.audit_repo import (
    AuditLogFilter, AuditRepository)
from edu_access.infrastructure.persistence.repositories.soft_delete_repo import \
    SoftDeleteRepository
from edu_access.infrastructure.persistence.soft_delete import (
    DependentCheck, SoftDeleteRegistry, SoftDeleteTarget, soft_delete_registry)
from edu_access.shared.logging import get_logger
from edu_access.shared.utils import ensure_utc, generate_cuid, utc_now

logger = get_logger(__name__)

SENSITIVE_FIELDS = {
    "password",
    "hashed_password",
    "password_hash",
    "secret",
    "api_key",
    "token",
    "credentials",
    "refresh_token",
    "access_token",
}

NAME_FIELDS = ("name", "full_name", "title", "page_title", "page_name")

_DIFFED_ACTIONS = {AuditActionType.UPDATE, AuditActionType.DELETE, AuditActionType.RESTORE}

_VERBS = {
    AuditActionType.CREATE: "created",
    AuditActionType.UPDATE: "updated",
    AuditActionType.DELETE: "deleted",
    AuditActionType.RESTORE: "restored",
    AuditActionType.READ: "viewed",
}

SessionFactory = Callable[[], AsyncSession]


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return sanitize_data(value)
    if isinstance(value, list | tuple):
        return [_serialize(item) for item in value]
    return value


def sanitize_data(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """JSON-safe copy of a row image with sensitive fields redacted"""
    if data is None:
        return None
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_FIELDS:
            sanitized[key] = "[REDACTED]"
        else:
            sanitized[key] = _serialize(value)
    return sanitized


def compute_changes(
    old_data: dict[str, Any] | None, new_data: dict[str, Any] | None
) -> dict[str, dict[str, Any]] | None:
    """Per-field {before, after} for every field whose value differs"""
    if old_data is None or new_data is None:
        return None
    changes = {}
    for key in sorted(set(old_data) | set(new_data)):
        before, after = old_data.get(key), new_data.get(key)
        if before != after:
            changes[key] = {"before": before, "after": after}
    return changes


def row_to_dict(row: Any) -> dict[str, Any]:
    """Column values of an ORM row, keyed by attribute name"""
    mapper = inspect(row).mapper
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


def entity_label(table_name: str) -> str:
    """'school_class' -> 'School class'"""
    return table_name.replace("_", " ").capitalize()


def record_name(entry: ChangeRecord) -> str | None:
    for image in (entry.new_data, entry.old_data):
        if not image:
            continue
        for field_name in NAME_FIELDS:
            if image.get(field_name):
                return str(image[field_name])
    return None


def actor_name(actor: AuthorizedActor) -> str:
    return actor.display_name or actor.user_id


def build_summary(entry: ChangeRecord, label: str | None = None) -> str:
    """One-line description, e.g. 'Teacher "Sok Dara" updated by Admin'"""
    action = AuditActionType(entry.action_type)
    label = label or entity_label(entry.table_name)
    verb = _VERBS[action]
    if action == AuditActionType.READ:
        return f"{label} records {verb} by {actor_name(entry.actor)}"
    name = record_name(entry) or entry.record_id
    subject = f'{label} "{name}"' if name else label
    return f"{subject} {verb} by {actor_name(entry.actor)}"


class AuditRecorder:
    """Writes audit entries and performs soft delete, restore and purge."""

    def __init__(
        self,
        db: AsyncSession,
        session_factory: SessionFactory | None = None,
        registry: SoftDeleteRegistry | None = None,
        retention_days: int | None = None,
    ):
        """
        Args:
            db: Session of the current request; transactional entries go here
            session_factory: Opens an independent session for READ entries
            registry: Soft-deletable tables (defaults to the module registry)
            retention_days: Restore window (defaults to settings)
        """
        self.db = db
        self.session_factory = session_factory
        self.registry = registry or soft_delete_registry
        self.retention_days = (
            retention_days
            if retention_days is not None
            else get_settings().soft_delete_retention_days
        )
        self.purge_after_days = get_settings().soft_delete_purge_after_days

    async def record_change(self, entry: ChangeRecord) -> str | None:
        """
        Persist one change record.

        Returns:
            The new entry id, or None when a best-effort READ entry was dropped

        Raises:
            AuditWriteFailedError: a non-READ entry could not be written
        """
        action = AuditActionType(entry.action_type)
        if entry.is_read:
            return await self._record_best_effort(entry)

        try:
            entry.actor.validate()
            audit_entry = self._build_entry(entry)
            self.db.add(audit_entry)
            await self.db.flush()
        except (SQLAlchemyError, ValueError) as e:
            logger.error(
                "Audit write failed for %s on %s/%s: %s",
                action.value,
                entry.table_name,
                entry.record_id,
                e,
            )
            raise AuditWriteFailedError(action.value, entry.table_name) from e

        logger.debug("Recorded %s audit entry %s for %s", action.value, audit_entry.id, entry.table_name)
        return audit_entry.id

    async def _record_best_effort(self, entry: ChangeRecord) -> str | None:
        try:
            entry.actor.validate()
            audit_entry = self._build_entry(entry)
            entry_id = audit_entry.id
            if self.session_factory is not None:
                async with self.session_factory() as session:
                    async with session.begin():
                        session.add(audit_entry)
            else:
                async with self.db.begin_nested():
                    self.db.add(audit_entry)
            return entry_id
        except Exception as e:
            logger.warning(
                "Suppressed READ audit failure for %s: %s", entry.table_name, e
            )
            return None

    def _build_entry(self, entry: ChangeRecord) -> AuditEntry:
        target = self.registry.find(entry.table_name)
        label = target.entity_label if target else None
        action = AuditActionType(entry.action_type)
        old_data = sanitize_data(entry.old_data)
        new_data = sanitize_data(entry.new_data)
        changes = compute_changes(old_data, new_data) if action in _DIFFED_ACTIONS else None
        actor = entry.actor

        return AuditEntry(
            id=generate_cuid(),
            user_id=actor.user_id,
            username=actor_name(actor),
            user_role=actor.role,
            action_type=action.value,
            table_name=entry.table_name,
            record_id=entry.record_id,
            old_data=old_data,
            new_data=new_data,
            changes=changes,
            changes_summary=entry.changes_summary or build_summary(entry, label),
            is_soft_delete=entry.is_soft_delete,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            context=sanitize_data(entry.context) or None,
        )

    async def soft_delete(
        self,
        table_name: str,
        record_id: str,
        actor: AuthorizedActor,
        reason: str | None = None,
        dependent_check: DependentCheck | None = None,
    ) -> bool:
        """
        Mark a record deleted and emit one DELETE entry with is_soft_delete set.

        Dependents never block the delete; their count goes into the
        summary. Returns False only if updating the row itself failed.

        Raises:
            ValidationException: table does not support soft delete
            ResourceNotFoundException: no active record with that id
            AuditWriteFailedError: the DELETE entry could not be written
        """
        target = self.registry.get(table_name)
        row = await SoftDeleteRepository(self.db, target.model).get_active(record_id)
        if row is None:
            raise ResourceNotFoundException(target.entity_label, record_id)

        dependents = await self._check_dependents(target, row, dependent_check)
        old_data = row_to_dict(row)

        try:
            async with self.db.begin_nested():
                row.mark_deleted(actor.user_id, reason, utc_now())
                await self.db.flush()
                await self.db.refresh(row)
        except SQLAlchemyError as e:
            logger.error("Soft delete of %s %s failed: %s", table_name, record_id, e)
            return False

        summary = f'{target.entity_label} "{target.describe(row) or record_id}" deleted by {actor_name(actor)}'
        if dependents.has_blocking_dependents:
            summary += f" but has {dependents.description}"
        if reason:
            summary += f". Reason: {reason}"

        await self.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.DELETE,
                table_name=table_name,
                record_id=record_id,
                old_data=old_data,
                new_data=row_to_dict(row),
                changes_summary=summary,
                is_soft_delete=True,
                context={"reason": reason, "dependent_count": dependents.count},
            )
        )
        logger.info("Soft deleted %s %s by %s", table_name, record_id, actor.user_id)
        return True

    async def _check_dependents(
        self, target: SoftDeleteTarget, row: Any, dependent_check: DependentCheck | None
    ) -> DependentSummary:
        check = dependent_check or target.dependent_check
        if check is None:
            return DependentSummary.none()
        try:
            async with self.db.begin_nested():
                return await check(self.db, row)
        except Exception as e:
            logger.warning(
                "Dependent check for %s %s failed, deleting anyway: %s",
                target.table_name,
                getattr(row, "id", None),
                e,
            )
            return DependentSummary.none()

    async def restore(
        self,
        table_name: str,
        record_id: str,
        actor: AuthorizedActor,
        reason: str | None = None,
    ) -> bool:
        """
        Clear the soft-delete marker and emit a RESTORE entry.

        Returns False when the record is not currently deleted or the row
        update fails.

        Raises:
            RestoreWindowExpiredError: deleted longer ago than the retention window
        """
        target = self.registry.get(table_name)
        row = await SoftDeleteRepository(self.db, target.model).get_any(record_id)
        if row is None:
            raise ResourceNotFoundException(target.entity_label, record_id)
        if not row.is_deleted:
            return False

        if not self._within_window(row):
            raise RestoreWindowExpiredError(table_name, record_id)

        old_data = row_to_dict(row)
        try:
            async with self.db.begin_nested():
                row.clear_deleted()
                await self.db.flush()
                await self.db.refresh(row)
        except SQLAlchemyError as e:
            logger.error("Restore of %s %s failed: %s", table_name, record_id, e)
            return False

        summary = f'{target.entity_label} "{target.describe(row) or record_id}" restored by {actor_name(actor)}'
        if reason:
            summary += f". Reason: {reason}"

        await self.record_change(
            ChangeRecord(
                actor=actor,
                action_type=AuditActionType.RESTORE,
                table_name=table_name,
                record_id=record_id,
                old_data=old_data,
                new_data=row_to_dict(row),
                changes_summary=summary,
                context={"reason": reason} if reason else {},
            )
        )
        logger.info("Restored %s %s by %s", table_name, record_id, actor.user_id)
        return True

    async def purge_expired(
        self, table_name: str, actor: AuthorizedActor, older_than_days: int | None = None
    ) -> int:
        """
        Permanently remove rows soft-deleted more than `older_than_days` ago.

        The threshold may not be shorter than the restore window, so a
        restorable row is never purged. Each removed row gets its own
        DELETE entry carrying its last image. Returns the number removed.

        Raises:
            ValidationException: unsupported table or threshold inside the restore window
        """
        target = self.registry.get(table_name)
        days = older_than_days if older_than_days is not None else self.purge_after_days
        if days < self.retention_days:
            raise ValidationException(
                f"Cannot permanently delete records newer than {self.retention_days} days",
                field="older_than_days",
            )

        cutoff = utc_now() - timedelta(days=days)
        rows = await SoftDeleteRepository(self.db, target.model).list_expired(cutoff)
        for row in rows:
            record_id = str(row.id)
            old_data = row_to_dict(row)
            name = target.describe(row) or record_id
            await self.db.delete(row)
            await self.record_change(
                ChangeRecord(
                    actor=actor,
                    action_type=AuditActionType.DELETE,
                    table_name=table_name,
                    record_id=record_id,
                    old_data=old_data,
                    changes_summary=(
                        f'{target.entity_label} "{name}" permanently deleted by {actor_name(actor)}'
                    ),
                    context={"permanent": True, "older_than_days": days},
                )
            )
        await self.db.flush()
        logger.info(
            "Permanently deleted %d %s records older than %d days", len(rows), table_name, days
        )
        return len(rows)

    def restore_deadline(self, deleted_at: datetime | None) -> datetime | None:
        deleted_at = ensure_utc(deleted_at)
        if deleted_at is None:
            return None
        return deleted_at + timedelta(days=self.retention_days)

    def _within_window(self, row: Any) -> bool:
        deadline = self.restore_deadline(row.deleted_at)
        return deadline is None or utc_now() <= deadline

    async def list_entries(self, filters: AuditLogFilter | None = None) -> list[AuditEntry]:
        return await AuditRepository(self.db).list_entries(filters)

    async def list_deleted(self, table_name: str, limit: int = 50) -> list[DeletedRecord]:
        """Soft-deleted rows of one table, most recently deleted first"""
        target = self.registry.get(table_name)
        rows = await SoftDeleteRepository(self.db, target.model).list_deleted(limit)
        return [
            DeletedRecord(
                table_name=table_name,
                record_id=row.id,
                label=target.describe(row),
                deleted_at=ensure_utc(row.deleted_at),
                deleted_by=row.deleted_by,
                delete_reason=row.delete_reason,
                restore_deadline=self.restore_deadline(row.deleted_at),
                can_restore=self._within_window(row),
            )
            for row in rows
        ]
