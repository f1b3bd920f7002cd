"""
UndoService -- replays the inverse of a logged item mutation.

Responsibility:
    undo() reverses one audit entry: it recreates a deleted item from its
    snapshot, or writes the old values of an update back onto the live
    item.  check_conflicts() previews what an update-undo would overwrite.

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).  Uses
    AuditLogService for the OPEN -> UNDONE transition.

State machine per entry:
    OPEN --undo--> UNDONE (terminal).  undoable=False entries never move.

Check order:
    NotFound (absent, or another tenant's entry) -> Conflict (already
    undone) -> InvalidOperation (not undoable) -> action dispatch.  A
    second undo of the same entry therefore always fails with Conflict
    before touching any item.

Failure modes:
    - AuditEntryNotFoundError
    - AlreadyUndoneError
    - NotUndoableError
    - SnapshotInvalidError: the deleted item no longer fits the columns.
    - UndoTargetMissingError: update entry's item is gone or payload missing.
    - TenantMismatchError: update entry's item belongs to another tenant.
    - UnsupportedUndoActionError: any other action.

Audit relevance:
    The item mutation and the entry's undone_at/undone_by_id commit in one
    transaction.  Undo writes no new audit entry of its own.
"""

import copy
from dataclasses import dataclass
from uuid import UUID, uuid4

from sqlalchemy import select

from inventory_kernel.domain.access import (
    MEMBER_ROLES,
    OWNER_ONLY,
    AccessContext,
    require_role,
)
from inventory_kernel.domain.columns import columns_from_json
from inventory_kernel.domain.diff import find_undo_conflicts
from inventory_kernel.domain.dtos import FieldChange, ItemSnapshot, UndoConflictReport
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.validator import validate_item_data
from inventory_kernel.exceptions import (
    AlreadyUndoneError,
    AuditEntryNotFoundError,
    NotUndoableError,
    SnapshotInvalidError,
    TenantMismatchError,
    UndoTargetMissingError,
    UnsupportedUndoActionError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.services.audit_log_service import AuditLogService
from inventory_kernel.services.base import InventoryService, coerce_uuid


@dataclass(frozen=True)
class UndoResult:
    """Outcome of a successful undo."""

    entry_id: UUID
    action: AuditLogAction
    item_id: UUID
    restored_fields: tuple[str, ...] = ()


class UndoService(InventoryService):
    """Undo ITEM_DELETED and ITEM_UPDATED audit entries."""

    _log_name = "services.undo"

    def _load_entry(
        self, ctx: AccessContext, entry_id: UUID | str, *, for_update: bool
    ) -> AuditLogEntry:
        key = coerce_uuid(entry_id)
        entry = None
        if key is not None:
            stmt = select(AuditLogEntry).where(AuditLogEntry.id == key)
            if for_update:
                stmt = stmt.with_for_update()
            entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is None or entry.tenant_id != ctx.tenant_id:
            raise AuditEntryNotFoundError(str(entry_id))
        return entry

    def undo(self, ctx: AccessContext | None, entry_id: UUID | str) -> UndoResult:
        """
        Reverse one audit entry.

        Postconditions:
            ITEM_DELETED: a new item (new id, original creator) holds the
            snapshot data.  ITEM_UPDATED: each changed field holds its
            logged old value.  Either way the entry is UNDONE.
        """
        ctx = require_role(ctx, OWNER_ONLY, "undo actions")

        def work(hooks: PostCommitHooks) -> UndoResult:
            entry = self._load_entry(ctx, entry_id, for_update=True)
            if entry.undone_at is not None:
                raise AlreadyUndoneError("log entry", str(entry.id), entry.undone_at)
            if not entry.undoable:
                raise NotUndoableError(str(entry.id), entry.action)

            if entry.action == AuditLogAction.ITEM_DELETED.value:
                result = self._undo_delete(ctx, entry, hooks)
            elif entry.action == AuditLogAction.ITEM_UPDATED.value:
                result = self._undo_update(ctx, entry, hooks)
            else:
                raise UnsupportedUndoActionError(str(entry.id), entry.action)

            AuditLogService(self.session, self.clock).mark_undone(entry, ctx.actor_id)
            hooks.add(
                NotificationKind.LOG_UNDONE,
                ctx.tenant_id,
                {"entry_id": str(entry.id), "action": entry.action},
            )
            return result

        with LogContext.bind(entry_id=str(entry_id)):
            return self._run_in_transaction("undo", ctx, work)

    def _undo_delete(
        self, ctx: AccessContext, entry: AuditLogEntry, hooks: PostCommitHooks
    ) -> UndoResult:
        if not entry.snapshot:
            raise UndoTargetMissingError(str(entry.id), "no snapshot available")
        snapshot = ItemSnapshot.from_dict(entry.snapshot)

        # Validated against the columns as they are now, not at deletion time.
        row = self._load_schema_row(ctx.tenant_id)
        columns = columns_from_json(row.columns) if row is not None else ()
        if columns:
            result = validate_item_data(snapshot.data, columns)
            if not result.is_valid:
                raise SnapshotInvalidError(str(entry.id), list(result.errors))

        now = self.clock.now()
        item = InventoryItem(
            id=uuid4(),
            tenant_id=ctx.tenant_id,
            data=copy.deepcopy(snapshot.data),
            created_by_id=coerce_uuid(snapshot.created_by_id) or entry.actor_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(item)
        self.session.flush()

        self.logger.info(
            "item_restored_from_snapshot",
            extra={"original_item_id": snapshot.id, "restored_item_id": str(item.id)},
        )
        hooks.add(
            NotificationKind.ITEM_CREATED,
            ctx.tenant_id,
            {"item_id": str(item.id), "data": item.data},
        )
        return UndoResult(
            entry_id=entry.id,
            action=AuditLogAction.ITEM_DELETED,
            item_id=item.id,
        )

    def _undo_update(
        self, ctx: AccessContext, entry: AuditLogEntry, hooks: PostCommitHooks
    ) -> UndoResult:
        if not entry.changes or entry.item_id is None:
            raise UndoTargetMissingError(str(entry.id), "no changes recorded")
        item = self.session.get(InventoryItem, entry.item_id)
        if item is None:
            raise UndoTargetMissingError(str(entry.id))
        if item.tenant_id != entry.tenant_id:
            raise TenantMismatchError("item", str(item.id))

        changes = [FieldChange.from_dict(c) for c in entry.changes]
        reverted = copy.deepcopy(dict(item.data or {}))
        for change in changes:
            reverted[change.field] = change.old_value
        item.data = reverted
        item.updated_at = self.clock.now()
        self.session.flush()

        hooks.add(
            NotificationKind.ITEM_UPDATED,
            ctx.tenant_id,
            {"item_id": str(item.id), "data": item.data},
        )
        return UndoResult(
            entry_id=entry.id,
            action=AuditLogAction.ITEM_UPDATED,
            item_id=item.id,
            restored_fields=tuple(c.field for c in changes),
        )

    def check_conflicts(
        self, ctx: AccessContext | None, entry_id: UUID | str
    ) -> UndoConflictReport:
        """
        Preview an undo without writing anything.

        Deleted-item entries never conflict.  For update entries, every
        field whose live value differs from the value the update wrote is
        reported; a missing item is reported as ``item_exists=False``.
        """
        ctx = require_role(ctx, MEMBER_ROLES, "view undo conflicts")
        entry = self._load_entry(ctx, entry_id, for_update=False)

        if entry.action != AuditLogAction.ITEM_UPDATED.value or not entry.changes:
            return UndoConflictReport(item_exists=True)

        item = self.session.get(InventoryItem, entry.item_id) if entry.item_id else None
        if item is None or item.tenant_id != ctx.tenant_id:
            return UndoConflictReport(item_exists=False)

        changes = [FieldChange.from_dict(c) for c in entry.changes]
        conflicts = find_undo_conflicts(changes, item.data or {})
        return UndoConflictReport(item_exists=True, conflicts=tuple(conflicts))
