"""
AuditLogService -- appends inventory audit entries inside the caller's
transaction.

Responsibility:
    One ``record_*`` method per logged action, each writing a single
    AuditLogEntry with the payload that action's undo needs, plus the one
    permitted mutation: ``mark_undone``.

Architecture position:
    Kernel > Services -- flush-only.  Called by ItemService, SchemaService,
    UndoService and ImportService within their transactions, so an entry
    is written if and only if its mutation commits.

Undoability:
    ITEM_CREATED   not undoable (snapshot kept for history)
    ITEM_UPDATED   undoable via the recorded FieldChanges
    ITEM_DELETED   undoable via the recorded snapshot
    SCHEMA_UPDATED not undoable
"""

from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.domain.dtos import FieldChange, ItemSnapshot, SchemaChange
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.services.base import BaseService

logger = get_logger("services.audit_log")


class AuditLogService(BaseService):
    """Writes audit entries; never commits."""

    def _append(
        self,
        *,
        action: AuditLogAction,
        tenant_id: UUID,
        actor_id: UUID,
        undoable: bool,
        item_id: UUID | None = None,
        item_name: str | None = None,
        snapshot: ItemSnapshot | None = None,
        changes: Sequence[FieldChange] | None = None,
        schema_changes: Sequence[SchemaChange] | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action=action.value,
            item_id=item_id,
            item_name=item_name,
            snapshot=snapshot.to_dict() if snapshot is not None else None,
            changes=[c.to_dict() for c in changes] if changes is not None else None,
            schema_changes=(
                [c.to_dict() for c in schema_changes]
                if schema_changes is not None
                else None
            ),
            undoable=undoable,
            created_at=self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "entry_id": str(entry.id),
                "action": action.value,
                "item_id": str(item_id) if item_id else None,
                "undoable": undoable,
            },
        )
        return entry

    def record_item_created(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        snapshot: ItemSnapshot,
        item_name: str | None,
    ) -> AuditLogEntry:
        return self._append(
            action=AuditLogAction.ITEM_CREATED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            undoable=False,
            item_id=UUID(snapshot.id),
            item_name=item_name,
            snapshot=snapshot,
        )

    def record_item_updated(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        item_id: UUID,
        item_name: str | None,
        changes: Sequence[FieldChange],
    ) -> AuditLogEntry:
        """
        Preconditions:
            ``changes`` is non-empty; callers skip logging no-op updates.
        """
        return self._append(
            action=AuditLogAction.ITEM_UPDATED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            undoable=True,
            item_id=item_id,
            item_name=item_name,
            changes=changes,
        )

    def record_item_deleted(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        snapshot: ItemSnapshot,
        item_name: str | None,
    ) -> AuditLogEntry:
        return self._append(
            action=AuditLogAction.ITEM_DELETED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            undoable=True,
            item_id=UUID(snapshot.id),
            item_name=item_name,
            snapshot=snapshot,
        )

    def record_schema_updated(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        schema_changes: Sequence[SchemaChange],
    ) -> AuditLogEntry:
        return self._append(
            action=AuditLogAction.SCHEMA_UPDATED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            undoable=False,
            schema_changes=schema_changes,
        )

    def mark_undone(self, entry: AuditLogEntry, actor_id: UUID) -> AuditLogEntry:
        """
        Apply the OPEN -> UNDONE transition.

        Preconditions:
            The caller has already checked the entry is undoable and open.
        """
        entry.undone_at = self.clock.now()
        entry.undone_by_id = actor_id
        self.session.flush()
        logger.info(
            "audit_entry_undone",
            extra={"entry_id": str(entry.id), "action": entry.action},
        )
        return entry
