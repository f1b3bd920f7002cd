"""
SchemaService -- the tenant Schema Store's write side.

Responsibility:
    update_schema() validates a submitted column list, replaces the tenant's
    columns wholesale (insert-or-replace) and records a SCHEMA_UPDATED
    entry describing the structural diff.  reset_inventory() wipes every
    row a tenant owns.

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).

Invariants enforced:
    - Column lists are validated in full (role uniqueness, select options,
      lengths) before any read or write reaches the store.
    - Existing items are not re-validated against the new columns; they are
      checked again on their next write.

Failure modes:
    - SchemaDefinitionError, DuplicateRoleError: rejected column list.
    - InsufficientRoleError: update needs OWNER/BOSS, reset needs OWNER.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete

from inventory_kernel.domain.access import (
    MUTATOR_ROLES,
    OWNER_ONLY,
    AccessContext,
    require_role,
)
from inventory_kernel.domain.columns import (
    ColumnDefinition,
    columns_from_json,
    columns_to_json,
)
from inventory_kernel.domain.diff import diff_schema_changes
from inventory_kernel.domain.dtos import SchemaChange
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.validator import validate_column_definitions
from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import Operation
from inventory_kernel.models.schema import InventorySchema
from inventory_kernel.services.audit_log_service import AuditLogService
from inventory_kernel.services.base import InventoryService


@dataclass(frozen=True)
class SchemaUpdateResult:
    columns: tuple[ColumnDefinition, ...]
    changes: tuple[SchemaChange, ...]
    audit_entry_id: UUID | None
    created: bool


@dataclass(frozen=True)
class InventoryResetResult:
    """Row counts removed by a reset."""

    items_deleted: int
    schema_deleted: bool
    audit_entries_deleted: int
    operations_deleted: int


class SchemaService(InventoryService):
    """Replace a tenant's columns; reset a tenant's inventory."""

    _log_name = "services.schema"

    def update_schema(
        self,
        ctx: AccessContext | None,
        columns: Sequence[Mapping[str, Any] | ColumnDefinition],
    ) -> SchemaUpdateResult:
        """
        Insert-or-replace the tenant's column list.

        Postconditions:
            The new columns are stored sorted by ``order``.  When the
            structural diff is non-empty a SCHEMA_UPDATED entry (not
            undoable) is committed with them.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "update the inventory schema")
        new_columns = validate_column_definitions(columns, self.limits)

        def work(hooks: PostCommitHooks) -> SchemaUpdateResult:
            row = self._load_schema_row(ctx.tenant_id)
            created = row is None
            old_columns = () if created else columns_from_json(row.columns)
            changes = diff_schema_changes(old_columns, new_columns)

            now = self.clock.now()
            if created:
                row = InventorySchema(
                    id=uuid4(),
                    tenant_id=ctx.tenant_id,
                    columns=columns_to_json(new_columns),
                    created_by_id=ctx.actor_id,
                    created_at=now,
                    updated_at=now,
                )
                self.session.add(row)
            else:
                row.columns = columns_to_json(new_columns)
                row.updated_at = now
            self.session.flush()

            entry_id = None
            if changes:
                entry = AuditLogService(self.session, self.clock).record_schema_updated(
                    ctx.tenant_id, ctx.actor_id, changes
                )
                entry_id = entry.id
                hooks.add(
                    NotificationKind.LOG_CREATED,
                    ctx.tenant_id,
                    {"entry_id": str(entry.id), "action": AuditLogAction.SCHEMA_UPDATED.value},
                )
            hooks.add(
                NotificationKind.SCHEMA_UPDATED,
                ctx.tenant_id,
                {"columns": columns_to_json(new_columns)},
            )
            return SchemaUpdateResult(
                columns=new_columns,
                changes=tuple(changes),
                audit_entry_id=entry_id,
                created=created,
            )

        return self._run_in_transaction(
            "schema_update", ctx, work, column_count=len(new_columns)
        )

    def reset_inventory(self, ctx: AccessContext | None) -> InventoryResetResult:
        """
        Delete every item, the schema, all audit entries and all operations
        of the caller's tenant in one transaction.

        Other tenants' rows are untouched.
        """
        ctx = require_role(ctx, OWNER_ONLY, "reset the inventory")

        def work(hooks: PostCommitHooks) -> InventoryResetResult:
            tenant_id = ctx.tenant_id
            items = self.session.execute(
                delete(InventoryItem).where(InventoryItem.tenant_id == tenant_id)
            ).rowcount
            schemas = self.session.execute(
                delete(InventorySchema).where(InventorySchema.tenant_id == tenant_id)
            ).rowcount
            entries = self.session.execute(
                delete(AuditLogEntry).where(AuditLogEntry.tenant_id == tenant_id)
            ).rowcount
            operations = self.session.execute(
                delete(Operation).where(Operation.tenant_id == tenant_id)
            ).rowcount
            self.session.flush()

            result = InventoryResetResult(
                items_deleted=items,
                schema_deleted=schemas > 0,
                audit_entries_deleted=entries,
                operations_deleted=operations,
            )
            hooks.add(
                NotificationKind.INVENTORY_RESET,
                tenant_id,
                {
                    "items_deleted": items,
                    "audit_entries_deleted": entries,
                    "operations_deleted": operations,
                },
            )
            return result

        return self._run_in_transaction("inventory_reset", ctx, work)
