"""
ItemService -- validated item writes with their audit entries.

Responsibility:
    Create, update and delete inventory items.  Every write validates the
    full data map against the tenant's current columns and appends the
    matching audit entry in the same transaction.

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).

Failure modes:
    - UnauthorizedError / InsufficientRoleError: caller may not mutate.
    - SchemaNotConfiguredError: tenant has no columns yet.
    - ItemDataInvalidError: data fails the Dynamic Validator.
    - ItemNotFoundError: item absent or owned by another tenant.

Audit relevance:
    ITEM_CREATED (snapshot, not undoable), ITEM_UPDATED (field diff, only
    when something changed), ITEM_DELETED (snapshot, undoable).
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from inventory_kernel.domain.access import MUTATOR_ROLES, AccessContext, require_role
from inventory_kernel.domain.columns import columns_from_json, get_item_name
from inventory_kernel.domain.diff import diff_changes
from inventory_kernel.domain.dtos import FieldChange, ItemSnapshot
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.validator import validate_item_data
from inventory_kernel.exceptions import ItemDataInvalidError, ItemNotFoundError
from inventory_kernel.models.audit_log import AuditLogAction
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.services.audit_log_service import AuditLogService
from inventory_kernel.services.base import InventoryService, coerce_uuid


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one item write."""

    item_id: UUID
    data: dict[str, Any]
    audit_entry_id: UUID | None
    changes: tuple[FieldChange, ...] = ()


class ItemService(InventoryService):
    """Create, update and delete items of one tenant."""

    _log_name = "services.item"

    def _audit(self) -> AuditLogService:
        return AuditLogService(self.session, self.clock)

    def _get_owned_item(self, ctx: AccessContext, item_id: UUID | str) -> InventoryItem:
        key = coerce_uuid(item_id)
        item = self.session.get(InventoryItem, key) if key is not None else None
        if item is None or item.tenant_id != ctx.tenant_id:
            raise ItemNotFoundError(str(item_id))
        return item

    def create_item(self, ctx: AccessContext | None, data: Mapping[str, Any]) -> ItemResult:
        """
        Insert an item after validating ``data`` against the current columns.

        Postconditions:
            The item and an ITEM_CREATED entry carrying its snapshot are
            committed together.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "create inventory items")

        def work(hooks: PostCommitHooks) -> ItemResult:
            columns = self._load_columns(ctx.tenant_id)
            result = validate_item_data(data, columns)
            if not result.is_valid:
                raise ItemDataInvalidError(list(result.errors))

            now = self.clock.now()
            item = InventoryItem(
                id=uuid4(),
                tenant_id=ctx.tenant_id,
                data=copy.deepcopy(dict(data)),
                created_by_id=ctx.actor_id,
                created_at=now,
                updated_at=now,
            )
            self.session.add(item)
            self.session.flush()

            entry = self._audit().record_item_created(
                ctx.tenant_id,
                ctx.actor_id,
                ItemSnapshot.from_model(item),
                get_item_name(item.data, columns),
            )
            hooks.add(
                NotificationKind.ITEM_CREATED,
                ctx.tenant_id,
                {"item_id": str(item.id), "data": item.data},
            )
            hooks.add(
                NotificationKind.LOG_CREATED,
                ctx.tenant_id,
                {"entry_id": str(entry.id), "action": AuditLogAction.ITEM_CREATED.value},
            )
            return ItemResult(item_id=item.id, data=item.data, audit_entry_id=entry.id)

        return self._run_in_transaction("item_create", ctx, work)

    def update_item(
        self,
        ctx: AccessContext | None,
        item_id: UUID | str,
        data: Mapping[str, Any],
    ) -> ItemResult:
        """
        Replace an item's data map.

        Postconditions:
            When any column value differs, the new data and an ITEM_UPDATED
            entry with the FieldChanges are committed together.  A no-op
            update writes the item but logs nothing.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "update inventory items")

        def work(hooks: PostCommitHooks) -> ItemResult:
            columns = self._load_columns(ctx.tenant_id)
            item = self._get_owned_item(ctx, item_id)
            result = validate_item_data(data, columns)
            if not result.is_valid:
                raise ItemDataInvalidError(list(result.errors))

            new_data = copy.deepcopy(dict(data))
            changes = diff_changes(item.data, new_data, columns)
            item.data = new_data
            item.updated_at = self.clock.now()
            self.session.flush()

            entry_id = None
            if changes:
                entry = self._audit().record_item_updated(
                    ctx.tenant_id,
                    ctx.actor_id,
                    item.id,
                    get_item_name(new_data, columns),
                    changes,
                )
                entry_id = entry.id
                hooks.add(
                    NotificationKind.LOG_CREATED,
                    ctx.tenant_id,
                    {"entry_id": str(entry.id), "action": AuditLogAction.ITEM_UPDATED.value},
                )
            hooks.add(
                NotificationKind.ITEM_UPDATED,
                ctx.tenant_id,
                {"item_id": str(item.id), "data": item.data},
            )
            return ItemResult(
                item_id=item.id,
                data=item.data,
                audit_entry_id=entry_id,
                changes=tuple(changes),
            )

        return self._run_in_transaction("item_update", ctx, work, item_id=str(item_id))

    def delete_item(self, ctx: AccessContext | None, item_id: UUID | str) -> ItemResult:
        """
        Delete an item, keeping its last state as an ITEM_DELETED snapshot.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "delete inventory items")

        def work(hooks: PostCommitHooks) -> ItemResult:
            item = self._get_owned_item(ctx, item_id)
            row = self._load_schema_row(ctx.tenant_id)
            columns = columns_from_json(row.columns) if row is not None else ()

            snapshot = ItemSnapshot.from_model(item)
            entry = self._audit().record_item_deleted(
                ctx.tenant_id,
                ctx.actor_id,
                snapshot,
                get_item_name(item.data, columns),
            )
            deleted_id = item.id
            self.session.delete(item)
            self.session.flush()

            hooks.add(
                NotificationKind.ITEM_DELETED,
                ctx.tenant_id,
                {"item_id": str(deleted_id)},
            )
            hooks.add(
                NotificationKind.LOG_CREATED,
                ctx.tenant_id,
                {"entry_id": str(entry.id), "action": AuditLogAction.ITEM_DELETED.value},
            )
            return ItemResult(item_id=deleted_id, data=snapshot.data, audit_entry_id=entry.id)

        return self._run_in_transaction("item_delete", ctx, work, item_id=str(item_id))
