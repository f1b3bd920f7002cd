"""
Module: inventory_kernel.selectors.inventory_selector
Responsibility: Tenant-scoped reads of columns, items, audit entries and
    operations.
Architecture position: Kernel > Selectors.

Failure modes:
    - Returns None or an empty list when nothing matches; never raises on
      absence of data.  Ids that are not UUIDs simply match nothing.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.columns import (
    ColumnDefinition,
    ColumnRole,
    columns_from_json,
    find_column_by_role,
)
from inventory_kernel.domain.dtos import FieldChange, SchemaChange
from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import Operation, OperationType
from inventory_kernel.models.schema import InventorySchema
from inventory_kernel.selectors.base import BaseSelector

DEFAULT_LOW_STOCK_THRESHOLD = 3


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


@dataclass(frozen=True)
class ItemView:
    id: UUID
    data: dict[str, Any]
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class AuditEntryView:
    id: UUID
    action: AuditLogAction
    actor_id: UUID
    item_id: UUID | None
    item_name: str | None
    snapshot: dict[str, Any] | None
    changes: tuple[FieldChange, ...]
    schema_changes: tuple[SchemaChange, ...]
    undoable: bool
    undone_at: datetime | None
    undone_by_id: UUID | None
    created_at: datetime

    @property
    def can_undo(self) -> bool:
        return self.undoable and self.undone_at is None


@dataclass(frozen=True)
class OperationView:
    id: UUID
    type: OperationType
    date: datetime
    reference: str | None
    supplier: str | None
    customer: str | None
    notes: str | None
    items: tuple[dict[str, Any], ...]
    total_qty: int
    grand_total: float | None
    original_sale_id: UUID | None
    return_reason: str | None
    user_id: UUID
    undone_at: datetime | None
    undone_by_id: UUID | None
    created_at: datetime


class InventorySelector(BaseSelector[InventoryItem]):
    """
    Read access for one store.

    Lists are returned newest first, except items, which keep insertion
    order (created_at ascending).
    """

    # ------------------------------------------------------------------
    # Schema and items
    # ------------------------------------------------------------------

    def get_columns(self, tenant_id: UUID) -> tuple[ColumnDefinition, ...] | None:
        """The tenant's columns, or None when no schema was ever saved."""
        row = self.session.execute(
            select(InventorySchema).where(InventorySchema.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if row is None:
            return None
        return columns_from_json(row.columns)

    def _item_view(self, item: InventoryItem) -> ItemView:
        return ItemView(
            id=item.id,
            data=dict(item.data or {}),
            created_by_id=item.created_by_id,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def get_item(self, tenant_id: UUID, item_id: UUID | str) -> ItemView | None:
        key = _as_uuid(item_id)
        if key is None:
            return None
        item = self.session.get(InventoryItem, key)
        if item is None or item.tenant_id != tenant_id:
            return None
        return self._item_view(item)

    def list_items(self, tenant_id: UUID) -> list[ItemView]:
        rows = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.tenant_id == tenant_id)
            .order_by(InventoryItem.created_at, InventoryItem.id)
        ).scalars()
        return [self._item_view(row) for row in rows]

    def find_by_barcode(self, tenant_id: UUID, barcode: str) -> ItemView | None:
        """
        Exact match on the barcode-role column after trimming ``barcode``.

        Returns None when the tenant has no barcode column.
        """
        columns = self.get_columns(tenant_id) or ()
        column = find_column_by_role(columns, ColumnRole.BARCODE)
        wanted = barcode.strip()
        if column is None or not wanted:
            return None
        # JSON path filters differ between SQLite and PostgreSQL; match in Python.
        for view in self.list_items(tenant_id):
            if view.data.get(column.id) == wanted:
                return view
        return None

    def list_low_stock(
        self,
        tenant_id: UUID,
        fallback_threshold: float = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> list[ItemView]:
        """
        Items whose quantity is at or below their minimum quantity.

        An item without a numeric minQuantity value is compared against
        ``fallback_threshold``.  Items without a numeric quantity are never
        low.  Empty when the tenant has no quantity column.
        """
        columns = self.get_columns(tenant_id) or ()
        qty_column = find_column_by_role(columns, ColumnRole.QUANTITY)
        if qty_column is None:
            return []
        min_column = find_column_by_role(columns, ColumnRole.MIN_QUANTITY)

        low = []
        for view in self.list_items(tenant_id):
            quantity = _number(view.data.get(qty_column.id))
            if quantity is None:
                continue
            threshold = _number(view.data.get(min_column.id)) if min_column else None
            if quantity <= (fallback_threshold if threshold is None else threshold):
                low.append(view)
        return low

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def _entry_view(self, entry: AuditLogEntry) -> AuditEntryView:
        return AuditEntryView(
            id=entry.id,
            action=AuditLogAction(entry.action),
            actor_id=entry.actor_id,
            item_id=entry.item_id,
            item_name=entry.item_name,
            snapshot=entry.snapshot,
            changes=tuple(FieldChange.from_dict(c) for c in entry.changes or ()),
            schema_changes=tuple(
                SchemaChange.from_dict(c) for c in entry.schema_changes or ()
            ),
            undoable=entry.undoable,
            undone_at=entry.undone_at,
            undone_by_id=entry.undone_by_id,
            created_at=entry.created_at,
        )

    def get_audit_entry(self, tenant_id: UUID, entry_id: UUID | str) -> AuditEntryView | None:
        key = _as_uuid(entry_id)
        if key is None:
            return None
        entry = self.session.get(AuditLogEntry, key)
        if entry is None or entry.tenant_id != tenant_id:
            return None
        return self._entry_view(entry)

    def list_audit_entries(
        self,
        tenant_id: UUID,
        *,
        action: AuditLogAction | None = None,
        item_id: UUID | None = None,
        actor_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEntryView]:
        stmt = select(AuditLogEntry).where(AuditLogEntry.tenant_id == tenant_id)
        if action is not None:
            stmt = stmt.where(AuditLogEntry.action == AuditLogAction(action).value)
        if item_id is not None:
            stmt = stmt.where(AuditLogEntry.item_id == item_id)
        if actor_id is not None:
            stmt = stmt.where(AuditLogEntry.actor_id == actor_id)
        if start is not None:
            stmt = stmt.where(AuditLogEntry.created_at >= start)
        if end is not None:
            stmt = stmt.where(AuditLogEntry.created_at <= end)
        stmt = (
            stmt.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id)
            .offset(offset)
            .limit(limit)
        )
        return [self._entry_view(e) for e in self.session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _operation_view(self, op: Operation) -> OperationView:
        return OperationView(
            id=op.id,
            type=OperationType(op.type),
            date=op.date,
            reference=op.reference,
            supplier=op.supplier,
            customer=op.customer,
            notes=op.notes,
            items=tuple(dict(line) for line in op.items or ()),
            total_qty=op.total_qty,
            grand_total=op.grand_total,
            original_sale_id=op.original_sale_id,
            return_reason=op.return_reason,
            user_id=op.user_id,
            undone_at=op.undone_at,
            undone_by_id=op.undone_by_id,
            created_at=op.created_at,
        )

    def get_operation(self, tenant_id: UUID, operation_id: UUID | str) -> OperationView | None:
        key = _as_uuid(operation_id)
        if key is None:
            return None
        op = self.session.get(Operation, key)
        if op is None or op.tenant_id != tenant_id:
            return None
        return self._operation_view(op)

    def list_operations(
        self,
        tenant_id: UUID,
        *,
        op_type: OperationType | None = None,
        original_sale_id: UUID | None = None,
        include_undone: bool = True,
        limit: int | None = 50,
        offset: int = 0,
    ) -> list[OperationView]:
        stmt = select(Operation).where(Operation.tenant_id == tenant_id)
        if op_type is not None:
            stmt = stmt.where(Operation.type == OperationType(op_type).value)
        if original_sale_id is not None:
            stmt = stmt.where(Operation.original_sale_id == original_sale_id)
        if not include_undone:
            stmt = stmt.where(Operation.undone_at.is_(None))
        stmt = (
            stmt.order_by(Operation.date.desc(), Operation.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._operation_view(op) for op in self.session.execute(stmt).scalars()]
