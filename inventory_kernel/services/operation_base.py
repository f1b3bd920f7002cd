"""
OperationService -- shared plumbing for multi-item stock operations.

Responsibility:
    Resolves the role columns an operation needs, batch-loads the items a
    request names, and writes the Operation row.  Undo of any committed
    operation (receiving, sale or return) also lives here, since all of
    them reverse the same stored line shape.

Architecture position:
    Kernel > Services -- orchestrator base for ReceivingService,
    SaleService and ReturnService.

Failure modes:
    - SchemaNotConfiguredError / RoleColumnMissingError
    - ItemNotFoundError: a requested id is absent from the tenant's items.
    - OperationNotFoundError, AlreadyUndoneError: undo_operation checks.
    - SaleHasActiveReturnsError: a sale is undone while returns against it
      are still in force.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select

from inventory_kernel.domain.access import OWNER_ONLY, AccessContext, require_role
from inventory_kernel.domain.columns import (
    ColumnDefinition,
    ColumnRole,
    find_column_by_role,
)
from inventory_kernel.domain.costing import (
    normalize_number,
    reverse_receipt,
    reverse_sale,
)
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.operation_inputs import check_text_length, normalize_optional_text
from inventory_kernel.exceptions import (
    AlreadyUndoneError,
    ItemNotFoundError,
    OperationNotFoundError,
    RoleColumnMissingError,
    SaleHasActiveReturnsError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import Operation, OperationType
from inventory_kernel.services.base import InventoryService, coerce_uuid

UNKNOWN_ITEM_NAME = "Unknown Item"


def number_or_zero(value: Any) -> float:
    """A stored numeric cell, or 0 when it is absent or not a number."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return value
    return 0


def number_or_none(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return value
    return None


@dataclass(frozen=True)
class OperationResult:
    """A committed receiving, sale or return."""

    operation_id: UUID
    type: OperationType
    date: datetime
    total_qty: int
    items: tuple[dict[str, Any], ...]
    grand_total: float | None = None
    original_sale_id: UUID | None = None


@dataclass(frozen=True)
class OperationUndoResult:
    operation_id: UUID
    type: OperationType
    restored_item_ids: tuple[UUID, ...]
    skipped_item_ids: tuple[str, ...]


class OperationService(InventoryService):
    """Base for services that write Operation rows."""

    _log_name = "services.operation"

    def _optional_text(self, label: str, value: Any, limit: int) -> str | None:
        return check_text_length(label, normalize_optional_text(value), limit)

    def _require_role_column(
        self, columns: Sequence[ColumnDefinition], role: ColumnRole
    ) -> ColumnDefinition:
        column = find_column_by_role(columns, role)
        if column is None:
            raise RoleColumnMissingError(role.value)
        return column

    def _resolve_items(
        self, ctx: AccessContext, item_ids: Iterable[str]
    ) -> dict[str, InventoryItem]:
        """
        Load every requested item in one query, keyed by the id as given.

        Raises:
            ItemNotFoundError: naming the first id the tenant does not own.
        """
        requested = list(dict.fromkeys(item_ids))
        keys = {raw: coerce_uuid(raw) for raw in requested}
        loaded = self._load_items(ctx.tenant_id, [k for k in keys.values() if k is not None])
        resolved = {}
        for raw in requested:
            item = loaded.get(keys[raw]) if keys[raw] is not None else None
            if item is None:
                raise ItemNotFoundError(raw)
            resolved[raw] = item
        return resolved

    def _record_operation(
        self,
        ctx: AccessContext,
        op_type: OperationType,
        date: datetime,
        lines: list[dict[str, Any]],
        *,
        reference: str | None = None,
        supplier: str | None = None,
        customer: str | None = None,
        notes: str | None = None,
        grand_total: float | None = None,
        original_sale_id: UUID | None = None,
        return_reason: str | None = None,
    ) -> Operation:
        operation = Operation(
            id=uuid4(),
            tenant_id=ctx.tenant_id,
            type=op_type.value,
            date=date,
            reference=reference,
            supplier=supplier,
            customer=customer,
            notes=notes,
            items=lines,
            total_qty=sum(line["quantity"] for line in lines),
            grand_total=grand_total,
            original_sale_id=original_sale_id,
            return_reason=return_reason,
            user_id=ctx.actor_id,
            created_at=self.clock.now(),
        )
        self.session.add(operation)
        self.session.flush()
        return operation

    def _count_active_returns(self, tenant_id: UUID, sale_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Operation.id)).where(
                Operation.tenant_id == tenant_id,
                Operation.type == OperationType.RETURN.value,
                Operation.original_sale_id == sale_id,
                Operation.undone_at.is_(None),
            )
        ).scalar_one()

    def _notify_operation(
        self,
        hooks: PostCommitHooks,
        ctx: AccessContext,
        kind: NotificationKind,
        operation: Operation,
        items: Iterable[InventoryItem],
    ) -> None:
        seen = set()
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            hooks.add(
                NotificationKind.ITEM_UPDATED,
                ctx.tenant_id,
                {"item_id": str(item.id), "data": item.data},
            )
        hooks.add(
            kind,
            ctx.tenant_id,
            {"operation_id": str(operation.id), "type": operation.type},
        )

    def undo_operation(
        self, ctx: AccessContext | None, operation_id: UUID | str
    ) -> OperationUndoResult:
        """
        Reverse a committed receiving, sale or return.

        Lines are reversed last-to-first so repeated lines for one item
        unwind in the order they were applied.  Receiving lines subtract
        their quantity (floored at zero) and, when the line tracked cost and
        a cost column still exists, reverse the weighted average.  Sale
        lines add their quantity back.  Return lines that restocked take
        their quantity off again (floored at zero); the others never touched
        stock and are passed over.  Items deleted since are skipped.

        A sale with returns still in force is refused; those returns are
        undone first.

        Postconditions:
            Item writes and the operation's undone_at/undone_by_id commit
            together.
        """
        ctx = require_role(ctx, OWNER_ONLY, "undo operations")

        def work(hooks: PostCommitHooks) -> OperationUndoResult:
            key = coerce_uuid(operation_id)
            operation = None
            if key is not None:
                operation = self.session.execute(
                    select(Operation).where(Operation.id == key).with_for_update()
                ).scalar_one_or_none()
            if operation is None or operation.tenant_id != ctx.tenant_id:
                raise OperationNotFoundError(str(operation_id))
            if operation.undone_at is not None:
                raise AlreadyUndoneError("operation", str(operation.id), operation.undone_at)
            is_sale = operation.type == OperationType.SALE.value
            is_return = operation.type == OperationType.RETURN.value
            if is_sale:
                active_returns = self._count_active_returns(ctx.tenant_id, operation.id)
                if active_returns:
                    raise SaleHasActiveReturnsError(str(operation.id), active_returns)

            columns = self._load_columns(ctx.tenant_id)
            qty_column = self._require_role_column(columns, ColumnRole.QUANTITY)
            cost_column = find_column_by_role(columns, ColumnRole.COST)

            lines = list(operation.items or [])
            items = self._load_items(
                ctx.tenant_id,
                [k for k in (coerce_uuid(line.get("item_id")) for line in lines) if k],
            )
            now = self.clock.now()
            touched: list[InventoryItem] = []
            skipped: list[str] = []

            for line in reversed(lines):
                if is_return and not line.get("restocked"):
                    continue
                item = items.get(coerce_uuid(line.get("item_id")))
                if item is None:
                    skipped.append(str(line.get("item_id")))
                    continue

                data = dict(item.data or {})
                current_qty = number_or_zero(data.get(qty_column.id))
                quantity = line["quantity"]

                if is_sale:
                    data[qty_column.id] = normalize_number(reverse_sale(current_qty, quantity))
                elif (
                    cost_column is not None
                    and line.get("cost_per_item") is not None
                    and line.get("previous_cost") is not None
                ):
                    reversal = reverse_receipt(
                        current_qty,
                        number_or_zero(data.get(cost_column.id)),
                        quantity,
                        line["cost_per_item"],
                        line["previous_cost"],
                    )
                    data[qty_column.id] = normalize_number(reversal.new_qty)
                    data[cost_column.id] = normalize_number(reversal.new_cost)
                    if reversal.approximate:
                        self.logger.warning(
                            "cost_reversal_approximate",
                            extra={
                                "item_id": str(item.id),
                                "method": reversal.method.value,
                                "current_qty": current_qty,
                                "quantity": quantity,
                            },
                        )
                else:
                    data[qty_column.id] = normalize_number(max(0, current_qty - quantity))

                item.data = data
                item.updated_at = now
                touched.append(item)

            operation.undone_at = now
            operation.undone_by_id = ctx.actor_id
            self.session.flush()

            self.logger.info(
                "operation_undone",
                extra={
                    "operation_id": str(operation.id),
                    "operation_type": operation.type,
                    "items_restored": len({i.id for i in touched}),
                    "items_skipped": len(skipped),
                },
            )
            self._notify_operation(
                hooks, ctx, NotificationKind.OPERATION_UNDONE, operation, touched
            )
            return OperationUndoResult(
                operation_id=operation.id,
                type=OperationType(operation.type),
                restored_item_ids=tuple(dict.fromkeys(i.id for i in touched)),
                skipped_item_ids=tuple(skipped),
            )

        with LogContext.bind(operation_id=str(operation_id)):
            return self._run_in_transaction("operation_undo", ctx, work)
