"""
ReceivingService -- stock arrivals with weighted-average costing.

Responsibility:
    receive() adds received quantities to items, re-averages unit cost when
    the line carries one, and records a RECEIVING Operation.  Undo goes
    through OperationService.undo_operation().

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).

Invariants enforced:
    - The request is checked in full before the transaction opens.
    - Cost is written only when the tenant has a cost column AND the line
      has cost_per_item; otherwise the stored cost is left alone and the
      line records no cost fields.
    - Several lines for one item apply in request order, each seeing the
      previous line's result.
    - total_qty equals the sum of line quantities.

Failure modes:
    - InputValidationError: empty lines, bad quantity/cost/date, overlong text.
    - SchemaNotConfiguredError, RoleColumnMissingError("quantity").
    - ItemNotFoundError: naming the missing id.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from inventory_kernel.domain.access import MUTATOR_ROLES, AccessContext, require_role
from inventory_kernel.domain.columns import ColumnRole, find_column_by_role, get_item_name
from inventory_kernel.domain.costing import apply_receipt, normalize_number
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.operation_inputs import (
    ReceivingLineInput,
    parse_operation_date,
    parse_receiving_lines,
)
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import OperationType
from inventory_kernel.services.operation_base import (
    UNKNOWN_ITEM_NAME,
    OperationResult,
    OperationService,
    number_or_none,
    number_or_zero,
)


class ReceivingService(OperationService):
    """Receive stock into a tenant's items."""

    _log_name = "services.receiving"

    def receive(
        self,
        ctx: AccessContext | None,
        date: datetime | str,
        items: Iterable[Mapping[str, Any] | ReceivingLineInput],
        reference: str | None = None,
        supplier: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """
        Apply every line and record one RECEIVING operation.

        Postconditions:
            Each item's quantity rose by its lines' quantities; tracked
            lines re-averaged its cost.  Items and the Operation commit
            together; one ITEM_UPDATED per item and one OPERATION_CREATED
            are delivered afterwards.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "receive inventory")
        op_date = parse_operation_date(date)
        lines = parse_receiving_lines(items)
        reference = self._optional_text("Reference", reference, self.limits.reference)
        supplier = self._optional_text("Supplier", supplier, self.limits.supplier)
        notes = self._optional_text("Notes", notes, self.limits.notes)

        def work(hooks: PostCommitHooks) -> OperationResult:
            columns = self._load_columns(ctx.tenant_id)
            qty_column = self._require_role_column(columns, ColumnRole.QUANTITY)
            cost_column = find_column_by_role(columns, ColumnRole.COST)
            resolved = self._resolve_items(ctx, (line.item_id for line in lines))

            now = self.clock.now()
            op_lines: list[dict[str, Any]] = []
            touched: list[InventoryItem] = []
            for line in lines:
                item = resolved[line.item_id]
                data = dict(item.data or {})
                tracked = cost_column is not None and line.cost_per_item is not None

                costing = apply_receipt(
                    number_or_zero(data.get(qty_column.id)),
                    number_or_none(data.get(cost_column.id)) if cost_column else None,
                    line.quantity,
                    line.cost_per_item if tracked else None,
                )
                data[qty_column.id] = normalize_number(costing.new_qty)

                op_line = {
                    "item_id": str(item.id),
                    "item_name": get_item_name(data, columns) or UNKNOWN_ITEM_NAME,
                    "quantity": line.quantity,
                    "previous_qty": normalize_number(costing.previous_qty),
                    "new_qty": normalize_number(costing.new_qty),
                }
                if costing.cost_tracked:
                    data[cost_column.id] = normalize_number(costing.new_cost)
                    op_line["cost_per_item"] = line.cost_per_item
                    op_line["previous_cost"] = normalize_number(costing.previous_cost)
                    op_line["new_cost"] = normalize_number(costing.new_cost)

                item.data = data
                item.updated_at = now
                op_lines.append(op_line)
                touched.append(item)
            self.session.flush()

            operation = self._record_operation(
                ctx,
                OperationType.RECEIVING,
                op_date,
                op_lines,
                reference=reference,
                supplier=supplier,
                notes=notes,
            )
            self.logger.info(
                "receiving_committed",
                extra={
                    "operation_id": str(operation.id),
                    "line_count": len(op_lines),
                    "total_qty": operation.total_qty,
                    "cost_tracked": cost_column is not None,
                },
            )
            self._notify_operation(
                hooks, ctx, NotificationKind.OPERATION_CREATED, operation, touched
            )
            return OperationResult(
                operation_id=operation.id,
                type=OperationType.RECEIVING,
                date=op_date,
                total_qty=operation.total_qty,
                items=tuple(op_lines),
            )

        return self._run_in_transaction("receiving", ctx, work, line_count=len(lines))
