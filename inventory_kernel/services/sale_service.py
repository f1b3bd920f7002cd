"""
SaleService -- stock leaving through a sale.

Responsibility:
    sell() subtracts sold quantities, prices each line from the item's
    price column (less any discount) and records a SALE Operation.  Undo
    goes through OperationService.undo_operation().

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).

Invariants enforced:
    - No item goes below zero: each line is checked against the quantity
      left after the earlier lines of the same sale.
    - line_total = max(0, price * quantity - discount_amount);
      grand_total is the sum of line totals.
    - Sales never change unit cost.

Failure modes:
    - InputValidationError: bad lines, negative price, fixed discount over
      the gross line total.
    - RoleColumnMissingError: no quantity or no price column.
    - InsufficientStockError, ItemNotFoundError.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from inventory_kernel.domain.access import MEMBER_ROLES, AccessContext, require_role
from inventory_kernel.domain.columns import ColumnRole, get_item_name
from inventory_kernel.domain.costing import normalize_number
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.operation_inputs import (
    DiscountType,
    SaleLineInput,
    parse_operation_date,
    parse_sale_lines,
)
from inventory_kernel.exceptions import InputValidationError, InsufficientStockError
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import OperationType
from inventory_kernel.services.operation_base import (
    UNKNOWN_ITEM_NAME,
    OperationResult,
    OperationService,
    number_or_zero,
)


def line_discount(gross: float, line: SaleLineInput, item_name: str) -> float:
    """Discount amount for one sale line."""
    if not line.discount:
        return 0
    if line.discount_type == DiscountType.PERCENT:
        return gross * (line.discount / 100)
    if line.discount > gross:
        raise InputValidationError(
            f"Fixed discount ({line.discount:.2f}) cannot exceed line total "
            f'({gross:.2f}) for "{item_name}"'
        )
    return line.discount


class SaleService(OperationService):
    """Sell stock out of a tenant's items."""

    _log_name = "services.sale"

    def sell(
        self,
        ctx: AccessContext | None,
        date: datetime | str,
        items: Iterable[Mapping[str, Any] | SaleLineInput],
        customer: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """
        Apply every line and record one SALE operation.

        Any tenant member may sell.
        """
        ctx = require_role(ctx, MEMBER_ROLES, "process sales")
        op_date = parse_operation_date(date)
        lines = parse_sale_lines(items)
        reference = self._optional_text("Reference", reference, self.limits.reference)
        customer = self._optional_text("Customer", customer, self.limits.customer)
        notes = self._optional_text("Notes", notes, self.limits.notes)

        def work(hooks: PostCommitHooks) -> OperationResult:
            columns = self._load_columns(ctx.tenant_id)
            qty_column = self._require_role_column(columns, ColumnRole.QUANTITY)
            price_column = self._require_role_column(columns, ColumnRole.PRICE)
            resolved = self._resolve_items(ctx, (line.item_id for line in lines))

            now = self.clock.now()
            op_lines: list[dict[str, Any]] = []
            touched: list[InventoryItem] = []
            grand_total = 0
            for line in lines:
                item = resolved[line.item_id]
                data = dict(item.data or {})
                item_name = get_item_name(data, columns) or UNKNOWN_ITEM_NAME

                previous_qty = number_or_zero(data.get(qty_column.id))
                if previous_qty < line.quantity:
                    raise InsufficientStockError(
                        item_name, normalize_number(previous_qty), line.quantity
                    )

                price = number_or_zero(data.get(price_column.id))
                if price < 0:
                    raise InputValidationError(
                        f'Item "{item_name}" has an invalid negative price'
                    )
                gross = price * line.quantity
                line_total = max(0, gross - line_discount(gross, line, item_name))

                new_qty = normalize_number(previous_qty - line.quantity)
                data[qty_column.id] = new_qty
                item.data = data
                item.updated_at = now

                op_line = {
                    "item_id": str(item.id),
                    "item_name": item_name,
                    "quantity": line.quantity,
                    "previous_qty": normalize_number(previous_qty),
                    "new_qty": new_qty,
                    "price_per_item": normalize_number(price),
                    "line_total": normalize_number(line_total),
                }
                if line.discount is not None:
                    op_line["discount"] = line.discount
                    op_line["discount_type"] = line.discount_type.value
                op_lines.append(op_line)
                touched.append(item)
                grand_total += line_total
            self.session.flush()

            operation = self._record_operation(
                ctx,
                OperationType.SALE,
                op_date,
                op_lines,
                reference=reference,
                customer=customer,
                notes=notes,
                grand_total=grand_total,
            )
            self.logger.info(
                "sale_committed",
                extra={
                    "operation_id": str(operation.id),
                    "line_count": len(op_lines),
                    "total_qty": operation.total_qty,
                    "grand_total": grand_total,
                },
            )
            self._notify_operation(
                hooks, ctx, NotificationKind.OPERATION_CREATED, operation, touched
            )
            return OperationResult(
                operation_id=operation.id,
                type=OperationType.SALE,
                date=op_date,
                total_qty=operation.total_qty,
                items=tuple(op_lines),
                grand_total=normalize_number(float(grand_total)),
            )

        return self._run_in_transaction("sale", ctx, work, line_count=len(lines))
