"""
ReturnService -- customer returns against a committed sale.

Responsibility:
    process_return() records a RETURN Operation linked to its sale, prices
    each line's refund from what the sale charged, and puts resellable
    units back on hand.  returnable_items() and list_returns() are the
    read side a point-of-sale screen needs before and after a return.
    Undo goes through OperationService.undo_operation().

Architecture position:
    Kernel > Services -- orchestrator (owns the transaction).

Invariants enforced:
    - Per item, units returned by active (not undone) returns never exceed
      the units the sale sold.  Several lines for one item in one request
      count together.
    - refund = sold line total * returned / sold, so returning everything
      refunds exactly what the sale charged, discount included.
    - Only RESELLABLE lines change stock; damaged and defective units are
      refunded but stay off the shelf.  A resellable line whose item was
      deleted since the sale is refunded without restocking.
    - The sale row is locked for the duration of the return, so two
      concurrent returns cannot both claim the same units.

Failure modes:
    - InputValidationError: missing sale id or reason, bad lines, an item
      that was not part of the sale, overlong text.
    - OperationNotFoundError: sale absent or owned by another tenant.
    - NotASaleError, SaleUndoneError, ReturnExceedsSoldError.
    - SchemaNotConfiguredError, RoleColumnMissingError("quantity").
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.access import MEMBER_ROLES, AccessContext, require_role
from inventory_kernel.domain.columns import ColumnRole
from inventory_kernel.domain.costing import normalize_number
from inventory_kernel.domain.notifications import NotificationKind, PostCommitHooks
from inventory_kernel.domain.operation_inputs import (
    ReturnCondition,
    ReturnLineInput,
    normalize_optional_text,
    parse_operation_date,
    parse_return_lines,
)
from inventory_kernel.exceptions import (
    InputValidationError,
    NotASaleError,
    OperationNotFoundError,
    ReturnExceedsSoldError,
    SaleUndoneError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import Operation, OperationType
from inventory_kernel.selectors.inventory_selector import InventorySelector, OperationView
from inventory_kernel.services.base import coerce_uuid
from inventory_kernel.services.operation_base import (
    UNKNOWN_ITEM_NAME,
    OperationResult,
    OperationService,
    number_or_zero,
)


def _item_key(item_id: str) -> str:
    key = coerce_uuid(item_id)
    return str(key) if key is not None else item_id


@dataclass(frozen=True)
class SoldLine:
    """What one sale charged for one item, summed over its lines."""

    item_id: str
    item_name: str
    quantity: int
    price_per_item: float
    line_total: float

    def refund_for(self, quantity: int) -> float:
        if quantity == self.quantity:
            return self.line_total
        return self.line_total * quantity / self.quantity


def sold_lines(lines: Iterable[Mapping[str, Any]]) -> dict[str, SoldLine]:
    """Sale lines keyed by item id, in first-sold order."""
    sold: dict[str, SoldLine] = {}
    for line in lines:
        item_id = str(line["item_id"])
        previous = sold.get(item_id)
        if previous is None:
            sold[item_id] = SoldLine(
                item_id=item_id,
                item_name=line.get("item_name") or UNKNOWN_ITEM_NAME,
                quantity=line["quantity"],
                price_per_item=line.get("price_per_item", 0),
                line_total=line.get("line_total", 0),
            )
        else:
            sold[item_id] = SoldLine(
                item_id=item_id,
                item_name=previous.item_name,
                quantity=previous.quantity + line["quantity"],
                price_per_item=previous.price_per_item,
                line_total=previous.line_total + line.get("line_total", 0),
            )
    return sold


@dataclass(frozen=True)
class ReturnableItem:
    item_id: str
    item_name: str
    original_qty: int
    returned_qty: int
    available_qty: int
    price_per_item: float
    line_total: float


@dataclass(frozen=True)
class SaleReturnables:
    sale_id: UUID
    sale_date: datetime
    sale_reference: str | None
    items: tuple[ReturnableItem, ...]

    @property
    def is_fully_returned(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class SaleReturnHistory:
    """Every return of one sale, newest first, active and undone alike."""

    sale_id: UUID
    returns: tuple[OperationView, ...]
    total_returned_qty: int
    total_refunded: float

    @property
    def total_returns(self) -> int:
        return len(self.returns)

    @property
    def active_returns(self) -> int:
        return sum(1 for r in self.returns if r.undone_at is None)

    @property
    def undone_returns(self) -> int:
        return self.total_returns - self.active_returns


class ReturnService(OperationService):
    """Take customer returns against a tenant's sales."""

    _log_name = "services.return"

    # ------------------------------------------------------------------
    # Sale lookups
    # ------------------------------------------------------------------

    def _load_sale(
        self,
        ctx: AccessContext,
        sale_id: UUID | str,
        wrong_type_message: str,
        for_update: bool = False,
    ) -> Operation:
        key = coerce_uuid(sale_id)
        sale = None
        if key is not None:
            stmt = select(Operation).where(Operation.id == key)
            if for_update:
                stmt = stmt.with_for_update()
            sale = self.session.execute(stmt).scalar_one_or_none()
        if sale is None or sale.tenant_id != ctx.tenant_id:
            raise OperationNotFoundError(str(sale_id))
        if sale.type != OperationType.SALE.value:
            raise NotASaleError(str(sale.id), sale.type, wrong_type_message)
        return sale

    def _returned_quantities(self, tenant_id: UUID, sale_id: UUID) -> dict[str, int]:
        """Units already taken back per item by returns still in force."""
        returns = self.session.execute(
            select(Operation).where(
                Operation.tenant_id == tenant_id,
                Operation.type == OperationType.RETURN.value,
                Operation.original_sale_id == sale_id,
                Operation.undone_at.is_(None),
            )
        ).scalars()
        returned: dict[str, int] = {}
        for operation in returns:
            for line in operation.items or ():
                item_id = str(line["item_id"])
                returned[item_id] = returned.get(item_id, 0) + line["quantity"]
        return returned

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def process_return(
        self,
        ctx: AccessContext | None,
        original_sale_id: UUID | str,
        date: datetime | str,
        reason: str,
        items: Iterable[Mapping[str, Any] | ReturnLineInput],
        notes: str | None = None,
    ) -> OperationResult:
        """
        Record one RETURN operation against ``original_sale_id``.

        Any tenant member may take a return.  ``reason`` is required for the
        return as a whole; lines may carry their own.

        Returns:
            OperationResult whose ``grand_total`` is the refund total.
        """
        ctx = require_role(ctx, MEMBER_ROLES, "process returns")
        if original_sale_id is None or not str(original_sale_id).strip():
            raise InputValidationError("Original sale ID is required")
        op_date = parse_operation_date(date)
        return_reason = normalize_optional_text(reason)
        if return_reason is None:
            raise InputValidationError("Return reason is required")
        return_reason = self._optional_text("Return reason", return_reason, self.limits.notes)
        lines = parse_return_lines(items, self.limits.notes)
        notes = self._optional_text("Notes", notes, self.limits.notes)

        def work(hooks: PostCommitHooks) -> OperationResult:
            sale = self._load_sale(
                ctx,
                original_sale_id,
                "Returns can only be processed for SALE operations",
                for_update=True,
            )
            if sale.undone_at is not None:
                raise SaleUndoneError(str(sale.id), "Cannot process return for an undone sale")

            sold = sold_lines(sale.items or ())
            returned = self._returned_quantities(ctx.tenant_id, sale.id)
            keys = [_item_key(line.item_id) for line in lines]
            requested: dict[str, int] = {}
            for key, line in zip(keys, lines):
                sold_line = sold.get(key)
                if sold_line is None:
                    raise InputValidationError(
                        f'Item "{line.item_id}" was not part of the original sale'
                    )
                requested[key] = requested.get(key, 0) + line.quantity
                available = sold_line.quantity - returned.get(key, 0)
                if requested[key] > available:
                    raise ReturnExceedsSoldError(sold_line.item_name, available, requested[key])

            columns = self._load_columns(ctx.tenant_id)
            qty_column = self._require_role_column(columns, ColumnRole.QUANTITY)
            restockable = self._load_items(
                ctx.tenant_id,
                [
                    k
                    for k in (
                        coerce_uuid(line.item_id)
                        for line in lines
                        if line.condition == ReturnCondition.RESELLABLE
                    )
                    if k is not None
                ],
            )

            now = self.clock.now()
            op_lines: list[dict[str, Any]] = []
            touched: list[InventoryItem] = []
            refund_total = 0
            for key, line in zip(keys, lines):
                sold_line = sold[key]
                refund = sold_line.refund_for(line.quantity)
                op_line = {
                    "item_id": key,
                    "item_name": sold_line.item_name,
                    "quantity": line.quantity,
                    "previous_qty": None,
                    "new_qty": None,
                    "price_per_item": sold_line.price_per_item,
                    "line_total": normalize_number(refund),
                    "refund_amount": normalize_number(refund),
                    "condition": line.condition.value,
                    "restocked": False,
                }
                if line.reason is not None:
                    op_line["reason"] = line.reason

                item = None
                if line.condition == ReturnCondition.RESELLABLE:
                    item = restockable.get(coerce_uuid(key))
                if item is not None:
                    data = dict(item.data or {})
                    previous_qty = number_or_zero(data.get(qty_column.id))
                    new_qty = normalize_number(previous_qty + line.quantity)
                    data[qty_column.id] = new_qty
                    item.data = data
                    item.updated_at = now
                    op_line["previous_qty"] = normalize_number(previous_qty)
                    op_line["new_qty"] = new_qty
                    op_line["restocked"] = True
                    touched.append(item)

                op_lines.append(op_line)
                refund_total += refund
            self.session.flush()

            operation = self._record_operation(
                ctx,
                OperationType.RETURN,
                op_date,
                op_lines,
                notes=notes,
                grand_total=refund_total,
                original_sale_id=sale.id,
                return_reason=return_reason,
            )
            self.logger.info(
                "return_committed",
                extra={
                    "operation_id": str(operation.id),
                    "original_sale_id": str(sale.id),
                    "line_count": len(op_lines),
                    "restocked_lines": sum(1 for line in op_lines if line["restocked"]),
                    "refund_total": refund_total,
                },
            )
            self._notify_operation(
                hooks, ctx, NotificationKind.OPERATION_CREATED, operation, touched
            )
            return OperationResult(
                operation_id=operation.id,
                type=OperationType.RETURN,
                date=op_date,
                total_qty=operation.total_qty,
                items=tuple(op_lines),
                grand_total=normalize_number(float(refund_total)),
                original_sale_id=sale.id,
            )

        with LogContext.bind(operation_id=str(original_sale_id)):
            return self._run_in_transaction("return", ctx, work, line_count=len(lines))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def returnable_items(
        self, ctx: AccessContext | None, sale_id: UUID | str
    ) -> SaleReturnables:
        """What can still be returned from a sale; fully returned items are left out."""
        ctx = require_role(ctx, MEMBER_ROLES, "view returnable items")
        sale = self._load_sale(ctx, sale_id, "Only SALE operations can have returnable items")
        if sale.undone_at is not None:
            raise SaleUndoneError(str(sale.id), "Cannot return items from an undone sale")

        returned = self._returned_quantities(ctx.tenant_id, sale.id)
        items = []
        for sold_line in sold_lines(sale.items or ()).values():
            returned_qty = returned.get(sold_line.item_id, 0)
            available = sold_line.quantity - returned_qty
            if available > 0:
                items.append(
                    ReturnableItem(
                        item_id=sold_line.item_id,
                        item_name=sold_line.item_name,
                        original_qty=sold_line.quantity,
                        returned_qty=returned_qty,
                        available_qty=available,
                        price_per_item=sold_line.price_per_item,
                        line_total=sold_line.line_total,
                    )
                )
        return SaleReturnables(
            sale_id=sale.id,
            sale_date=sale.date,
            sale_reference=sale.reference,
            items=tuple(items),
        )

    def list_returns(
        self, ctx: AccessContext | None, sale_id: UUID | str
    ) -> SaleReturnHistory:
        ctx = require_role(ctx, MEMBER_ROLES, "view returns")
        sale = self._load_sale(ctx, sale_id, "Only SALE operations can have returns")

        views = InventorySelector(self.session).list_operations(
            ctx.tenant_id,
            op_type=OperationType.RETURN,
            original_sale_id=sale.id,
            limit=None,
        )
        active = [v for v in views if v.undone_at is None]
        return SaleReturnHistory(
            sale_id=sale.id,
            returns=tuple(views),
            total_returned_qty=sum(v.total_qty for v in active),
            total_refunded=normalize_number(float(sum(v.grand_total or 0 for v in active))),
        )
