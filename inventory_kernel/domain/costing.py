"""
Cost Reconciliation Engine -- weighted-average unit cost, forward and reverse.

Responsibility:
    apply_receipt() computes the on-hand quantity and weighted-average cost
    after receiving stock.  reverse_receipt() computes the best-effort
    inverse when a receiving line is undone.  reverse_sale() puts sold
    units back.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Takes only its
    documented inputs, never an item or a session.

Invariants enforced:
    - Quantity after any reversal is never negative.
    - Zero stock carries zero cost.
    - A receipt without cost_per_item leaves cost untouched.

Reversal accuracy:
    The reverse formula is an exact algebraic inverse only when nothing
    touched the item between the receipt and its undo.  Every reversal
    reports the branch it took (ReversalMethod) and an ``approximate`` flag
    so callers can tell exact restorations from fallbacks.

    When current_qty <= quantity the engine cannot invert: equality always
    lands on ZERO_STOCK, and current_qty < quantity with stock remaining is
    impossible because the quantity floor drives new_qty to zero too.  The
    PREVIOUS_COST_FALLBACK branch is therefore reached only when the line
    carried no usable cost data or the inverse came out negative or
    non-finite.  Callers cannot distinguish "partially consumed" from
    "exactly consumed" for cost purposes.
"""

import math
from dataclasses import dataclass
from enum import Enum


class ReversalMethod(str, Enum):
    """Which branch of the reverse formula produced the cost."""

    EXACT_INVERSE = "exact_inverse"
    ZERO_STOCK = "zero_stock"
    PREVIOUS_COST_FALLBACK = "previous_cost_fallback"
    COST_UNTRACKED = "cost_untracked"


@dataclass(frozen=True)
class ReceiptCosting:
    """Result of applying one receiving line to an item."""

    previous_qty: float
    new_qty: float
    previous_cost: float | None
    new_cost: float | None
    cost_tracked: bool


@dataclass(frozen=True)
class ReceiptReversal:
    """Result of reversing one receiving line."""

    new_qty: float
    new_cost: float | None
    method: ReversalMethod
    approximate: bool


def apply_receipt(
    previous_qty: float,
    previous_cost: float | None,
    received_qty: int,
    cost_per_item: float | None,
) -> ReceiptCosting:
    """
    Forward receiving formula.

    Preconditions:
        previous_qty >= 0, received_qty > 0, cost_per_item >= 0 when given.

    Postconditions:
        new_qty = previous_qty + received_qty.
        With cost_per_item:
        new_cost = (previous_qty*previous_cost + received_qty*cost_per_item) / new_qty,
        or cost_per_item when that denominator is zero.
        Without cost_per_item: new_cost is previous_cost unchanged.
    """
    new_qty = previous_qty + received_qty
    if cost_per_item is None:
        return ReceiptCosting(
            previous_qty=previous_qty,
            new_qty=new_qty,
            previous_cost=previous_cost,
            new_cost=previous_cost,
            cost_tracked=False,
        )

    base_cost = previous_cost or 0
    if new_qty > 0:
        new_cost = (previous_qty * base_cost + received_qty * cost_per_item) / new_qty
    else:
        new_cost = cost_per_item
    return ReceiptCosting(
        previous_qty=previous_qty,
        new_qty=new_qty,
        previous_cost=base_cost,
        new_cost=new_cost,
        cost_tracked=True,
    )


def reverse_receipt(
    current_qty: float,
    current_cost: float | None,
    quantity: int,
    cost_per_item: float | None,
    previous_cost: float | None,
) -> ReceiptReversal:
    """
    Best-effort inverse of apply_receipt() for one receiving line.

    Args:
        current_qty: On-hand quantity now.
        current_cost: Unit cost now.
        quantity: Units the line received.
        cost_per_item: Unit cost the line received at, if recorded.
        previous_cost: Unit cost before the receipt, if recorded.

    Postconditions:
        new_qty = max(0, current_qty - quantity).
        new_qty == 0 gives cost 0.  Otherwise, with recorded cost data and
        current_qty > quantity, the weighted average is inverted; a negative
        or non-finite inverse, or missing cost data, falls back to
        previous_cost.
    """
    new_qty = max(0, current_qty - quantity)
    has_cost_data = cost_per_item is not None and previous_cost is not None

    if new_qty == 0:
        return ReceiptReversal(
            new_qty=0,
            new_cost=0,
            method=ReversalMethod.ZERO_STOCK,
            approximate=current_qty != quantity,
        )

    if has_cost_data and current_qty > quantity:
        inverse = ((current_qty * (current_cost or 0)) - quantity * cost_per_item) / new_qty
        if math.isfinite(inverse) and inverse >= 0:
            return ReceiptReversal(
                new_qty=new_qty,
                new_cost=inverse,
                method=ReversalMethod.EXACT_INVERSE,
                approximate=False,
            )

    if previous_cost is None:
        return ReceiptReversal(
            new_qty=new_qty,
            new_cost=current_cost,
            method=ReversalMethod.COST_UNTRACKED,
            approximate=False,
        )

    return ReceiptReversal(
        new_qty=new_qty,
        new_cost=previous_cost,
        method=ReversalMethod.PREVIOUS_COST_FALLBACK,
        approximate=True,
    )


def reverse_sale(current_qty: float, quantity: int) -> float:
    """Quantity after putting ``quantity`` sold units back on hand."""
    return current_qty + quantity


def normalize_number(value: float) -> int | float:
    """Integral floats become ints so JSON payloads stay stable."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
