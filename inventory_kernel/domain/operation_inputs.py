"""
Request-shape checks for stock operations.  ZERO I/O.

Receiving, sale and return requests arrive as loosely typed mappings from a
transport layer.  These helpers turn them into frozen line inputs or raise
InputValidationError with the message a caller can show as-is.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from inventory_kernel.domain.dates import parse_calendar_date
from inventory_kernel.exceptions import InputValidationError


class DiscountType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class ReturnCondition(str, Enum):
    """State of a returned unit; only resellable stock goes back on hand."""

    RESELLABLE = "resellable"
    DAMAGED = "damaged"
    DEFECTIVE = "defective"


@dataclass(frozen=True)
class ReceivingLineInput:
    item_id: str
    quantity: int
    cost_per_item: float | None = None


@dataclass(frozen=True)
class SaleLineInput:
    item_id: str
    quantity: int
    discount: float | None = None
    discount_type: DiscountType | None = None


@dataclass(frozen=True)
class ReturnLineInput:
    item_id: str
    quantity: int
    condition: ReturnCondition
    reason: str | None = None


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _positive_int(value: Any) -> int | None:
    if not _is_number(value) or value <= 0:
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return value


def normalize_optional_text(value: Any) -> str | None:
    """Trimmed string, or None for absent, non-string or blank input."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def check_text_length(label: str, value: str | None, limit: int) -> str | None:
    if value is not None and len(value) > limit:
        raise InputValidationError(f"{label} must be at most {limit} characters")
    return value


def parse_operation_date(value: Any) -> datetime:
    if value is None or value == "":
        raise InputValidationError("Date is required")
    parsed = parse_calendar_date(value)
    if parsed is None:
        raise InputValidationError("Invalid date format")
    return parsed


def _item_id(raw: Mapping[str, Any]) -> str:
    item_id = raw.get("item_id")
    if item_id is None or not str(item_id).strip():
        raise InputValidationError("Each item must have a valid item_id")
    return str(item_id).strip()


def _require_lines(items: Iterable[Any] | None) -> list[Any]:
    lines = list(items) if items is not None else []
    if not lines:
        raise InputValidationError("At least one item is required")
    return lines


def parse_receiving_lines(
    items: Iterable[Mapping[str, Any] | ReceivingLineInput] | None,
) -> list[ReceivingLineInput]:
    """
    Check every receiving line.

    Each line needs an ``item_id``, a positive integer ``quantity`` and,
    optionally, a non-negative ``cost_per_item``.
    """
    parsed = []
    for raw in _require_lines(items):
        if isinstance(raw, ReceivingLineInput):
            raw = {
                "item_id": raw.item_id,
                "quantity": raw.quantity,
                "cost_per_item": raw.cost_per_item,
            }
        item_id = _item_id(raw)
        quantity = _positive_int(raw.get("quantity"))
        if quantity is None:
            raise InputValidationError("Each item must have a positive integer quantity")
        cost = raw.get("cost_per_item")
        if cost is not None and (not _is_number(cost) or cost < 0):
            raise InputValidationError("cost_per_item must be a non-negative number")
        parsed.append(ReceivingLineInput(item_id, quantity, cost))
    return parsed


def parse_sale_lines(
    items: Iterable[Mapping[str, Any] | SaleLineInput] | None,
) -> list[SaleLineInput]:
    """
    Check every sale line.

    ``discount`` is optional and non-negative.  ``discount_type`` is
    ``percent`` or ``fixed`` (the default); a percentage may not exceed 100.
    The fixed-amount ceiling depends on the item price and is checked by
    the sale itself.
    """
    parsed = []
    for raw in _require_lines(items):
        if isinstance(raw, SaleLineInput):
            raw = {
                "item_id": raw.item_id,
                "quantity": raw.quantity,
                "discount": raw.discount,
                "discount_type": raw.discount_type,
            }
        item_id = _item_id(raw)
        quantity = _positive_int(raw.get("quantity"))
        if quantity is None:
            raise InputValidationError("Each item must have a positive integer quantity")

        discount = raw.get("discount")
        discount_type = None
        if discount is not None:
            if not _is_number(discount) or discount < 0:
                raise InputValidationError("Discount must be a non-negative number")
            try:
                discount_type = DiscountType(raw.get("discount_type") or DiscountType.FIXED)
            except ValueError:
                raise InputValidationError(
                    'Discount type must be either "percent" or "fixed"'
                ) from None
            if discount_type == DiscountType.PERCENT and discount > 100:
                raise InputValidationError("Percentage discount cannot exceed 100%")
        parsed.append(SaleLineInput(item_id, quantity, discount, discount_type))
    return parsed


def parse_return_lines(
    items: Iterable[Mapping[str, Any] | ReturnLineInput] | None,
    reason_limit: int,
) -> list[ReturnLineInput]:
    """
    Check every return line.

    Each line needs an ``item_id``, a positive integer ``quantity`` and a
    ``condition`` (resellable, damaged or defective).  A per-line
    ``reason`` is optional and bounded by ``reason_limit``.
    """
    parsed = []
    for raw in _require_lines(items):
        if isinstance(raw, ReturnLineInput):
            raw = {
                "item_id": raw.item_id,
                "quantity": raw.quantity,
                "condition": raw.condition,
                "reason": raw.reason,
            }
        item_id = _item_id(raw)
        quantity = _positive_int(raw.get("quantity"))
        if quantity is None:
            raise InputValidationError("Each item must have a positive integer quantity")
        try:
            condition = ReturnCondition(raw.get("condition"))
        except ValueError:
            raise InputValidationError(
                "Condition must be one of: resellable, damaged, defective"
            ) from None
        reason = check_text_length(
            "Item reason", normalize_optional_text(raw.get("reason")), reason_limit
        )
        parsed.append(ReturnLineInput(item_id, quantity, condition, reason))
    return parsed
