"""
Dynamic Validator -- type-checks item data against a tenant's column list.

Each ColumnType has one check function registered in ``_TYPE_CHECKS``;
validation dispatches on the column's kind tag.  All errors are collected
(no fail-fast) and prefixed with the column's display name, e.g.
``"Price: Expected a number"``.  Keys in the data that match no column are
ignored.  Pure functions, no I/O.
"""

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from inventory_kernel.domain.columns import ColumnDefinition, ColumnRole, ColumnType
from inventory_kernel.domain.dates import parse_calendar_date
from inventory_kernel.domain.dtos import ValidationResult
from inventory_kernel.domain.limits import DEFAULT_LIMITS, StringLimits
from inventory_kernel.exceptions import DuplicateRoleError, SchemaDefinitionError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.validator")

REQUIRED_MESSAGE = "Required"


def is_blank(value: Any) -> bool:
    """True for None and the empty string: the absent-value forms."""
    return value is None or value == ""


def is_finite_number(value: Any) -> bool:
    """int/float other than bool, and not NaN or infinite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


# ---------------------------------------------------------------------------
# Per-kind checks: return an error message, or None when the value is valid
# ---------------------------------------------------------------------------


def _check_text(value: Any, column: ColumnDefinition) -> str | None:
    if not isinstance(value, str):
        return "Expected text"
    return None


def _check_number(value: Any, column: ColumnDefinition) -> str | None:
    if not is_finite_number(value):
        return "Expected a number"
    return None


def _check_date(value: Any, column: ColumnDefinition) -> str | None:
    if parse_calendar_date(value) is None:
        return "Invalid date format"
    return None


def _check_select(value: Any, column: ColumnDefinition) -> str | None:
    if not column.options:
        return _check_text(value, column)
    if value not in column.options:
        expected = " | ".join(f"'{option}'" for option in column.options)
        return f"Invalid option. Expected {expected}, received '{value}'"
    return None


_TYPE_CHECKS: dict[ColumnType, Callable[[Any, ColumnDefinition], str | None]] = {
    ColumnType.TEXT: _check_text,
    ColumnType.NUMBER: _check_number,
    ColumnType.CURRENCY: _check_number,
    ColumnType.DATE: _check_date,
    ColumnType.SELECT: _check_select,
}


def validate_value(value: Any, column: ColumnDefinition) -> str | None:
    """Validate one value for one column; None means valid."""
    if is_blank(value):
        return REQUIRED_MESSAGE if column.required else None
    return _TYPE_CHECKS[column.type](value, column)


def validate_item_data(
    data: Mapping[str, Any],
    columns: Iterable[ColumnDefinition],
) -> ValidationResult:
    """
    Validate an item's field map against the active columns.

    Postconditions:
        ``result.errors`` holds one ``"<column name>: <message>"`` per
        failing column, in column order.
    """
    errors: list[str] = []
    for column in columns:
        message = validate_value(data.get(column.id), column)
        if message is not None:
            errors.append(f"{column.name}: {message}")

    if errors:
        logger.debug(
            "item_data_invalid",
            extra={"error_count": len(errors)},
        )
        return ValidationResult.failure(errors)
    return ValidationResult.success()


# ---------------------------------------------------------------------------
# Column list validation (schema updates)
# ---------------------------------------------------------------------------


def _column_shape_errors(
    index: int, raw: Mapping[str, Any], limits: StringLimits
) -> list[str]:
    label = f"Column {index + 1}"
    errors: list[str] = []

    column_id = raw.get("id")
    if not isinstance(column_id, str) or not column_id.strip():
        errors.append(f"{label}: id is required")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(f"{label}: Column name is required")
    elif len(name) > limits.column_name:
        errors.append(
            f"{label}: Column name must be at most {limits.column_name} characters"
        )
    else:
        label = f'Column "{name}"'

    try:
        ColumnType(raw.get("type"))
    except ValueError:
        errors.append(f"{label}: Unknown column type {raw.get('type')!r}")

    role = raw.get("role")
    if role:
        try:
            ColumnRole(role)
        except ValueError:
            errors.append(f"{label}: Unknown column role {role!r}")

    options = raw.get("options")
    if options is not None:
        if not isinstance(options, (list, tuple)) or not all(
            isinstance(o, str) for o in options
        ):
            errors.append(f"{label}: options must be a list of strings")
        elif any(len(o) > limits.option_value for o in options):
            errors.append(
                f"{label}: Option must be at most {limits.option_value} characters"
            )

    order = raw.get("order", 0)
    if isinstance(order, bool) or not isinstance(order, int) or order < 0:
        errors.append(f"{label}: order must be a non-negative integer")

    return errors


def validate_column_definitions(
    raw_columns: Sequence[Mapping[str, Any] | ColumnDefinition],
    limits: StringLimits = DEFAULT_LIMITS,
) -> tuple[ColumnDefinition, ...]:
    """
    Validate and parse a submitted column list.

    Runs entirely before any persistence so a rejected list leaves no trace.

    Returns:
        Parsed columns sorted by ``order``.

    Raises:
        SchemaDefinitionError: Malformed entries, repeated ids, or a select
            column without options.
        DuplicateRoleError: Two columns carry the same non-null role.
    """
    errors: list[str] = []
    raw_dicts = [
        c.to_dict() if isinstance(c, ColumnDefinition) else dict(c)
        for c in raw_columns
    ]
    for index, raw in enumerate(raw_dicts):
        errors.extend(_column_shape_errors(index, raw, limits))
    if errors:
        raise SchemaDefinitionError(errors)

    columns = [ColumnDefinition.from_dict(raw) for raw in raw_dicts]

    seen_ids: set[str] = set()
    for column in columns:
        if column.id in seen_ids:
            errors.append(f'Column "{column.name}": duplicate column id {column.id}')
        seen_ids.add(column.id)
    if errors:
        raise SchemaDefinitionError(errors)

    by_role: dict[str, list[str]] = {}
    for column in columns:
        if column.role is not None:
            by_role.setdefault(column.role.value, []).append(column.name)
    for role, names in by_role.items():
        if len(names) > 1:
            logger.warning(
                "duplicate_role_rejected",
                extra={"role": role, "columns": names},
            )
            raise DuplicateRoleError(role, names)

    for column in columns:
        if column.type == ColumnType.SELECT and not column.options:
            errors.append(
                f'Column "{column.name}" is a select type but has no options'
            )
    if errors:
        raise SchemaDefinitionError(errors)

    return tuple(sorted(columns, key=lambda c: c.order))
