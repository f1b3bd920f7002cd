"""
Columns -- Tenant-defined column vocabulary.

Responsibility:
    Defines the closed set of column kinds (ColumnType) and semantic tags
    (ColumnRole) a tenant may use, plus the immutable ColumnDefinition value
    object that every validator, diff and costing routine consumes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A ColumnDefinition always carries a recognised ColumnType.
    - Options are an ordered tuple (empty for non-select columns unless
      explicitly given).
    - Role uniqueness and select-option presence are checked by
      validator.validate_column_definitions, not here.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ColumnType(str, Enum):
    """Kind tag dispatching validation and sanitization for one column."""

    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    SELECT = "select"


class ColumnRole(str, Enum):
    """
    Semantic tag telling generic algorithms which column to use.

    At most one column per tenant may carry a given role.
    """

    NAME = "name"
    QUANTITY = "quantity"
    MIN_QUANTITY = "minQuantity"
    PRICE = "price"
    COST = "cost"
    BARCODE = "barcode"


NUMERIC_TYPES = frozenset({ColumnType.NUMBER, ColumnType.CURRENCY})


@dataclass(frozen=True)
class ColumnDefinition:
    """
    One column of a tenant's inventory schema.

    Contract:
        ``id`` is the key under which item data stores this column's value.
        It is stable across renames, so diffs and snapshots key on it.
    """

    id: str
    name: str
    type: ColumnType
    role: ColumnRole | None = None
    options: tuple[str, ...] = field(default_factory=tuple)
    required: bool = False
    order: int = 0

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON storage."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "role": self.role.value if self.role else None,
            "options": list(self.options),
            "required": self.required,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ColumnDefinition":
        """
        Build from a stored or submitted mapping.

        Raises:
            ValueError: If ``type`` or ``role`` is not a recognised value.
        """
        role = raw.get("role")
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            type=ColumnType(raw["type"]),
            role=ColumnRole(role) if role else None,
            options=tuple(raw.get("options") or ()),
            required=bool(raw.get("required", False)),
            order=int(raw.get("order", 0)),
        )


def columns_from_json(raw: Iterable[Mapping[str, Any]] | None) -> tuple[ColumnDefinition, ...]:
    """Rehydrate a stored column list, sorted by ``order``."""
    if not raw:
        return ()
    columns = [ColumnDefinition.from_dict(c) for c in raw]
    return tuple(sorted(columns, key=lambda c: c.order))


def columns_to_json(columns: Iterable[ColumnDefinition]) -> list[dict[str, Any]]:
    return [c.to_dict() for c in columns]


def find_column_by_role(
    columns: Iterable[ColumnDefinition], role: ColumnRole
) -> ColumnDefinition | None:
    """Return the column carrying ``role``, or None."""
    for column in columns:
        if column.role == role:
            return column
    return None


def get_item_name(
    data: Mapping[str, Any], columns: Iterable[ColumnDefinition]
) -> str | None:
    """Display name from the ``name``-role column, if it holds a string."""
    name_column = find_column_by_role(columns, ColumnRole.NAME)
    if name_column is None:
        return None
    value = data.get(name_column.id)
    return value if isinstance(value, str) else None
