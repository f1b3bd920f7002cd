"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures that flow between the pure domain functions and
    the service layer: validation results, field-level and schema-level
    change records, item snapshots, and undo conflict reports.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service layer (never from domain logic).

Serialization:
    Records stored inside JSON columns (changes, schema_changes, snapshot)
    round-trip through to_dict()/from_dict() with snake_case keys.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from inventory_kernel.models.item import InventoryItem


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating item data or a column list."""

    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls) -> ValidationResult:
        return cls()

    @classmethod
    def failure(cls, errors: list[str] | tuple[str, ...]) -> ValidationResult:
        return cls(errors=tuple(errors))

    def message(self) -> str:
        """All errors joined for display."""
        return ", ".join(self.errors)


@dataclass(frozen=True)
class FieldChange:
    """
    One changed column value between two item states.

    ``None`` is the explicit "no value" marker for both sides.
    """

    field: str
    field_name: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> FieldChange:
        return cls(
            field=raw["field"],
            field_name=raw.get("field_name", raw["field"]),
            old_value=raw.get("old_value"),
            new_value=raw.get("new_value"),
        )


class SchemaChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class SchemaChange:
    """Structural delta for one column between two schema versions."""

    type: SchemaChangeType
    column_id: str
    column_name: str
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "column_id": self.column_id,
            "column_name": self.column_name,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> SchemaChange:
        return cls(
            type=SchemaChangeType(raw["type"]),
            column_id=raw["column_id"],
            column_name=raw["column_name"],
            details=raw.get("details"),
        )


@dataclass(frozen=True)
class ItemSnapshot:
    """
    Full item state captured when an item is created or deleted.

    Sufficient to recreate the item (under a new id) during undo.
    """

    id: str
    tenant_id: str
    data: dict[str, Any]
    created_by_id: str
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "data": copy.deepcopy(self.data),
            "created_by_id": self.created_by_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ItemSnapshot:
        return cls(
            id=raw["id"],
            tenant_id=raw["tenant_id"],
            data=dict(raw.get("data") or {}),
            created_by_id=raw["created_by_id"],
            created_at=raw.get("created_at"),
            updated_at=raw.get("updated_at"),
        )

    @classmethod
    def from_model(cls, item: InventoryItem) -> ItemSnapshot:
        return cls(
            id=str(item.id),
            tenant_id=str(item.tenant_id),
            data=copy.deepcopy(dict(item.data or {})),
            created_by_id=str(item.created_by_id),
            created_at=_iso(item.created_at),
            updated_at=_iso(item.updated_at),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class UndoConflict:
    """A field edited again after the logged update."""

    field_id: str
    field_name: str
    current_value: Any
    will_become_value: Any


@dataclass(frozen=True)
class UndoConflictReport:
    """Read-only preview of what undoing an entry would overwrite."""

    item_exists: bool
    conflicts: tuple[UndoConflict, ...] = field(default_factory=tuple)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)
