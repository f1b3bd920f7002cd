"""
Diff Engine -- field-level and structural deltas.

Responsibility:
    diff_changes() compares two item data maps column by column and returns
    the FieldChanges an ITEM_UPDATED audit entry records.
    diff_schema_changes() compares two column lists keyed by column id and
    returns the SchemaChanges a SCHEMA_UPDATED entry records.
    find_undo_conflicts() reports fields edited again since a logged update.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - diff_changes(d, d, columns) == [] for every d.
    - Only columns of the supplied list are compared; stray data keys are
      never diffed.
    - Output follows column order (item diffs) or added/removed/modified
      grouping (schema diffs).
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from inventory_kernel.domain.columns import ColumnDefinition
from inventory_kernel.domain.dtos import (
    FieldChange,
    SchemaChange,
    SchemaChangeType,
    UndoConflict,
)


def values_equal(a: Any, b: Any) -> bool:
    """
    Deep structural equality over JSON-like values.

    None equals only None.  Booleans never equal numbers.  Lists compare by
    length and pairwise; mappings by key set and per-key value.
    """
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if type(a) is not type(b):
        return False
    return a == b


def diff_changes(
    old: Mapping[str, Any] | None,
    new: Mapping[str, Any] | None,
    columns: Iterable[ColumnDefinition],
) -> list[FieldChange]:
    """Changed columns between two item states, in column order."""
    old = old or {}
    new = new or {}
    changes: list[FieldChange] = []
    for column in columns:
        old_value = old.get(column.id)
        new_value = new.get(column.id)
        if not values_equal(old_value, new_value):
            changes.append(
                FieldChange(
                    field=column.id,
                    field_name=column.name,
                    old_value=old_value,
                    new_value=new_value,
                )
            )
    return changes


def _describe_modifications(old: ColumnDefinition, new: ColumnDefinition) -> list[str]:
    parts: list[str] = []
    if old.name != new.name:
        parts.append(f'Name: "{old.name}" → "{new.name}"')
    if old.type != new.type:
        parts.append(f"Type: {old.type.value} → {new.type.value}")
    if old.role != new.role:
        old_role = old.role.value if old.role else "none"
        new_role = new.role.value if new.role else "none"
        parts.append(f"Role: {old_role} → {new_role}")
    if old.required != new.required:
        parts.append(f"Required: {_flag(old.required)} → {_flag(new.required)}")
    if old.order != new.order:
        parts.append(f"Order: {old.order} → {new.order}")
    if tuple(old.options) != tuple(new.options):
        parts.append(f"Options: {_options(old.options)} → {_options(new.options)}")
    return parts


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _options(options: Sequence[str]) -> str:
    return "[" + ", ".join(options) + "]"


def diff_schema_changes(
    old: Sequence[ColumnDefinition],
    new: Sequence[ColumnDefinition],
) -> list[SchemaChange]:
    """
    Structural delta between two column lists, keyed by column id.

    Postconditions:
        Added entries (in ``new`` order), then removed entries (in ``old``
        order), then modified entries (in ``new`` order).  A column equal
        in every attribute yields nothing.
    """
    old_by_id = {c.id: c for c in old}
    new_by_id = {c.id: c for c in new}

    added = [
        SchemaChange(
            type=SchemaChangeType.ADDED,
            column_id=c.id,
            column_name=c.name,
            details=f"Type: {c.type.value}",
        )
        for c in new
        if c.id not in old_by_id
    ]
    removed = [
        SchemaChange(
            type=SchemaChangeType.REMOVED,
            column_id=c.id,
            column_name=c.name,
        )
        for c in old
        if c.id not in new_by_id
    ]
    modified: list[SchemaChange] = []
    for column in new:
        previous = old_by_id.get(column.id)
        if previous is None:
            continue
        parts = _describe_modifications(previous, column)
        if parts:
            modified.append(
                SchemaChange(
                    type=SchemaChangeType.MODIFIED,
                    column_id=column.id,
                    column_name=column.name,
                    details=", ".join(parts),
                )
            )
    return added + removed + modified


def find_undo_conflicts(
    changes: Iterable[FieldChange],
    current_data: Mapping[str, Any],
) -> list[UndoConflict]:
    """
    Fields whose live value no longer matches what the update wrote.

    Undoing would overwrite those later edits with the logged old value.
    """
    conflicts: list[UndoConflict] = []
    for change in changes:
        current = current_data.get(change.field)
        if not values_equal(current, change.new_value):
            conflicts.append(
                UndoConflict(
                    field_id=change.field,
                    field_name=change.field_name,
                    current_value=current,
                    will_become_value=change.old_value,
                )
            )
    return conflicts
