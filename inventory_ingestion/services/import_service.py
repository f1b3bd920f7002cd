"""
Import service: read -> map -> sanitize -> validate -> insert.

Responsibility:
    execute() takes rows already keyed by column id (or by ``__new__N``
    placeholders for columns the import itself adds), sanitizes and
    validates each row on its own, and inserts every valid row in one
    transaction together with any schema extension.  read_source() and
    import_file() put the file adapters and header mapping in front of it.

Invariants enforced:
    - A bad row never aborts its siblings; it is reported as
      ``"Row N: <errors>"`` with N counted from 1.
    - New columns are persisted only when at least one row is valid.
    - Every inserted item gets an ITEM_CREATED audit entry; a schema
      extension gets a SCHEMA_UPDATED entry.

Failure modes (whole import rejected):
    - InsufficientRoleError: OWNER/BOSS only.
    - InputValidationError: no rows, too many rows, bad new-column names.
    - SchemaDefinitionError / DuplicateRoleError: new columns clash with the
      existing ones.
    - SchemaNotConfiguredError: no existing columns and none added.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.domain.access import MUTATOR_ROLES, AccessContext, require_role
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.columns import (
    ColumnDefinition,
    columns_from_json,
    columns_to_json,
    get_item_name,
)
from inventory_kernel.domain.diff import diff_schema_changes
from inventory_kernel.domain.dtos import ItemSnapshot
from inventory_kernel.domain.limits import DEFAULT_LIMITS, StringLimits
from inventory_kernel.domain.notifications import (
    NotificationKind,
    NotificationSink,
    PostCommitHooks,
)
from inventory_kernel.domain.sanitizer import WarningType, sanitize_row
from inventory_kernel.domain.validator import (
    validate_column_definitions,
    validate_item_data,
)
from inventory_kernel.exceptions import InputValidationError, SchemaNotConfiguredError
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.schema import InventorySchema
from inventory_kernel.services.audit_log_service import AuditLogService
from inventory_kernel.services.base import InventoryService

from inventory_ingestion.adapters.base import SourceFormat, SourceProbe, get_adapter
from inventory_ingestion.mapping.matcher import map_headers

DEFAULT_PLACEHOLDER_PREFIX = "__new__"
DEFAULT_MAX_ROWS = 10000

_COLUMN_NAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_column_name(name: str, max_length: int) -> str:
    """Keep letters, digits, spaces, underscores and hyphens; collapse spaces."""
    cleaned = _COLUMN_NAME_DISALLOWED.sub("", name.strip())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:max_length]


@dataclass(frozen=True)
class ImportWarning:
    """A sanitized cell, attributed to its 1-based row."""

    row: int
    column_id: str
    column_name: str
    type: WarningType
    message: str


@dataclass(frozen=True)
class ImportResult:
    total: int
    success: int
    failed: int
    errors: tuple[str, ...] = ()
    warnings: tuple[ImportWarning, ...] = ()
    created_item_ids: tuple[UUID, ...] = ()
    new_column_ids: tuple[str, ...] = ()

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


class ImportService(InventoryService):
    """Bulk item creation from spreadsheet-like rows."""

    _log_name = "ingestion.import_service"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: NotificationSink | None = None,
        limits: StringLimits = DEFAULT_LIMITS,
        auto_commit: bool = True,
        placeholder_prefix: str = DEFAULT_PLACEHOLDER_PREFIX,
        max_rows: int = DEFAULT_MAX_ROWS,
        source_options: Mapping[str, Any] | None = None,
    ):
        super().__init__(session, clock, notifier, limits, auto_commit)
        self.placeholder_prefix = placeholder_prefix
        self.max_rows = max_rows
        # Adapter defaults (delimiter, encoding); per-call options win.
        self.source_options = dict(source_options or {})

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _options(self, options: Mapping[str, Any] | None) -> dict[str, Any]:
        return {**self.source_options, **(options or {})}

    def read_source(
        self,
        path: Path | str,
        source_format: SourceFormat | str | None = None,
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """All rows of a CSV/JSON/XLSX file, keyed by header text."""
        path = Path(path)
        fmt = SourceFormat(source_format) if source_format else SourceFormat.from_path(path)
        return list(get_adapter(fmt).read(path, self._options(options)))

    def probe_source(
        self,
        path: Path | str,
        source_format: SourceFormat | str | None = None,
        options: dict[str, Any] | None = None,
    ) -> SourceProbe:
        path = Path(path)
        fmt = SourceFormat(source_format) if source_format else SourceFormat.from_path(path)
        return get_adapter(fmt).probe(path, self._options(options))

    def import_file(
        self,
        ctx: AccessContext | None,
        path: Path | str,
        header_map: Mapping[str, str | None],
        new_columns: Sequence[Mapping[str, Any]] = (),
        source_format: SourceFormat | str | None = None,
        options: dict[str, Any] | None = None,
    ) -> ImportResult:
        """Read a file, re-key its rows with ``header_map`` and execute()."""
        raw_rows = self.read_source(path, source_format, options)
        self.logger.info(
            "import_source_read",
            extra={"source": str(path), "row_count": len(raw_rows)},
        )
        return self.execute(ctx, map_headers(raw_rows, header_map), new_columns)

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    def _build_new_columns(
        self,
        existing: tuple[ColumnDefinition, ...],
        new_columns: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        max_order = max((c.order for c in existing), default=-1)
        built = []
        for index, raw in enumerate(new_columns):
            name = raw.get("name")
            if not isinstance(name, str) or not name.strip():
                raise InputValidationError("Column name is required")
            if len(name) > self.limits.column_name:
                raise InputValidationError("Column name is too long")
            built.append(
                {
                    "id": str(uuid4()),
                    "name": sanitize_column_name(name, self.limits.column_name),
                    "type": raw.get("type"),
                    "role": raw.get("role"),
                    "options": list(raw.get("options") or ()),
                    "required": bool(raw.get("required", False)),
                    "order": max_order + 1 + index,
                }
            )
        return built

    def execute(
        self,
        ctx: AccessContext | None,
        rows: Sequence[Mapping[str, Any]],
        new_columns: Sequence[Mapping[str, Any]] = (),
    ) -> ImportResult:
        """
        Import ``rows``, reporting per-row failures and cell warnings.

        Postconditions:
            ``success + failed == total``.  Valid rows, their audit entries
            and any new columns are committed together.
        """
        ctx = require_role(ctx, MUTATOR_ROLES, "import inventory items")
        rows = list(rows)
        if not rows:
            raise InputValidationError("At least one item is required")
        if len(rows) > self.max_rows:
            raise InputValidationError(f"Import is limited to {self.max_rows} rows")

        def work(hooks: PostCommitHooks) -> ImportResult:
            schema_row = self._load_schema_row(ctx.tenant_id)
            existing = columns_from_json(schema_row.columns) if schema_row else ()

            added: list[dict[str, Any]] = []
            columns = existing
            if new_columns:
                added = self._build_new_columns(existing, new_columns)
                columns = validate_column_definitions(
                    columns_to_json(existing) + added, self.limits
                )
            if not columns:
                raise SchemaNotConfiguredError(str(ctx.tenant_id))

            placeholders = {
                f"{self.placeholder_prefix}{i}": col["id"] for i, col in enumerate(added)
            }
            errors: list[str] = []
            warnings: list[ImportWarning] = []
            valid: list[dict[str, Any]] = []
            for row_number, row in enumerate(rows, start=1):
                keyed = {placeholders.get(key, key): value for key, value in row.items()}
                sanitized = sanitize_row(keyed, columns)
                warnings.extend(
                    ImportWarning(row_number, w.column_id, w.column_name, w.type, w.message)
                    for w in sanitized.warnings
                )
                data = {k: v for k, v in sanitized.data.items() if v is not None}
                result = validate_item_data(data, columns)
                if result.is_valid:
                    valid.append(data)
                else:
                    errors.append(f"Row {row_number}: {result.message()}")

            if not valid:
                self.logger.info(
                    "import_no_valid_rows",
                    extra={"total": len(rows), "failed": len(errors)},
                )
                return ImportResult(
                    total=len(rows),
                    success=0,
                    failed=len(errors),
                    errors=tuple(errors),
                    warnings=tuple(warnings),
                )

            audit = AuditLogService(self.session, self.clock)
            now = self.clock.now()
            if added:
                self._extend_schema(ctx, schema_row, existing, columns, hooks, audit)

            created: list[InventoryItem] = []
            for data in valid:
                item = InventoryItem(
                    id=uuid4(),
                    tenant_id=ctx.tenant_id,
                    data=copy.deepcopy(data),
                    created_by_id=ctx.actor_id,
                    created_at=now,
                    updated_at=now,
                )
                self.session.add(item)
                created.append(item)
            self.session.flush()

            for item in created:
                audit.record_item_created(
                    ctx.tenant_id,
                    ctx.actor_id,
                    ItemSnapshot.from_model(item),
                    get_item_name(item.data, columns),
                )
                hooks.add(
                    NotificationKind.ITEM_CREATED,
                    ctx.tenant_id,
                    {"item_id": str(item.id), "data": item.data},
                )
            hooks.add(
                NotificationKind.ITEMS_IMPORTED,
                ctx.tenant_id,
                {"count": len(created), "new_column_ids": [c["id"] for c in added]},
            )

            self.logger.info(
                "import_committed",
                extra={
                    "total": len(rows),
                    "success": len(created),
                    "failed": len(errors),
                    "warning_count": len(warnings),
                    "new_columns": len(added),
                },
            )
            return ImportResult(
                total=len(rows),
                success=len(created),
                failed=len(errors),
                errors=tuple(errors),
                warnings=tuple(warnings),
                created_item_ids=tuple(item.id for item in created),
                new_column_ids=tuple(c["id"] for c in added),
            )

        return self._run_in_transaction(
            "import", ctx, work, row_count=len(rows), new_columns=len(new_columns)
        )

    def _extend_schema(
        self,
        ctx: AccessContext,
        schema_row: InventorySchema | None,
        existing: Iterable[ColumnDefinition],
        merged: tuple[ColumnDefinition, ...],
        hooks: PostCommitHooks,
        audit: AuditLogService,
    ) -> None:
        now = self.clock.now()
        if schema_row is None:
            schema_row = InventorySchema(
                id=uuid4(),
                tenant_id=ctx.tenant_id,
                columns=columns_to_json(merged),
                created_by_id=ctx.actor_id,
                created_at=now,
                updated_at=now,
            )
            self.session.add(schema_row)
        else:
            schema_row.columns = columns_to_json(merged)
            schema_row.updated_at = now
        self.session.flush()

        changes = diff_schema_changes(tuple(existing), merged)
        audit.record_schema_updated(ctx.tenant_id, ctx.actor_id, changes)
        hooks.add(
            NotificationKind.SCHEMA_UPDATED,
            ctx.tenant_id,
            {"columns": columns_to_json(merged)},
        )
