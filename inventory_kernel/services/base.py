"""
Service bases -- flush-only services and committing orchestrators.

Responsibility:
    BaseService gives every kernel service a caller-owned Session that it
    only ever flushes.  InventoryService extends it for the top-level
    operations a transport layer calls (create item, receive, undo, ...):
    it owns the transaction, binds the log context, and delivers
    post-commit notifications.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Flush-only services never commit or roll back.
    - An InventoryService operation with auto_commit=True either commits
      every row it wrote (items, audit entries, operations) or rolls all of
      them back.  No partial audit trail survives a failure.
    - Notifications run only after a successful commit and never raise.

auto_commit=False:
    The caller owns the transaction.  Notifications queued by the operation
    wait in ``deferred_notifications`` until the caller commits and calls
    ``run_deferred_notifications()``.
"""

import time
from abc import ABC
from collections.abc import Callable, Iterable
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.access import AccessContext
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.columns import ColumnDefinition, columns_from_json
from inventory_kernel.domain.limits import DEFAULT_LIMITS, StringLimits
from inventory_kernel.domain.notifications import (
    NotificationSink,
    NullNotificationSink,
    PostCommitHooks,
)
from inventory_kernel.exceptions import InventoryKernelError, SchemaNotConfiguredError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.schema import InventorySchema

T = TypeVar("T")


def coerce_uuid(value: Any) -> UUID | None:
    """UUID from a UUID or its string form; None when it is neither."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return None
    return None


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.  Never commits or rolls back.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()


class InventoryService(BaseService):
    """
    Base for orchestrating services that own a transaction.

    Contract:
        Subclasses wrap each public operation in ``_run_in_transaction``.
        The work callable receives a PostCommitHooks to queue notifications
        on; it must only flush.
    """

    _log_name = "services.inventory"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: NotificationSink | None = None,
        limits: StringLimits = DEFAULT_LIMITS,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock)
        self.notifier = notifier or NullNotificationSink()
        self.limits = limits
        self.auto_commit = auto_commit
        self.deferred_notifications = PostCommitHooks(self.notifier)
        self.logger = get_logger(self._log_name)

    # ------------------------------------------------------------------
    # Transaction scaffolding
    # ------------------------------------------------------------------

    def _run_in_transaction(
        self,
        operation: str,
        ctx: AccessContext,
        work: Callable[[PostCommitHooks], T],
        **log_fields: Any,
    ) -> T:
        """
        Run ``work`` as one atomic unit and deliver its notifications.

        Postconditions:
            - Success: session committed (auto_commit), then notifications run.
            - Failure: session rolled back (auto_commit), notifications
              dropped, exception re-raised unchanged.
        """
        hooks = PostCommitHooks(self.notifier)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=str(ctx.tenant_id),
            actor_id=str(ctx.actor_id),
        ):
            self.logger.info(f"{operation}_started", extra=log_fields)
            t0 = time.monotonic()
            try:
                result = work(hooks)
                if self.auto_commit:
                    self.session.commit()
            except InventoryKernelError as exc:
                if self.auto_commit:
                    self.session.rollback()
                hooks.discard()
                self.logger.warning(
                    f"{operation}_rejected",
                    extra={
                        "error_code": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except Exception:
                if self.auto_commit:
                    self.session.rollback()
                hooks.discard()
                self.logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            self.logger.info(
                f"{operation}_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            if self.auto_commit:
                hooks.run()
            else:
                hooks.move_to(self.deferred_notifications)
            return result

    def run_deferred_notifications(self) -> int:
        """Deliver notifications held back under auto_commit=False."""
        return self.deferred_notifications.run()

    # ------------------------------------------------------------------
    # Shared loaders
    # ------------------------------------------------------------------

    def _load_schema_row(self, tenant_id: UUID) -> InventorySchema | None:
        return self.session.execute(
            select(InventorySchema).where(InventorySchema.tenant_id == tenant_id)
        ).scalar_one_or_none()

    def _load_columns(self, tenant_id: UUID) -> tuple[ColumnDefinition, ...]:
        """
        The tenant's current column list, read at the start of an operation.

        Raises:
            SchemaNotConfiguredError: The tenant has no schema row.
        """
        row = self._load_schema_row(tenant_id)
        if row is None:
            raise SchemaNotConfiguredError(str(tenant_id))
        return columns_from_json(row.columns)

    def _load_items(
        self, tenant_id: UUID, item_ids: Iterable[UUID]
    ) -> dict[UUID, InventoryItem]:
        """Batch-load items of one tenant keyed by id; foreign ids are absent."""
        ids = list({i for i in item_ids})
        if not ids:
            return {}
        rows = self.session.execute(
            select(InventoryItem).where(
                InventoryItem.id.in_(ids),
                InventoryItem.tenant_id == tenant_id,
            )
        ).scalars()
        return {row.id: row for row in rows}
