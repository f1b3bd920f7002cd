"""
Notifications -- fire-and-forget delivery after commit.

Services queue notifications on a PostCommitHooks list while they work and
run it only after the transaction has committed.  A failing sink is logged
and skipped; committed state and audit history stand regardless.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.notifications")


class NotificationKind(str, Enum):
    ITEM_CREATED = "ITEM_CREATED"
    ITEM_UPDATED = "ITEM_UPDATED"
    ITEM_DELETED = "ITEM_DELETED"
    SCHEMA_UPDATED = "SCHEMA_UPDATED"
    LOG_CREATED = "LOG_CREATED"
    LOG_UNDONE = "LOG_UNDONE"
    OPERATION_CREATED = "OPERATION_CREATED"
    OPERATION_UNDONE = "OPERATION_UNDONE"
    INVENTORY_RESET = "INVENTORY_RESET"
    ITEMS_IMPORTED = "ITEMS_IMPORTED"


@runtime_checkable
class NotificationSink(Protocol):
    """External broadcast collaborator."""

    def notify(
        self,
        event_kind: NotificationKind,
        tenant_id: UUID,
        payload: Mapping[str, Any],
    ) -> None: ...


class NullNotificationSink:
    """Sink that drops everything; the default when none is wired."""

    def notify(self, event_kind, tenant_id, payload) -> None:
        return None


@dataclass
class PostCommitHooks:
    """
    Notifications queued during a transaction, delivered after commit.

    Contract:
        ``run()`` is called only once the transaction has committed.  It
        never raises: each failing notification is logged at WARNING and
        the remaining ones still go out.
    """

    sink: NotificationSink
    _pending: list[tuple[NotificationKind, UUID, dict[str, Any]]] = field(
        default_factory=list, init=False, repr=False
    )

    def add(
        self,
        event_kind: NotificationKind,
        tenant_id: UUID,
        payload: Mapping[str, Any],
    ) -> None:
        self._pending.append((event_kind, tenant_id, dict(payload)))

    def __len__(self) -> int:
        return len(self._pending)

    def move_to(self, other: "PostCommitHooks") -> None:
        """Hand queued notifications to another hook list."""
        other._pending.extend(self._pending)
        self._pending = []

    def discard(self) -> None:
        """Drop queued notifications (the transaction rolled back)."""
        self._pending.clear()

    def run(self) -> int:
        """Deliver queued notifications; return how many succeeded."""
        delivered = 0
        pending, self._pending = self._pending, []
        for event_kind, tenant_id, payload in pending:
            try:
                self.sink.notify(event_kind, tenant_id, payload)
            except Exception:
                logger.warning(
                    "notification_failed",
                    extra={
                        "event_kind": event_kind.value,
                        "tenant_id": str(tenant_id),
                    },
                    exc_info=True,
                )
                continue
            delivered += 1
        logger.debug(
            "notifications_delivered",
            extra={"delivered": delivered, "queued": len(pending)},
        )
        return delivered
