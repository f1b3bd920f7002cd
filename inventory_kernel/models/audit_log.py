"""
Module: inventory_kernel.models.audit_log
Responsibility: ORM persistence for the per-tenant inventory audit log.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Entries are append-only; the only permitted mutation is the undo
      transition (undone_at / undone_by_id set once).
    - ITEM_DELETED entries carry a snapshot; ITEM_UPDATED entries carry
      changes; SCHEMA_UPDATED entries carry schema_changes.
    - undoable=False entries never transition.

Audit relevance:
    Deleted items survive only as the snapshot on their ITEM_DELETED entry.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, JSONDocument, UUIDString


class AuditLogAction(str, Enum):
    """Mutating actions recorded in the inventory audit log."""

    ITEM_CREATED = "ITEM_CREATED"
    ITEM_UPDATED = "ITEM_UPDATED"
    ITEM_DELETED = "ITEM_DELETED"
    SCHEMA_UPDATED = "SCHEMA_UPDATED"


class AuditLogEntry(Base):
    """
    One logged mutation.

    State machine: OPEN --undo--> UNDONE (terminal).  Entries with
    undoable=False have no transition.
    """

    __tablename__ = "inventory_audit_log"

    __table_args__ = (
        Index("idx_audit_log_tenant_created", "tenant_id", "created_at"),
        Index("idx_audit_log_item", "item_id"),
        Index("idx_audit_log_action", "action"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # AuditLogAction value
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Display name cached at logging time
    item_name: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    snapshot: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument, nullable=True
    )

    changes: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONDocument, nullable=True
    )

    schema_changes: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONDocument, nullable=True
    )

    undoable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    undone_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    undone_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    @property
    def is_undone(self) -> bool:
        return self.undone_at is not None

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} item={self.item_id}>"
