"""
Module: inventory_kernel.models.operation
Responsibility: ORM persistence for multi-item stock operations
    (receiving, sales and customer returns).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Created once per operation transaction.
    - The only later mutation is undone_at / undone_by_id, set once.
    - total_qty equals the sum of line quantities.
    - A RETURN row always carries original_sale_id, pointing at a SALE of
      the same tenant.

Line shape (``items``), per OperationItem:
    item_id, item_name, quantity, previous_qty, new_qty
    receiving lines with tracked cost add: cost_per_item, previous_cost, new_cost
    sale lines add: price_per_item, discount, discount_type, line_total
    return lines add: price_per_item, line_total, refund_amount, condition,
        reason, restocked
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, JSONDocument, UUIDString


class OperationType(str, Enum):
    RECEIVING = "RECEIVING"
    SALE = "SALE"
    RETURN = "RETURN"


class Operation(Base):
    """A committed receiving, sale or return workflow run."""

    __tablename__ = "inventory_operations"

    __table_args__ = (
        Index("idx_operation_tenant_date", "tenant_id", "date"),
        Index("idx_operation_type", "type"),
        Index("idx_operation_original_sale", "original_sale_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # OperationType value
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(500), nullable=True)

    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False)

    total_qty: Mapped[int] = mapped_column(Integer, nullable=False)

    # Sales: sum of line totals.  Returns: sum of refunds.
    grand_total: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Returns only
    original_sale_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    return_reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

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
        return f"<Operation {self.type} {self.id} total_qty={self.total_qty}>"
