"""
Module: inventory_kernel.models.item
Responsibility: ORM persistence for inventory items.
Architecture position: Kernel > Models.  May import from db/ only.

``data`` maps column ids to dynamically typed values.  It is validated
against the tenant's current columns by the service layer on every write;
the model itself accepts any JSON object.  Always assign a new dict rather
than mutating ``data`` in place so the ORM sees the change.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import JSONDocument, TrackedBase, UUIDString


class InventoryItem(TrackedBase):
    """One inventory record of a tenant."""

    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("idx_inventory_item_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    data: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<InventoryItem {self.id} tenant={self.tenant_id}>"
