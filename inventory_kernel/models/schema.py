"""
Module: inventory_kernel.models.schema
Responsibility: ORM persistence for a tenant's column list.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one InventorySchema row per tenant (unique tenant_id).
    - ``columns`` is replaced wholesale on every schema update.

A tenant without a row has not configured columns yet; a row holding an
empty list has zero columns.  The two states are distinct.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import JSONDocument, TrackedBase, UUIDString


class InventorySchema(TrackedBase):
    """Ordered column definitions for one tenant."""

    __tablename__ = "inventory_schemas"

    __table_args__ = (
        Index("uq_inventory_schema_tenant", "tenant_id", unique=True),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Serialized ColumnDefinition dicts
    columns: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        return f"<InventorySchema tenant={self.tenant_id} columns={len(self.columns or [])}>"
