"""Read-only query access to inventory state."""

from inventory_kernel.selectors.inventory_selector import (
    AuditEntryView,
    InventorySelector,
    ItemView,
    OperationView,
)

__all__ = [
    "AuditEntryView",
    "InventorySelector",
    "ItemView",
    "OperationView",
]
