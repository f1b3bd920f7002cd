"""ORM models for the inventory kernel."""

from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.models.operation import Operation, OperationType
from inventory_kernel.models.schema import InventorySchema

__all__ = [
    "AuditLogAction",
    "AuditLogEntry",
    "InventoryItem",
    "InventorySchema",
    "Operation",
    "OperationType",
]
