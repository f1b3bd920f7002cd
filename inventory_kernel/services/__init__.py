"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.audit_log_service import AuditLogService
from inventory_kernel.services.base import BaseService, InventoryService
from inventory_kernel.services.item_service import ItemResult, ItemService
from inventory_kernel.services.operation_base import (
    OperationResult,
    OperationService,
    OperationUndoResult,
)
from inventory_kernel.services.receiving_service import ReceivingService
from inventory_kernel.services.return_service import (
    ReturnService,
    SaleReturnables,
    SaleReturnHistory,
)
from inventory_kernel.services.sale_service import SaleService
from inventory_kernel.services.schema_service import (
    InventoryResetResult,
    SchemaService,
    SchemaUpdateResult,
)
from inventory_kernel.services.undo_service import UndoResult, UndoService

__all__ = [
    "AuditLogService",
    "BaseService",
    "InventoryResetResult",
    "InventoryService",
    "ItemResult",
    "ItemService",
    "OperationResult",
    "OperationService",
    "OperationUndoResult",
    "ReceivingService",
    "ReturnService",
    "SaleService",
    "SaleReturnHistory",
    "SaleReturnables",
    "SchemaService",
    "SchemaUpdateResult",
    "UndoResult",
    "UndoService",
]
