"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- UnauthorizedError
    |
    +-- ForbiddenError
    |   +-- InsufficientRoleError
    |   +-- TenantMismatchError
    |
    +-- ValidationFailedError
    |   +-- ItemDataInvalidError
    |   +-- SchemaDefinitionError
    |   +-- InputValidationError
    |   +-- SnapshotInvalidError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- AuditEntryNotFoundError
    |   +-- OperationNotFoundError
    |
    +-- ConflictError
    |   +-- AlreadyUndoneError
    |   +-- DuplicateRoleError
    |
    +-- InvalidOperationError
        +-- NotUndoableError
        +-- UnsupportedUndoActionError
        +-- UndoTargetMissingError
        +-- RoleColumnMissingError
        +-- SchemaNotConfiguredError
        +-- InsufficientStockError
        +-- NotASaleError
        +-- SaleUndoneError
        +-- ReturnExceedsSoldError
        +-- SaleHasActiveReturnsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category         | Code                     | When Raised
-----------------|--------------------------|-----------------------------------------
Unauthorized     | UNAUTHORIZED             | No identity supplied
-----------------|--------------------------|-----------------------------------------
Forbidden        | INSUFFICIENT_ROLE        | Role may not perform the action
                 | TENANT_MISMATCH          | Record belongs to another tenant
-----------------|--------------------------|-----------------------------------------
Validation       | ITEM_DATA_INVALID        | Item data violates the current columns
                 | SCHEMA_DEFINITION_INVALID| Column list is malformed
                 | INPUT_INVALID            | Operation arguments are malformed
                 | SNAPSHOT_INVALID         | Deleted snapshot no longer fits schema
-----------------|--------------------------|-----------------------------------------
NotFound         | ITEM_NOT_FOUND           | Item absent or not in caller's tenant
                 | AUDIT_ENTRY_NOT_FOUND    | Log entry absent or foreign
                 | OPERATION_NOT_FOUND      | Operation absent or foreign
-----------------|--------------------------|-----------------------------------------
Conflict         | ALREADY_UNDONE           | Entry/operation was already undone
                 | DUPLICATE_ROLE           | Same role on two columns
-----------------|--------------------------|-----------------------------------------
InvalidOperation | NOT_UNDOABLE             | Entry was logged as not undoable
                 | UNSUPPORTED_UNDO_ACTION  | Action type has no inverse
                 | UNDO_TARGET_MISSING      | Item of an update entry is gone
                 | ROLE_COLUMN_MISSING      | Required role column not defined
                 | SCHEMA_NOT_CONFIGURED    | Tenant has no columns yet
                 | INSUFFICIENT_STOCK       | Sale exceeds on-hand quantity
                 | NOT_A_SALE               | Return aimed at a non-sale operation
                 | SALE_UNDONE              | Return aimed at an undone sale
                 | RETURN_EXCEEDS_SOLD      | Return over sold minus returned
                 | SALE_HAS_RETURNS         | Sale undo with active returns

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by category at the transport edge, by concrete type in callers that
can recover:

    try:
        undo_service.undo(ctx, entry_id)
    except AlreadyUndoneError as e:
        return {"error": e.code, "undone_at": e.undone_at}
    except ValidationFailedError as e:
        return {"error": e.code, "messages": e.messages}

Validation errors always carry one or more human-readable messages; str()
of the exception is those messages joined by ", ".
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Identity / authorization


class UnauthorizedError(InventoryKernelError):
    """No identity was supplied for a request."""

    code: str = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(InventoryKernelError):
    """Identity present but not allowed to perform the action."""

    code: str = "FORBIDDEN"


class InsufficientRoleError(ForbiddenError):
    """Caller's role is not in the set allowed for the action."""

    code: str = "INSUFFICIENT_ROLE"

    def __init__(self, action: str, role: str, allowed: tuple[str, ...]):
        self.action = action
        self.role = role
        self.allowed = allowed
        super().__init__(
            f"Role {role} may not {action} (requires one of: {', '.join(allowed)})"
        )


class TenantMismatchError(ForbiddenError):
    """Record belongs to a tenant other than the one it was reached through."""

    code: str = "TENANT_MISMATCH"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Access denied: {entity_type} {entity_id} belongs to another business"
        )


# Validation


class ValidationFailedError(InventoryKernelError):
    """Malformed input or schema-violating data."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


class ItemDataInvalidError(ValidationFailedError):
    """Item data does not validate against the tenant's current columns."""

    code: str = "ITEM_DATA_INVALID"


class SchemaDefinitionError(ValidationFailedError):
    """A submitted column list is malformed."""

    code: str = "SCHEMA_DEFINITION_INVALID"


class InputValidationError(ValidationFailedError):
    """Operation arguments (dates, quantities, text fields) are malformed."""

    code: str = "INPUT_INVALID"


class SnapshotInvalidError(ValidationFailedError):
    """A deleted item's snapshot no longer validates against the schema."""

    code: str = "SNAPSHOT_INVALID"

    def __init__(self, entry_id: str, errors: list[str]):
        self.entry_id = entry_id
        self.errors = list(errors)
        super().__init__(
            "Cannot restore item: schema has changed. "
            f"Validation errors: {', '.join(self.errors)}"
        )


# Lookup


class NotFoundError(InventoryKernelError):
    """Referenced entity absent or not owned by the caller's tenant."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """Inventory item was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item with ID {item_id} not found")


class AuditEntryNotFoundError(NotFoundError):
    """Audit log entry was not found."""

    code: str = "AUDIT_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Log entry not found: {entry_id}")


class OperationNotFoundError(NotFoundError):
    """Operation record was not found."""

    code: str = "OPERATION_NOT_FOUND"

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"Operation not found: {operation_id}")


# Conflict


class ConflictError(InventoryKernelError):
    """State transition collides with the current state."""

    code: str = "CONFLICT"


class AlreadyUndoneError(ConflictError):
    """Audit entry or operation has already been undone."""

    code: str = "ALREADY_UNDONE"

    def __init__(self, entity_type: str, entity_id: str, undone_at=None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.undone_at = undone_at
        super().__init__(f"This {entity_type} has already been undone")


class DuplicateRoleError(ConflictError):
    """The same role is assigned to more than one column."""

    code: str = "DUPLICATE_ROLE"

    def __init__(self, role: str, column_names: list[str]):
        self.role = role
        self.column_names = list(column_names)
        super().__init__(
            "Each role can only be assigned to one column "
            f"(role {role!r} used by: {', '.join(self.column_names)})"
        )


# Invalid operation


class InvalidOperationError(InventoryKernelError):
    """The requested action cannot be carried out on this target."""

    code: str = "INVALID_OPERATION"


class NotUndoableError(InvalidOperationError):
    """Audit entry was recorded as not undoable."""

    code: str = "NOT_UNDOABLE"

    def __init__(self, entry_id: str, action: str):
        self.entry_id = entry_id
        self.action = action
        super().__init__("This action cannot be undone")


class UnsupportedUndoActionError(InvalidOperationError):
    """No inverse exists for the entry's action type."""

    code: str = "UNSUPPORTED_UNDO_ACTION"

    def __init__(self, entry_id: str, action: str):
        self.entry_id = entry_id
        self.action = action
        super().__init__("This action type cannot be undone")


class UndoTargetMissingError(InvalidOperationError):
    """An update entry's item no longer exists, or the entry is incomplete."""

    code: str = "UNDO_TARGET_MISSING"

    def __init__(self, entry_id: str, reason: str = "item no longer exists"):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Cannot undo: {reason}")


class RoleColumnMissingError(InvalidOperationError):
    """The tenant schema defines no column with a role the action needs."""

    code: str = "ROLE_COLUMN_MISSING"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"No {role} column configured in inventory schema")


class SchemaNotConfiguredError(InvalidOperationError):
    """The tenant has not configured any inventory columns yet."""

    code: str = "SCHEMA_NOT_CONFIGURED"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__("Please set up your inventory columns first")


class InsufficientStockError(InvalidOperationError):
    """A sale requests more units than are on hand."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_name: str, available: float, requested: int):
        self.item_name = item_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for "{item_name}". '
            f"Available: {available}, Requested: {requested}"
        )


class NotASaleError(InvalidOperationError):
    """A return was aimed at an operation that is not a sale."""

    code: str = "NOT_A_SALE"

    def __init__(self, operation_id: str, operation_type: str, message: str):
        self.operation_id = operation_id
        self.operation_type = operation_type
        super().__init__(message)


class SaleUndoneError(InvalidOperationError):
    """Returns cannot be taken against a sale that was undone."""

    code: str = "SALE_UNDONE"

    def __init__(self, operation_id: str, message: str):
        self.operation_id = operation_id
        super().__init__(message)


class ReturnExceedsSoldError(InvalidOperationError):
    """More units returned than were sold and not yet returned."""

    code: str = "RETURN_EXCEEDS_SOLD"

    def __init__(self, item_name: str, available: int, requested: int):
        self.item_name = item_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Cannot return {requested} of "{item_name}". '
            f"Only {available} available for return."
        )


class SaleHasActiveReturnsError(InvalidOperationError):
    """A sale with returns still in force cannot be undone."""

    code: str = "SALE_HAS_RETURNS"

    def __init__(self, operation_id: str, return_count: int):
        self.operation_id = operation_id
        self.return_count = return_count
        super().__init__(
            f"Cannot undo a sale with {return_count} active return(s). "
            "Undo the returns first"
        )
