from typing import Any, Optional

from stockledger.core.quantities import Number, format_quantity


class InventoryError(Exception):
    """Base error for every failure the inventory core reports to callers."""
    code = "inventory_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InventoryValidationError(InventoryError, ValueError):
    """Malformed input or an operation that would break a stock invariant."""
    code = "validation_error"
    status_code = 400


class InsufficientStockError(InventoryValidationError):
    def __init__(self, item_name: str, requested: Number, available: Number):
        super().__init__(
            f"Insufficient stock for {item_name}. "
            f"Requested: {format_quantity(requested)}, Available: {format_quantity(available)}",
            details={"item_name": item_name, "requested": requested, "available": available},
        )


class InvalidStatusTransition(InventoryValidationError):
    pass


class ResourceNotFoundError(InventoryError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found: {identifier}" if identifier is not None else f"{resource} not found"
        super().__init__(message)


class StockConflictError(InventoryError):
    """A concurrent writer changed the row between read and conditional update."""
    code = "conflict"
    status_code = 409


class StorageError(InventoryError):
    code = "storage_error"
    status_code = 500
