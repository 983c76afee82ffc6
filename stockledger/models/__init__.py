# stockledger/models/__init__.py
from .inventory import InventoryItem, InventoryUnit
from .movement import MovementType, StockMovement
from .outbox import OutboxEvent
from .outlet import Outlet
from .processed_receipt import ProcessedReceipt
from .purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus

# Export all models
__all__ = [
    "InventoryItem",
    "InventoryUnit",
    "MovementType",
    "OutboxEvent",
    "Outlet",
    "ProcessedReceipt",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "StockMovement",
]
