import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockledger.models.purchase_order import PurchaseOrderStatus


class PurchaseOrderLine(BaseModel):
    item_name: str = Field(..., min_length=1)
    quantity_ordered: Decimal
    estimated_unit_cost: Optional[Decimal] = Field(None, ge=0)


class PurchaseOrderRequest(BaseModel):
    outlet_id: uuid.UUID
    supplier_id: uuid.UUID
    items: List[PurchaseOrderLine]
    notes: Optional[str] = None


class PurchaseOrderItemResponse(BaseModel):
    item_name: str
    quantity_ordered: Decimal
    estimated_unit_cost: Decimal
    total_cost: Decimal


class PurchaseOrderResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    supplier_id: uuid.UUID
    outlet_id: uuid.UUID
    items: List[PurchaseOrderItemResponse]
    total_items: int
    total_value: Decimal
    status: PurchaseOrderStatus
    notes: Optional[str] = None
    created_at: datetime
    expected_delivery: datetime


class PurchaseOrderStatusUpdate(BaseModel):
    """Schema for moving a purchase order through its status machine."""
    status: PurchaseOrderStatus
