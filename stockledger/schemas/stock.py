import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockledger.models.movement import MovementType
from stockledger.schemas.inventory import InventoryItemResponse
from stockledger.services.alerts import AlertSeverity


class StockUpdateRequest(BaseModel):
    item_id: uuid.UUID
    quantity: Decimal
    # Checked by the ledger so an unknown type is reported as a validation error
    type: str = Field(..., description="IN, OUT or ADJUSTMENT")
    reason: Optional[str] = None
    reference: Optional[str] = None


class StockMovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    item_id: uuid.UUID
    item_name: str
    outlet_id: uuid.UUID
    type: MovementType
    quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    reason: Optional[str] = None
    reference: Optional[str] = None
    user_id: Optional[str] = None
    occurred_at: Optional[datetime] = None


class StockUpdateResult(BaseModel):
    item: InventoryItemResponse
    movement: StockMovementResponse


# ----------- Receipts -----------

class ReceiptLine(BaseModel):
    item_name: str = Field(..., min_length=1)
    # Not range-checked here: a bad quantity fails its own line, not the whole receipt
    quantity_received: Decimal
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[date] = None


class StockReceiptRequest(BaseModel):
    outlet_id: uuid.UUID
    supplier_id: Optional[uuid.UUID] = None
    receipt_number: str = Field(..., min_length=1)
    delivery_date: Optional[datetime] = None
    items: List[ReceiptLine]
    notes: Optional[str] = None


class ProcessedReceiptLine(BaseModel):
    item: InventoryItemResponse
    quantity_received: Decimal
    unit_cost: Optional[Decimal] = None
    expiry_date: Optional[date] = None
    total_value: Decimal
    created: bool = False


class ReceiptLineError(BaseModel):
    item_name: str
    error: str


class StockReceiptResult(BaseModel):
    receipt_number: str
    supplier_id: Optional[uuid.UUID] = None
    outlet_id: uuid.UUID
    delivery_date: datetime
    processed_items: List[ProcessedReceiptLine]
    errors: List[ReceiptLineError]
    total_items: int
    total_value: Decimal
    notes: Optional[str] = None
    processed_at: datetime


# ----------- Transfers -----------

class TransferRequest(BaseModel):
    item_name: str = Field(..., min_length=1)
    from_outlet_id: uuid.UUID
    to_outlet_id: uuid.UUID
    quantity: Decimal
    reason: Optional[str] = None


class TransferResult(BaseModel):
    item_name: str
    from_outlet_id: uuid.UUID
    to_outlet_id: uuid.UUID
    quantity: Decimal
    reason: Optional[str] = None
    from_item: InventoryItemResponse
    to_item: InventoryItemResponse
    created_destination: bool
    timestamp: datetime


# ----------- Recipe consumption -----------

class IngredientRequirement(BaseModel):
    name: str = Field(..., min_length=1)
    quantity_per_unit: Decimal = Field(..., gt=0)


class RecipeConsumptionRequest(BaseModel):
    outlet_id: uuid.UUID
    recipe_id: Optional[str] = None
    recipe_name: str = Field(..., min_length=1)
    ingredients: List[IngredientRequirement]
    quantity: int = 1


class IngredientShortage(BaseModel):
    name: str
    required: Decimal
    available: Decimal
    shortage: Decimal


class ConsumedIngredient(BaseModel):
    item: InventoryItemResponse
    consumed: Decimal
    previous_stock: Decimal
    new_stock: Decimal


class RecipeConsumptionResult(BaseModel):
    consumed: bool
    recipe_id: Optional[str] = None
    recipe_name: str
    outlet_id: uuid.UUID
    quantity: int
    consumed_items: List[ConsumedIngredient] = []
    insufficient_items: List[IngredientShortage] = []
    processed_at: datetime


# ----------- Order fulfilment check -----------

class OrderItemRequirement(BaseModel):
    item_name: str = Field(..., min_length=1)
    quantity_required: Decimal = Field(..., gt=0)


class StockValidationRequest(BaseModel):
    outlet_id: uuid.UUID
    items: List[OrderItemRequirement] = Field(..., min_length=1)


class StockValidationLine(BaseModel):
    item_name: str
    quantity_required: Decimal
    available: Decimal
    can_fulfill: bool
    shortage: Decimal


class StockValidationResult(BaseModel):
    can_fulfill: bool
    items: List[StockValidationLine]
    total_items: int
    available_items: int
    unavailable_items: int


# ----------- Low stock -----------

class LowStockAlert(BaseModel):
    item_id: uuid.UUID
    item_name: str
    outlet_id: uuid.UUID
    current_stock: Decimal
    minimum_stock: Decimal
    severity: AlertSeverity
    message: str
    created_at: datetime


class ReorderSuggestion(BaseModel):
    item_name: str
    quantity_ordered: Decimal
    estimated_unit_cost: Decimal
    supplier_id: Optional[uuid.UUID] = None
