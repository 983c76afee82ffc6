import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stockledger.models.inventory import InventoryUnit


class OutletRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Name of the outlet (e.g., Downtown Kitchen).")
    is_active: bool = Field(True, description="Whether the outlet is currently operating.")


class OutletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: str
    name: str
    is_active: bool


class InventoryItemCreate(BaseModel):
    outlet_id: uuid.UUID
    name: str = Field(..., min_length=1, description="Item name, unique within an outlet.")
    category: Optional[str] = None
    unit: InventoryUnit
    current_stock: Decimal = Field(0, ge=0, description="Initial stock quantity.")
    minimum_stock: Decimal = Field(0, ge=0, description="Stock level at or below which an alert is raised.")
    maximum_stock: Optional[Decimal] = Field(None, ge=0)
    unit_cost: Decimal = Field(0, ge=0)
    supplier_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def check_stock_bounds(self):
        if self.maximum_stock is not None and self.maximum_stock < self.minimum_stock:
            raise ValueError("Maximum stock cannot be less than minimum stock")
        return self


class InventoryItemUpdate(BaseModel):
    """Attribute changes. A supplied current_stock is recorded as an ADJUSTMENT movement."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    unit: Optional[InventoryUnit] = None
    current_stock: Optional[Decimal] = Field(None, ge=0)
    minimum_stock: Optional[Decimal] = Field(None, ge=0)
    maximum_stock: Optional[Decimal] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    supplier_id: Optional[uuid.UUID] = None


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: str
    outlet_id: uuid.UUID
    name: str
    category: Optional[str] = None
    unit: str
    current_stock: Decimal
    minimum_stock: Decimal
    maximum_stock: Optional[Decimal] = None
    unit_cost: Decimal
    supplier_id: Optional[uuid.UUID] = None
    last_restocked: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageMeta":
        total_pages = math.ceil(total / limit) if total else 0
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class CategoryBreakdown(BaseModel):
    count: int = 0
    total_value: Decimal = Decimal(0)
    low_stock_count: int = 0


class StockLevels(BaseModel):
    critical: int = 0  # 0 stock
    low: int = 0       # at or below minimum
    normal: int = 0    # above minimum


class InventoryStatistics(BaseModel):
    total_items: int
    low_stock_items: int
    out_of_stock_items: int
    total_value: Decimal
    category_breakdown: Dict[str, CategoryBreakdown]
    stock_levels: StockLevels


class BulkImportRequest(BaseModel):
    # Items are validated one by one so a malformed entry fails alone
    items: List[Dict[str, Any]] = Field(..., min_length=1)


class BulkImportError(BaseModel):
    index: int
    item: Dict[str, Any]
    error: str


class BulkImportSummary(BaseModel):
    total: int
    successful: int
    failed: int


class BulkImportResult(BaseModel):
    imported: List[InventoryItemResponse]
    errors: List[BulkImportError]
    summary: BulkImportSummary
