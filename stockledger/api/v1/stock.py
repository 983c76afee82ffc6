import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from stockledger.core.context import RequestContext, get_request_context
from stockledger.core.errors import InventoryError
from stockledger.schemas.inventory import InventoryItemResponse
from stockledger.schemas.response import SuccessResponse
from stockledger.schemas.stock import (
    RecipeConsumptionRequest,
    StockMovementResponse,
    StockReceiptRequest,
    StockUpdateRequest,
    StockUpdateResult,
    StockValidationRequest,
)
from stockledger.services.consumption_service import process_recipe_consumption, validate_stock_for_order
from stockledger.services.ledger import get_stock_movements, update_stock
from stockledger.services.receipt_service import process_stock_receipt

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/update", response_model=SuccessResponse)
async def update_stock_endpoint(payload: StockUpdateRequest, ctx: RequestContext = Depends(get_request_context)):
    """
    Applies a single IN, OUT or ADJUSTMENT movement to an item.
    IN and OUT take the moved quantity; ADJUSTMENT takes the counted stock level.
    """
    try:
        item, movement = await update_stock(
            ctx,
            item_id=payload.item_id,
            quantity=payload.quantity,
            movement_type=payload.type,
            reason=payload.reason,
            reference=payload.reference,
        )
        data = StockUpdateResult(
            item=InventoryItemResponse.model_validate(item),
            movement=StockMovementResponse.model_validate(movement),
        ).model_dump()
        return SuccessResponse(message="Stock updated successfully.", data=data)
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating stock for item {payload.item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update stock.")


@router.post("/receipt", response_model=SuccessResponse)
async def stock_receipt_endpoint(payload: StockReceiptRequest, ctx: RequestContext = Depends(get_request_context)):
    """Books a supplier delivery. Lines that fail are listed in `errors`; the rest are applied."""
    try:
        result = await process_stock_receipt(
            ctx,
            outlet_id=payload.outlet_id,
            receipt_number=payload.receipt_number,
            lines=payload.items,
            supplier_id=payload.supplier_id,
            delivery_date=payload.delivery_date,
            notes=payload.notes,
        )
        return SuccessResponse(
            message=f"Receipt {result.receipt_number} processed: {result.total_items} items booked.",
            data=result.model_dump(),
        )
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error processing receipt {payload.receipt_number}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to process stock receipt.")


@router.post("/consumption", response_model=SuccessResponse)
async def recipe_consumption_endpoint(
    payload: RecipeConsumptionRequest, ctx: RequestContext = Depends(get_request_context)
):
    """Deducts all ingredients of a recipe or none; shortages are reported without touching stock."""
    try:
        result = await process_recipe_consumption(
            ctx,
            outlet_id=payload.outlet_id,
            recipe_name=payload.recipe_name,
            ingredients=payload.ingredients,
            quantity=payload.quantity,
            recipe_id=payload.recipe_id,
        )
        message = "Ingredients consumed." if result.consumed else "Insufficient stock; nothing was consumed."
        return SuccessResponse(success=result.consumed, message=message, data=result.model_dump())
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error consuming recipe {payload.recipe_name}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to process recipe consumption.")


@router.post("/validate-order", response_model=SuccessResponse)
async def validate_order_endpoint(payload: StockValidationRequest, ctx: RequestContext = Depends(get_request_context)):
    result = await validate_stock_for_order(ctx, payload.outlet_id, payload.items)
    return SuccessResponse(data=result.model_dump())


@router.get("/movements", response_model=SuccessResponse)
async def stock_movements_endpoint(
    item_id: Optional[UUID] = None,
    outlet_id: Optional[UUID] = None,
    type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    ctx: RequestContext = Depends(get_request_context),
):
    """Reads the stock ledger, newest movement first."""
    movements, meta = await get_stock_movements(
        ctx,
        item_id=item_id,
        outlet_id=outlet_id,
        movement_type=type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    data = [StockMovementResponse.model_validate(m).model_dump() for m in movements]
    return SuccessResponse(data=data, meta=meta.model_dump())
