import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from stockledger.core.context import RequestContext, get_request_context
from stockledger.core.errors import InventoryError
from stockledger.schemas.inventory import (
    BulkImportRequest,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
)
from stockledger.schemas.response import SuccessResponse
from stockledger.schemas.stock import TransferRequest
from stockledger.services.inventory_service import (
    bulk_import_items,
    create_item,
    delete_item,
    get_item,
    get_statistics,
    list_items,
    update_item,
)
from stockledger.services.low_stock_service import check_low_stock, suggest_reorder
from stockledger.services.transfer_service import transfer_stock

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/", response_model=SuccessResponse)
async def list_items_endpoint(
    outlet_id: Optional[UUID] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    search: Optional[str] = None,
    order_by: str = "name",
    order_direction: str = "ASC",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    ctx: RequestContext = Depends(get_request_context),
):
    """Lists the tenant's items with filtering, ordering and pagination."""
    items, meta = await list_items(
        ctx,
        outlet_id=outlet_id,
        category=category,
        low_stock=low_stock,
        search=search,
        order_by=order_by,
        order_direction=order_direction,
        page=page,
        limit=limit,
    )
    data = [InventoryItemResponse.model_validate(item).model_dump() for item in items]
    return SuccessResponse(data=data, meta=meta.model_dump())


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_item_endpoint(payload: InventoryItemCreate, ctx: RequestContext = Depends(get_request_context)):
    try:
        item = await create_item(ctx, payload)
        return SuccessResponse(
            message=f"Successfully added '{item.name}'.",
            data=InventoryItemResponse.model_validate(item).model_dump(),
        )
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adding inventory item: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add inventory item.")


@router.post("/bulk-import", response_model=SuccessResponse)
async def bulk_import_endpoint(payload: BulkImportRequest, ctx: RequestContext = Depends(get_request_context)):
    """
    Creates many items at once. Entries are independent: invalid ones are
    reported by index and the rest are still imported.
    """
    result = await bulk_import_items(ctx, payload.items)
    summary = result.summary
    return SuccessResponse(
        message=f"Imported {summary.successful} of {summary.total} items.",
        data=result.model_dump(),
    )


@router.get("/statistics", response_model=SuccessResponse)
async def statistics_endpoint(outlet_id: Optional[UUID] = None, ctx: RequestContext = Depends(get_request_context)):
    stats = await get_statistics(ctx, outlet_id)
    return SuccessResponse(data=stats.model_dump())


@router.get("/low-stock", response_model=SuccessResponse)
async def low_stock_endpoint(outlet_id: Optional[UUID] = None, ctx: RequestContext = Depends(get_request_context)):
    alerts = await check_low_stock(ctx, outlet_id)
    return SuccessResponse(data=[a.model_dump() for a in alerts], meta={"total": len(alerts)})


@router.get("/reorder-suggestions", response_model=SuccessResponse)
async def reorder_suggestions_endpoint(outlet_id: UUID, ctx: RequestContext = Depends(get_request_context)):
    """Purchase-order lines for every low item of an outlet, ready to submit to /purchase-orders."""
    suggestions = await suggest_reorder(ctx, outlet_id)
    return SuccessResponse(data=[s.model_dump() for s in suggestions], meta={"total": len(suggestions)})


@router.post("/transfer", response_model=SuccessResponse)
async def transfer_endpoint(payload: TransferRequest, ctx: RequestContext = Depends(get_request_context)):
    try:
        result = await transfer_stock(
            ctx,
            item_name=payload.item_name,
            from_outlet_id=payload.from_outlet_id,
            to_outlet_id=payload.to_outlet_id,
            quantity=payload.quantity,
            reason=payload.reason,
        )
        return SuccessResponse(message="Stock transferred successfully.", data=result.model_dump())
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error transferring stock: {e}")
        raise HTTPException(status_code=500, detail="Server failed to transfer stock.")


@router.get("/{item_id}", response_model=SuccessResponse)
async def get_item_endpoint(item_id: UUID, ctx: RequestContext = Depends(get_request_context)):
    item = await get_item(ctx, item_id)
    return SuccessResponse(data=InventoryItemResponse.model_validate(item).model_dump())


@router.put("/{item_id}", response_model=SuccessResponse)
async def update_item_endpoint(
    item_id: UUID, payload: InventoryItemUpdate, ctx: RequestContext = Depends(get_request_context)
):
    """Updates item attributes. A new current_stock is booked as an ADJUSTMENT."""
    try:
        item = await update_item(ctx, item_id, payload)
        return SuccessResponse(data=InventoryItemResponse.model_validate(item).model_dump())
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating inventory item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update inventory item.")


@router.delete("/{item_id}", response_model=SuccessResponse)
async def delete_item_endpoint(item_id: UUID, ctx: RequestContext = Depends(get_request_context)):
    await delete_item(ctx, item_id)
    return SuccessResponse(message=f"Inventory item {item_id} deleted.")
