import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from stockledger.core.context import RequestContext, get_request_context
from stockledger.core.errors import InventoryError
from stockledger.models.purchase_order import PurchaseOrderStatus
from stockledger.schemas.purchase_order import PurchaseOrderRequest, PurchaseOrderStatusUpdate
from stockledger.schemas.response import SuccessResponse
from stockledger.services.purchase_order_service import (
    generate_purchase_order,
    get_purchase_order,
    list_purchase_orders,
    to_response,
    update_purchase_order_status,
)

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_purchase_order_endpoint(
    payload: PurchaseOrderRequest, ctx: RequestContext = Depends(get_request_context)
):
    """Drafts a PENDING purchase order; expected delivery is set a week out."""
    try:
        order = await generate_purchase_order(
            ctx,
            outlet_id=payload.outlet_id,
            supplier_id=payload.supplier_id,
            lines=payload.items,
            notes=payload.notes,
        )
        data = (await to_response(order)).model_dump()
        return SuccessResponse(message=f"Purchase order {order.order_number} created.", data=data)
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error generating purchase order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to generate purchase order.")


@router.get("/", response_model=SuccessResponse)
async def list_purchase_orders_endpoint(
    order_status: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    outlet_id: Optional[UUID] = None,
    ctx: RequestContext = Depends(get_request_context),
):
    orders = await list_purchase_orders(ctx, status=order_status, outlet_id=outlet_id)
    data = [(await to_response(order)).model_dump() for order in orders]
    return SuccessResponse(data=data, meta={"total": len(data)})


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_purchase_order_endpoint(order_id: UUID, ctx: RequestContext = Depends(get_request_context)):
    order = await get_purchase_order(ctx, order_id)
    return SuccessResponse(data=(await to_response(order)).model_dump())


@router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_purchase_order_status_endpoint(
    order_id: UUID, payload: PurchaseOrderStatusUpdate, ctx: RequestContext = Depends(get_request_context)
):
    """
    Moves the order along PENDING -> APPROVED -> ORDERED -> RECEIVED.
    CANCELLED is reachable from any non-final status.
    """
    try:
        order = await update_purchase_order_status(ctx, order_id, payload.status)
        return SuccessResponse(
            message=f"Purchase order status successfully updated to {order.status.value}",
            data=(await to_response(order)).model_dump(),
        )
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating purchase order status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update purchase order status.")
