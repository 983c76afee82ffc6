import logging
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from stockledger.core.config import PURCHASE_ORDER_DELIVERY_DAYS
from stockledger.core.context import RequestContext
from stockledger.core.errors import (
    InvalidStatusTransition,
    InventoryValidationError,
    ResourceNotFoundError,
    StorageError,
)
from stockledger.core.quantities import format_quantity, to_money, to_quantity
from stockledger.events.outbox_utility import (
    PURCHASE_ORDER_CREATED_EVENT,
    PURCHASE_ORDER_STATUS_EVENT,
    create_outbox_event,
)
from stockledger.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from stockledger.schemas.purchase_order import (
    PurchaseOrderItemResponse,
    PurchaseOrderLine,
    PurchaseOrderResponse,
)
from stockledger.services.outlet_service import get_active_outlet

log = logging.getLogger(__name__)

# RECEIVED and CANCELLED are final
ALLOWED_TRANSITIONS = {
    PurchaseOrderStatus.PENDING: {PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.APPROVED: {PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.ORDERED: {PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.RECEIVED: set(),
    PurchaseOrderStatus.CANCELLED: set(),
}


def _order_number() -> str:
    millis = int(timezone.now().timestamp() * 1000)
    return f"PO-{millis}-{uuid.uuid4().hex[:4].upper()}"


async def to_response(order: PurchaseOrder) -> PurchaseOrderResponse:
    await order.fetch_related("items")
    items = [
        PurchaseOrderItemResponse(
            item_name=line.item_name,
            quantity_ordered=line.quantity_ordered,
            estimated_unit_cost=line.estimated_unit_cost,
            total_cost=line.total_cost,
        )
        for line in order.items
    ]
    return PurchaseOrderResponse(
        id=order.id,
        order_number=order.order_number,
        supplier_id=order.supplier_id,
        outlet_id=order.outlet_id,
        items=items,
        total_items=len(items),
        total_value=order.total_value,
        status=order.status,
        notes=order.notes,
        created_at=order.created_at,
        expected_delivery=order.expected_delivery,
    )


async def generate_purchase_order(
    ctx: RequestContext,
    outlet_id: UUID,
    supplier_id: UUID,
    lines: List[PurchaseOrderLine],
    notes: Optional[str] = None,
) -> PurchaseOrder:
    """
    Drafts a PENDING purchase order for a supplier.

    Header, lines and the creation event are written atomically.
    """
    if not lines:
        raise InventoryValidationError("Purchase order must contain at least one item")
    for line in lines:
        if line.quantity_ordered <= 0:
            raise InventoryValidationError(f"Invalid quantity for {line.item_name}: {format_quantity(line.quantity_ordered)}")

    try:
        async with in_transaction() as conn:
            outlet = await get_active_outlet(ctx.tenant_id, outlet_id, conn)

            order = await PurchaseOrder.create(
                order_number=_order_number(),
                tenant_id=ctx.tenant_id,
                outlet_id=outlet.id,
                supplier_id=supplier_id,
                status=PurchaseOrderStatus.PENDING,
                notes=notes,
                expected_delivery=timezone.now() + timedelta(days=PURCHASE_ORDER_DELIVERY_DAYS),
                using_db=conn,
            )

            total = Decimal(0)
            for line in lines:
                unit_cost = to_money(line.estimated_unit_cost or 0)
                line_total = to_money(line.quantity_ordered * unit_cost)
                total += line_total
                await PurchaseOrderItem.create(
                    order=order,
                    item_name=line.item_name,
                    quantity_ordered=to_quantity(line.quantity_ordered),
                    estimated_unit_cost=unit_cost,
                    total_cost=line_total,
                    using_db=conn,
                )

            order.total_value = total
            await order.save(using_db=conn, update_fields=["total_value"])

            await create_outbox_event(
                aggregate_type="purchase_order",
                aggregate_id=order.id,
                event_type=PURCHASE_ORDER_CREATED_EVENT,
                payload={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "outlet_id": str(outlet.id),
                    "supplier_id": str(supplier_id),
                    "total_value": str(total),
                },
                conn=conn,
            )
    except BaseORMException as e:
        log.exception("Storage failure while generating purchase order")
        raise StorageError("Failed to generate purchase order", details=str(e)) from e

    log.info(f"Purchase order {order.order_number} generated for outlet {outlet_id} ({len(lines)} lines)")
    return order


async def get_purchase_order(ctx: RequestContext, order_id: UUID) -> PurchaseOrder:
    order = await PurchaseOrder.get_or_none(id=order_id, tenant_id=ctx.tenant_id)
    if not order:
        raise ResourceNotFoundError("Purchase order", order_id)
    return order


async def list_purchase_orders(
    ctx: RequestContext,
    status: Optional[PurchaseOrderStatus] = None,
    outlet_id: Optional[UUID] = None,
) -> List[PurchaseOrder]:
    query = PurchaseOrder.filter(tenant_id=ctx.tenant_id)
    if status:
        query = query.filter(status=status)
    if outlet_id:
        query = query.filter(outlet_id=outlet_id)
    return await query.order_by("-created_at")


async def update_purchase_order_status(
    ctx: RequestContext, order_id: UUID, new_status: PurchaseOrderStatus
) -> PurchaseOrder:
    """Moves an order one step through its status machine and emits the change event."""
    async with in_transaction() as conn:
        order = await PurchaseOrder.filter(id=order_id, tenant_id=ctx.tenant_id).select_for_update().using_db(conn).first()
        if not order:
            raise ResourceNotFoundError("Purchase order", order_id)

        old_status = order.status
        if new_status not in ALLOWED_TRANSITIONS[old_status]:
            raise InvalidStatusTransition(
                f"Cannot change purchase order {order.order_number} from {old_status.value} to {new_status.value}",
                details={"from": old_status.value, "to": new_status.value},
            )

        order.status = new_status
        await order.save(using_db=conn, update_fields=["status", "updated_at"])

        await create_outbox_event(
            aggregate_type="purchase_order",
            aggregate_id=order.id,
            event_type=PURCHASE_ORDER_STATUS_EVENT,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "old_status": old_status.value,
                "new_status": new_status.value,
                "user_id": ctx.user_id,
            },
            conn=conn,
        )

    log.info(f"Purchase order {order.order_number}: {old_status.value} -> {new_status.value}")
    return order
