import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from tortoise import timezone

from stockledger.core.context import RequestContext
from stockledger.models.inventory import InventoryItem
from stockledger.schemas.stock import LowStockAlert, ReorderSuggestion
from stockledger.services.alerts import alert_message, stock_severity

log = logging.getLogger(__name__)


def _stock_ratio(item: InventoryItem) -> Decimal:
    if not item.minimum_stock:
        return Decimal(0)
    return item.current_stock / item.minimum_stock


async def low_stock_items(ctx: RequestContext, outlet_id: Optional[UUID] = None) -> List[InventoryItem]:
    """Items at or below their minimum, most depleted first."""
    query = InventoryItem.filter(tenant_id=ctx.tenant_id)
    if outlet_id:
        query = query.filter(outlet_id=outlet_id)
    items = [item for item in await query if item.current_stock <= item.minimum_stock]
    return sorted(items, key=lambda item: (_stock_ratio(item), item.name))


async def check_low_stock(ctx: RequestContext, outlet_id: Optional[UUID] = None) -> List[LowStockAlert]:
    now = timezone.now()
    alerts = [
        LowStockAlert(
            item_id=item.id,
            item_name=item.name,
            outlet_id=item.outlet_id,
            current_stock=item.current_stock,
            minimum_stock=item.minimum_stock,
            severity=stock_severity(item.current_stock, item.minimum_stock),
            message=alert_message(item.name, item.current_stock, item.unit),
            created_at=now,
        )
        for item in await low_stock_items(ctx, outlet_id)
    ]
    log.info(f"Low stock check for tenant {ctx.tenant_id}: {len(alerts)} alerts")
    return alerts


async def suggest_reorder(ctx: RequestContext, outlet_id: UUID) -> List[ReorderSuggestion]:
    """Purchase-order lines that bring every low item of an outlet back up to its target level."""
    suggestions = []
    for item in await low_stock_items(ctx, outlet_id):
        target = item.maximum_stock if item.maximum_stock is not None else 2 * item.minimum_stock
        quantity = target - item.current_stock
        if quantity <= 0:
            continue
        suggestions.append(
            ReorderSuggestion(
                item_name=item.name,
                quantity_ordered=quantity,
                estimated_unit_cost=item.unit_cost,
                supplier_id=item.supplier_id,
            )
        )
    return suggestions
