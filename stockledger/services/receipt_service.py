import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from stockledger.core.config import DEFAULT_CATEGORY, DEFAULT_MINIMUM_STOCK, DEFAULT_UNIT
from stockledger.core.context import RequestContext
from stockledger.core.errors import InventoryError, InventoryValidationError
from stockledger.core.quantities import format_quantity, to_money
from stockledger.models.movement import MovementType
from stockledger.models.outlet import Outlet
from stockledger.models.processed_receipt import ProcessedReceipt
from stockledger.schemas.inventory import InventoryItemResponse
from stockledger.schemas.stock import (
    ProcessedReceiptLine,
    ReceiptLine,
    ReceiptLineError,
    StockReceiptResult,
)
from stockledger.services.ledger import (
    apply_movement,
    create_item_record,
    lock_items_by_name,
    run_ledger_transaction,
)
from stockledger.services.outlet_service import get_active_outlet

log = logging.getLogger(__name__)


async def process_stock_receipt(
    ctx: RequestContext,
    outlet_id: UUID,
    receipt_number: str,
    lines: List[ReceiptLine],
    supplier_id: Optional[UUID] = None,
    delivery_date: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> StockReceiptResult:
    """
    Books a supplier delivery into an outlet.

    Best-effort batch: every line runs in its own transaction, and a failing
    line is reported in `errors` while the remaining lines are still applied.
    """
    if not lines:
        raise InventoryValidationError("Receipt must contain at least one item")

    outlet = await get_active_outlet(ctx.tenant_id, outlet_id)
    marker = await _claim_receipt_number(ctx, outlet, receipt_number)

    processed: List[ProcessedReceiptLine] = []
    errors: List[ReceiptLineError] = []

    for line in lines:
        try:
            processed.append(await _receive_line(ctx, outlet, receipt_number, line, supplier_id))
        except InventoryError as e:
            log.warning(f"Receipt {receipt_number}: line '{line.item_name}' failed: {e.message}")
            errors.append(ReceiptLineError(item_name=line.item_name, error=e.message))

    if not processed:
        # Nothing was booked, so the receipt may be submitted again
        await marker.delete()

    log.info(f"Receipt {receipt_number} processed: {len(processed)}/{len(lines)} lines booked")
    return StockReceiptResult(
        receipt_number=receipt_number,
        supplier_id=supplier_id,
        outlet_id=outlet.id,
        delivery_date=delivery_date or timezone.now(),
        processed_items=processed,
        errors=errors,
        total_items=len(processed),
        total_value=sum((line.total_value for line in processed), Decimal(0)),
        notes=notes,
        processed_at=timezone.now(),
    )


async def _claim_receipt_number(ctx: RequestContext, outlet: Outlet, receipt_number: str) -> ProcessedReceipt:
    try:
        return await ProcessedReceipt.create(
            tenant_id=ctx.tenant_id, receipt_number=receipt_number, outlet_id=outlet.id
        )
    except IntegrityError:
        raise InventoryValidationError(f"Receipt {receipt_number} has already been processed")


async def _receive_line(
    ctx: RequestContext,
    outlet: Outlet,
    receipt_number: str,
    line: ReceiptLine,
    supplier_id: Optional[UUID],
) -> ProcessedReceiptLine:
    if line.quantity_received <= 0:
        raise InventoryValidationError(f"Invalid quantity for {line.item_name}: {format_quantity(line.quantity_received)}")

    async def _apply():
        async with in_transaction() as conn:
            locked = await lock_items_by_name(conn, ctx.tenant_id, [outlet.id], [line.item_name])
            item = locked[0] if locked else None
            created = item is None

            attributes = {}
            if created:
                item = await create_item_record(
                    conn,
                    tenant_id=ctx.tenant_id,
                    outlet=outlet,
                    name=line.item_name,
                    category=DEFAULT_CATEGORY,
                    unit=DEFAULT_UNIT,
                    minimum_stock=DEFAULT_MINIMUM_STOCK,
                    unit_cost=line.unit_cost or Decimal(0),
                    supplier_id=supplier_id,
                )
            else:
                # Last received cost wins; a missing or zero cost keeps the stored one
                if line.unit_cost:
                    attributes["unit_cost"] = to_money(line.unit_cost)
                if supplier_id:
                    attributes["supplier_id"] = supplier_id

            await apply_movement(
                conn, item, MovementType.IN, line.quantity_received,
                reason=f"Stock receipt {receipt_number}",
                reference=receipt_number,
                user_id=ctx.user_id,
                attributes=attributes,
            )
        return item, created

    item, created = await run_ledger_transaction(_apply, f"receive {line.item_name}")
    return ProcessedReceiptLine(
        item=InventoryItemResponse.model_validate(item),
        quantity_received=line.quantity_received,
        unit_cost=line.unit_cost,
        expiry_date=line.expiry_date,
        total_value=to_money(line.quantity_received * (line.unit_cost or 0)),
        created=created,
    )
