import logging
import uuid
from typing import Optional
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from stockledger.core.context import RequestContext
from stockledger.core.errors import InsufficientStockError, InventoryValidationError, ResourceNotFoundError
from stockledger.core.quantities import Number, format_quantity, to_quantity
from stockledger.models.movement import MovementType
from stockledger.schemas.inventory import InventoryItemResponse
from stockledger.schemas.stock import TransferResult
from stockledger.services.ledger import (
    apply_movement,
    create_item_record,
    lock_items_by_name,
    run_ledger_transaction,
)
from stockledger.services.outlet_service import get_active_outlet

log = logging.getLogger(__name__)


async def transfer_stock(
    ctx: RequestContext,
    item_name: str,
    from_outlet_id: UUID,
    to_outlet_id: UUID,
    quantity: Number,
    reason: Optional[str] = None,
) -> TransferResult:
    """
    Moves stock of one item between two outlets of the tenant.

    Source decrement and destination increment (or first-time creation) run
    in a single transaction, so the combined stock of both outlets is the
    same before and after, and a failure leaves both rows untouched.
    """
    if from_outlet_id == to_outlet_id:
        raise InventoryValidationError("Cannot transfer stock to the same outlet")
    if quantity <= 0:
        raise InventoryValidationError("Transfer quantity must be positive")
    quantity = to_quantity(quantity)

    # Shared by the TRANSFER_OUT and TRANSFER_IN ledger rows
    reference = f"TRF-{uuid.uuid4().hex[:12].upper()}"

    async def _transfer():
        async with in_transaction() as conn:
            source_outlet = await get_active_outlet(ctx.tenant_id, from_outlet_id, conn)
            destination_outlet = await get_active_outlet(ctx.tenant_id, to_outlet_id, conn)

            locked = await lock_items_by_name(
                conn, ctx.tenant_id, [source_outlet.id, destination_outlet.id], [item_name]
            )
            by_outlet = {item.outlet_id: item for item in locked}

            source = by_outlet.get(source_outlet.id)
            if not source:
                raise ResourceNotFoundError(f"Inventory item '{item_name}' in source outlet", from_outlet_id)
            if source.current_stock < quantity:
                raise InsufficientStockError(item_name, quantity, source.current_stock)

            await apply_movement(
                conn, source, MovementType.TRANSFER_OUT, quantity,
                reason=reason or f"Transfer to outlet {destination_outlet.id}",
                reference=reference,
                user_id=ctx.user_id,
            )

            destination = by_outlet.get(destination_outlet.id)
            created = destination is None
            if created:
                # First stock of this item at the destination: seed it from the source
                destination = await create_item_record(
                    conn,
                    tenant_id=ctx.tenant_id,
                    outlet=destination_outlet,
                    name=source.name,
                    category=source.category,
                    unit=source.unit,
                    minimum_stock=source.minimum_stock,
                    maximum_stock=source.maximum_stock,
                    unit_cost=source.unit_cost,
                    supplier_id=source.supplier_id,
                )

            await apply_movement(
                conn, destination, MovementType.TRANSFER_IN, quantity,
                reason=reason or f"Transfer from outlet {source_outlet.id}",
                reference=reference,
                user_id=ctx.user_id,
            )
        return source, destination, created

    source, destination, created = await run_ledger_transaction(_transfer, f"transfer {item_name}")
    log.info(
        f"Transfer {reference}: {format_quantity(quantity)} {source.unit} of {item_name} "
        f"from outlet {from_outlet_id} to outlet {to_outlet_id}"
    )
    return TransferResult(
        item_name=item_name,
        from_outlet_id=from_outlet_id,
        to_outlet_id=to_outlet_id,
        quantity=quantity,
        reason=reason,
        from_item=InventoryItemResponse.model_validate(source),
        to_item=InventoryItemResponse.model_validate(destination),
        created_destination=created,
        timestamp=timezone.now(),
    )
