"""
Stock ledger: the single write path for InventoryItem.current_stock.

Every stock change goes through apply_movement() inside a caller-owned
transaction. The row is read with SELECT ... FOR UPDATE and written back with
an update guarded by the version read, so a concurrent writer can never be
overwritten; a lost race surfaces as StockConflictError and the whole
transaction is retried by run_ledger_transaction().
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar, Union
from uuid import UUID

from tortoise import timezone
from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.transactions import in_transaction

from stockledger.core.config import ADJUSTMENT_BELOW_MINIMUM, STOCK_UPDATE_MAX_RETRIES
from stockledger.core.context import RequestContext
from stockledger.core.errors import (
    InsufficientStockError,
    InventoryError,
    InventoryValidationError,
    ResourceNotFoundError,
    StockConflictError,
    StorageError,
)
from stockledger.core.quantities import Number, format_quantity, to_quantity
from stockledger.events.outbox_utility import (
    LOW_STOCK_ALERT_EVENT,
    STOCK_CHANGED_EVENT,
    create_outbox_event,
)
from stockledger.models.inventory import InventoryItem
from stockledger.models.movement import MovementType, StockMovement
from stockledger.schemas.inventory import PageMeta
from stockledger.services.alerts import AlertSeverity, alert_message, stock_severity

log = logging.getLogger(__name__)

T = TypeVar("T")

# Types a caller may request through update_stock; transfer types are written by the transfer coordinator only
MANUAL_MOVEMENT_TYPES = (MovementType.IN, MovementType.OUT, MovementType.ADJUSTMENT)
INCREMENT_TYPES = (MovementType.IN, MovementType.TRANSFER_IN)
DECREMENT_TYPES = (MovementType.OUT, MovementType.TRANSFER_OUT)


def parse_movement_type(value: Union[str, MovementType], allowed=MANUAL_MOVEMENT_TYPES) -> MovementType:
    try:
        movement_type = MovementType(value)
    except ValueError:
        movement_type = None
    if movement_type not in allowed:
        names = ", ".join(t.value for t in allowed)
        raise InventoryValidationError(f"Invalid stock update type '{value}'. Must be one of {names}")
    return movement_type


def resolve_new_stock(item: InventoryItem, movement_type: MovementType, quantity: Number) -> Decimal:
    """Computes the post-movement stock level, rejecting anything that breaks non-negativity."""
    current = to_quantity(item.current_stock)
    quantity = to_quantity(quantity)
    if movement_type in INCREMENT_TYPES:
        return current + abs(quantity)

    if movement_type in DECREMENT_TYPES:
        new_stock = current - abs(quantity)
        if new_stock < 0:
            raise InsufficientStockError(item.name, abs(quantity), current)
        return new_stock

    if movement_type == MovementType.ADJUSTMENT:
        # Absolute set
        if quantity < 0:
            raise InventoryValidationError(
                f"Stock for {item.name} cannot be adjusted below zero: {format_quantity(quantity)}"
            )
        if quantity < item.minimum_stock and ADJUSTMENT_BELOW_MINIMUM == "reject":
            raise InventoryValidationError(
                f"Adjustment of {item.name} to {format_quantity(quantity)} "
                f"is below minimum stock {format_quantity(item.minimum_stock)}",
                details={"item_name": item.name, "requested": quantity, "minimum_stock": item.minimum_stock},
            )
        return quantity

    raise InventoryValidationError(f"Invalid stock update type: {movement_type}")


def signed_delta(movement_type: MovementType, previous_stock: Decimal, new_stock: Decimal, quantity: Number) -> Decimal:
    quantity = to_quantity(quantity)
    if movement_type in DECREMENT_TYPES:
        return -abs(quantity)
    if movement_type in INCREMENT_TYPES:
        return abs(quantity)
    return new_stock - previous_stock


async def lock_item(conn: Any, tenant_id: str, item_id: UUID) -> InventoryItem:
    item = await InventoryItem.filter(id=item_id, tenant_id=tenant_id).select_for_update().using_db(conn).first()
    if not item:
        raise ResourceNotFoundError("Inventory item", item_id)
    return item


async def lock_items_by_name(conn: Any, tenant_id: str, outlet_ids: list, names: list) -> list:
    """Locks every matching row in id order so concurrent batches acquire locks in the same sequence."""
    if not outlet_ids or not names:
        return []
    return await (
        InventoryItem.filter(tenant_id=tenant_id, outlet_id__in=outlet_ids, name__in=names)
        .order_by("id")
        .select_for_update()
        .using_db(conn)
    )


async def apply_movement(
    conn: Any,
    item: InventoryItem,
    movement_type: MovementType,
    quantity: Number,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
    user_id: Optional[str] = None,
    attributes: Optional[dict] = None,
) -> StockMovement:
    """
    Applies one stock movement to a locked item and appends its ledger row.

    `attributes` are extra column values written by the same guarded update
    (e.g. the unit cost of a receipt). The item instance is updated in place
    to the committed values.
    """
    previous_stock = to_quantity(item.current_stock)
    new_stock = resolve_new_stock(item, movement_type, quantity)
    now = timezone.now()

    values = dict(attributes or {})
    values.update(current_stock=new_stock, version=item.version + 1, updated_at=now)
    if movement_type in INCREMENT_TYPES:
        values["last_restocked"] = now

    updated = await InventoryItem.filter(id=item.id, version=item.version).using_db(conn).update(**values)
    if not updated:
        raise StockConflictError(f"Inventory item {item.id} was modified concurrently")

    for field, value in values.items():
        setattr(item, field, value)

    movement = await StockMovement.create(
        tenant_id=item.tenant_id,
        item_id=item.id,
        item_name=item.name,
        outlet_id=item.outlet_id,
        type=movement_type,
        quantity=signed_delta(movement_type, previous_stock, new_stock, quantity),
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        reference=reference,
        user_id=user_id,
        using_db=conn,
    )
    await emit_stock_events(item, movement, conn)

    log.info(
        f"Stock {movement_type.value}: item {item.id} ({item.name}) "
        f"{format_quantity(previous_stock)} -> {format_quantity(new_stock)} [ref={reference}]"
    )
    return movement


async def emit_stock_events(item: InventoryItem, movement: StockMovement, conn: Any):
    """Queues the real-time notification for a stock change in the same transaction."""
    severity = stock_severity(item.current_stock, item.minimum_stock)
    await create_outbox_event(
        aggregate_type="inventory_item",
        aggregate_id=item.id,
        event_type=STOCK_CHANGED_EVENT,
        payload={
            "item_id": str(item.id),
            "outlet_id": str(item.outlet_id),
            "movement_id": str(movement.id),
            "movement_type": movement.type.value,
            "new_stock": str(item.current_stock),
            "severity": severity.value,
        },
        conn=conn,
    )
    if severity != AlertSeverity.NORMAL:
        log.warning(f"Low stock detected for item {item.id} ({item.name}): {format_quantity(item.current_stock)} left")
        await create_outbox_event(
            aggregate_type="inventory_item",
            aggregate_id=item.id,
            event_type=LOW_STOCK_ALERT_EVENT,
            payload={
                "item_id": str(item.id),
                "outlet_id": str(item.outlet_id),
                "current_stock": str(item.current_stock),
                "minimum_stock": str(item.minimum_stock),
                "severity": severity.value,
                "message": alert_message(item.name, item.current_stock, item.unit),
            },
            conn=conn,
        )


async def create_item_record(conn: Any, **attributes) -> InventoryItem:
    """
    Inserts an item with zero stock. Initial stock is applied afterwards as a
    movement so the ledger always starts from 0.
    """
    attributes["current_stock"] = to_quantity(0)
    try:
        return await InventoryItem.create(using_db=conn, **attributes)
    except IntegrityError as e:
        # Lost a create race on (tenant, outlet, name); a retry will find the row
        raise StockConflictError(f"Inventory item '{attributes.get('name')}' was created concurrently") from e


async def run_ledger_transaction(operation: Callable[[], Awaitable[T]], description: str) -> T:
    """
    Runs a transactional ledger operation, retrying it from scratch after a
    version conflict. ORM failures are reported as StorageError.
    """
    for attempt in range(1, STOCK_UPDATE_MAX_RETRIES + 1):
        try:
            return await operation()
        except StockConflictError:
            if attempt >= STOCK_UPDATE_MAX_RETRIES:
                log.error(f"Giving up on {description} after {attempt} conflicting attempts")
                raise
            log.warning(f"Conflict during {description}, retrying (attempt {attempt})")
        except InventoryError:
            raise
        except BaseORMException as e:
            log.exception(f"Storage failure during {description}")
            raise StorageError(f"Failed to {description}", details=str(e)) from e
    raise StockConflictError(f"Failed to {description}")


async def update_stock(
    ctx: RequestContext,
    item_id: UUID,
    quantity: Number,
    movement_type: Union[str, MovementType],
    reason: Optional[str] = None,
    reference: Optional[str] = None,
):
    """Applies an IN, OUT or ADJUSTMENT movement to one item. Returns (item, movement)."""
    movement_type = parse_movement_type(movement_type)

    async def _apply():
        async with in_transaction() as conn:
            item = await lock_item(conn, ctx.tenant_id, item_id)
            movement = await apply_movement(conn, item, movement_type, quantity, reason, reference, ctx.user_id)
        return item, movement

    return await run_ledger_transaction(_apply, "update stock")


async def get_stock_movements(
    ctx: RequestContext,
    item_id: Optional[UUID] = None,
    outlet_id: Optional[UUID] = None,
    movement_type: Optional[Union[str, MovementType]] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[StockMovement], PageMeta]:
    """Reads the ledger newest first."""
    if page < 1 or limit < 1:
        raise InventoryValidationError("Page and limit must be positive")

    query = StockMovement.filter(tenant_id=ctx.tenant_id)
    if item_id:
        query = query.filter(item_id=item_id)
    if outlet_id:
        query = query.filter(outlet_id=outlet_id)
    if movement_type:
        query = query.filter(type=parse_movement_type(movement_type, allowed=tuple(MovementType)))
    if start_date:
        query = query.filter(occurred_at__gte=start_date)
    if end_date:
        query = query.filter(occurred_at__lte=end_date)

    total = await query.count()
    movements = await query.order_by("-occurred_at", "id").offset((page - 1) * limit).limit(limit)

    return movements, PageMeta.build(total, page, limit)
