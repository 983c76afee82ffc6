import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from tortoise.exceptions import OperationalError
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from stockledger.core.errors import (
    InsufficientStockError,
    InventoryValidationError,
    ResourceNotFoundError,
    StockConflictError,
    StorageError,
)
from stockledger.events.outbox_utility import LOW_STOCK_ALERT_EVENT, STOCK_CHANGED_EVENT
from stockledger.models.inventory import InventoryItem
from stockledger.models.movement import MovementType, StockMovement
from stockledger.models.outbox import OutboxEvent
from stockledger.services.alerts import AlertSeverity, stock_severity
from stockledger.services.ledger import (
    apply_movement,
    get_stock_movements,
    lock_item,
    run_ledger_transaction,
    update_stock,
)


async def test_in_and_out_move_stock_and_record_signed_deltas(ctx, make_item):
    item = await make_item(current_stock=10)

    item, movement = await update_stock(ctx, item.id, 5, "IN", reason="Delivery")
    assert item.current_stock == 15
    assert movement.quantity == 5
    assert (movement.previous_stock, movement.new_stock) == (10, 15)

    item, movement = await update_stock(ctx, item.id, 3, "OUT")
    assert item.current_stock == 12
    assert movement.quantity == -3
    assert movement.type == MovementType.OUT
    assert movement.user_id == "user-1"


async def test_in_sets_last_restocked(ctx, make_item):
    item = await make_item(current_stock=0)
    assert item.last_restocked is None

    item, _ = await update_stock(ctx, item.id, 2, "IN")
    stored = await InventoryItem.get(id=item.id)
    assert stored.last_restocked is not None


async def test_insufficient_stock_leaves_item_and_ledger_unchanged(ctx, make_item):
    # 3 on hand, OUT 5
    item = await make_item(name="Cheese", current_stock=3)

    with pytest.raises(InsufficientStockError) as exc:
        await update_stock(ctx, item.id, 5, "OUT")

    assert exc.value.details == {"item_name": "Cheese", "requested": 5, "available": 3}
    assert (await InventoryItem.get(id=item.id)).current_stock == 3
    # Only the initial stock movement exists
    assert await StockMovement.filter(item_id=item.id).count() == 1


async def test_adjustment_sets_absolute_level(ctx, make_item):
    item = await make_item(current_stock=10)

    item, movement = await update_stock(ctx, item.id, 4, "ADJUSTMENT", reason="Stock count")

    assert item.current_stock == 4
    assert movement.quantity == -6
    assert movement.type == MovementType.ADJUSTMENT


async def test_adjustment_cannot_go_negative(ctx, make_item):
    item = await make_item(current_stock=10)
    with pytest.raises(InventoryValidationError):
        await update_stock(ctx, item.id, -1, "ADJUSTMENT")


async def test_adjustment_below_minimum_follows_policy(ctx, make_item):
    item = await make_item(current_stock=10, minimum_stock=5)

    with patch("stockledger.services.ledger.ADJUSTMENT_BELOW_MINIMUM", "reject"):
        with pytest.raises(InventoryValidationError):
            await update_stock(ctx, item.id, 2, "ADJUSTMENT")

    item, _ = await update_stock(ctx, item.id, 2, "ADJUSTMENT")
    assert item.current_stock == 2


async def test_unknown_and_transfer_types_are_rejected(ctx, make_item):
    item = await make_item(current_stock=10)
    for bad_type in ("SPOILAGE", "TRANSFER_OUT"):
        with pytest.raises(InventoryValidationError):
            await update_stock(ctx, item.id, 1, bad_type)


async def test_item_of_another_tenant_is_not_found(other_ctx, make_item):
    item = await make_item(current_stock=10)
    with pytest.raises(ResourceNotFoundError):
        await update_stock(other_ctx, item.id, 1, "OUT")


async def test_concurrent_decrements_never_oversell(ctx, make_item):
    # two OUT 7 against 10 on hand; exactly one succeeds
    item = await make_item(name="Flour", current_stock=10)

    results = await asyncio.gather(
        update_stock(ctx, item.id, 7, "OUT"),
        update_stock(ctx, item.id, 7, "OUT"),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)
    assert (await InventoryItem.get(id=item.id)).current_stock == 3


async def test_stock_change_queues_outbox_events(ctx, make_item):
    item = await make_item(current_stock=10, minimum_stock=5)
    await OutboxEvent.all().delete()

    await update_stock(ctx, item.id, 6, "OUT")

    event_types = await OutboxEvent.all().values_list("event_type", flat=True)
    assert sorted(event_types) == sorted([STOCK_CHANGED_EVENT, LOW_STOCK_ALERT_EVENT])
    alert = await OutboxEvent.get(event_type=LOW_STOCK_ALERT_EVENT)
    assert alert.payload["severity"] == "WARNING"
    assert alert.payload["message"] == "Tomato is running low (4 kg remaining)"


async def test_movements_are_immutable(ctx, make_item):
    item = await make_item(current_stock=10)
    _, movement = await update_stock(ctx, item.id, 1, "OUT")

    movement.reason = "rewritten"
    with pytest.raises(InventoryValidationError):
        await movement.save()
    with pytest.raises(InventoryValidationError):
        await movement.delete()


async def test_movement_history_newest_first_with_filters(ctx, make_item):
    item = await make_item(current_stock=10)
    await update_stock(ctx, item.id, 2, "OUT")
    await update_stock(ctx, item.id, 5, "IN")

    movements, meta = await get_stock_movements(ctx, item_id=item.id)
    assert meta.total == 3
    assert [m.new_stock for m in movements] == [13, 8, 10]

    outs, meta = await get_stock_movements(ctx, item_id=item.id, movement_type="OUT")
    assert meta.total == 1
    assert outs[0].quantity == -2


async def test_conflict_is_retried_then_reported():
    operation = AsyncMock(side_effect=StockConflictError("busy"))
    with patch("stockledger.services.ledger.STOCK_UPDATE_MAX_RETRIES", 3):
        with pytest.raises(StockConflictError):
            await run_ledger_transaction(operation, "update stock")
    assert operation.await_count == 3


async def test_conflict_then_success_returns_result():
    operation = AsyncMock(side_effect=[StockConflictError("busy"), "done"])
    assert await run_ledger_transaction(operation, "update stock") == "done"


async def test_orm_failure_becomes_storage_error():
    operation = AsyncMock(side_effect=OperationalError("disk I/O error"))
    with pytest.raises(StorageError):
        await run_ledger_transaction(operation, "update stock")
    operation.assert_awaited_once()


async def test_fractional_decrements_drain_stock_exactly(ctx, make_item):
    item = await make_item(name="Saffron", current_stock=0.3, unit="g")

    await update_stock(ctx, item.id, 0.1, "OUT")
    item, movement = await update_stock(ctx, item.id, 0.2, "OUT")

    assert movement.quantity == Decimal("-0.2")
    assert movement.new_stock == 0
    stored = await InventoryItem.get(id=item.id)
    assert stored.current_stock == 0
    assert stock_severity(stored.current_stock, stored.minimum_stock) == AlertSeverity.CRITICAL


async def test_stale_version_is_a_conflict_and_writes_nothing(make_item):
    item = await make_item(current_stock=10)
    stale = await InventoryItem.get(id=item.id)
    await InventoryItem.filter(id=item.id).update(version=F("version") + 1)
    movements = await StockMovement.filter(item_id=item.id).count()
    events = await OutboxEvent.all().count()

    with pytest.raises(StockConflictError):
        async with in_transaction() as conn:
            await apply_movement(conn, stale, MovementType.OUT, 4)

    assert (await InventoryItem.get(id=item.id)).current_stock == 10
    assert await StockMovement.filter(item_id=item.id).count() == movements
    assert await OutboxEvent.all().count() == events


async def test_update_stock_retries_after_version_conflict(ctx, make_item):
    item = await make_item(current_stock=10)
    attempts = []

    async def lock_with_stale_first_read(conn, tenant_id, item_id):
        locked = await lock_item(conn, tenant_id, item_id)
        if not attempts:
            # first read is behind the committed version
            locked.version -= 1
        attempts.append(locked.version)
        return locked

    with patch("stockledger.services.ledger.lock_item", side_effect=lock_with_stale_first_read):
        item, movement = await update_stock(ctx, item.id, 4, "OUT")

    assert len(attempts) == 2
    assert (movement.previous_stock, movement.new_stock) == (10, 6)
    assert (await InventoryItem.get(id=item.id)).current_stock == 6
    assert await StockMovement.filter(item_id=item.id, type=MovementType.OUT).count() == 1
