import uuid

import pytest

from stockledger.core.errors import InventoryValidationError, ResourceNotFoundError
from stockledger.models.inventory import InventoryItem
from stockledger.models.movement import StockMovement
from stockledger.models.processed_receipt import ProcessedReceipt
from stockledger.schemas.stock import ReceiptLine
from stockledger.services.receipt_service import process_stock_receipt


async def test_receipt_updates_existing_item_and_last_cost_wins(ctx, outlet, make_item):
    item = await make_item(name="Onion", current_stock=4, unit_cost=20)
    supplier_id = uuid.uuid4()

    result = await process_stock_receipt(
        ctx, outlet.id, "RCPT-001",
        [ReceiptLine(item_name="Onion", quantity_received=6, unit_cost=22.5)],
        supplier_id=supplier_id,
    )

    assert result.total_items == 1
    assert result.total_value == 135
    assert result.errors == []
    stored = await InventoryItem.get(id=item.id)
    assert stored.current_stock == 10
    assert stored.unit_cost == 22.5
    assert stored.supplier_id == supplier_id

    movement = await StockMovement.filter(item_id=item.id, reference="RCPT-001").first()
    assert movement.quantity == 6


async def test_receipt_without_cost_keeps_stored_cost(ctx, outlet, make_item):
    item = await make_item(name="Garlic", current_stock=1, unit_cost=80)

    result = await process_stock_receipt(
        ctx, outlet.id, "RCPT-010",
        [ReceiptLine(item_name="Garlic", quantity_received=2, unit_cost=0)],
    )

    assert result.total_value == 0
    stored = await InventoryItem.get(id=item.id)
    assert stored.unit_cost == 80
    assert stored.current_stock == 3


async def test_receipt_creates_unknown_item_with_defaults(ctx, outlet):
    result = await process_stock_receipt(
        ctx, outlet.id, "RCPT-002", [ReceiptLine(item_name="Saffron", quantity_received=2)]
    )

    line = result.processed_items[0]
    assert line.created is True
    item = await InventoryItem.get(tenant_id=ctx.tenant_id, name="Saffron")
    assert item.current_stock == 2
    assert item.minimum_stock == 10
    assert item.unit == "piece"
    assert item.category == "General"
    movement = await StockMovement.get(item_id=item.id)
    assert (movement.previous_stock, movement.new_stock) == (0, 2)


async def test_bad_line_does_not_block_siblings(ctx, outlet, make_item):
    await make_item(name="Milk", current_stock=1, unit="l")

    result = await process_stock_receipt(
        ctx, outlet.id, "RCPT-003",
        [
            ReceiptLine(item_name="Milk", quantity_received=5),
            ReceiptLine(item_name="Butter", quantity_received=0),
        ],
    )

    assert result.total_items == 1
    assert [e.item_name for e in result.errors] == ["Butter"]
    assert (await InventoryItem.get(name="Milk")).current_stock == 6
    assert not await InventoryItem.filter(name="Butter").exists()


async def test_duplicate_receipt_number_is_rejected(ctx, outlet):
    lines = [ReceiptLine(item_name="Salt", quantity_received=1)]
    await process_stock_receipt(ctx, outlet.id, "RCPT-004", lines)

    with pytest.raises(InventoryValidationError):
        await process_stock_receipt(ctx, outlet.id, "RCPT-004", lines)
    assert (await InventoryItem.get(name="Salt")).current_stock == 1


async def test_receipt_with_no_booked_lines_can_be_resubmitted(ctx, outlet):
    result = await process_stock_receipt(
        ctx, outlet.id, "RCPT-005", [ReceiptLine(item_name="Sugar", quantity_received=-1)]
    )
    assert result.total_items == 0
    assert not await ProcessedReceipt.filter(receipt_number="RCPT-005").exists()


async def test_empty_receipt_and_unknown_outlet(ctx, outlet):
    with pytest.raises(InventoryValidationError):
        await process_stock_receipt(ctx, outlet.id, "RCPT-006", [])
    with pytest.raises(ResourceNotFoundError):
        await process_stock_receipt(
            ctx, uuid.uuid4(), "RCPT-007", [ReceiptLine(item_name="Salt", quantity_received=1)]
        )
