from stockledger.services.alerts import AlertSeverity, alert_message, stock_severity
from stockledger.services.low_stock_service import check_low_stock, suggest_reorder


def test_severity_thresholds():
    assert stock_severity(0, 5) == AlertSeverity.CRITICAL
    assert stock_severity(5, 5) == AlertSeverity.WARNING
    assert stock_severity(6, 5) == AlertSeverity.NORMAL


def test_alert_messages():
    assert alert_message("Cola", 0, "bottle") == "Cola is out of stock"
    assert alert_message("Flour", 2.5, "kg") == "Flour is running low (2.5 kg remaining)"


async def test_low_stock_ordered_by_depletion_then_name(ctx, make_item):
    await make_item(name="Zucchini", current_stock=2, minimum_stock=4)
    await make_item(name="Carrot", current_stock=2, minimum_stock=4)
    await make_item(name="Cola", current_stock=0, minimum_stock=12, unit="bottle")
    await make_item(name="Rice", current_stock=40, minimum_stock=10)

    alerts = await check_low_stock(ctx)

    assert [a.item_name for a in alerts] == ["Cola", "Carrot", "Zucchini"]
    assert alerts[0].severity == AlertSeverity.CRITICAL
    assert alerts[0].message == "Cola is out of stock"
    assert alerts[1].severity == AlertSeverity.WARNING


async def test_low_stock_is_scoped_to_tenant(other_ctx, make_item):
    await make_item(name="Cola", current_stock=0, minimum_stock=12)
    assert await check_low_stock(other_ctx) == []


async def test_reorder_suggestions_fill_to_target(ctx, outlet, make_item):
    await make_item(name="Flour", current_stock=2, minimum_stock=5, maximum_stock=20, unit_cost=40)
    await make_item(name="Salt", current_stock=1, minimum_stock=3, unit_cost=15)
    await make_item(name="Rice", current_stock=40, minimum_stock=10)

    suggestions = {s.item_name: s for s in await suggest_reorder(ctx, outlet.id)}

    assert set(suggestions) == {"Flour", "Salt"}
    assert suggestions["Flour"].quantity_ordered == 18
    assert suggestions["Flour"].estimated_unit_cost == 40
    assert suggestions["Salt"].quantity_ordered == 5
