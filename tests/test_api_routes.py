from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from stockledger.core.errors import InsufficientStockError, ResourceNotFoundError, StorageError
from stockledger.schemas.inventory import BulkImportResult, BulkImportSummary
from stockledger.schemas.stock import RecipeConsumptionResult, StockValidationResult


def _item(**overrides):
    now = datetime.now(timezone.utc)
    values = dict(
        id=uuid4(), tenant_id="tenant-a", outlet_id=uuid4(), name="Tomato", category="Produce",
        unit="kg", current_stock=10.0, minimum_stock=2.0, maximum_stock=None, unit_cost=30.0,
        supplier_id=None, last_restocked=None, created_at=now, updated_at=now,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _movement(item, **overrides):
    values = dict(
        id=uuid4(), item_id=item.id, item_name=item.name, outlet_id=item.outlet_id, type="OUT",
        quantity=-2.0, previous_stock=12.0, new_stock=10.0, reason=None, reference=None,
        user_id="user-1", occurred_at=datetime.now(timezone.utc),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestTenantContext:
    def test_missing_tenant_header_is_rejected(self, client):
        response = client.get("/api/v1/inventory/")
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_context_is_passed_to_service(self, client, headers):
        with patch('stockledger.api.v1.inventory.get_item', new_callable=AsyncMock) as mock_get_item:
            mock_get_item.return_value = _item()
            client.get(f"/api/v1/inventory/{uuid4()}", headers=headers)

            ctx = mock_get_item.call_args.args[0]
            assert (ctx.tenant_id, ctx.user_id) == ("tenant-a", "user-1")


class TestInventoryRoutes:
    def test_create_item_success(self, client, headers):
        with patch('stockledger.api.v1.inventory.create_item', new_callable=AsyncMock) as mock_create:
            mock_create.return_value = _item(name="Basil", unit="g")
            payload = {"outlet_id": str(uuid4()), "name": "Basil", "unit": "g", "current_stock": 200}

            response = client.post("/api/v1/inventory/", json=payload, headers=headers)

            assert response.status_code == 201
            assert response.json()["data"]["name"] == "Basil"

    def test_create_item_invalid_unit(self, client, headers):
        payload = {"outlet_id": str(uuid4()), "name": "Basil", "unit": "bucket"}
        response = client.post("/api/v1/inventory/", json=payload, headers=headers)
        assert response.status_code == 422

    def test_get_item_not_found(self, client, headers):
        with patch('stockledger.api.v1.inventory.get_item', new_callable=AsyncMock) as mock_get_item:
            mock_get_item.side_effect = ResourceNotFoundError("Inventory item", "x")
            response = client.get(f"/api/v1/inventory/{uuid4()}", headers=headers)

            assert response.status_code == 404
            assert response.json()["error"]["code"] == "not_found"

    def test_bulk_import_reports_summary(self, client, headers):
        with patch('stockledger.api.v1.inventory.bulk_import_items', new_callable=AsyncMock) as mock_import:
            mock_import.return_value = BulkImportResult(
                imported=[], errors=[], summary=BulkImportSummary(total=1, successful=0, failed=1)
            )
            response = client.post("/api/v1/inventory/bulk-import", json={"items": [{}]}, headers=headers)

            assert response.status_code == 200
            assert response.json()["data"]["summary"]["failed"] == 1

    def test_storage_error_details_are_hidden(self, client, headers):
        with patch('stockledger.api.v1.inventory.get_statistics', new_callable=AsyncMock) as mock_stats:
            mock_stats.side_effect = StorageError("Failed to read", details="password=secret")
            response = client.get("/api/v1/inventory/statistics", headers=headers)

            assert response.status_code == 500
            assert "secret" not in response.text


class TestStockRoutes:
    def test_update_stock_success(self, client, headers):
        item = _item()
        with patch('stockledger.api.v1.stock.update_stock', new_callable=AsyncMock) as mock_update:
            mock_update.return_value = (item, _movement(item))
            payload = {"item_id": str(item.id), "quantity": 2, "type": "OUT"}

            response = client.post("/api/v1/stock/update", json=payload, headers=headers)

            assert response.status_code == 200
            # Decimal amounts serialize as strings
            assert Decimal(response.json()["data"]["movement"]["quantity"]) == -2

    def test_update_stock_insufficient(self, client, headers):
        with patch('stockledger.api.v1.stock.update_stock', new_callable=AsyncMock) as mock_update:
            mock_update.side_effect = InsufficientStockError("Cheese", 5, 3)
            payload = {"item_id": str(uuid4()), "quantity": 5, "type": "OUT"}

            response = client.post("/api/v1/stock/update", json=payload, headers=headers)

            assert response.status_code == 400
            assert response.json()["error"]["details"]["available"] == 3

    def test_consumption_shortage_is_reported(self, client, headers):
        outlet_id = uuid4()
        with patch('stockledger.api.v1.stock.process_recipe_consumption', new_callable=AsyncMock) as mock_consume:
            mock_consume.return_value = RecipeConsumptionResult(
                consumed=False, recipe_name="Pizza", outlet_id=outlet_id, quantity=2,
                processed_at=datetime.now(timezone.utc),
            )
            payload = {
                "outlet_id": str(outlet_id),
                "recipe_name": "Pizza",
                "quantity": 2,
                "ingredients": [{"name": "Cheese", "quantity_per_unit": 0.3}],
            }

            response = client.post("/api/v1/stock/consumption", json=payload, headers=headers)

            body = response.json()
            assert response.status_code == 200
            assert body["success"] is False
            assert body["data"]["consumed"] is False

    def test_validate_order(self, client, headers):
        with patch('stockledger.api.v1.stock.validate_stock_for_order', new_callable=AsyncMock) as mock_validate:
            mock_validate.return_value = StockValidationResult(
                can_fulfill=True, items=[], total_items=0, available_items=0, unavailable_items=0
            )
            payload = {"outlet_id": str(uuid4()), "items": [{"item_name": "Bun", "quantity_required": 2}]}

            response = client.post("/api/v1/stock/validate-order", json=payload, headers=headers)

            assert response.status_code == 200
            assert response.json()["data"]["can_fulfill"] is True


class TestPurchaseOrderRoutes:
    def test_invalid_status_value(self, client, headers):
        response = client.patch(
            f"/api/v1/purchase-orders/{uuid4()}/status", json={"status": "SHIPPED"}, headers=headers
        )
        assert response.status_code == 422

    def test_create_purchase_order(self, client, headers):
        order = SimpleNamespace(order_number="PO-1")
        response_body = {"order_number": "PO-1", "status": "PENDING"}
        with patch('stockledger.api.v1.purchase_orders.generate_purchase_order', new_callable=AsyncMock) as mock_generate, \
                patch('stockledger.api.v1.purchase_orders.to_response', new_callable=AsyncMock) as mock_to_response:
            mock_generate.return_value = order
            mock_to_response.return_value = MagicMock(model_dump=MagicMock(return_value=response_body))
            payload = {
                "outlet_id": str(uuid4()),
                "supplier_id": str(uuid4()),
                "items": [{"item_name": "Flour", "quantity_ordered": 18, "estimated_unit_cost": 40}],
            }

            response = client.post("/api/v1/purchase-orders/", json=payload, headers=headers)

            assert response.status_code == 201
            assert response.json()["data"]["status"] == "PENDING"


class TestOutletRoutes:
    def test_create_and_list_outlets(self, client, headers):
        outlet = SimpleNamespace(id=uuid4(), tenant_id="tenant-a", name="Downtown Kitchen", is_active=True)
        with patch('stockledger.api.v1.outlets.create_outlet', new_callable=AsyncMock) as mock_create, \
                patch('stockledger.api.v1.outlets.list_outlets', new_callable=AsyncMock) as mock_list:
            mock_create.return_value = outlet
            mock_list.return_value = [outlet]

            created = client.post("/api/v1/outlets/", json={"name": "Downtown Kitchen"}, headers=headers)
            listed = client.get("/api/v1/outlets/", headers=headers)

            assert created.status_code == 201
            assert created.json()["data"]["name"] == "Downtown Kitchen"
            assert listed.json()["meta"]["total"] == 1
