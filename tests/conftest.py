import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from stockledger.core.context import RequestContext
from stockledger.core.db import close_db, init_db
from stockledger.main import app
from stockledger.models.outlet import Outlet
from stockledger.schemas.inventory import InventoryItemCreate
from stockledger.services.inventory_service import create_item


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def headers():
    return {"X-Tenant-ID": "tenant-a", "X-User-ID": "user-1"}


@pytest.fixture
def ctx():
    return RequestContext(tenant_id="tenant-a", user_id="user-1")


@pytest.fixture
def other_ctx():
    return RequestContext(tenant_id="tenant-b", user_id="user-2")


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest_asyncio.fixture
async def outlet(db, ctx):
    return await Outlet.create(tenant_id=ctx.tenant_id, name="Downtown Kitchen")


@pytest_asyncio.fixture
async def second_outlet(db, ctx):
    return await Outlet.create(tenant_id=ctx.tenant_id, name="Airport Kiosk")


@pytest.fixture
def make_item(ctx, outlet):
    """Factory creating items through the service, so initial stock is on the ledger."""
    async def _make(name="Tomato", current_stock=0, minimum_stock=0, outlet_id=None, **extra):
        data = InventoryItemCreate(
            outlet_id=outlet_id or outlet.id,
            name=name,
            unit=extra.pop("unit", "kg"),
            current_stock=current_stock,
            minimum_stock=minimum_stock,
            **extra,
        )
        return await create_item(ctx, data)
    return _make
