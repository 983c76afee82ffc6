# scripts/seed_data.py
import asyncio
import logging

from stockledger.core.context import RequestContext
from stockledger.core.db import close_db, init_db
from stockledger.core.errors import InventoryValidationError
from stockledger.core.logging_config import setup_logging
from stockledger.models.outlet import Outlet
from stockledger.schemas.inventory import InventoryItemCreate
from stockledger.services.inventory_service import create_item

log = logging.getLogger(__name__)

DEMO_CONTEXT = RequestContext(tenant_id="demo-tenant", user_id="seed-script")

DEMO_ITEMS = [
    {"name": "Paneer", "category": "Dairy", "unit": "kg", "current_stock": 12, "minimum_stock": 5, "maximum_stock": 25, "unit_cost": 320},
    {"name": "Basmati Rice", "category": "Grains", "unit": "kg", "current_stock": 40, "minimum_stock": 10, "unit_cost": 95},
    {"name": "Tomato", "category": "Produce", "unit": "kg", "current_stock": 3, "minimum_stock": 8, "unit_cost": 30},
    {"name": "Cooking Oil", "category": "Pantry", "unit": "l", "current_stock": 20, "minimum_stock": 5, "unit_cost": 140},
    {"name": "Cola", "category": "Beverages", "unit": "bottle", "current_stock": 0, "minimum_stock": 24, "unit_cost": 25},
]


async def seed():
    outlet, _ = await Outlet.get_or_create(tenant_id=DEMO_CONTEXT.tenant_id, name="Demo Kitchen")
    log.info(f"Outlet: {outlet.id}")

    for raw in DEMO_ITEMS:
        try:
            item = await create_item(DEMO_CONTEXT, InventoryItemCreate(outlet_id=outlet.id, **raw))
            log.info(f"Seeded {item}")
        except InventoryValidationError:
            # Already seeded on a previous run
            log.info(f"Skipping existing item {raw['name']}")

    log.info("Inventory seeded.")


async def main():
    await init_db()
    await seed()
    await close_db()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
