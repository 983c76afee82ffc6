import logging
from tortoise import Tortoise
from stockledger.core.config import DB_URL

log = logging.getLogger(__name__)

# Define all models modules for the ORM
MODELS_MODULES = [
    "stockledger.models.outlet",
    "stockledger.models.inventory",
    "stockledger.models.movement",
    "stockledger.models.purchase_order",
    "stockledger.models.outbox",
    "stockledger.models.processed_receipt",
]

async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Initializes the Tortoise ORM connection and generates schemas."""
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        if generate_schemas:
            # Create tables that do not exist yet
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database at {db_url}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise


async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
