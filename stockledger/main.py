import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status

from stockledger.api.v1.alerts import router as alerts_router
from stockledger.api.v1.inventory import router as inventory_router
from stockledger.api.v1.outlets import router as outlets_router
from stockledger.api.v1.purchase_orders import router as purchase_orders_router
from stockledger.api.v1.stock import router as stock_router
from stockledger.core.config import PROJECT_NAME, VERSION
from stockledger.core.db import close_db, init_db
from stockledger.core.exception_handlers import setup_exception_handlers
from stockledger.core.logging_config import setup_logging

setup_logging()
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db()  # Connect to DB and generate schemas
    yield
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(outlets_router, prefix="/api/v1/outlets", tags=["Outlets"])
app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory"])
app.include_router(stock_router, prefix="/api/v1/stock", tags=["Stock Ledger"])
app.include_router(purchase_orders_router, prefix="/api/v1/purchase-orders", tags=["Purchase Orders"])
app.include_router(alerts_router, prefix="/api/v1/alerts", tags=["Alerts"])

setup_exception_handlers(app)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
