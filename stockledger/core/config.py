import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/inventory_db")

# Application Metadata
PROJECT_NAME = "Restaurant Inventory Ledger"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Outbox Poller Configuration (publishes stock events to the real-time layer)
POLLING_INTERVAL = int(os.getenv("POLLING_INTERVAL", 1)) # Poller checks for new events every N seconds
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 5)) # Max retries for an event
BATCH_SIZE = int(os.getenv("BATCH_SIZE", 50)) # How many events to fetch per poll

# Stock Ledger
STOCK_UPDATE_MAX_RETRIES = int(os.getenv("STOCK_UPDATE_MAX_RETRIES", 3)) # Retries after a version conflict
# "allow": ADJUSTMENT may set stock below minimum (an alert event is still emitted)
# "reject": ADJUSTMENT below minimum is a validation error
ADJUSTMENT_BELOW_MINIMUM = os.getenv("ADJUSTMENT_BELOW_MINIMUM", "allow").lower()

# Attributes of items created implicitly by a stock receipt
DEFAULT_MINIMUM_STOCK = Decimal(os.getenv("DEFAULT_MINIMUM_STOCK", "10"))
DEFAULT_UNIT = os.getenv("DEFAULT_UNIT", "piece")
DEFAULT_CATEGORY = os.getenv("DEFAULT_CATEGORY", "General")

# Purchase orders
PURCHASE_ORDER_DELIVERY_DAYS = 7
