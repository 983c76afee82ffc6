from typing import Dict, Any, Optional
from stockledger.models.outbox import OutboxEvent
from uuid import UUID

STOCK_CHANGED_EVENT = "inventory.stock_changed.v1"
LOW_STOCK_ALERT_EVENT = "inventory.low_stock_alert.v1"
PURCHASE_ORDER_CREATED_EVENT = "purchase_order.created.v1"
PURCHASE_ORDER_STATUS_EVENT = "purchase_order.status_changed.v1"


async def create_outbox_event(
    aggregate_type: str,
    aggregate_id: Optional[UUID],
    event_type: str,
    payload: Dict[str, Any],
    conn: Any = None
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    Passing 'conn' ensures the event is created atomically with the stock change.
    """
    return await OutboxEvent.create(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        published=False,
        attempts=0,
        using_db=conn
    )
