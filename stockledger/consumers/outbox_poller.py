import asyncio
import logging
from typing import Awaitable, Callable, Dict

from stockledger.core.config import BATCH_SIZE, MAX_ATTEMPTS, POLLING_INTERVAL
from stockledger.core.db import init_db
from stockledger.core.logging_config import setup_logging
from stockledger.events.outbox_utility import (
    LOW_STOCK_ALERT_EVENT,
    PURCHASE_ORDER_CREATED_EVENT,
    PURCHASE_ORDER_STATUS_EVENT,
    STOCK_CHANGED_EVENT,
)
from stockledger.models.outbox import OutboxEvent

log = logging.getLogger(__name__)

Publisher = Callable[[OutboxEvent], Awaitable[None]]


async def publish_stock_changed(event: OutboxEvent):
    payload = event.payload
    log.info(
        f"STOCK UPDATE: item {payload.get('item_id')} at outlet {payload.get('outlet_id')} "
        f"now {payload.get('new_stock')} ({payload.get('movement_type')})"
    )


async def publish_low_stock_alert(event: OutboxEvent):
    payload = event.payload
    log.warning(f"LOW STOCK ALERT [{payload.get('severity')}]: {payload.get('message')}")


async def publish_purchase_order_event(event: OutboxEvent):
    payload = event.payload
    log.info(
        f"PURCHASE ORDER {payload.get('order_number')}: "
        f"{payload.get('old_status', 'NEW')} -> {payload.get('new_status', 'PENDING')}"
    )


PUBLISHERS: Dict[str, Publisher] = {
    STOCK_CHANGED_EVENT: publish_stock_changed,
    LOW_STOCK_ALERT_EVENT: publish_low_stock_alert,
    PURCHASE_ORDER_CREATED_EVENT: publish_purchase_order_event,
    PURCHASE_ORDER_STATUS_EVENT: publish_purchase_order_event,
}


async def dispatch_event(event: OutboxEvent):
    """
    Routes an OutboxEvent to the publisher for its type.
    Stands in for the broker that feeds the real-time notification layer.
    """
    log.debug(f"Poller DISPATCHING: {event.event_type} (ID: {event.id.hex[:8]}...)")
    publisher = PUBLISHERS.get(event.event_type)
    if publisher is None:
        log.warning(f"No publisher registered for event type: {event.event_type}")
        return
    await publisher(event)


async def poll_outbox_for_new_events():
    """
    Queries the Outbox table for unpublished events and attempts to dispatch them.
    Returns the number of events published.
    """
    # Select events that haven't been published and haven't exceeded max attempts
    events = await OutboxEvent.filter(published=False, attempts__lt=MAX_ATTEMPTS).limit(BATCH_SIZE).order_by('created_at')

    published = 0
    for event in events:
        try:
            await dispatch_event(event)
            event.published = True
            await event.save(update_fields=['published'])
            published += 1
        except Exception:
            event.attempts += 1
            await event.save(update_fields=['attempts'])
            log.exception(f"Failed to publish event {event.id} (attempt {event.attempts}/{MAX_ATTEMPTS})")
    return published


async def start_outbox_poller():
    """Main loop for the poller service."""
    await init_db()
    log.info("--- Outbox Poller Service Started ---")

    while True:
        try:
            await poll_outbox_for_new_events()
        except Exception as e:
            log.error(f"Poller encountered a critical DB error: {e}.")

        await asyncio.sleep(POLLING_INTERVAL)


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(start_outbox_poller())
    except KeyboardInterrupt:
        log.info("Poller service stopped.")
