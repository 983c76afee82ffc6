from tortoise import fields, models
import uuid


class OutboxEvent(models.Model):
    """
    The Outbox table stores events atomically with the stock change that caused them.
    The poller later hands them to the real-time layer.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    aggregate_type = fields.CharField(max_length=64) # e.g., 'inventory_item', 'purchase_order'
    aggregate_id = fields.UUIDField(null=True) # ID of the entity that generated the event
    event_type = fields.CharField(max_length=128) # e.g., 'inventory.stock_changed.v1'
    payload = fields.JSONField() # The actual event data
    published = fields.BooleanField(default=False)
    attempts = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "outbox_events"
        indexes = [
            ("published", "created_at"),  # Poller scan
        ]
