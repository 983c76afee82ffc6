from tortoise import fields, models
import uuid


class ProcessedReceipt(models.Model):
    """
    Idempotency marker for supplier receipts. A receipt number is ingested at most
    once per tenant, so a resubmitted delivery cannot double-count stock.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.CharField(max_length=64)
    receipt_number = fields.CharField(max_length=128)
    outlet_id = fields.UUIDField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "processed_receipts"
        unique_together = (("tenant_id", "receipt_number"),)
