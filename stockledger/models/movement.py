from enum import Enum
from tortoise import fields, models
import uuid

from stockledger.core.errors import InventoryValidationError


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"


class StockMovement(models.Model):
    """
    Append-only ledger entry. One row is written in the same transaction as
    every stock change; rows are never updated or deleted afterwards.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.CharField(max_length=64)
    # Plain ids (not FKs) so the audit trail outlives deleted items
    item_id = fields.UUIDField()
    item_name = fields.CharField(max_length=255)
    outlet_id = fields.UUIDField()
    type = fields.CharEnumField(MovementType, max_length=16)
    quantity = fields.DecimalField(max_digits=14, decimal_places=4) # Signed delta: negative for OUT / TRANSFER_OUT
    previous_stock = fields.DecimalField(max_digits=14, decimal_places=4)
    new_stock = fields.DecimalField(max_digits=14, decimal_places=4)
    reason = fields.CharField(max_length=255, null=True)
    reference = fields.CharField(max_length=128, null=True)
    user_id = fields.CharField(max_length=64, null=True)
    occurred_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "stock_movements"
        ordering = ["-occurred_at"]
        indexes = [
            ("tenant_id", "item_id"),
            ("tenant_id", "outlet_id"),
            ("occurred_at",),
        ]

    async def save(self, *args, **kwargs):
        if self._saved_in_db:
            raise InventoryValidationError("Stock movements are immutable once written.")
        await super().save(*args, **kwargs)

    async def delete(self, *args, **kwargs):
        raise InventoryValidationError("Stock movements cannot be deleted.")
