from enum import Enum
from tortoise import fields, models
import uuid


class PurchaseOrderStatus(str, Enum):
    PENDING = "PENDING"  # Draft generated, waiting for approval
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"  # Sent to supplier
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseOrder(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=64, unique=True)
    tenant_id = fields.CharField(max_length=64)
    outlet_id = fields.UUIDField()
    supplier_id = fields.UUIDField()
    status = fields.CharEnumField(PurchaseOrderStatus, default=PurchaseOrderStatus.PENDING)
    total_value = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    notes = fields.TextField(null=True)
    expected_delivery = fields.DatetimeField()
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "purchase_orders"
        indexes = [
            ("tenant_id", "status"),
            ("tenant_id", "outlet_id"),
            ("created_at",),
        ]


class PurchaseOrderItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.PurchaseOrder", related_name="items")
    item_name = fields.CharField(max_length=255)
    quantity_ordered = fields.DecimalField(max_digits=14, decimal_places=4)
    estimated_unit_cost = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_cost = fields.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        table = "purchase_order_items"
        indexes = [
            ("order_id",),
        ]
