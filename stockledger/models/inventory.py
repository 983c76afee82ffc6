from enum import Enum
from tortoise import fields, models
import uuid


class InventoryUnit(str, Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECE = "piece"
    DOZEN = "dozen"
    BOX = "box"
    BOTTLE = "bottle"
    PACK = "pack"


class InventoryItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.CharField(max_length=64)
    outlet = fields.ForeignKeyField("models.Outlet", related_name="inventory_items")
    name = fields.CharField(max_length=255)
    category = fields.CharField(max_length=128, null=True)
    unit = fields.CharField(max_length=16)
    current_stock = fields.DecimalField(max_digits=14, decimal_places=4, default=0)
    minimum_stock = fields.DecimalField(max_digits=14, decimal_places=4, default=0) # For low stock alert
    maximum_stock = fields.DecimalField(max_digits=14, decimal_places=4, null=True)
    unit_cost = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    supplier_id = fields.UUIDField(null=True)
    last_restocked = fields.DatetimeField(null=True)
    # Bumped by every stock write; conditional updates compare against it
    version = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "inventory_items"
        unique_together = (("tenant_id", "outlet", "name"),)
        indexes = [
            ("tenant_id", "outlet"),  # Outlet stock listings
            ("tenant_id", "category"),
        ]

    def __str__(self):
        return f"{self.name} ({self.current_stock} {self.unit})"
