from tortoise import fields, models
import uuid


class Outlet(models.Model):
    """A physical restaurant location; inventory is tracked per outlet."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.CharField(max_length=64)
    name = fields.CharField(max_length=255)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "outlets"
        indexes = [
            ("tenant_id",),
            ("tenant_id", "is_active"),  # Composite: tenant's active outlets
        ]
