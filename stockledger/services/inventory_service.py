import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from tortoise.exceptions import BaseORMException
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from stockledger.core.context import RequestContext
from stockledger.core.errors import (
    InventoryError,
    InventoryValidationError,
    ResourceNotFoundError,
    StockConflictError,
)
from stockledger.models.inventory import InventoryItem
from stockledger.models.movement import MovementType
from stockledger.schemas.inventory import (
    BulkImportError,
    BulkImportResult,
    BulkImportSummary,
    CategoryBreakdown,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryStatistics,
    PageMeta,
    StockLevels,
)
from stockledger.services.alerts import AlertSeverity, stock_severity
from stockledger.services.ledger import apply_movement, create_item_record, lock_item, run_ledger_transaction
from stockledger.services.outlet_service import get_active_outlet

log = logging.getLogger(__name__)

ORDERABLE_FIELDS = {"name", "current_stock", "minimum_stock", "unit_cost", "created_at"}
NULLABLE_FIELDS = {"category", "maximum_stock", "supplier_id"}


async def create_item(ctx: RequestContext, data: InventoryItemCreate) -> InventoryItem:
    """Creates an item; a positive initial stock is booked as an IN movement from zero."""

    async def _create():
        async with in_transaction() as conn:
            outlet = await get_active_outlet(ctx.tenant_id, data.outlet_id, conn)
            exists = await InventoryItem.filter(
                tenant_id=ctx.tenant_id, outlet_id=outlet.id, name=data.name
            ).using_db(conn).exists()
            if exists:
                raise InventoryValidationError(f"Inventory item '{data.name}' already exists in outlet {outlet.id}")

            item = await create_item_record(
                conn,
                tenant_id=ctx.tenant_id,
                outlet=outlet,
                name=data.name,
                category=data.category,
                unit=data.unit.value,
                minimum_stock=data.minimum_stock,
                maximum_stock=data.maximum_stock,
                unit_cost=data.unit_cost,
                supplier_id=data.supplier_id,
            )
            if data.current_stock > 0:
                await apply_movement(
                    conn, item, MovementType.IN, data.current_stock,
                    reason="Initial stock", user_id=ctx.user_id,
                )
        return item

    item = await run_ledger_transaction(_create, "create inventory item")
    log.info(f"Inventory item {item.id} ({item.name}) created in outlet {item.outlet_id}")
    return item


async def get_item(ctx: RequestContext, item_id: UUID) -> InventoryItem:
    item = await InventoryItem.get_or_none(id=item_id, tenant_id=ctx.tenant_id)
    if not item:
        raise ResourceNotFoundError("Inventory item", item_id)
    return item


async def update_item(ctx: RequestContext, item_id: UUID, data: InventoryItemUpdate) -> InventoryItem:
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    new_stock = changes.pop("current_stock", None)
    if "unit" in changes:
        changes["unit"] = changes["unit"].value

    async def _update():
        async with in_transaction() as conn:
            item = await lock_item(conn, ctx.tenant_id, item_id)

            minimum = changes.get("minimum_stock", item.minimum_stock)
            maximum = changes.get("maximum_stock", item.maximum_stock)
            if maximum is not None and minimum is not None and maximum < minimum:
                raise InventoryValidationError("Maximum stock cannot be less than minimum stock")

            if "name" in changes and changes["name"] != item.name:
                taken = await InventoryItem.filter(
                    tenant_id=ctx.tenant_id, outlet_id=item.outlet_id, name=changes["name"]
                ).using_db(conn).exists()
                if taken:
                    raise InventoryValidationError(f"Inventory item '{changes['name']}' already exists in this outlet")

            if changes:
                # Same version guard as apply_movement
                updated = await InventoryItem.filter(id=item.id, version=item.version).using_db(conn).update(
                    version=F("version") + 1, **changes
                )
                if not updated:
                    raise StockConflictError(f"Inventory item {item.id} was modified concurrently")
                await item.refresh_from_db(using_db=conn)

            if new_stock is not None and new_stock != item.current_stock:
                # Stock never changes outside the ledger
                await apply_movement(
                    conn, item, MovementType.ADJUSTMENT, new_stock,
                    reason="Item update", user_id=ctx.user_id,
                )
        return item

    return await run_ledger_transaction(_update, "update inventory item")


async def delete_item(ctx: RequestContext, item_id: UUID) -> None:
    deleted = await InventoryItem.filter(id=item_id, tenant_id=ctx.tenant_id).delete()
    if not deleted:
        raise ResourceNotFoundError("Inventory item", item_id)
    log.info(f"Inventory item {item_id} deleted; its ledger history is retained")


async def list_items(
    ctx: RequestContext,
    outlet_id: Optional[UUID] = None,
    category: Optional[str] = None,
    low_stock: bool = False,
    search: Optional[str] = None,
    order_by: str = "name",
    order_direction: str = "ASC",
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[InventoryItem], PageMeta]:
    if order_by not in ORDERABLE_FIELDS:
        raise InventoryValidationError(f"Cannot order by '{order_by}'")
    if order_direction.upper() not in ("ASC", "DESC"):
        raise InventoryValidationError("Order direction must be ASC or DESC")
    if page < 1 or limit < 1:
        raise InventoryValidationError("Page and limit must be positive")

    query = InventoryItem.filter(tenant_id=ctx.tenant_id)
    if outlet_id:
        query = query.filter(outlet_id=outlet_id)
    if category:
        query = query.filter(category=category)
    if search:
        query = query.filter(name__icontains=search)
    ordering = order_by if order_direction.upper() == "ASC" else f"-{order_by}"
    offset = (page - 1) * limit

    if low_stock:
        # current_stock <= minimum_stock, compared per row
        matching = [
            item for item in await query.order_by(ordering, "id")
            if item.current_stock <= item.minimum_stock
        ]
        total = len(matching)
        items = matching[offset:offset + limit]
    else:
        total = await query.count()
        items = await query.order_by(ordering, "id").offset(offset).limit(limit)

    return items, PageMeta.build(total, page, limit)


async def get_statistics(ctx: RequestContext, outlet_id: Optional[UUID] = None) -> InventoryStatistics:
    """Read-only snapshot: the same stored state always yields the same figures."""
    query = InventoryItem.filter(tenant_id=ctx.tenant_id)
    if outlet_id:
        query = query.filter(outlet_id=outlet_id)
    items = await query.order_by("id")

    levels = StockLevels()
    breakdown: Dict[str, CategoryBreakdown] = {}
    total_value = Decimal(0)

    for item in items:
        value = item.current_stock * (item.unit_cost or Decimal(0))
        total_value += value

        category = item.category or "Uncategorized"
        entry = breakdown.setdefault(category, CategoryBreakdown())
        entry.count += 1
        entry.total_value += value

        severity = stock_severity(item.current_stock, item.minimum_stock)
        if severity == AlertSeverity.CRITICAL:
            levels.critical += 1
            entry.low_stock_count += 1
        elif severity == AlertSeverity.WARNING:
            levels.low += 1
            entry.low_stock_count += 1
        else:
            levels.normal += 1

    return InventoryStatistics(
        total_items=len(items),
        low_stock_items=levels.critical + levels.low,
        out_of_stock_items=levels.critical,
        total_value=total_value,
        category_breakdown=breakdown,
        stock_levels=levels,
    )


async def bulk_import_items(ctx: RequestContext, raw_items: List[Dict[str, Any]]) -> BulkImportResult:
    """
    Best-effort import: each entry is validated and created on its own, and a
    failure is recorded against its index without aborting the rest.
    """
    imported = []
    errors = []

    for index, raw in enumerate(raw_items):
        try:
            data = InventoryItemCreate.model_validate(raw)
            item = await create_item(ctx, data)
            imported.append(InventoryItemResponse.model_validate(item))
        except PydanticValidationError as e:
            errors.append(BulkImportError(index=index, item=raw, error=_first_error(e)))
        except (InventoryError, BaseORMException) as e:
            errors.append(BulkImportError(index=index, item=raw, error=str(e)))

    if errors:
        log.warning(f"Bulk import for tenant {ctx.tenant_id}: {len(errors)}/{len(raw_items)} items failed")

    return BulkImportResult(
        imported=imported,
        errors=errors,
        summary=BulkImportSummary(total=len(raw_items), successful=len(imported), failed=len(errors)),
    )


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err['msg']}" if location else err["msg"]
