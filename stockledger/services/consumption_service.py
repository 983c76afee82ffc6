import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from stockledger.core.context import RequestContext
from stockledger.core.errors import InventoryValidationError
from stockledger.core.quantities import format_quantity, to_quantity
from stockledger.models.inventory import InventoryItem
from stockledger.models.movement import MovementType
from stockledger.schemas.inventory import InventoryItemResponse
from stockledger.schemas.stock import (
    ConsumedIngredient,
    IngredientRequirement,
    IngredientShortage,
    OrderItemRequirement,
    RecipeConsumptionResult,
    StockValidationLine,
    StockValidationResult,
)
from stockledger.services.ledger import apply_movement, lock_items_by_name, run_ledger_transaction
from stockledger.services.outlet_service import get_active_outlet

log = logging.getLogger(__name__)


def total_requirements(ingredients: List[IngredientRequirement], quantity: int) -> Dict[str, Decimal]:
    """Per-ingredient totals for `quantity` units; repeated ingredients are summed."""
    required: Dict[str, Decimal] = {}
    for ingredient in ingredients:
        if ingredient.quantity_per_unit <= 0:
            raise InventoryValidationError(
                f"Quantity per unit for {ingredient.name} must be positive: "
                f"{format_quantity(ingredient.quantity_per_unit)}"
            )
        per_unit = to_quantity(ingredient.quantity_per_unit)
        required[ingredient.name] = required.get(ingredient.name, Decimal(0)) + per_unit * quantity
    return required


async def process_recipe_consumption(
    ctx: RequestContext,
    outlet_id: UUID,
    recipe_name: str,
    ingredients: List[IngredientRequirement],
    quantity: int = 1,
    recipe_id: Optional[str] = None,
) -> RecipeConsumptionResult:
    """
    Deducts every ingredient of `quantity` servings of a recipe, or none of them.

    All ingredient rows are locked (in id order) before availability is
    checked, so the check and the deductions see the same stock. If any
    ingredient is short, nothing is written and the shortages are returned.
    """
    if not ingredients:
        raise InventoryValidationError("Recipe must contain at least one ingredient")
    if quantity < 1:
        raise InventoryValidationError(f"Consumption quantity must be at least 1: {quantity}")

    required = total_requirements(ingredients, quantity)
    reference = recipe_id or recipe_name

    async def _consume():
        consumed: List[ConsumedIngredient] = []
        shortages: List[IngredientShortage] = []

        async with in_transaction() as conn:
            outlet = await get_active_outlet(ctx.tenant_id, outlet_id, conn)
            locked = await lock_items_by_name(conn, ctx.tenant_id, [outlet.id], list(required))
            by_name = {item.name: item for item in locked}

            for name, total in required.items():
                item = by_name.get(name)
                available = item.current_stock if item else Decimal(0)
                if available < total:
                    shortages.append(
                        IngredientShortage(name=name, required=total, available=available, shortage=total - available)
                    )
            if shortages:
                return consumed, shortages

            for name, total in required.items():
                item = by_name[name]
                movement = await apply_movement(
                    conn, item, MovementType.OUT, total,
                    reason=f"Recipe consumption: {recipe_name} x{quantity}",
                    reference=reference,
                    user_id=ctx.user_id,
                )
                consumed.append(
                    ConsumedIngredient(
                        item=InventoryItemResponse.model_validate(item),
                        consumed=total,
                        previous_stock=movement.previous_stock,
                        new_stock=movement.new_stock,
                    )
                )
        return consumed, shortages

    consumed, shortages = await run_ledger_transaction(_consume, f"consume recipe {recipe_name}")

    if shortages:
        log.warning(
            f"Recipe {recipe_name} x{quantity} rejected at outlet {outlet_id}: "
            f"short on {', '.join(s.name for s in shortages)}"
        )
    else:
        log.info(f"Recipe {recipe_name} x{quantity} consumed at outlet {outlet_id}: {len(consumed)} ingredients")

    return RecipeConsumptionResult(
        consumed=not shortages,
        recipe_id=recipe_id,
        recipe_name=recipe_name,
        outlet_id=outlet_id,
        quantity=quantity,
        consumed_items=consumed,
        insufficient_items=shortages,
        processed_at=timezone.now(),
    )


async def validate_stock_for_order(
    ctx: RequestContext,
    outlet_id: UUID,
    items: List[OrderItemRequirement],
) -> StockValidationResult:
    """Read-only fulfilment check; nothing is reserved or deducted."""
    names = [line.item_name for line in items]
    stock = {
        item.name: item.current_stock
        for item in await InventoryItem.filter(tenant_id=ctx.tenant_id, outlet_id=outlet_id, name__in=names)
    }

    lines = []
    for line in items:
        available = stock.get(line.item_name, Decimal(0))
        lines.append(
            StockValidationLine(
                item_name=line.item_name,
                quantity_required=line.quantity_required,
                available=available,
                can_fulfill=available >= line.quantity_required,
                shortage=max(Decimal(0), line.quantity_required - available),
            )
        )

    fulfillable = sum(1 for line in lines if line.can_fulfill)
    return StockValidationResult(
        can_fulfill=fulfillable == len(lines),
        items=lines,
        total_items=len(lines),
        available_items=fulfillable,
        unavailable_items=len(lines) - fulfillable,
    )
