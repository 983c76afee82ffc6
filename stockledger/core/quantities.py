from decimal import Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

# Column precision of stock quantities and money amounts
QUANTITY_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")


def to_quantity(value: Number) -> Decimal:
    """Stock quantity at column precision. Floats go through str() so 0.1 stays 0.1."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTITY_PLACES)


def to_money(value: Number) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_PLACES)


def format_quantity(value: Number) -> str:
    # 4.0000 -> "4", 2.5000 -> "2.5"
    return f"{Decimal(str(value)).normalize():f}"
