from enum import Enum

from stockledger.core.quantities import Number, format_quantity


class AlertSeverity(str, Enum):
    CRITICAL = "CRITICAL"  # Out of stock
    WARNING = "WARNING"    # At or below minimum stock
    NORMAL = "NORMAL"


def stock_severity(current_stock: Number, minimum_stock: Number) -> AlertSeverity:
    if current_stock == 0:
        return AlertSeverity.CRITICAL
    if current_stock <= minimum_stock:
        return AlertSeverity.WARNING
    return AlertSeverity.NORMAL


def alert_message(name: str, current_stock: Number, unit: str) -> str:
    if current_stock == 0:
        return f"{name} is out of stock"
    return f"{name} is running low ({format_quantity(current_stock)} {unit} remaining)"
