"""
Order pricing: subtotal, delivery charge, tax and grand total.
"""

from typing import Iterable, NamedTuple, Tuple

from config import Settings


class OrderTotals(NamedTuple):
    subtotal: float
    delivery_charge: float
    tax: float
    total: float


def calculate_totals(lines: Iterable[Tuple[float, int]], settings: Settings) -> OrderTotals:
    """Price `(unit_price, quantity)` pairs.

    Delivery is free once the subtotal reaches the configured threshold,
    otherwise a flat fee applies. Tax is a flat rate on the subtotal.
    Amounts are rounded to two decimals here so stored and displayed values agree.
    """
    subtotal = round(sum(price * qty for price, qty in lines), 2)
    delivery_charge = 0.0 if subtotal >= settings.free_delivery_threshold else float(settings.delivery_charge)
    tax = round(subtotal * settings.tax_rate, 2)
    total = round(subtotal + delivery_charge + tax, 2)
    return OrderTotals(subtotal, delivery_charge, tax, total)


def format_amount(amount: float) -> str:
    return f"{amount:.2f}"
