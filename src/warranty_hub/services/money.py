"""Integer-cents money arithmetic and dealer markup.

Pure-function module, NO storage access. All rounding is half away from zero
and happens exactly once on the final cents value.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

MAX_MARKUP_PCT = 200


def round_cents(value: Decimal) -> int:
    """Round a Decimal amount of cents to an integer, half away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_markup_pct(markup_pct: float | int | None) -> float:
    """Clamp a markup percentage into [0, 200]; non-finite input becomes 0."""
    if markup_pct is None:
        return 0
    try:
        value = float(markup_pct)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, min(MAX_MARKUP_PCT, value))


def cost_from_product_or_pricing(
    dealer_cost_cents: int | None = None,
    base_price_cents: int | None = None,
) -> int | None:
    """Dealer cost if present, else base price, else None."""
    if dealer_cost_cents is not None:
        return dealer_cost_cents
    if base_price_cents is not None:
        return base_price_cents
    return None


def cost_of(item) -> int | None:
    """`cost_from_product_or_pricing` for any object carrying both price fields."""
    return cost_from_product_or_pricing(
        getattr(item, "dealer_cost_cents", None),
        getattr(item, "base_price_cents", None),
    )


def retail_from_cost(cost_cents: int | None, markup_pct: float | int | None) -> int | None:
    """Dealer-facing retail price for a provider cost and a markup percentage."""
    if cost_cents is None:
        return None
    pct = Decimal(str(clamp_markup_pct(markup_pct)))
    return round_cents(Decimal(cost_cents) * (Decimal(1) + pct / Decimal(100)))


def margin_from_cost_and_retail(cost_cents: int | None, retail_cents: int | None) -> int | None:
    if cost_cents is None or retail_cents is None:
        return None
    return retail_cents - cost_cents


def margin_pct_from_cost_and_retail(
    cost_cents: int | None, retail_cents: int | None
) -> float | None:
    """Margin as a percentage of cost. None when cost is missing or not positive."""
    if cost_cents is None or retail_cents is None or cost_cents <= 0:
        return None
    return (retail_cents - cost_cents) / cost_cents * 100


def tax_from_subtotal(subtotal_cents: int, tax_rate: float) -> int:
    """Tax on a subtotal at a fractional rate (0.13 = 13%)."""
    return round_cents(Decimal(subtotal_cents) * Decimal(str(tax_rate)))
