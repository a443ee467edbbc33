"""Input validation for provider catalog rows (pricing rows and add-ons).

Both persistence backends run these checks before writing.
"""

from __future__ import annotations

from warranty_hub.domain.errors import ValidationFailedError
from warranty_hub.domain.schemas import ProductAddon, ProductPricing


def _positive_or_unlimited(value: int | None, field: str) -> None:
    if value is not None and value <= 0:
        raise ValidationFailedError(f"{field} must be null (Unlimited) or a positive number")


def validate_pricing_row(row: ProductPricing) -> None:
    if not row.product_id.strip():
        raise ValidationFailedError("product_id is required")
    _positive_or_unlimited(row.term_months, "term_months")
    _positive_or_unlimited(row.term_km, "term_km")
    if row.deductible_cents < 0:
        raise ValidationFailedError("deductible_cents must be a number >= 0")
    if row.base_price_cents <= 0:
        raise ValidationFailedError("base_price_cents must be a positive number")
    if row.dealer_cost_cents is not None and row.dealer_cost_cents < 0:
        raise ValidationFailedError("dealer_cost_cents must be a non-negative number")
    if row.vehicle_mileage_min_km is not None and row.vehicle_mileage_min_km < 0:
        raise ValidationFailedError("vehicle_mileage_min_km must be a number >= 0")
    if row.vehicle_mileage_max_km is not None:
        if row.vehicle_mileage_max_km < 0:
            raise ValidationFailedError(
                "vehicle_mileage_max_km must be null (Unlimited) or a number >= 0"
            )
        if (
            row.vehicle_mileage_min_km is not None
            and row.vehicle_mileage_max_km < row.vehicle_mileage_min_km
        ):
            raise ValidationFailedError("vehicle_mileage_max_km must be >= vehicle_mileage_min_km")


def validate_addon(addon: ProductAddon) -> None:
    if not addon.product_id.strip():
        raise ValidationFailedError("product_id is required")
    if not addon.name.strip():
        raise ValidationFailedError("name is required")
    if addon.base_price_cents <= 0:
        raise ValidationFailedError("base_price_cents must be a positive number")
    if addon.min_price_cents is not None and addon.min_price_cents < 0:
        raise ValidationFailedError("min_price_cents must be a non-negative number")
    if addon.max_price_cents is not None and addon.max_price_cents < 0:
        raise ValidationFailedError("max_price_cents must be a non-negative number")
    if (
        addon.min_price_cents is not None
        and addon.max_price_cents is not None
        and addon.max_price_cents < addon.min_price_cents
    ):
        raise ValidationFailedError("max_price_cents must be >= min_price_cents")
    if addon.dealer_cost_cents is not None and addon.dealer_cost_cents < 0:
        raise ValidationFailedError("dealer_cost_cents must be a non-negative number")


def clean_allowlist(values: list[str] | None) -> list[str] | None:
    """Trim entries; an empty allowlist is stored as None (unrestricted)."""
    if values is None:
        return None
    cleaned = [v.strip() for v in values if v and v.strip()]
    return cleaned or None
