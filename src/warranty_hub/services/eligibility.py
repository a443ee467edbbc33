"""Eligibility predicates for products and pricing rows.

Pure-function module, NO storage access.

A product or pricing row is eligible for a vehicle only when every predicate
it defines passes. An absent limit always passes; a defined limit that cannot
be evaluated (unparsable year, unknown odometer) fails.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

from warranty_hub.domain.schemas import Product, ProductPricing

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class VehicleLike(Protocol):
    vehicle_year: str | None
    vehicle_make: str | None
    vehicle_model: str | None
    vehicle_trim: str | None


def normalize_text(value: str | None) -> str:
    """Lowercase and collapse every run of non-alphanumerics into one space."""
    if not value:
        return ""
    return _NON_ALNUM.sub(" ", value.lower()).strip()


def _parse_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not re.fullmatch(r"-?\d+", text):
        return None
    return int(text)


def _parse_mileage(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        mileage = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(mileage):
        return None
    return mileage


def vehicle_age_years(vehicle_year, current_year: int | None = None) -> int | None:
    """Age of a vehicle in whole model years, or None if the year is unparsable."""
    year = _parse_int(vehicle_year)
    if year is None:
        return None
    if current_year is None:
        current_year = datetime.now(timezone.utc).year
    return current_year - year


# ---------------------------------------------------------------------------
# Product predicates
# ---------------------------------------------------------------------------


def is_eligible_by_age(
    max_age_years: int | None, vehicle_year, current_year: int | None = None
) -> bool:
    if max_age_years is None:
        return True
    age = vehicle_age_years(vehicle_year, current_year)
    if age is None:
        return False
    return age <= max_age_years


def is_eligible_by_mileage(max_mileage_km: int | None, mileage_km) -> bool:
    if max_mileage_km is None:
        return True
    mileage = _parse_mileage(mileage_km)
    if mileage is None:
        return False
    return mileage <= max_mileage_km


def _clean_allowlist(allowlist: Iterable[str] | None) -> list[str]:
    if not allowlist:
        return []
    return [entry for entry in (normalize_text(item) for item in allowlist) if entry]


def matches_allowlist(allowlist: Iterable[str] | None, value: str | None) -> bool:
    """Exact normalized membership; an empty allowlist is unrestricted."""
    entries = _clean_allowlist(allowlist)
    if not entries:
        return True
    normalized = normalize_text(value)
    if not normalized:
        return False
    return normalized in entries


def matches_trim_allowlist(allowlist: Iterable[str] | None, trim: str | None) -> bool:
    """Substring match in either direction to tolerate partial trim strings."""
    entries = _clean_allowlist(allowlist)
    if not entries:
        return True
    normalized = normalize_text(trim)
    if not normalized:
        return False
    return any(entry in normalized or normalized in entry for entry in entries)


def is_eligible_by_allowlists(product: Product, vehicle: VehicleLike) -> bool:
    return (
        matches_allowlist(product.eligibility_make_allowlist, vehicle.vehicle_make)
        and matches_allowlist(product.eligibility_model_allowlist, vehicle.vehicle_model)
        and matches_trim_allowlist(product.eligibility_trim_allowlist, vehicle.vehicle_trim)
    )


def is_product_eligible(
    product: Product,
    vehicle: VehicleLike,
    mileage_km,
    current_year: int | None = None,
) -> bool:
    """True when the product's age, mileage and allowlist rules all pass."""
    return (
        is_eligible_by_age(
            product.eligibility_max_vehicle_age_years, vehicle.vehicle_year, current_year
        )
        and is_eligible_by_mileage(product.eligibility_max_mileage_km, mileage_km)
        and is_eligible_by_allowlists(product, vehicle)
    )


# ---------------------------------------------------------------------------
# Pricing row predicates
# ---------------------------------------------------------------------------


def is_pricing_eligible(
    pricing: ProductPricing,
    mileage_km,
    vehicle_class: str | None = None,
) -> bool:
    """Mileage band and vehicle class check for one pricing row."""
    mileage = _parse_mileage(mileage_km)
    if mileage is None or mileage < 0:
        return False

    min_km = pricing.vehicle_mileage_min_km or 0
    if mileage < min_km:
        return False
    if pricing.vehicle_mileage_max_km is not None and mileage > pricing.vehicle_mileage_max_km:
        return False

    row_class = (pricing.vehicle_class or "").strip()
    if row_class:
        wanted = (vehicle_class or "").strip()
        if not wanted or wanted != row_class:
            return False
    return True


def is_pricing_eligible_with_constraints(
    pricing: ProductPricing,
    mileage_km,
    vehicle_class: str | None = None,
    min_term_months: int | None = None,
    min_term_km: int | None = None,
    max_deductible_cents: int | None = None,
) -> bool:
    """`is_pricing_eligible` plus dealer-side term and deductible filters.

    An unlimited term (None) always satisfies a minimum.
    """
    if not is_pricing_eligible(pricing, mileage_km, vehicle_class):
        return False
    if min_term_months is not None and pricing.term_months is not None:
        if pricing.term_months < min_term_months:
            return False
    if min_term_km is not None and pricing.term_km is not None:
        if pricing.term_km < min_term_km:
            return False
    if max_deductible_cents is not None and pricing.deductible_cents > max_deductible_cents:
        return False
    return True


def eligible_pricing_rows(
    rows: Sequence[ProductPricing],
    mileage_km,
    vehicle_class: str | None = None,
) -> list[ProductPricing]:
    """Filter rows by mileage band and class; unknown mileage leaves rows unfiltered."""
    if mileage_km is None:
        return list(rows)
    return [row for row in rows if is_pricing_eligible(row, mileage_km, vehicle_class)]
