"""Dealer marketplace: published products a decoded vehicle is eligible for."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from warranty_hub.domain.enums import ProductType
from warranty_hub.domain.schemas import MarketplaceListing, Product, ProductPricing
from warranty_hub.services.eligibility import (
    VehicleLike,
    is_pricing_eligible_with_constraints,
    is_product_eligible,
    normalize_text,
)
from warranty_hub.services.money import (
    cost_from_product_or_pricing,
    margin_from_cost_and_retail,
    margin_pct_from_cost_and_retail,
    retail_from_cost,
)
from warranty_hub.services.pricing_selector import default_pricing_row


@dataclass(frozen=True)
class MarketplaceFilters:
    provider_id: str | None = None
    product_type: ProductType | None = None
    search: str | None = None
    max_vehicle_age_years: int | None = None
    max_mileage_km: int | None = None
    vehicle_class: str | None = None
    min_term_months: int | None = None
    min_term_km: int | None = None
    max_deductible_cents: int | None = None
    max_price_cents: int | None = None
    sort: str | None = None  # "price_asc" | "price_desc"


def shown_cost_cents(product: Product, primary: ProductPricing | None) -> int | None:
    """Cost of the primary pricing row, falling back to the product's own prices."""
    if primary is not None:
        dealer_cost = primary.dealer_cost_cents
        if dealer_cost is None:
            dealer_cost = product.dealer_cost_cents
        return cost_from_product_or_pricing(dealer_cost, primary.base_price_cents)
    return cost_from_product_or_pricing(product.dealer_cost_cents, product.base_price_cents)


def _matches_filters(product: Product, filters: MarketplaceFilters) -> bool:
    if filters.provider_id and product.provider_id != filters.provider_id.strip():
        return False
    if filters.product_type and product.product_type != filters.product_type:
        return False
    query = normalize_text(filters.search)
    if query:
        haystack = normalize_text(
            f"{product.name} {product.coverage_details or ''} {product.exclusions or ''}"
        )
        if query not in haystack:
            return False
    if filters.max_vehicle_age_years is not None:
        limit = product.eligibility_max_vehicle_age_years
        if limit is not None and limit > filters.max_vehicle_age_years:
            return False
    if filters.max_mileage_km is not None:
        limit = product.eligibility_max_mileage_km
        if limit is not None and limit > filters.max_mileage_km:
            return False
    return True


def list_marketplace_products(
    products: Sequence[Product],
    pricing_by_product: Mapping[str, Sequence[ProductPricing]],
    vehicle: VehicleLike,
    mileage_km: int | None,
    markup_pct: float,
    filters: MarketplaceFilters | None = None,
    current_year: int | None = None,
) -> list[MarketplaceListing]:
    """Published products eligible for `vehicle`, each with its shown retail price and margin.

    A product is listed only when at least one of its pricing rows is
    eligible; mileage is required for that check.
    """
    filters = filters or MarketplaceFilters()
    if mileage_km is None:
        return []

    listings = []
    for product in products:
        if not product.published:
            continue
        if not is_product_eligible(product, vehicle, mileage_km, current_year):
            continue
        if not _matches_filters(product, filters):
            continue

        eligible_rows = [
            row
            for row in pricing_by_product.get(product.id, [])
            if is_pricing_eligible_with_constraints(
                row,
                mileage_km,
                filters.vehicle_class,
                filters.min_term_months,
                filters.min_term_km,
                filters.max_deductible_cents,
            )
        ]
        primary = default_pricing_row(eligible_rows)
        if primary is None:
            continue

        cost = shown_cost_cents(product, primary)
        retail = retail_from_cost(cost, markup_pct)
        if retail is None:
            retail = cost
        if filters.max_price_cents is not None and (retail is None or retail > filters.max_price_cents):
            continue

        listings.append(
            MarketplaceListing(
                product=product,
                cost_cents=cost,
                retail_cents=retail,
                margin_cents=margin_from_cost_and_retail(cost, retail),
                margin_pct=margin_pct_from_cost_and_retail(cost, retail),
                pricing_rows=eligible_rows,
            )
        )

    if filters.sort in ("price_asc", "price_desc"):
        direction = 1 if filters.sort == "price_asc" else -1
        listings.sort(
            key=lambda listing: (
                direction * (listing.retail_cents if listing.retail_cents is not None else 2**53),
                listing.product.name,
            )
        )
    return listings
