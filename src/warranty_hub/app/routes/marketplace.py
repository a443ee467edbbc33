"""Dealer marketplace and VIN lookup routes."""

from fastapi import APIRouter, Depends, Query

from warranty_hub.app.dependencies import (
    dealer_id_for,
    get_current_actor,
    get_repositories,
    get_vin_decoder,
)
from warranty_hub.domain.enums import ProductType
from warranty_hub.domain.schemas import Actor, DecodedVehicle, MarketplaceListing
from warranty_hub.infra.repositories import Repositories
from warranty_hub.services.marketplace import MarketplaceFilters, list_marketplace_products
from warranty_hub.services.vin_decoder import VinDecoder

router = APIRouter(prefix="/api", tags=["marketplace"])


@router.get("/vin/{vin}", response_model=DecodedVehicle)
async def decode_vin(
    vin: str,
    actor: Actor = Depends(get_current_actor),
    decoder: VinDecoder = Depends(get_vin_decoder),
):
    return await decoder.decode(vin)


@router.get("/marketplace/products", response_model=list[MarketplaceListing])
async def marketplace_products(
    vin: str = Query(..., description="VIN of the vehicle to match products against"),
    mileage_km: int | None = Query(default=None, ge=0),
    vehicle_class: str | None = None,
    provider_id: str | None = None,
    product_type: ProductType | None = None,
    q: str | None = None,
    max_vehicle_age_years: int | None = None,
    max_mileage_km: int | None = None,
    min_term_months: int | None = None,
    min_term_km: int | None = None,
    max_deductible_cents: int | None = None,
    max_price_cents: int | None = None,
    sort: str | None = Query(default=None, pattern="^(price_asc|price_desc)$"),
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
    decoder: VinDecoder = Depends(get_vin_decoder),
):
    """Published products the decoded vehicle is eligible for, priced with the dealer markup."""
    vehicle = await decoder.decode(vin)
    products = await repos.products.list_published()
    pricing_by_product = {
        product.id: await repos.pricing.list(product_id=product.id) for product in products
    }
    markup_pct = await repos.dealer_pricing.get_markup_pct(dealer_id_for(actor))
    filters = MarketplaceFilters(
        provider_id=provider_id,
        product_type=product_type,
        search=q,
        max_vehicle_age_years=max_vehicle_age_years,
        max_mileage_km=max_mileage_km,
        vehicle_class=vehicle_class,
        min_term_months=min_term_months,
        min_term_km=min_term_km,
        max_deductible_cents=max_deductible_cents,
        max_price_cents=max_price_cents,
        sort=sort,
    )
    return list_marketplace_products(
        products, pricing_by_product, vehicle, mileage_km, markup_pct, filters
    )
