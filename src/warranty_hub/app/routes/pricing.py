"""Pricing row and add-on routes."""

from fastapi import APIRouter, Depends, status

from warranty_hub.app.dependencies import get_current_actor, get_repositories, require_roles
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.errors import UnauthorizedError
from warranty_hub.domain.schemas import (
    Actor,
    ProductAddon,
    ProductAddonCreate,
    ProductAddonUpdate,
    ProductPricing,
    ProductPricingCreate,
)
from warranty_hub.infra.repositories import Repositories

router = APIRouter(prefix="/api", tags=["pricing"])

providers = require_roles(ActorRole.PROVIDER)


async def _require_own_product(repos: Repositories, product_id: str, actor: Actor) -> None:
    product = await repos.products.require(product_id)
    if product.provider_id != actor.user_id:
        raise UnauthorizedError("Not authorized")


# ---------------------------------------------------------------------------
# Pricing rows
# ---------------------------------------------------------------------------


@router.get("/products/{product_id}/pricing", response_model=list[ProductPricing])
async def list_pricing(
    product_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.pricing.list(product_id=product_id, actor=actor)


@router.post("/pricing", response_model=ProductPricing, status_code=status.HTTP_201_CREATED)
async def create_pricing(
    data: ProductPricingCreate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await _require_own_product(repos, data.product_id, actor)
    return await repos.pricing.create(data, actor)


@router.delete("/pricing/{pricing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pricing(
    pricing_id: str,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await repos.pricing.remove(pricing_id, actor)


# ---------------------------------------------------------------------------
# Add-ons
# ---------------------------------------------------------------------------


@router.get("/products/{product_id}/addons", response_model=list[ProductAddon])
async def list_addons(
    product_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    addons = await repos.addons.list(product_id=product_id, actor=actor)
    if actor.role in (ActorRole.PROVIDER, ActorRole.ADMIN):
        return addons
    return [addon for addon in addons if addon.active]


@router.post("/addons", response_model=ProductAddon, status_code=status.HTTP_201_CREATED)
async def create_addon(
    data: ProductAddonCreate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await _require_own_product(repos, data.product_id, actor)
    return await repos.addons.create(data, actor)


@router.patch("/addons/{addon_id}", response_model=ProductAddon)
async def update_addon(
    addon_id: str,
    data: ProductAddonUpdate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.addons.update(addon_id, data.model_dump(exclude_unset=True), actor)


@router.delete("/addons/{addon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_addon(
    addon_id: str,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await repos.addons.remove(addon_id, actor)
