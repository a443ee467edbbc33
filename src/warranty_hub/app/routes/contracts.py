"""Contract routes: drafting, pricing, add-ons and sale."""

from fastapi import APIRouter, Depends, Query, status

from warranty_hub.app.dependencies import (
    DEALER_ROLES,
    dealer_id_for,
    get_contract_workflow,
    get_current_actor,
    get_repositories,
    get_vin_decoder,
    require_roles,
)
from warranty_hub.domain.enums import ActorRole, ContractStatus
from warranty_hub.domain.errors import UnauthorizedError, ValidationFailedError
from warranty_hub.domain.schemas import (
    Actor,
    AddonSelectionRequest,
    Contract,
    ContractCreate,
    ContractUpdate,
    PricingSelectionRequest,
    VehicleDecodeRequest,
)
from warranty_hub.infra.repositories import Repositories
from warranty_hub.services.contract_workflow import ContractWorkflow
from warranty_hub.services.vin_decoder import VinDecoder

router = APIRouter(prefix="/api/contracts", tags=["contracts"])

dealer_only = require_roles(*DEALER_ROLES, ActorRole.ADMIN)


def _can_read(contract: Contract, actor: Actor) -> bool:
    if actor.role == ActorRole.ADMIN:
        return True
    if actor.role == ActorRole.PROVIDER:
        return contract.provider_id == actor.user_id
    return contract.created_by_user_id == actor.user_id


async def _load_owned(repos: Repositories, contract_id: str, actor: Actor) -> Contract:
    """Load a contract the actor may modify."""
    contract = await repos.contracts.require(contract_id)
    if actor.role != ActorRole.ADMIN and contract.created_by_user_id != actor.user_id:
        raise UnauthorizedError("Not authorized")
    return contract


@router.get("", response_model=list[Contract])
async def list_contracts(
    status_filter: ContractStatus | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    """List contracts visible to the actor, newest first."""
    if actor.role == ActorRole.ADMIN:
        return await repos.contracts.list(status=status_filter)
    if actor.role == ActorRole.PROVIDER:
        return await repos.contracts.list(status=status_filter, provider_id=actor.user_id)
    return await repos.contracts.list(status=status_filter, created_by_user_id=actor.user_id)


@router.post("", response_model=Contract, status_code=status.HTTP_201_CREATED)
async def create_contract(
    data: ContractCreate,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.contracts.create(data, actor)


@router.get("/{contract_id}", response_model=Contract)
async def get_contract(
    contract_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    contract = await repos.contracts.require(contract_id)
    if not _can_read(contract, actor):
        raise UnauthorizedError("Not authorized")
    return contract


@router.patch("/{contract_id}", response_model=Contract)
async def update_contract(
    contract_id: str,
    data: ContractUpdate,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
):
    """Edit customer and vehicle details while the contract is a draft."""
    await _load_owned(repos, contract_id, actor)
    return await repos.contracts.update(contract_id, data.model_dump(exclude_unset=True))


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(
    contract_id: str,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
):
    await repos.contracts.remove(contract_id, actor)


@router.post("/{contract_id}/vehicle", response_model=Contract)
async def decode_vehicle(
    contract_id: str,
    data: VehicleDecodeRequest,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
    decoder: VinDecoder = Depends(get_vin_decoder),
    workflow: ContractWorkflow = Depends(get_contract_workflow),
):
    """Decode a VIN and copy the vehicle onto the contract."""
    await _load_owned(repos, contract_id, actor)
    decoded = await decoder.decode(data.vin)
    return await workflow.apply_decoded_vehicle(contract_id, decoded, data.vehicle_mileage_km)


@router.post("/{contract_id}/pricing", response_model=Contract)
async def select_pricing(
    contract_id: str,
    data: PricingSelectionRequest,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
    workflow: ContractWorkflow = Depends(get_contract_workflow),
):
    await _load_owned(repos, contract_id, actor)
    row = await repos.pricing.require(data.product_pricing_id)
    product = await repos.products.get(row.product_id)
    if product is None or not product.published:
        raise ValidationFailedError("Pricing option belongs to a product that is not published")
    markup_pct = await repos.dealer_pricing.get_markup_pct(dealer_id_for(actor))
    addons = await repos.addons.list(product_id=row.product_id)
    return await workflow.select_pricing(contract_id, row, markup_pct, addons, data.vehicle_class)


@router.post("/{contract_id}/pricing/default", response_model=Contract)
async def select_default_pricing(
    contract_id: str,
    vehicle_class: str | None = Query(default=None),
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
    workflow: ContractWorkflow = Depends(get_contract_workflow),
):
    """Select the default eligible pricing row when none is chosen yet."""
    contract = await _load_owned(repos, contract_id, actor)
    if not contract.product_id:
        return contract
    rows = await repos.pricing.list(product_id=contract.product_id)
    markup_pct = await repos.dealer_pricing.get_markup_pct(dealer_id_for(actor))
    addons = await repos.addons.list(product_id=contract.product_id)
    updated = await workflow.auto_select_default_pricing(
        contract_id, rows, markup_pct, vehicle_class, addons
    )
    return updated or contract


@router.put("/{contract_id}/addons", response_model=Contract)
async def set_addons(
    contract_id: str,
    data: AddonSelectionRequest,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
    workflow: ContractWorkflow = Depends(get_contract_workflow),
):
    """Replace the add-on selection; the new snapshot is persisted immediately."""
    contract = await _load_owned(repos, contract_id, actor)
    addons = await repos.addons.list(product_id=contract.product_id) if contract.product_id else []
    markup_pct = await repos.dealer_pricing.get_markup_pct(dealer_id_for(actor))
    return await workflow.set_addon_selection(contract_id, data.addon_ids, addons, markup_pct)


@router.post("/{contract_id}/submit", response_model=Contract)
async def submit_contract(
    contract_id: str,
    actor: Actor = Depends(dealer_only),
    repos: Repositories = Depends(get_repositories),
    workflow: ContractWorkflow = Depends(get_contract_workflow),
):
    """Validate the draft and mark it SOLD."""
    contract = await _load_owned(repos, contract_id, actor)
    pricing = None
    if contract.product_pricing_id:
        pricing = await repos.pricing.get(contract.product_pricing_id)
    return await workflow.submit(contract_id, actor, pricing)
