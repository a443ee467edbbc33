"""FastAPI dependencies: composed services and the current actor."""

from fastapi import Depends, HTTPException, Request, status

from warranty_hub.app.config import Settings
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.schemas import Actor
from warranty_hub.infra.repositories import Repositories
from warranty_hub.services.auth_service import actor_from_token
from warranty_hub.services.contract_workflow import ContractWorkflow
from warranty_hub.services.remittance_workflow import RemittanceWorkflow
from warranty_hub.services.vin_decoder import VinDecoder


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def get_vin_decoder(request: Request) -> VinDecoder:
    return request.app.state.vin_decoder


def get_contract_workflow(repos: Repositories = Depends(get_repositories)) -> ContractWorkflow:
    return ContractWorkflow(repos.contracts)


def get_remittance_workflow(
    repos: Repositories = Depends(get_repositories),
    settings: Settings = Depends(get_app_settings),
) -> RemittanceWorkflow:
    return RemittanceWorkflow(repos.batches, repos.contracts, settings.remittance_tax_rate)


async def get_current_actor(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> Actor:
    """Dependency: extract the current actor from the Bearer token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    actor = actor_from_token(auth_header.removeprefix("Bearer "), settings)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return actor


def require_roles(*roles: ActorRole):
    """Dependency factory: reject actors whose role is not in `roles`."""

    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized",
            )
        return actor

    return _check


def dealer_id_for(actor: Actor) -> str:
    """Dealership the actor acts for; a dealer owner is their own dealership."""
    return actor.dealer_id or actor.user_id


DEALER_ROLES = (ActorRole.DEALER, ActorRole.DEALER_EMPLOYEE)
