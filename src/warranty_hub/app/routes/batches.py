"""Batch routes: remittance submission, review and payment."""

from fastapi import APIRouter, Depends, status

from warranty_hub.app.dependencies import (
    DEALER_ROLES,
    get_current_actor,
    get_remittance_workflow,
    get_repositories,
    require_roles,
)
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.errors import UnauthorizedError
from warranty_hub.domain.schemas import (
    Actor,
    Batch,
    BatchCreate,
    BatchUpdate,
    MarkPaidRequest,
    ReviewRequest,
    SubmitRemittanceRequest,
)
from warranty_hub.infra.repositories import Repositories
from warranty_hub.services.remittance_workflow import RemittanceWorkflow

router = APIRouter(prefix="/api/batches", tags=["batches"])

reviewers = require_roles(ActorRole.PROVIDER, ActorRole.ADMIN)


def _can_read(batch: Batch, actor: Actor) -> bool:
    if actor.role == ActorRole.ADMIN:
        return True
    if actor.role == ActorRole.PROVIDER:
        return batch.provider_id == actor.user_id
    return batch.dealer_user_id == actor.user_id


@router.get("", response_model=list[Batch])
async def list_batches(
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    if actor.role == ActorRole.ADMIN:
        return await repos.batches.list()
    if actor.role == ActorRole.PROVIDER:
        return await repos.batches.list(provider_id=actor.user_id)
    return await repos.batches.list(dealer_user_id=actor.user_id)


@router.post("", response_model=Batch, status_code=status.HTTP_201_CREATED)
async def create_batch(
    data: BatchCreate,
    actor: Actor = Depends(require_roles(*DEALER_ROLES, ActorRole.ADMIN)),
    repos: Repositories = Depends(get_repositories),
):
    """Create an empty OPEN batch."""
    return await repos.batches.create(data, actor)


@router.post("/remittances", response_model=Batch, status_code=status.HTTP_201_CREATED)
async def submit_remittance(
    data: SubmitRemittanceRequest,
    actor: Actor = Depends(require_roles(*DEALER_ROLES)),
    workflow: RemittanceWorkflow = Depends(get_remittance_workflow),
):
    """Submit sold contracts for payment as one CLOSED remittance batch."""
    return await workflow.submit_remittance(data.batch_number, data.contract_ids, actor)


@router.get("/{batch_id}", response_model=Batch)
async def get_batch(
    batch_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    batch = await repos.batches.require(batch_id)
    if not _can_read(batch, actor):
        raise UnauthorizedError("Not authorized")
    return batch


@router.patch("/{batch_id}", response_model=Batch)
async def update_batch(
    batch_id: str,
    data: BatchUpdate,
    actor: Actor = Depends(require_roles(ActorRole.ADMIN)),
    repos: Repositories = Depends(get_repositories),
):
    """Raw guarded update. Closed batches only accept status and payment fields."""
    return await repos.batches.update(batch_id, data.model_dump(exclude_unset=True))


@router.post("/{batch_id}/review", response_model=Batch)
async def review_batch(
    batch_id: str,
    data: ReviewRequest,
    actor: Actor = Depends(reviewers),
    workflow: RemittanceWorkflow = Depends(get_remittance_workflow),
):
    return await workflow.review(batch_id, data.approve, actor, data.reason, data.admin_notes)


@router.post("/{batch_id}/mark-paid", response_model=Batch)
async def mark_batch_paid(
    batch_id: str,
    data: MarkPaidRequest,
    actor: Actor = Depends(reviewers),
    workflow: RemittanceWorkflow = Depends(get_remittance_workflow),
):
    return await workflow.mark_paid(
        batch_id,
        actor,
        payment_method=data.payment_method,
        payment_date=data.payment_date,
        payment_reference=data.payment_reference,
    )
