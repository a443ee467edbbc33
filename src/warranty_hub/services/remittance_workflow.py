"""Remittance workflow: dealer submission, review and payment of batches.

Contract and batch writes are separate operations; a failure part way
through leaves earlier writes in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable

from warranty_hub.domain.enums import (
    ActorRole,
    ContractStatus,
    PaymentMethod,
    PaymentStatus,
    RemittanceStatus,
)
from warranty_hub.domain.errors import (
    InvalidStateError,
    InvalidTransitionError,
    UnauthorizedError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import Actor, Batch, Contract, RemittanceBatchCreate, utcnow
from warranty_hub.infra.repositories import BatchRepository, ContractRepository
from warranty_hub.services.contract_workflow import ContractWorkflow
from warranty_hub.services.money import tax_from_subtotal

logger = logging.getLogger(__name__)

R = RemittanceStatus


@dataclass(frozen=True)
class RemittanceTotals:
    subtotal_cents: int
    tax_rate: float
    tax_cents: int
    total_cents: int


def contract_remittance_cents(contract: Contract) -> int:
    """What the dealer owes the provider for one contract."""
    cost = contract.pricing_dealer_cost_cents
    if cost is None:
        cost = contract.pricing_base_price_cents or 0
    return cost + contract.addon_total_cost_cents


def compute_totals(contracts: Iterable[Contract], tax_rate: float) -> RemittanceTotals:
    subtotal = sum(contract_remittance_cents(c) for c in contracts)
    tax = tax_from_subtotal(subtotal, tax_rate)
    return RemittanceTotals(
        subtotal_cents=subtotal,
        tax_rate=tax_rate,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )


class RemittanceWorkflow:
    def __init__(
        self,
        batches: BatchRepository,
        contracts: ContractRepository,
        tax_rate: float,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._batches = batches
        self._contracts = contracts
        self._tax_rate = tax_rate
        self._clock = clock
        self._contract_workflow = ContractWorkflow(contracts, clock)

    # ------------------------------------------------------------------
    # Dealer
    # ------------------------------------------------------------------

    async def submit_remittance(
        self, batch_number: str, contract_ids: list[str], actor: Actor
    ) -> Batch:
        """Create a CLOSED remittance batch and mark its contracts REMITTED."""
        batch_number = (batch_number or "").strip()
        if not batch_number:
            raise ValidationFailedError("Batch number is required")
        unique_ids = list(dict.fromkeys(contract_ids))
        if not unique_ids:
            raise ValidationFailedError("Select at least one sold contract")

        contracts = []
        for contract_id in unique_ids:
            contract = await self._contracts.require(contract_id)
            if contract.created_by_user_id != actor.user_id:
                raise UnauthorizedError("Not authorized")
            if contract.status != ContractStatus.SOLD:
                raise InvalidStateError(
                    f"Contract {contract.warranty_id} is {contract.status.value}, not SOLD"
                )
            contracts.append(contract)

        totals = compute_totals(contracts, self._tax_rate)
        provider_ids = {c.provider_id for c in contracts}
        batch = await self._batches.create_remittance_batch(
            RemittanceBatchCreate(
                batch_number=batch_number,
                contract_ids=unique_ids,
                subtotal_cents=totals.subtotal_cents,
                tax_rate=totals.tax_rate,
                tax_cents=totals.tax_cents,
                total_cents=totals.total_cents,
                dealer_user_id=actor.user_id,
                dealer_email=actor.email,
                provider_id=provider_ids.pop() if len(provider_ids) == 1 else None,
            )
        )

        for contract in contracts:
            await self._contract_workflow.advance(contract.id, ContractStatus.REMITTED, actor)
        return batch

    # ------------------------------------------------------------------
    # Provider / admin
    # ------------------------------------------------------------------

    def _authorize_reviewer(self, batch: Batch, actor: Actor) -> None:
        if actor.role == ActorRole.ADMIN:
            return
        if actor.role == ActorRole.PROVIDER and batch.provider_id == actor.user_id:
            return
        raise UnauthorizedError("Not authorized")

    async def review(
        self,
        batch_id: str,
        approve: bool,
        actor: Actor,
        reason: str | None = None,
        admin_notes: str | None = None,
    ) -> Batch:
        """Approve or reject a submitted remittance."""
        batch = await self._batches.require(batch_id)
        self._authorize_reviewer(batch, actor)
        target = R.APPROVED if approve else R.REJECTED
        if batch.workflow_status != R.SUBMITTED:
            raise InvalidTransitionError(
                batch.workflow_status, target, "Only submitted remittances can be reviewed"
            )

        reason = (reason or "").strip() or None
        if not approve and reason is None:
            raise ValidationFailedError("A rejection reason is required")

        patch = {
            "remittance_status": target,
            "reviewed_at": self._clock(),
            "reviewed_by_user_id": actor.user_id,
            "reviewed_by_email": actor.email,
            "rejection_reason": None if approve else reason,
        }
        if admin_notes is not None:
            patch["admin_notes"] = admin_notes.strip() or None
        return await self._batches.update(batch_id, patch)

    async def mark_paid(
        self,
        batch_id: str,
        actor: Actor,
        payment_method: PaymentMethod | None,
        payment_date: date | None,
        payment_reference: str | None = None,
    ) -> Batch:
        """Record payment of an approved remittance and mark its contracts PAID."""
        if payment_method is None:
            raise ValidationFailedError("Payment method is required")
        if payment_date is None:
            raise ValidationFailedError("Payment date is required")

        batch = await self._batches.require(batch_id)
        self._authorize_reviewer(batch, actor)
        if batch.workflow_status != R.APPROVED:
            raise InvalidTransitionError(
                batch.workflow_status,
                R.PAID,
                "Remittance must be approved before it is marked paid",
            )

        paid = await self._batches.update(
            batch_id,
            {
                "payment_status": PaymentStatus.PAID,
                "paid_at": self._clock(),
                "payment_method": payment_method,
                "payment_date": payment_date,
                "payment_reference": (payment_reference or "").strip() or None,
                "paid_by_user_id": actor.user_id,
                "paid_by_email": actor.email,
            },
        )

        for contract_id in paid.contract_ids:
            contract = await self._contracts.get(contract_id)
            if contract is None or contract.status != ContractStatus.REMITTED:
                logger.warning(
                    "Batch %s: skipping contract %s (not REMITTED)", paid.batch_number, contract_id
                )
                continue
            await self._contract_workflow.advance(contract_id, ContractStatus.PAID, actor)

        logger.info("Batch %s marked paid by %s", paid.batch_number, actor.email)
        return paid
