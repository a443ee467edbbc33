"""Dealer-side contract workflow: vehicle, pricing, add-ons and sale.

Each step is a single guarded `ContractRepository.update`; the state machine
rejects anything that is not allowed in the contract's current status.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Sequence

from warranty_hub.domain.enums import ContractStatus
from warranty_hub.domain.errors import ValidationFailedError
from warranty_hub.domain.schemas import (
    Actor,
    Contract,
    DecodedVehicle,
    ProductAddon,
    ProductPricing,
    utcnow,
)
from warranty_hub.infra.repositories import ContractRepository
from warranty_hub.services.addon_snapshot import applicable_addons, build_addon_snapshot
from warranty_hub.services.contract_state_machine import (
    ContractStateMachine,
    normalize_vin,
    validate_submission,
)
from warranty_hub.services.eligibility import eligible_pricing_rows, is_pricing_eligible
from warranty_hub.services.money import cost_of, retail_from_cost
from warranty_hub.services.pricing_selector import default_pricing_row, should_auto_select_pricing

logger = logging.getLogger(__name__)

S = ContractStatus

# Who/when fields stamped by each forward transition
_STAMPS: dict[ContractStatus, tuple[str, str, str]] = {
    S.SOLD: ("sold_by_user_id", "sold_by_email", "sold_at"),
    S.REMITTED: ("remitted_by_user_id", "remitted_by_email", "remitted_at"),
    S.PAID: ("paid_by_user_id", "paid_by_email", "paid_at"),
}


def pricing_snapshot_patch(row: ProductPricing, markup_pct: float) -> dict:
    """Frozen copy of a pricing row with the dealer's retail and cost."""
    cost = cost_of(row)
    if cost is None:
        raise ValidationFailedError("Pricing row has no price")
    return {
        "provider_id": row.provider_id,
        "product_id": row.product_id,
        "product_pricing_id": row.id,
        "pricing_term_months": row.term_months,
        "pricing_term_km": row.term_km,
        "pricing_vehicle_mileage_min_km": row.vehicle_mileage_min_km,
        "pricing_vehicle_mileage_max_km": row.vehicle_mileage_max_km,
        "pricing_vehicle_class": row.vehicle_class,
        "pricing_deductible_cents": row.deductible_cents,
        "pricing_base_price_cents": retail_from_cost(cost, markup_pct),
        "pricing_dealer_cost_cents": cost,
    }


class ContractWorkflow:
    def __init__(self, contracts: ContractRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self._contracts = contracts
        self._clock = clock
        self._state_machine = ContractStateMachine()

    async def apply_decoded_vehicle(
        self,
        contract_id: str,
        decoded: DecodedVehicle,
        mileage_km: int | None = None,
    ) -> Contract:
        """Copy a decoded vehicle onto the contract."""
        patch = {
            "vin": decoded.vin,
            "vehicle_year": decoded.vehicle_year,
            "vehicle_make": decoded.vehicle_make,
            "vehicle_model": decoded.vehicle_model,
            "vehicle_trim": decoded.vehicle_trim,
            "vehicle_body_class": decoded.vehicle_body_class,
            "vehicle_engine": decoded.vehicle_engine,
            "vehicle_transmission": decoded.vehicle_transmission,
        }
        if mileage_km is not None:
            patch["vehicle_mileage_km"] = mileage_km
        return await self._contracts.update(contract_id, patch)

    async def select_pricing(
        self,
        contract_id: str,
        row: ProductPricing,
        markup_pct: float,
        addons: Sequence[ProductAddon] | None = None,
        vehicle_class: str | None = None,
    ) -> Contract:
        """Freeze `row` onto the contract.

        Once the mileage is known the row must cover it (and `vehicle_class`,
        when the row is class-specific). When `addons` is given, previously
        chosen add-ons are re-snapshotted against the new row; ones that no
        longer apply are dropped.
        """
        contract = await self._contracts.require(contract_id)
        if contract.vehicle_mileage_km is not None and not is_pricing_eligible(
            row, contract.vehicle_mileage_km, vehicle_class
        ):
            raise ValidationFailedError("Pricing option is not available for this vehicle")
        patch = pricing_snapshot_patch(row, markup_pct)
        if addons is not None and contract.addon_snapshot:
            still_applicable = applicable_addons(
                [a for a in addons if a.product_id == row.product_id], row.id
            )
            snapshot = build_addon_snapshot(
                [item.id for item in contract.addon_snapshot], still_applicable, markup_pct
            )
            patch.update(snapshot.as_contract_patch())
        return await self._contracts.update(contract_id, patch)

    async def auto_select_default_pricing(
        self,
        contract_id: str,
        rows: Sequence[ProductPricing],
        markup_pct: float,
        vehicle_class: str | None = None,
        addons: Sequence[ProductAddon] | None = None,
    ) -> Contract | None:
        """Select the default eligible row if the dealer has not chosen one yet."""
        contract = await self._contracts.require(contract_id)
        candidates = [r for r in rows if r.product_id == contract.product_id]
        eligible = eligible_pricing_rows(candidates, contract.vehicle_mileage_km, vehicle_class)
        if not should_auto_select_pricing(contract, eligible):
            return None
        row = default_pricing_row(eligible)
        logger.info("Auto-selected pricing row %s for contract %s", row.id, contract_id)
        return await self.select_pricing(contract_id, row, markup_pct, addons, vehicle_class)

    async def set_addon_selection(
        self,
        contract_id: str,
        selected_ids: Sequence[str],
        addons: Sequence[ProductAddon],
        markup_pct: float,
    ) -> Contract:
        """Persist the snapshot for the current add-on selection immediately."""
        contract = await self._contracts.require(contract_id)
        available = applicable_addons(
            [a for a in addons if a.product_id == contract.product_id],
            contract.product_pricing_id,
        )
        available_ids = {a.id for a in available}
        unavailable = [addon_id for addon_id in selected_ids if addon_id not in available_ids]
        if unavailable:
            raise ValidationFailedError(
                f"Add-ons not available for this contract: {', '.join(unavailable)}"
            )

        snapshot = build_addon_snapshot(selected_ids, available, markup_pct)
        return await self._contracts.update(contract_id, snapshot.as_contract_patch())

    async def advance(self, contract_id: str, target: ContractStatus, actor: Actor) -> Contract:
        """Move a contract to `target`, stamping who did it and when."""
        contract = await self._contracts.require(contract_id)
        self._state_machine.validate_transition(contract.status, target)
        by_user, by_email, at = _STAMPS[target]
        return await self._contracts.update(
            contract_id,
            {"status": target, by_user: actor.user_id, by_email: actor.email, at: self._clock()},
        )

    async def submit(
        self, contract_id: str, actor: Actor, pricing: ProductPricing | None = None
    ) -> Contract:
        """Validate a draft and mark it SOLD.

        `pricing` is the catalog row behind `product_pricing_id`, when it still exists.
        """
        contract = await self._contracts.require(contract_id)
        self._state_machine.validate_transition(contract.status, S.SOLD)
        validate_submission(contract, pricing)
        if contract.vin != normalize_vin(contract.vin):
            await self._contracts.update(contract_id, {"vin": normalize_vin(contract.vin)})
        sold = await self.advance(contract_id, S.SOLD, actor)
        logger.info("Contract %s sold by %s", sold.warranty_id, actor.email)
        return sold
