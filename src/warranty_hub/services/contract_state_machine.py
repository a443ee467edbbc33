"""Contract state machine: validates status transitions and guards field edits.

Lifecycle is strictly linear: DRAFT -> SOLD -> REMITTED -> PAID. Fields are
freely editable while DRAFT; afterwards only the status and the workflow
fields stamped by the transition itself may change.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from pydantic import ValidationError

from warranty_hub.domain.enums import ContractStatus
from warranty_hub.domain.errors import (
    InvalidStateError,
    InvalidTransitionError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import Contract, ProductPricing

logger = logging.getLogger(__name__)

S = ContractStatus

# ---------------------------------------------------------------------------
# Transition map: from_status -> the single legal next status
# ---------------------------------------------------------------------------

TRANSITION_MAP: dict[ContractStatus, ContractStatus] = {
    S.DRAFT: S.SOLD,
    S.SOLD: S.REMITTED,
    S.REMITTED: S.PAID,
}

# Fields stamped alongside each transition, editable only with that transition
WORKFLOW_FIELDS: dict[ContractStatus, set[str]] = {
    S.SOLD: {"sold_by_user_id", "sold_by_email", "sold_at"},
    S.REMITTED: {"remitted_by_user_id", "remitted_by_email", "remitted_at"},
    S.PAID: {"paid_by_user_id", "paid_by_email", "paid_at"},
}

IMMUTABLE_FIELDS: set[str] = {
    "id",
    "warranty_id",
    "created_at",
    "created_by_user_id",
    "created_by_email",
    "updated_at",
}

# Frozen per-product data, stale once the contract moves to another product
PRICING_SNAPSHOT_FIELDS: dict[str, object] = {
    "product_pricing_id": None,
    "pricing_term_months": None,
    "pricing_term_km": None,
    "pricing_vehicle_mileage_min_km": None,
    "pricing_vehicle_mileage_max_km": None,
    "pricing_vehicle_class": None,
    "pricing_deductible_cents": None,
    "pricing_base_price_cents": None,
    "pricing_dealer_cost_cents": None,
}

ADDON_SNAPSHOT_FIELDS: dict[str, object] = {
    "addon_snapshot": [],
    "addon_total_retail_cents": 0,
    "addon_total_cost_cents": 0,
}

VIN_LENGTH = 17

_NON_VIN = re.compile(r"[^A-Z0-9]")


def next_status(current: ContractStatus) -> ContractStatus | None:
    """Return the single legal next status, or None when terminal."""
    return TRANSITION_MAP.get(current)


def normalize_vin(raw: str | None) -> str:
    """Uppercase and strip everything that is not a letter or digit."""
    return _NON_VIN.sub("", (raw or "").strip().upper())


def validate_submission(contract: Contract, pricing: ProductPricing | None = None) -> None:
    """Raise ValidationFailedError unless the contract can be sold.

    `pricing`, when given, is the catalog row the contract was priced from.
    """
    if not contract.customer_name.strip():
        raise ValidationFailedError("Customer name is required")
    if len(normalize_vin(contract.vin)) != VIN_LENGTH:
        raise ValidationFailedError(f"VIN must be {VIN_LENGTH} characters")
    if not contract.product_id:
        raise ValidationFailedError("Select a product before submitting")
    if not contract.product_pricing_id:
        raise ValidationFailedError("Select a pricing option before submitting")
    if pricing is not None and (
        pricing.id != contract.product_pricing_id or pricing.product_id != contract.product_id
    ):
        raise ValidationFailedError("Selected pricing option does not belong to the product")


class ContractStateMachine:
    """Validates contract transitions and applies guarded patches."""

    def validate_transition(self, current: ContractStatus, target: ContractStatus) -> bool:
        """Return True if the transition is valid. Raise InvalidTransitionError if not."""
        expected = next_status(current)
        if expected is None:
            raise InvalidTransitionError(
                current, target, f"{current.value} is a terminal status"
            )
        if target != expected:
            raise InvalidTransitionError(
                current,
                target,
                f"Next status after {current.value} is {expected.value}",
            )
        return True

    def apply(self, current: Contract, patch: dict, now: datetime) -> Contract:
        """Return `current` with `patch` applied, or raise without side effects."""
        keys = set(patch)
        unknown = keys - set(Contract.model_fields) - IMMUTABLE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Unknown contract fields: {', '.join(sorted(unknown))}")

        immutable = keys & IMMUTABLE_FIELDS
        if immutable:
            raise InvalidStateError(
                f"Contract fields cannot be changed: {', '.join(sorted(immutable))}",
                sorted(immutable),
            )

        target = self._coerce_status(patch.get("status"))
        is_transition = target is not None and target != current.status
        if is_transition:
            self.validate_transition(current.status, target)

        if current.status != S.DRAFT:
            allowed = {"status"}
            if is_transition:
                allowed |= WORKFLOW_FIELDS.get(target, set())
            locked = keys - allowed
            if locked:
                raise InvalidStateError("Contract is locked", sorted(locked))

        data = current.to_storage()
        if "product_id" in patch and patch["product_id"] != current.product_id:
            if "product_pricing_id" not in patch:
                data.update(PRICING_SNAPSHOT_FIELDS)
            if "addon_snapshot" not in patch:
                data.update(ADDON_SNAPSHOT_FIELDS)
        data.update(patch)
        data["updated_at"] = now
        try:
            updated = Contract.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailedError(f"Invalid contract update: {exc.errors()[0]['msg']}") from exc

        if is_transition:
            logger.info(
                "Contract %s moved %s -> %s", current.id, current.status.value, target.value
            )
        return updated

    @staticmethod
    def _coerce_status(value) -> ContractStatus | None:
        if value is None:
            return None
        try:
            return ContractStatus(value)
        except ValueError as exc:
            raise ValidationFailedError(f"Unknown contract status: {value}") from exc
