"""Batch/remittance state machine.

A batch is OPEN or CLOSED. Closed batches only accept status, payment and
review fields. The approval workflow status is derived by
`derive_remittance_status` unless explicitly stored.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError

from warranty_hub.domain.enums import BatchStatus, PaymentStatus, RemittanceStatus
from warranty_hub.domain.errors import (
    InvalidStateError,
    InvalidTransitionError,
    LockedError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import Batch

logger = logging.getLogger(__name__)

R = RemittanceStatus

STATUS_TRANSITIONS: dict[BatchStatus, set[BatchStatus]] = {
    BatchStatus.OPEN: {BatchStatus.CLOSED},
    BatchStatus.CLOSED: set(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.UNPAID: {PaymentStatus.PAID},
    PaymentStatus.PAID: set(),
}

REMITTANCE_TRANSITIONS: dict[RemittanceStatus, set[RemittanceStatus]] = {
    R.DRAFT: {R.SUBMITTED},
    R.SUBMITTED: {R.APPROVED, R.REJECTED},
    R.APPROVED: {R.PAID},
    R.REJECTED: set(),
    R.PAID: set(),
}

# Fields a CLOSED batch still accepts
PAYMENT_FIELDS: set[str] = {
    "status",
    "payment_status",
    "paid_at",
    "payment_method",
    "payment_reference",
    "payment_date",
    "paid_by_user_id",
    "paid_by_email",
}

REVIEW_FIELDS: set[str] = {
    "remittance_status",
    "reviewed_at",
    "reviewed_by_user_id",
    "reviewed_by_email",
    "rejection_reason",
    "admin_notes",
}

IMMUTABLE_FIELDS: set[str] = {"id", "created_at", "updated_at", "workflow_status"}


class BatchStateMachine:
    """Validates batch transitions and applies guarded patches."""

    def apply(self, current: Batch, patch: dict, now: datetime) -> Batch:
        """Return `current` with `patch` applied, or raise without side effects."""
        keys = set(patch)
        unknown = keys - set(Batch.model_fields) - IMMUTABLE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Unknown batch fields: {', '.join(sorted(unknown))}")

        immutable = keys & IMMUTABLE_FIELDS
        if immutable:
            raise InvalidStateError(
                f"Batch fields cannot be changed: {', '.join(sorted(immutable))}",
                sorted(immutable),
            )

        if current.status == BatchStatus.CLOSED:
            locked = keys - PAYMENT_FIELDS - REVIEW_FIELDS
            if locked:
                raise LockedError("Batch is locked", sorted(locked))

        data = current.to_storage()
        data.update(patch)
        data["updated_at"] = now
        try:
            updated = Batch.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailedError(f"Invalid batch update: {exc.errors()[0]['msg']}") from exc

        if current.workflow_status == R.PAID:
            changed = [key for key in keys if getattr(updated, key) != getattr(current, key)]
            if changed:
                raise LockedError("Batch is paid; payment details are locked", sorted(changed))

        self._validate_step(STATUS_TRANSITIONS, current.status, updated.status)
        self._validate_step(PAYMENT_TRANSITIONS, current.payment_status, updated.payment_status)
        if "remittance_status" in patch and updated.remittance_status is not None:
            self._validate_step(
                REMITTANCE_TRANSITIONS, current.workflow_status, updated.remittance_status
            )

        if updated.workflow_status != current.workflow_status:
            logger.info(
                "Batch %s workflow %s -> %s",
                current.id,
                current.workflow_status.value,
                updated.workflow_status.value,
            )
        return updated

    @staticmethod
    def _validate_step(transitions: dict, current, target) -> None:
        if target == current:
            return
        if target not in transitions.get(current, set()):
            raise InvalidTransitionError(
                current,
                target,
                f"Transition from {current.value} to {target.value} is not allowed",
            )

