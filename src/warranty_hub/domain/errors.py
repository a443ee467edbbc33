"""Error taxonomy shared by the rules engine, persistence adapters and API."""

from enum import Enum


class WarrantyHubError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(WarrantyHubError):
    """Raised when an entity id has no record."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class InvalidTransitionError(WarrantyHubError):
    """Raised when a status change is not the single legal next state."""

    status_code = 400

    def __init__(self, current_status: Enum | None, target_status: Enum, reason: str):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        current = current_status.value if current_status is not None else "None"
        super().__init__(
            f"Invalid transition from {current} to {target_status.value}: {reason}"
        )


class InvalidStateError(WarrantyHubError):
    """Raised when a field edit is attempted outside the record's editable state."""

    status_code = 409

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(message)


class LockedError(InvalidStateError):
    """Raised when a closed or paid batch is edited outside its payment fields."""


class UnauthorizedError(WarrantyHubError):
    """Raised when the actor does not own the record being mutated."""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class ValidationFailedError(WarrantyHubError):
    """Raised when required input is missing or invalid before an action."""

    status_code = 400


class VinDecodeError(WarrantyHubError):
    """Raised when the upstream VIN decoding service fails."""

    status_code = 502
