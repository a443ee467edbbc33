"""Domain enumerations for WarrantyHub.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class AppMode(str, Enum):
    """Which persistence backend the application is composed with."""

    LOCAL = "local"
    HOSTED = "hosted"


class ActorRole(str, Enum):
    """Role carried by the authenticated actor."""

    DEALER = "DEALER"
    DEALER_EMPLOYEE = "DEALER_EMPLOYEE"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class ContractStatus(str, Enum):
    """Lifecycle of a vehicle service contract. Strictly linear."""

    DRAFT = "DRAFT"
    SOLD = "SOLD"
    REMITTED = "REMITTED"
    PAID = "PAID"


class BatchStatus(str, Enum):
    """Simple open/closed state of a remittance batch."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class RemittanceStatus(str, Enum):
    """Approval workflow status of a remittance batch."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    EFT = "EFT"
    CHEQUE = "CHEQUE"


class AddonPricingType(str, Enum):
    """How an add-on's price is applied to a contract."""

    FIXED = "FIXED"
    PER_TERM = "PER_TERM"
    PER_CLAIM = "PER_CLAIM"


class ProductType(str, Enum):
    """Category of a provider product."""

    EXTENDED_WARRANTY = "EXTENDED_WARRANTY"
    GAP = "GAP"
    TIRE_RIM = "TIRE_RIM"
    APPEARANCE = "APPEARANCE"
    OTHER = "OTHER"
