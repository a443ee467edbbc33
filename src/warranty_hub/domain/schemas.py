"""Pydantic v2 schemas for records, API request bodies and responses.

Records are validated once when they cross a persistence boundary; business
logic works only with these typed models.
"""

from datetime import date, datetime, timezone
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)

from warranty_hub.domain.enums import (
    ActorRole,
    AddonPricingType,
    BatchStatus,
    ContractStatus,
    PaymentMethod,
    PaymentStatus,
    ProductType,
    RemittanceStatus,
)


def _ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """Base for persisted entities."""

    model_config = ConfigDict(from_attributes=True)

    def to_storage(self, mode: str = "python") -> dict:
        """Dump stored fields only; computed properties are never persisted."""
        return self.model_dump(mode=mode, exclude=set(type(self).model_computed_fields))


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------


class Actor(BaseModel):
    """The authenticated user performing an operation."""

    user_id: str
    email: str
    role: ActorRole = ActorRole.DEALER
    dealer_id: str | None = None


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


def warranty_id_from_contract_id(contract_id: str) -> str:
    """Display identifier derived from the internal contract id."""
    return "WH-" + contract_id.replace("-", "").upper()[:12]


class AddonSnapshotItem(BaseModel):
    """Frozen copy of an add-on as charged on a contract."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    pricing_type: AddonPricingType
    base_price_cents: int
    min_price_cents: int
    max_price_cents: int
    chosen_price_cents: int


class Contract(Record):
    """One vehicle service contract sale."""

    id: str
    contract_number: str = Field(min_length=1)
    status: ContractStatus = ContractStatus.DRAFT

    created_by_user_id: str | None = None
    created_by_email: str | None = None
    sold_by_user_id: str | None = None
    sold_by_email: str | None = None
    sold_at: UtcDatetime | None = None
    remitted_by_user_id: str | None = None
    remitted_by_email: str | None = None
    remitted_at: UtcDatetime | None = None
    paid_by_user_id: str | None = None
    paid_by_email: str | None = None
    paid_at: UtcDatetime | None = None

    provider_id: str | None = None
    product_id: str | None = None
    product_pricing_id: str | None = None
    pricing_term_months: int | None = None
    pricing_term_km: int | None = None
    pricing_vehicle_mileage_min_km: int | None = None
    pricing_vehicle_mileage_max_km: int | None = None
    pricing_vehicle_class: str | None = None
    pricing_deductible_cents: int | None = None
    pricing_base_price_cents: int | None = None
    pricing_dealer_cost_cents: int | None = None

    addon_snapshot: list[AddonSnapshotItem] = Field(default_factory=list)
    addon_total_retail_cents: int = 0
    addon_total_cost_cents: int = 0

    customer_name: str = ""
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    customer_province: str | None = None
    customer_postal_code: str | None = None

    vin: str | None = None
    vehicle_year: str | None = None
    vehicle_make: str | None = None
    vehicle_model: str | None = None
    vehicle_trim: str | None = None
    vehicle_mileage_km: int | None = None
    vehicle_body_class: str | None = None
    vehicle_engine: str | None = None
    vehicle_transmission: str | None = None

    created_at: UtcDatetime
    updated_at: UtcDatetime

    @computed_field
    @property
    def warranty_id(self) -> str:
        return warranty_id_from_contract_id(self.id)


class ContractCreate(BaseModel):
    """Schema for creating a draft contract."""

    contract_number: str = Field(min_length=1)
    customer_name: str = ""
    provider_id: str | None = None
    product_id: str | None = None
    vin: str | None = None
    vehicle_mileage_km: int | None = Field(default=None, ge=0)


class ContractUpdate(BaseModel):
    """Customer and vehicle fields a dealer may patch on a draft.

    Status, product and pricing only change through the workflow endpoints.
    """

    model_config = ConfigDict(extra="forbid")

    contract_number: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    customer_province: str | None = None
    customer_postal_code: str | None = None
    vin: str | None = None
    vehicle_year: str | None = None
    vehicle_make: str | None = None
    vehicle_model: str | None = None
    vehicle_trim: str | None = None
    vehicle_mileage_km: int | None = Field(default=None, ge=0)
    vehicle_body_class: str | None = None
    vehicle_engine: str | None = None
    vehicle_transmission: str | None = None


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Product(Record):
    """Provider-owned catalog entry."""

    id: str
    provider_id: str
    name: str
    product_type: ProductType = ProductType.EXTENDED_WARRANTY
    program_code: str | None = None
    coverage_details: str | None = None
    exclusions: str | None = None
    internal_notes: str | None = None
    term_months: int | None = None
    term_km: int | None = None
    deductible_cents: int | None = None
    eligibility_max_vehicle_age_years: int | None = None
    eligibility_max_mileage_km: int | None = None
    eligibility_make_allowlist: list[str] | None = None
    eligibility_model_allowlist: list[str] | None = None
    eligibility_trim_allowlist: list[str] | None = None
    base_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    published: bool = False
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ProductCreate(BaseModel):
    name: str
    product_type: ProductType = ProductType.EXTENDED_WARRANTY
    program_code: str | None = None
    coverage_details: str | None = None
    exclusions: str | None = None
    internal_notes: str | None = None
    term_months: int | None = None
    term_km: int | None = None
    deductible_cents: int | None = None
    eligibility_max_vehicle_age_years: int | None = None
    eligibility_max_mileage_km: int | None = None
    eligibility_make_allowlist: list[str] | None = None
    eligibility_model_allowlist: list[str] | None = None
    eligibility_trim_allowlist: list[str] | None = None
    base_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    published: bool = False


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    product_type: ProductType | None = None
    program_code: str | None = None
    coverage_details: str | None = None
    exclusions: str | None = None
    internal_notes: str | None = None
    term_months: int | None = None
    term_km: int | None = None
    deductible_cents: int | None = None
    eligibility_max_vehicle_age_years: int | None = None
    eligibility_max_mileage_km: int | None = None
    eligibility_make_allowlist: list[str] | None = None
    eligibility_model_allowlist: list[str] | None = None
    eligibility_trim_allowlist: list[str] | None = None
    base_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    published: bool | None = None


class ProductPricing(Record):
    """One term/km/deductible/price combination for a product."""

    id: str
    provider_id: str
    product_id: str
    term_months: int | None = None
    term_km: int | None = None
    vehicle_mileage_min_km: int | None = None
    vehicle_mileage_max_km: int | None = None
    vehicle_class: str | None = None
    claim_limit_cents: int | None = None
    deductible_cents: int = 0
    base_price_cents: int
    dealer_cost_cents: int | None = None
    created_at: UtcDatetime


class ProductPricingCreate(BaseModel):
    product_id: str
    term_months: int | None = None
    term_km: int | None = None
    vehicle_mileage_min_km: int | None = None
    vehicle_mileage_max_km: int | None = None
    vehicle_class: str | None = None
    claim_limit_cents: int | None = None
    deductible_cents: int = 0
    base_price_cents: int
    dealer_cost_cents: int | None = None


class ProductAddon(Record):
    """Optional extra tied to a product."""

    id: str
    provider_id: str
    product_id: str
    name: str
    description: str | None = None
    pricing_type: AddonPricingType = AddonPricingType.FIXED
    applies_to_all_pricing_rows: bool | None = True
    applicable_pricing_row_ids: list[str] | None = None
    base_price_cents: int
    min_price_cents: int | None = None
    max_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    active: bool = True
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ProductAddonCreate(BaseModel):
    product_id: str
    name: str
    description: str | None = None
    pricing_type: AddonPricingType = AddonPricingType.FIXED
    applies_to_all_pricing_rows: bool = True
    applicable_pricing_row_ids: list[str] | None = None
    base_price_cents: int
    min_price_cents: int | None = None
    max_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    active: bool = True


class ProductAddonUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    pricing_type: AddonPricingType | None = None
    applies_to_all_pricing_rows: bool | None = None
    applicable_pricing_row_ids: list[str] | None = None
    base_price_cents: int | None = None
    min_price_cents: int | None = None
    max_price_cents: int | None = None
    dealer_cost_cents: int | None = None
    active: bool | None = None


class ProductDocument(Record):
    """Metadata of a document attached to a product."""

    id: str
    provider_id: str
    product_id: str | None = None
    title: str
    file_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    storage_path: str
    created_at: UtcDatetime


class ProductDocumentCreate(BaseModel):
    product_id: str | None = None
    title: str
    file_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = Field(default=None, ge=0)
    storage_path: str


# ---------------------------------------------------------------------------
# Dealers
# ---------------------------------------------------------------------------


class Employee(Record):
    id: str
    dealer_id: str
    name: str
    email: str
    created_at: UtcDatetime


class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)


class EmployeeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: str | None = None


class DealerPricing(Record):
    """Dealer-scoped markup configuration."""

    dealer_id: str
    markup_pct: float = 0
    updated_at: UtcDatetime


class DealerMarkupUpdate(BaseModel):
    markup_pct: float


# ---------------------------------------------------------------------------
# Batches / remittances
# ---------------------------------------------------------------------------


def derive_remittance_status(
    status: BatchStatus,
    payment_status: PaymentStatus,
    remittance_status: RemittanceStatus | None,
) -> RemittanceStatus:
    """Canonical workflow status of a batch."""
    if payment_status == PaymentStatus.PAID:
        return RemittanceStatus.PAID
    if remittance_status is not None:
        return remittance_status
    if status == BatchStatus.CLOSED:
        return RemittanceStatus.SUBMITTED
    return RemittanceStatus.DRAFT


class Batch(Record):
    """A group of sold contracts submitted for payment."""

    id: str
    batch_number: str
    status: BatchStatus = BatchStatus.OPEN
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    remittance_status: RemittanceStatus | None = None
    contract_ids: list[str] = Field(default_factory=list)

    subtotal_cents: int = 0
    tax_rate: float = 0
    tax_cents: int = 0
    total_cents: int = 0

    dealer_user_id: str | None = None
    dealer_email: str | None = None
    provider_id: str | None = None

    submitted_at: UtcDatetime | None = None
    reviewed_at: UtcDatetime | None = None
    reviewed_by_user_id: str | None = None
    reviewed_by_email: str | None = None
    rejection_reason: str | None = None
    admin_notes: str | None = None

    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    payment_date: date | None = None
    paid_by_user_id: str | None = None
    paid_by_email: str | None = None
    paid_at: UtcDatetime | None = None

    created_at: UtcDatetime
    updated_at: UtcDatetime

    @computed_field
    @property
    def workflow_status(self) -> RemittanceStatus:
        return derive_remittance_status(self.status, self.payment_status, self.remittance_status)


class BatchCreate(BaseModel):
    """Ad hoc empty batch."""

    batch_number: str = Field(min_length=1)


class RemittanceBatchCreate(BaseModel):
    """Fully formed remittance batch with precomputed totals."""

    batch_number: str = Field(min_length=1)
    contract_ids: list[str] = Field(min_length=1)
    subtotal_cents: int = Field(ge=0)
    tax_rate: float = Field(ge=0)
    tax_cents: int = Field(ge=0)
    total_cents: int = Field(ge=0)
    dealer_user_id: str | None = None
    dealer_email: str | None = None
    provider_id: str | None = None


class BatchUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    batch_number: str | None = None
    contract_ids: list[str] | None = None
    status: BatchStatus | None = None
    payment_status: PaymentStatus | None = None
    paid_at: UtcDatetime | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    payment_date: date | None = None
    paid_by_user_id: str | None = None
    paid_by_email: str | None = None


# ---------------------------------------------------------------------------
# Workflow request bodies
# ---------------------------------------------------------------------------


class PricingSelectionRequest(BaseModel):
    product_pricing_id: str
    vehicle_class: str | None = None


class AddonSelectionRequest(BaseModel):
    addon_ids: list[str] = Field(default_factory=list)


class VehicleDecodeRequest(BaseModel):
    vin: str
    vehicle_mileage_km: int | None = Field(default=None, ge=0)


class SubmitRemittanceRequest(BaseModel):
    batch_number: str
    contract_ids: list[str]


class ReviewRequest(BaseModel):
    approve: bool
    reason: str | None = None
    admin_notes: str | None = None


class MarkPaidRequest(BaseModel):
    payment_method: PaymentMethod | None = None
    payment_date: date | None = None
    payment_reference: str | None = None


# ---------------------------------------------------------------------------
# VIN decoding / marketplace
# ---------------------------------------------------------------------------


class DecodedVehicle(BaseModel):
    """Vehicle attributes decoded from a VIN."""

    vin: str
    vehicle_year: str | None = None
    vehicle_make: str | None = None
    vehicle_model: str | None = None
    vehicle_trim: str | None = None
    vehicle_body_class: str | None = None
    vehicle_engine: str | None = None
    vehicle_transmission: str | None = None
    vehicle_drive_type: str | None = None
    vehicle_brakes: str | None = None
    manufactured_in: str | None = None
    tires: str | None = None
    msrp: str | None = None
    warranties: str | None = None


class MarketplaceListing(BaseModel):
    """A published product as shown to a dealer."""

    product: Product
    cost_cents: int | None = None
    retail_cents: int | None = None
    margin_cents: int | None = None
    margin_pct: float | None = None
    pricing_rows: list[ProductPricing] = Field(default_factory=list)
