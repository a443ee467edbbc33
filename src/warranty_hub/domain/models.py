"""SQLAlchemy ORM models for the hosted backend.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for arrays and snapshots (no JSONB)
- DateTime(timezone=True) for timestamps, always written as UTC
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.sql import func

from warranty_hub.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class ContractRow(Base):
    """A vehicle service contract with its frozen pricing snapshot."""

    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=_uuid)
    contract_number = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)  # DRAFT, SOLD, REMITTED, PAID

    created_by_user_id = Column(String(36), nullable=True, index=True)
    created_by_email = Column(String(255), nullable=True)
    sold_by_user_id = Column(String(36), nullable=True)
    sold_by_email = Column(String(255), nullable=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)
    remitted_by_user_id = Column(String(36), nullable=True)
    remitted_by_email = Column(String(255), nullable=True)
    remitted_at = Column(DateTime(timezone=True), nullable=True)
    paid_by_user_id = Column(String(36), nullable=True)
    paid_by_email = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    provider_id = Column(String(36), nullable=True, index=True)
    product_id = Column(String(36), nullable=True)
    product_pricing_id = Column(String(36), nullable=True)
    pricing_term_months = Column(Integer, nullable=True)
    pricing_term_km = Column(Integer, nullable=True)
    pricing_vehicle_mileage_min_km = Column(Integer, nullable=True)
    pricing_vehicle_mileage_max_km = Column(Integer, nullable=True)
    pricing_vehicle_class = Column(String(100), nullable=True)
    pricing_deductible_cents = Column(Integer, nullable=True)
    pricing_base_price_cents = Column(Integer, nullable=True)  # retail at selection time
    pricing_dealer_cost_cents = Column(Integer, nullable=True)

    addon_snapshot = Column(JSON, nullable=False, default=list)
    addon_total_retail_cents = Column(Integer, nullable=False, default=0)
    addon_total_cost_cents = Column(Integer, nullable=False, default=0)

    customer_name = Column(String(255), nullable=False, default="")
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_address = Column(String(255), nullable=True)
    customer_city = Column(String(100), nullable=True)
    customer_province = Column(String(100), nullable=True)
    customer_postal_code = Column(String(20), nullable=True)

    vin = Column(String(32), nullable=True)
    vehicle_year = Column(String(10), nullable=True)
    vehicle_make = Column(String(100), nullable=True)
    vehicle_model = Column(String(100), nullable=True)
    vehicle_trim = Column(String(100), nullable=True)
    vehicle_mileage_km = Column(Integer, nullable=True)
    vehicle_body_class = Column(String(100), nullable=True)
    vehicle_engine = Column(String(255), nullable=True)
    vehicle_transmission = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


class BatchRow(Base):
    """A remittance batch grouping sold contracts for payment."""

    __tablename__ = "batches"

    id = Column(String(36), primary_key=True, default=_uuid)
    batch_number = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="OPEN")  # OPEN, CLOSED
    payment_status = Column(String(20), nullable=False, default="UNPAID")  # UNPAID, PAID
    remittance_status = Column(String(20), nullable=True)  # stored override of the derived status
    contract_ids = Column(JSON, nullable=False, default=list)

    subtotal_cents = Column(Integer, nullable=False, default=0)
    tax_rate = Column(Float, nullable=False, default=0)
    tax_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)

    dealer_user_id = Column(String(36), nullable=True, index=True)
    dealer_email = Column(String(255), nullable=True)
    provider_id = Column(String(36), nullable=True, index=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by_user_id = Column(String(36), nullable=True)
    reviewed_by_email = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    payment_method = Column(String(20), nullable=True)  # EFT, CHEQUE
    payment_reference = Column(String(255), nullable=True)
    payment_date = Column(Date, nullable=True)
    paid_by_user_id = Column(String(36), nullable=True)
    paid_by_email = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class ProductRow(Base):
    """Provider-owned catalog product."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    product_type = Column(String(30), nullable=False, default="EXTENDED_WARRANTY")
    program_code = Column(String(100), nullable=True)
    coverage_details = Column(Text, nullable=True)
    exclusions = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    term_months = Column(Integer, nullable=True)
    term_km = Column(Integer, nullable=True)
    deductible_cents = Column(Integer, nullable=True)
    eligibility_max_vehicle_age_years = Column(Integer, nullable=True)
    eligibility_max_mileage_km = Column(Integer, nullable=True)
    eligibility_make_allowlist = Column(JSON, nullable=True)
    eligibility_model_allowlist = Column(JSON, nullable=True)
    eligibility_trim_allowlist = Column(JSON, nullable=True)
    base_price_cents = Column(Integer, nullable=True)
    dealer_cost_cents = Column(Integer, nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class ProductPricingRow(Base):
    """One term/km/deductible/price option under a product."""

    __tablename__ = "product_pricing"

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(36), nullable=False, index=True)
    term_months = Column(Integer, nullable=True)  # null = unlimited
    term_km = Column(Integer, nullable=True)  # null = unlimited
    vehicle_mileage_min_km = Column(Integer, nullable=True)
    vehicle_mileage_max_km = Column(Integer, nullable=True)
    vehicle_class = Column(String(100), nullable=True)
    claim_limit_cents = Column(Integer, nullable=True)
    deductible_cents = Column(Integer, nullable=False, default=0)
    base_price_cents = Column(Integer, nullable=False)
    dealer_cost_cents = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class ProductAddonRow(Base):
    """Optional extra sold alongside a product."""

    __tablename__ = "product_addons"

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    pricing_type = Column(String(20), nullable=False, default="FIXED")  # FIXED, PER_TERM, PER_CLAIM
    applies_to_all_pricing_rows = Column(Boolean, nullable=True, default=True)
    applicable_pricing_row_ids = Column(JSON, nullable=True)
    base_price_cents = Column(Integer, nullable=False)
    min_price_cents = Column(Integer, nullable=True)
    max_price_cents = Column(Integer, nullable=True)
    dealer_cost_cents = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class ProductDocumentRow(Base):
    """Metadata for a file stored in object storage."""

    __tablename__ = "product_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(36), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    storage_path = Column(String(500), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Dealers
# ---------------------------------------------------------------------------


class EmployeeRow(Base):
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=_uuid)
    dealer_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)


class DealerPricingRow(Base):
    """Per-dealer markup percentage."""

    __tablename__ = "dealer_pricing"

    dealer_id = Column(String(36), primary_key=True)
    markup_pct = Column(Float, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
