"""Entity repositories and the backend factory.

Every repository exposes the same list/get/create/update/remove surface over
a RecordStore, whichever backend holds the data. State-machine guards and
ownership checks run here, before anything is persisted. The app-mode check
happens once, in `build_repositories`.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from warranty_hub.app.config import Settings
from warranty_hub.domain import models
from warranty_hub.domain.enums import (
    ActorRole,
    AppMode,
    BatchStatus,
    ContractStatus,
    PaymentStatus,
    RemittanceStatus,
)
from warranty_hub.domain.errors import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import (
    Actor,
    Batch,
    BatchCreate,
    Contract,
    ContractCreate,
    DealerPricing,
    Employee,
    EmployeeCreate,
    Product,
    ProductAddon,
    ProductAddonCreate,
    ProductCreate,
    ProductDocument,
    ProductDocumentCreate,
    ProductPricing,
    ProductPricingCreate,
    RemittanceBatchCreate,
    utcnow,
)
from warranty_hub.infra.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from warranty_hub.infra.local_store import LocalRecordStore
from warranty_hub.infra.record_store import RecordStore
from warranty_hub.infra.sql_store import SqlRecordStore
from warranty_hub.services.batch_state_machine import BatchStateMachine
from warranty_hub.services.catalog_rules import clean_allowlist, validate_addon, validate_pricing_row
from warranty_hub.services.contract_state_machine import ContractStateMachine
from warranty_hub.services.money import clamp_markup_pct

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _new_id() -> str:
    return str(uuid.uuid4())


def _validated(schema, data: dict, what: str):
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailedError(f"Invalid {what}: {exc.errors()[0]['msg']}") from exc


def _require_owner(provider_id: str, actor: Actor) -> None:
    if provider_id != actor.user_id:
        raise UnauthorizedError("Not authorized")


def _only_set(filters: dict) -> dict:
    return {key: value for key, value in filters.items() if value is not None}


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class ContractRepository:
    def __init__(self, store: RecordStore[Contract], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock
        self._state_machine = ContractStateMachine()

    async def list(
        self,
        created_by_user_id: str | None = None,
        status: ContractStatus | None = None,
        provider_id: str | None = None,
    ) -> list[Contract]:
        return await self._store.list(
            **_only_set(
                {
                    "created_by_user_id": created_by_user_id,
                    "status": status,
                    "provider_id": provider_id,
                }
            )
        )

    async def get(self, contract_id: str) -> Contract | None:
        return await self._store.get(contract_id)

    async def require(self, contract_id: str) -> Contract:
        contract = await self._store.get(contract_id)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    async def create(self, data: ContractCreate, actor: Actor) -> Contract:
        now = self._clock()
        contract = _validated(
            Contract,
            {
                **data.model_dump(),
                "id": _new_id(),
                "status": ContractStatus.DRAFT,
                "created_by_user_id": actor.user_id,
                "created_by_email": actor.email,
                "created_at": now,
                "updated_at": now,
            },
            "contract",
        )
        await self._store.insert(contract)
        logger.info("Created contract %s (%s)", contract.id, contract.contract_number)
        return contract

    async def update(self, contract_id: str, patch: dict) -> Contract:
        current = await self.require(contract_id)
        updated = self._state_machine.apply(current, patch, self._clock())
        return await self._store.replace(updated)

    async def remove(self, contract_id: str, actor: Actor) -> None:
        current = await self._store.get(contract_id)
        if current is None:
            return
        if current.created_by_user_id != actor.user_id and actor.role != ActorRole.ADMIN:
            raise UnauthorizedError("Not authorized")
        if current.status != ContractStatus.DRAFT:
            raise InvalidStateError("Only draft contracts can be deleted")
        await self._store.delete(contract_id)


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


class BatchRepository:
    """Batches are never deleted."""

    def __init__(self, store: RecordStore[Batch], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock
        self._state_machine = BatchStateMachine()

    async def list(
        self,
        dealer_user_id: str | None = None,
        provider_id: str | None = None,
    ) -> list[Batch]:
        return await self._store.list(
            **_only_set({"dealer_user_id": dealer_user_id, "provider_id": provider_id})
        )

    async def get(self, batch_id: str) -> Batch | None:
        return await self._store.get(batch_id)

    async def require(self, batch_id: str) -> Batch:
        batch = await self._store.get(batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)
        return batch

    async def create(self, data: BatchCreate, actor: Actor | None = None) -> Batch:
        """Ad hoc empty OPEN batch."""
        now = self._clock()
        batch = Batch(
            id=_new_id(),
            batch_number=data.batch_number,
            status=BatchStatus.OPEN,
            payment_status=PaymentStatus.UNPAID,
            dealer_user_id=actor.user_id if actor else None,
            dealer_email=actor.email if actor else None,
            created_at=now,
            updated_at=now,
        )
        await self._store.insert(batch)
        return batch

    async def create_remittance_batch(self, data: RemittanceBatchCreate) -> Batch:
        """Fully formed CLOSED batch, submitted for review on creation."""
        if data.total_cents != data.subtotal_cents + data.tax_cents:
            raise ValidationFailedError("total_cents must equal subtotal_cents + tax_cents")
        if len(set(data.contract_ids)) != len(data.contract_ids):
            raise ValidationFailedError("contract_ids must be unique")

        now = self._clock()
        batch = Batch(
            id=_new_id(),
            **data.model_dump(),
            status=BatchStatus.CLOSED,
            payment_status=PaymentStatus.UNPAID,
            remittance_status=RemittanceStatus.SUBMITTED,
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )
        await self._store.insert(batch)
        logger.info(
            "Created remittance batch %s with %d contracts (total %d cents)",
            batch.batch_number,
            len(batch.contract_ids),
            batch.total_cents,
        )
        return batch

    async def update(self, batch_id: str, patch: dict) -> Batch:
        current = await self.require(batch_id)
        updated = self._state_machine.apply(current, patch, self._clock())
        return await self._store.replace(updated)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class ProductRepository:
    def __init__(self, store: RecordStore[Product], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def list(self, provider_id: str | None = None) -> list[Product]:
        return await self._store.list(**_only_set({"provider_id": provider_id}))

    async def list_published(self) -> list[Product]:
        return await self._store.list(published=True)

    async def get(self, product_id: str) -> Product | None:
        return await self._store.get(product_id)

    async def require(self, product_id: str) -> Product:
        product = await self._store.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def create(self, data: ProductCreate, actor: Actor) -> Product:
        if not data.name.strip():
            raise ValidationFailedError("name is required")
        now = self._clock()
        values = data.model_dump()
        for field in _ALLOWLIST_FIELDS:
            values[field] = clean_allowlist(values[field])
        product = _validated(
            Product,
            {
                **values,
                "id": _new_id(),
                "provider_id": actor.user_id,
                "created_at": now,
                "updated_at": now,
            },
            "product",
        )
        await self._store.insert(product)
        return product

    async def update(self, product_id: str, patch: dict, actor: Actor) -> Product:
        current = await self.require(product_id)
        _require_owner(current.provider_id, actor)

        patch = dict(patch)
        for key in ("id", "provider_id", "created_at", "updated_at"):
            if key in patch:
                raise InvalidStateError(f"Product field cannot be changed: {key}", [key])
        for field in _ALLOWLIST_FIELDS:
            if field in patch:
                patch[field] = clean_allowlist(patch[field])
        if "name" in patch and not (patch["name"] or "").strip():
            raise ValidationFailedError("name is required")

        updated = _validated(
            Product,
            {**current.to_storage(), **patch, "updated_at": self._clock()},
            "product",
        )
        return await self._store.replace(updated)

    async def remove(self, product_id: str, actor: Actor) -> None:
        current = await self._store.get(product_id)
        if current is None:
            return
        _require_owner(current.provider_id, actor)
        await self._store.delete(product_id)


_ALLOWLIST_FIELDS = (
    "eligibility_make_allowlist",
    "eligibility_model_allowlist",
    "eligibility_trim_allowlist",
)


class ProductPricingRepository:
    """Pricing rows are immutable once created: list, create and remove only."""

    def __init__(self, store: RecordStore[ProductPricing], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def list(
        self, product_id: str | None = None, actor: Actor | None = None
    ) -> list[ProductPricing]:
        provider_id = actor.user_id if actor and actor.role == ActorRole.PROVIDER else None
        return await self._store.list(
            **_only_set({"product_id": product_id, "provider_id": provider_id})
        )

    async def get(self, pricing_id: str) -> ProductPricing | None:
        return await self._store.get(pricing_id)

    async def require(self, pricing_id: str) -> ProductPricing:
        row = await self._store.get(pricing_id)
        if row is None:
            raise NotFoundError("ProductPricing", pricing_id)
        return row

    async def create(self, data: ProductPricingCreate, actor: Actor) -> ProductPricing:
        values = data.model_dump()
        if values["vehicle_class"] is not None:
            values["vehicle_class"] = values["vehicle_class"].strip() or None
        row = _validated(
            ProductPricing,
            {**values, "id": _new_id(), "provider_id": actor.user_id, "created_at": self._clock()},
            "pricing row",
        )
        validate_pricing_row(row)
        await self._store.insert(row)
        return row

    async def remove(self, pricing_id: str, actor: Actor) -> None:
        current = await self._store.get(pricing_id)
        if current is None:
            return
        _require_owner(current.provider_id, actor)
        await self._store.delete(pricing_id)


class ProductAddonRepository:
    def __init__(self, store: RecordStore[ProductAddon], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def list(
        self, product_id: str | None = None, actor: Actor | None = None
    ) -> list[ProductAddon]:
        provider_id = actor.user_id if actor and actor.role == ActorRole.PROVIDER else None
        return await self._store.list(
            **_only_set({"product_id": product_id, "provider_id": provider_id})
        )

    async def get(self, addon_id: str) -> ProductAddon | None:
        return await self._store.get(addon_id)

    async def create(self, data: ProductAddonCreate, actor: Actor) -> ProductAddon:
        now = self._clock()
        addon = _validated(
            ProductAddon,
            {
                **data.model_dump(),
                "id": _new_id(),
                "provider_id": actor.user_id,
                "created_at": now,
                "updated_at": now,
            },
            "add-on",
        )
        validate_addon(addon)
        await self._store.insert(addon)
        return addon

    async def update(self, addon_id: str, patch: dict, actor: Actor) -> ProductAddon:
        current = await self._store.get(addon_id)
        if current is None:
            raise NotFoundError("ProductAddon", addon_id)
        _require_owner(current.provider_id, actor)
        for key in ("id", "provider_id", "product_id", "created_at", "updated_at"):
            if key in patch:
                raise InvalidStateError(f"Add-on field cannot be changed: {key}", [key])

        updated = _validated(
            ProductAddon,
            {**current.to_storage(), **patch, "updated_at": self._clock()},
            "add-on",
        )
        validate_addon(updated)
        return await self._store.replace(updated)

    async def remove(self, addon_id: str, actor: Actor) -> None:
        current = await self._store.get(addon_id)
        if current is None:
            return
        _require_owner(current.provider_id, actor)
        await self._store.delete(addon_id)


class DocumentRepository:
    def __init__(self, store: RecordStore[ProductDocument], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def list(
        self, provider_id: str | None = None, product_id: str | None = None
    ) -> list[ProductDocument]:
        return await self._store.list(
            **_only_set({"provider_id": provider_id, "product_id": product_id})
        )

    async def get(self, document_id: str) -> ProductDocument | None:
        return await self._store.get(document_id)

    async def create(self, data: ProductDocumentCreate, actor: Actor) -> ProductDocument:
        if not data.title.strip():
            raise ValidationFailedError("title is required")
        document = _validated(
            ProductDocument,
            {
                **data.model_dump(),
                "id": _new_id(),
                "provider_id": actor.user_id,
                "created_at": self._clock(),
            },
            "document",
        )
        await self._store.insert(document)
        return document

    async def remove(self, document_id: str, actor: Actor) -> None:
        current = await self._store.get(document_id)
        if current is None:
            return
        _require_owner(current.provider_id, actor)
        await self._store.delete(document_id)


# ---------------------------------------------------------------------------
# Dealers
# ---------------------------------------------------------------------------


class EmployeeRepository:
    def __init__(self, store: RecordStore[Employee], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def list(self, dealer_id: str) -> list[Employee]:
        return await self._store.list(dealer_id=dealer_id)

    async def get(self, employee_id: str) -> Employee | None:
        return await self._store.get(employee_id)

    async def _require(self, employee_id: str, dealer_id: str) -> Employee:
        employee = await self._store.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        if employee.dealer_id != dealer_id:
            raise UnauthorizedError("Not authorized")
        return employee

    async def _ensure_unique_email(self, dealer_id: str, email: str, skip_id: str | None = None):
        wanted = email.strip().lower()
        for employee in await self._store.list(dealer_id=dealer_id):
            if employee.id != skip_id and employee.email.strip().lower() == wanted:
                raise ValidationFailedError(f"An employee with email {email} already exists")

    async def create(self, dealer_id: str, data: EmployeeCreate) -> Employee:
        name, email = data.name.strip(), data.email.strip()
        if not name or not email:
            raise ValidationFailedError("name and email are required")
        await self._ensure_unique_email(dealer_id, email)
        employee = Employee(
            id=_new_id(), dealer_id=dealer_id, name=name, email=email, created_at=self._clock()
        )
        await self._store.insert(employee)
        return employee

    async def update(self, employee_id: str, dealer_id: str, patch: dict) -> Employee:
        current = await self._require(employee_id, dealer_id)
        unknown = set(patch) - {"name", "email"}
        if unknown:
            raise ValidationFailedError(f"Unknown employee fields: {', '.join(sorted(unknown))}")
        values = {key: (value or "").strip() for key, value in patch.items()}
        if any(not value for value in values.values()):
            raise ValidationFailedError("name and email are required")
        if "email" in values:
            await self._ensure_unique_email(dealer_id, values["email"], skip_id=employee_id)
        updated = current.model_copy(update=values)
        return await self._store.replace(updated)

    async def remove(self, employee_id: str, dealer_id: str) -> None:
        current = await self._store.get(employee_id)
        if current is None:
            return
        if current.dealer_id != dealer_id:
            raise UnauthorizedError("Not authorized")
        await self._store.delete(employee_id)


class DealerPricingRepository:
    """Dealer markup percentage, stored one record per dealer."""

    def __init__(self, store: RecordStore[DealerPricing], clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def get_markup_pct(self, dealer_id: str) -> float:
        record = await self._store.get(dealer_id)
        return clamp_markup_pct(record.markup_pct) if record else 0

    async def set_markup_pct(self, dealer_id: str, markup_pct: float) -> DealerPricing:
        record = DealerPricing(
            dealer_id=dealer_id,
            markup_pct=clamp_markup_pct(markup_pct),
            updated_at=self._clock(),
        )
        return await self._store.replace(record)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


@dataclass
class Repositories:
    contracts: ContractRepository
    batches: BatchRepository
    products: ProductRepository
    pricing: ProductPricingRepository
    addons: ProductAddonRepository
    documents: DocumentRepository
    employees: EmployeeRepository
    dealer_pricing: DealerPricingRepository


def _local_stores(kv: KeyValueStore) -> dict[str, RecordStore]:
    return {
        "contracts": LocalRecordStore(kv, "contracts", Contract),
        "batches": LocalRecordStore(kv, "batches", Batch),
        "products": LocalRecordStore(kv, "products", Product),
        "pricing": LocalRecordStore(kv, "product_pricing", ProductPricing),
        "addons": LocalRecordStore(kv, "product_addons", ProductAddon),
        "documents": LocalRecordStore(kv, "documents", ProductDocument),
        "employees": LocalRecordStore(kv, "employees", Employee),
        "dealer_pricing": LocalRecordStore(
            kv, "dealer_pricing", DealerPricing, id_field="dealer_id", order_field="updated_at"
        ),
    }


def _sql_stores(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, RecordStore]:
    return {
        "contracts": SqlRecordStore(session_factory, models.ContractRow, Contract),
        "batches": SqlRecordStore(session_factory, models.BatchRow, Batch),
        "products": SqlRecordStore(session_factory, models.ProductRow, Product),
        "pricing": SqlRecordStore(session_factory, models.ProductPricingRow, ProductPricing),
        "addons": SqlRecordStore(session_factory, models.ProductAddonRow, ProductAddon),
        "documents": SqlRecordStore(session_factory, models.ProductDocumentRow, ProductDocument),
        "employees": SqlRecordStore(session_factory, models.EmployeeRow, Employee),
        "dealer_pricing": SqlRecordStore(
            session_factory,
            models.DealerPricingRow,
            DealerPricing,
            id_field="dealer_id",
            order_field="updated_at",
        ),
    }


def repositories_from_stores(stores: dict[str, RecordStore], clock: Clock = utcnow) -> Repositories:
    return Repositories(
        contracts=ContractRepository(stores["contracts"], clock),
        batches=BatchRepository(stores["batches"], clock),
        products=ProductRepository(stores["products"], clock),
        pricing=ProductPricingRepository(stores["pricing"], clock),
        addons=ProductAddonRepository(stores["addons"], clock),
        documents=DocumentRepository(stores["documents"], clock),
        employees=EmployeeRepository(stores["employees"], clock),
        dealer_pricing=DealerPricingRepository(stores["dealer_pricing"], clock),
    )


def build_local_repositories(kv: KeyValueStore | None = None, clock: Clock = utcnow) -> Repositories:
    return repositories_from_stores(_local_stores(kv or InMemoryKeyValueStore()), clock)


def build_hosted_repositories(
    session_factory: async_sessionmaker[AsyncSession], clock: Clock = utcnow
) -> Repositories:
    return repositories_from_stores(_sql_stores(session_factory), clock)


def build_repositories(
    settings: Settings,
    kv: KeyValueStore | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Repositories:
    """Compose the repositories for the configured app mode."""
    if settings.app_mode == AppMode.HOSTED:
        if session_factory is None:
            raise ValueError("Hosted mode requires a database session factory")
        logger.info("Using hosted persistence backend")
        return build_hosted_repositories(session_factory)

    logger.info("Using local persistence backend at %s", settings.local_store_path)
    return build_local_repositories(kv or JsonFileKeyValueStore(settings.local_store_path))
