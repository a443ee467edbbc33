"""Shared test infrastructure for the WarrantyHub test suite.

Provides:
- clock: deterministic, strictly increasing UTC clock
- kv: in-memory key-value store for the local backend
- session_factory: async SQLite in-memory session factory with all tables created
- repos: repositories parametrized over both backends (local, hosted)
- actor fixtures and catalog factories
"""

from datetime import datetime, timedelta, timezone

import pytest

from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.schemas import (
    Actor,
    ContractCreate,
    ProductAddonCreate,
    ProductCreate,
    ProductPricingCreate,
)
from warranty_hub.infra.database import create_engine, create_session_factory, init_db
from warranty_hub.infra.kv_store import InMemoryKeyValueStore
from warranty_hub.infra.repositories import build_hosted_repositories, build_local_repositories


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class TickingClock:
    """Each call returns a time one second after the previous one."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return TickingClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
async def session_factory():
    """Async SQLite in-memory database with all tables created.

    Creates a fresh engine + tables for each test, then disposes it.
    """
    engine = create_engine("sqlite+aiosqlite://")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture(params=["local", "hosted"])
async def repos(request, kv, session_factory, clock):
    """Repositories over each backend; every test using this runs twice."""
    if request.param == "local":
        return build_local_repositories(kv, clock)
    return build_hosted_repositories(session_factory, clock)


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


@pytest.fixture
def dealer():
    return Actor(user_id="dealer-1", email="dealer@example.com", role=ActorRole.DEALER)


@pytest.fixture
def other_dealer():
    return Actor(user_id="dealer-2", email="other@example.com", role=ActorRole.DEALER)


@pytest.fixture
def provider():
    return Actor(user_id="provider-1", email="provider@example.com", role=ActorRole.PROVIDER)


@pytest.fixture
def other_provider():
    return Actor(user_id="provider-2", email="rival@example.com", role=ActorRole.PROVIDER)


@pytest.fixture
def admin():
    return Actor(user_id="admin-1", email="admin@example.com", role=ActorRole.ADMIN)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_product(repos, provider):
    """Factory that creates a Product owned by `provider`.

    Usage:
        product = await make_product(name="Gold", published=True)
    """
    async def _factory(actor=None, **overrides):
        data = {"name": "Powertrain Gold", "published": True, **overrides}
        return await repos.products.create(ProductCreate(**data), actor or provider)

    return _factory


@pytest.fixture
def make_pricing(repos, provider):
    """Factory that creates a ProductPricing row."""
    async def _factory(product_id: str, actor=None, **overrides):
        data = {
            "product_id": product_id,
            "term_months": 36,
            "term_km": 60000,
            "deductible_cents": 10000,
            "base_price_cents": 60000,
            "dealer_cost_cents": 50000,
            **overrides,
        }
        return await repos.pricing.create(ProductPricingCreate(**data), actor or provider)

    return _factory


@pytest.fixture
def make_addon(repos, provider):
    """Factory that creates a ProductAddon."""
    async def _factory(product_id: str, actor=None, **overrides):
        data = {
            "product_id": product_id,
            "name": "Roadside Assistance",
            "base_price_cents": 5000,
            **overrides,
        }
        return await repos.addons.create(ProductAddonCreate(**data), actor or provider)

    return _factory


@pytest.fixture
def make_contract(repos, dealer):
    """Factory that creates a draft Contract."""
    async def _factory(actor=None, **overrides):
        data = {"contract_number": "C-1001", **overrides}
        return await repos.contracts.create(ContractCreate(**data), actor or dealer)

    return _factory
