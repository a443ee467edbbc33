"""BatchRepository behaviour, run against both persistence backends."""

from datetime import date

import pytest

from warranty_hub.domain.enums import (
    BatchStatus,
    PaymentMethod,
    PaymentStatus,
    RemittanceStatus,
)
from warranty_hub.domain.errors import (
    InvalidTransitionError,
    LockedError,
    NotFoundError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import BatchCreate, RemittanceBatchCreate


def _remittance(**kwargs) -> RemittanceBatchCreate:
    defaults = {
        "batch_number": "R-001",
        "contract_ids": ["c-1", "c-2"],
        "subtotal_cents": 100000,
        "tax_rate": 0.13,
        "tax_cents": 13000,
        "total_cents": 113000,
        "dealer_user_id": "dealer-1",
        "dealer_email": "dealer@example.com",
        "provider_id": "provider-1",
    }
    defaults.update(kwargs)
    return RemittanceBatchCreate(**defaults)


class TestCreate:
    @pytest.mark.asyncio
    async def test_ad_hoc_batch_is_open(self, repos, dealer):
        batch = await repos.batches.create(BatchCreate(batch_number="B-1"), dealer)

        assert batch.status == BatchStatus.OPEN
        assert batch.payment_status == PaymentStatus.UNPAID
        assert batch.workflow_status == RemittanceStatus.DRAFT
        assert batch.contract_ids == []
        assert batch.dealer_user_id == dealer.user_id

    @pytest.mark.asyncio
    async def test_remittance_batch_is_closed_and_submitted(self, repos):
        batch = await repos.batches.create_remittance_batch(_remittance())

        assert batch.status == BatchStatus.CLOSED
        assert batch.remittance_status == RemittanceStatus.SUBMITTED
        assert batch.workflow_status == RemittanceStatus.SUBMITTED
        assert batch.submitted_at == batch.created_at

        stored = await repos.batches.require(batch.id)
        assert stored.contract_ids == ["c-1", "c-2"]
        assert stored.tax_rate == pytest.approx(0.13)
        assert stored.total_cents == 113000

    @pytest.mark.asyncio
    async def test_totals_must_add_up(self, repos):
        with pytest.raises(ValidationFailedError):
            await repos.batches.create_remittance_batch(_remittance(total_cents=113001))

    @pytest.mark.asyncio
    async def test_contract_ids_must_be_unique(self, repos):
        with pytest.raises(ValidationFailedError):
            await repos.batches.create_remittance_batch(_remittance(contract_ids=["c-1", "c-1"]))


class TestReadAndList:
    @pytest.mark.asyncio
    async def test_missing(self, repos):
        assert await repos.batches.get("nope") is None
        with pytest.raises(NotFoundError):
            await repos.batches.require("nope")

    @pytest.mark.asyncio
    async def test_filters(self, repos):
        mine = await repos.batches.create_remittance_batch(_remittance())
        await repos.batches.create_remittance_batch(
            _remittance(batch_number="R-002", dealer_user_id="dealer-2", provider_id="provider-2")
        )

        assert [b.id for b in await repos.batches.list(dealer_user_id="dealer-1")] == [mine.id]
        assert [b.id for b in await repos.batches.list(provider_id="provider-1")] == [mine.id]
        assert len(await repos.batches.list()) == 2


class TestUpdate:
    @pytest.mark.asyncio
    async def test_open_batch_editable_then_closed(self, repos, dealer):
        batch = await repos.batches.create(BatchCreate(batch_number="B-1"), dealer)
        batch = await repos.batches.update(batch.id, {"contract_ids": ["c-1"]})
        batch = await repos.batches.update(batch.id, {"status": BatchStatus.CLOSED})

        assert batch.contract_ids == ["c-1"]
        assert batch.workflow_status == RemittanceStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_closed_batch_contract_ids_locked(self, repos):
        batch = await repos.batches.create_remittance_batch(_remittance())
        with pytest.raises(LockedError):
            await repos.batches.update(batch.id, {"contract_ids": ["c-3"]})
        assert (await repos.batches.require(batch.id)).contract_ids == ["c-1", "c-2"]

    @pytest.mark.asyncio
    async def test_closed_batch_cannot_reopen(self, repos):
        batch = await repos.batches.create_remittance_batch(_remittance())
        with pytest.raises(InvalidTransitionError):
            await repos.batches.update(batch.id, {"status": BatchStatus.OPEN})

    @pytest.mark.asyncio
    async def test_payment_recorded_on_closed_batch(self, repos):
        batch = await repos.batches.create_remittance_batch(_remittance())
        paid = await repos.batches.update(
            batch.id,
            {
                "payment_status": PaymentStatus.PAID,
                "payment_method": PaymentMethod.EFT,
                "payment_date": date(2026, 3, 31),
            },
        )

        assert paid.workflow_status == RemittanceStatus.PAID
        stored = await repos.batches.require(batch.id)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.payment_method == PaymentMethod.EFT
        assert stored.payment_date == date(2026, 3, 31)

        with pytest.raises(LockedError):
            await repos.batches.update(batch.id, {"payment_reference": "late"})
