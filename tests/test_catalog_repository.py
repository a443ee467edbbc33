"""Provider catalog repositories: products, pricing rows, add-ons, documents."""

import pytest

from warranty_hub.domain.errors import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from warranty_hub.domain.schemas import ProductDocumentCreate


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class TestProducts:
    @pytest.mark.asyncio
    async def test_owned_by_creator(self, make_product, provider):
        product = await make_product()
        assert product.provider_id == provider.user_id

    @pytest.mark.asyncio
    async def test_allowlists_cleaned(self, repos, make_product):
        product = await make_product(
            eligibility_make_allowlist=[" Honda ", "", "Toyota"],
            eligibility_model_allowlist=["  "],
        )
        stored = await repos.products.require(product.id)
        assert stored.eligibility_make_allowlist == ["Honda", "Toyota"]
        assert stored.eligibility_model_allowlist is None

    @pytest.mark.asyncio
    async def test_name_required(self, make_product):
        with pytest.raises(ValidationFailedError):
            await make_product(name="   ")

    @pytest.mark.asyncio
    async def test_list_by_provider_and_published(
        self, repos, make_product, provider, other_provider
    ):
        mine = await make_product(name="Mine", published=False)
        theirs = await make_product(name="Theirs", actor=other_provider)

        assert [p.id for p in await repos.products.list(provider_id=provider.user_id)] == [mine.id]
        assert [p.id for p in await repos.products.list_published()] == [theirs.id]

    @pytest.mark.asyncio
    async def test_owner_updates(self, repos, make_product, provider):
        product = await make_product(published=False)
        updated = await repos.products.update(
            product.id, {"published": True, "eligibility_trim_allowlist": [" EX "]}, provider
        )
        assert updated.published is True
        assert updated.eligibility_trim_allowlist == ["EX"]
        assert updated.updated_at > product.updated_at

    @pytest.mark.asyncio
    async def test_other_provider_cannot_update_or_remove(
        self, repos, make_product, other_provider, admin
    ):
        product = await make_product()
        with pytest.raises(UnauthorizedError):
            await repos.products.update(product.id, {"name": "Stolen"}, other_provider)
        with pytest.raises(UnauthorizedError):
            await repos.products.remove(product.id, admin)

    @pytest.mark.asyncio
    async def test_ownership_cannot_be_changed(self, repos, make_product, provider):
        product = await make_product()
        with pytest.raises(InvalidStateError):
            await repos.products.update(product.id, {"provider_id": "provider-2"}, provider)

    @pytest.mark.asyncio
    async def test_remove(self, repos, make_product, provider):
        product = await make_product()
        await repos.products.remove(product.id, provider)
        assert await repos.products.get(product.id) is None
        with pytest.raises(NotFoundError):
            await repos.products.update(product.id, {"name": "x"}, provider)


# ---------------------------------------------------------------------------
# Pricing rows
# ---------------------------------------------------------------------------


class TestPricingRows:
    @pytest.mark.asyncio
    async def test_create_and_list(self, repos, make_product, make_pricing, provider):
        product = await make_product()
        row = await make_pricing(product.id, vehicle_class="  CLASS_1 ")

        assert row.provider_id == provider.user_id
        assert row.vehicle_class == "CLASS_1"
        assert [r.id for r in await repos.pricing.list(product_id=product.id)] == [row.id]

    @pytest.mark.asyncio
    async def test_unlimited_terms_allowed(self, make_product, make_pricing):
        product = await make_product()
        row = await make_pricing(product.id, term_months=None, term_km=None)
        assert row.term_months is None
        assert row.term_km is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"term_months": 0},
            {"term_km": -1},
            {"deductible_cents": -1},
            {"base_price_cents": 0},
            {"dealer_cost_cents": -5},
            {"vehicle_mileage_min_km": -1},
            {"vehicle_mileage_min_km": 50000, "vehicle_mileage_max_km": 40000},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_rows_rejected(self, repos, make_product, make_pricing, overrides):
        product = await make_product()
        with pytest.raises(ValidationFailedError):
            await make_pricing(product.id, **overrides)
        assert await repos.pricing.list(product_id=product.id) == []

    @pytest.mark.asyncio
    async def test_provider_sees_only_own_rows(
        self, repos, make_product, make_pricing, provider, other_provider, dealer
    ):
        product = await make_product()
        mine = await make_pricing(product.id)
        await make_pricing(product.id, actor=other_provider)

        assert [r.id for r in await repos.pricing.list(product.id, provider)] == [mine.id]
        assert len(await repos.pricing.list(product.id, dealer)) == 2

    @pytest.mark.asyncio
    async def test_remove_requires_owner(
        self, repos, make_product, make_pricing, provider, other_provider
    ):
        product = await make_product()
        row = await make_pricing(product.id)
        with pytest.raises(UnauthorizedError):
            await repos.pricing.remove(row.id, other_provider)
        await repos.pricing.remove(row.id, provider)
        assert await repos.pricing.get(row.id) is None


# ---------------------------------------------------------------------------
# Add-ons
# ---------------------------------------------------------------------------


class TestAddons:
    @pytest.mark.asyncio
    async def test_create_update_remove(self, repos, make_product, make_addon, provider):
        product = await make_product()
        addon = await make_addon(product.id, applicable_pricing_row_ids=["row-1"])

        updated = await repos.addons.update(addon.id, {"active": False}, provider)
        assert updated.active is False
        assert (await repos.addons.get(addon.id)).applicable_pricing_row_ids == ["row-1"]

        await repos.addons.remove(addon.id, provider)
        assert await repos.addons.list(product_id=product.id) == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": " "},
            {"base_price_cents": 0},
            {"min_price_cents": 500, "max_price_cents": 100},
            {"dealer_cost_cents": -1},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_addons_rejected(self, make_product, make_addon, overrides):
        product = await make_product()
        with pytest.raises(ValidationFailedError):
            await make_addon(product.id, **overrides)

    @pytest.mark.asyncio
    async def test_update_validates(self, repos, make_product, make_addon, provider):
        product = await make_product()
        addon = await make_addon(product.id)
        with pytest.raises(ValidationFailedError):
            await repos.addons.update(addon.id, {"base_price_cents": -10}, provider)
        with pytest.raises(InvalidStateError):
            await repos.addons.update(addon.id, {"product_id": "other"}, provider)

    @pytest.mark.asyncio
    async def test_other_provider_cannot_update(
        self, repos, make_product, make_addon, other_provider
    ):
        product = await make_product()
        addon = await make_addon(product.id)
        with pytest.raises(UnauthorizedError):
            await repos.addons.update(addon.id, {"active": False}, other_provider)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocuments:
    @pytest.mark.asyncio
    async def test_create_list_remove(self, repos, make_product, provider, other_provider):
        product = await make_product()
        document = await repos.documents.create(
            ProductDocumentCreate(
                product_id=product.id,
                title="Terms and conditions",
                file_name="terms.pdf",
                mime_type="application/pdf",
                size_bytes=1024,
                storage_path=f"{provider.user_id}/{product.id}/terms.pdf",
            ),
            provider,
        )

        assert [d.id for d in await repos.documents.list(product_id=product.id)] == [document.id]
        assert await repos.documents.list(provider_id=other_provider.user_id) == []

        with pytest.raises(UnauthorizedError):
            await repos.documents.remove(document.id, other_provider)
        await repos.documents.remove(document.id, provider)
        assert await repos.documents.get(document.id) is None

    @pytest.mark.asyncio
    async def test_title_required(self, repos, provider):
        with pytest.raises(ValidationFailedError):
            await repos.documents.create(
                ProductDocumentCreate(title="  ", storage_path="p/x.pdf"), provider
            )
