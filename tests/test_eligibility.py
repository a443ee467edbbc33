"""Unit tests for product and pricing-row eligibility predicates."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from warranty_hub.domain.schemas import Product, ProductPricing
from warranty_hub.services.eligibility import (
    eligible_pricing_rows,
    is_eligible_by_age,
    is_eligible_by_mileage,
    is_pricing_eligible,
    is_pricing_eligible_with_constraints,
    is_product_eligible,
    matches_allowlist,
    matches_trim_allowlist,
    normalize_text,
    vehicle_age_years,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _product(**kwargs) -> Product:
    defaults = {
        "id": "prod-1",
        "provider_id": "provider-1",
        "name": "Powertrain",
        "published": True,
        "created_at": NOW,
        "updated_at": NOW,
    }
    defaults.update(kwargs)
    return Product(**defaults)


def _pricing(**kwargs) -> ProductPricing:
    defaults = {
        "id": "row-1",
        "provider_id": "provider-1",
        "product_id": "prod-1",
        "term_months": 36,
        "term_km": 60000,
        "base_price_cents": 50000,
        "created_at": NOW,
    }
    defaults.update(kwargs)
    return ProductPricing(**defaults)


def _vehicle(**kwargs):
    defaults = {
        "vehicle_year": "2020",
        "vehicle_make": "Honda",
        "vehicle_model": "Civic",
        "vehicle_trim": "EX-L",
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


class TestNormalizeText:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Honda", "honda"),
            ("  EX-L  ", "ex l"),
            ("F-150 / Lariat", "f 150 lariat"),
            (None, ""),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_text(raw) == expected


class TestVehicleAge:
    def test_age_from_string_year(self):
        assert vehicle_age_years("2020", current_year=2026) == 6

    def test_unparsable_year(self):
        assert vehicle_age_years("twenty", current_year=2026) is None
        assert vehicle_age_years(None, current_year=2026) is None


# ---------------------------------------------------------------------------
# Product predicates
# ---------------------------------------------------------------------------


class TestAgeAndMileage:
    def test_no_limit_always_passes(self):
        assert is_eligible_by_age(None, None) is True
        assert is_eligible_by_mileage(None, None) is True

    def test_age_limit_boundary(self):
        assert is_eligible_by_age(6, "2020", current_year=2026) is True
        assert is_eligible_by_age(5, "2020", current_year=2026) is False

    def test_age_limit_with_unknown_year_fails(self):
        assert is_eligible_by_age(10, None, current_year=2026) is False

    def test_mileage_limit_boundary(self):
        assert is_eligible_by_mileage(100000, 100000) is True
        assert is_eligible_by_mileage(100000, 100001) is False

    def test_mileage_limit_with_unknown_mileage_fails(self):
        assert is_eligible_by_mileage(100000, None) is False
        assert is_eligible_by_mileage(100000, float("nan")) is False


class TestAllowlists:
    def test_empty_allowlist_is_unrestricted(self):
        assert matches_allowlist(None, "Honda") is True
        assert matches_allowlist([], None) is True
        assert matches_allowlist(["", "  "], "Honda") is True

    def test_exact_normalized_match(self):
        assert matches_allowlist(["HONDA", "Toyota"], "honda") is True
        assert matches_allowlist(["Honda"], "Hond") is False

    def test_missing_value_fails_a_defined_allowlist(self):
        assert matches_allowlist(["Honda"], None) is False

    def test_trim_matches_substrings_both_ways(self):
        assert matches_trim_allowlist(["EX"], "EX-L Navi") is True
        assert matches_trim_allowlist(["Touring Elite Package"], "Touring") is True
        assert matches_trim_allowlist(["Sport"], "EX-L") is False

    def test_model_is_not_substring_matched(self):
        assert matches_allowlist(["Civic"], "Civic Type R") is False


class TestIsProductEligible:
    def test_unrestricted_product(self):
        assert is_product_eligible(_product(), _vehicle(), 50000, current_year=2026) is True

    def test_every_predicate_must_pass(self):
        product = _product(
            eligibility_max_vehicle_age_years=10,
            eligibility_max_mileage_km=150000,
            eligibility_make_allowlist=["Honda"],
            eligibility_model_allowlist=["Civic", "Accord"],
            eligibility_trim_allowlist=["EX"],
        )
        assert is_product_eligible(product, _vehicle(), 80000, current_year=2026) is True
        assert is_product_eligible(product, _vehicle(vehicle_make="Ford"), 80000, 2026) is False
        assert is_product_eligible(product, _vehicle(), 200000, current_year=2026) is False
        assert is_product_eligible(product, _vehicle(vehicle_year="2010"), 80000, 2026) is False
        assert is_product_eligible(product, _vehicle(vehicle_trim="LX"), 80000, 2026) is False


# ---------------------------------------------------------------------------
# Pricing row predicates
# ---------------------------------------------------------------------------


class TestIsPricingEligible:
    def test_unknown_or_negative_mileage_fails(self):
        row = _pricing()
        assert is_pricing_eligible(row, None) is False
        assert is_pricing_eligible(row, -1) is False

    def test_mileage_band_is_inclusive(self):
        row = _pricing(vehicle_mileage_min_km=20000, vehicle_mileage_max_km=80000)
        assert is_pricing_eligible(row, 20000) is True
        assert is_pricing_eligible(row, 80000) is True
        assert is_pricing_eligible(row, 19999) is False
        assert is_pricing_eligible(row, 80001) is False

    def test_open_ended_band(self):
        row = _pricing(vehicle_mileage_min_km=None, vehicle_mileage_max_km=None)
        assert is_pricing_eligible(row, 0) is True
        assert is_pricing_eligible(row, 999999) is True

    def test_vehicle_class_must_match_when_row_defines_one(self):
        row = _pricing(vehicle_class="CLASS_2")
        assert is_pricing_eligible(row, 1000, "CLASS_2") is True
        assert is_pricing_eligible(row, 1000, "CLASS_1") is False
        assert is_pricing_eligible(row, 1000, None) is False

    def test_classless_row_accepts_any_class(self):
        assert is_pricing_eligible(_pricing(), 1000, "CLASS_3") is True


class TestPricingConstraints:
    def test_min_term_months(self):
        row = _pricing(term_months=24)
        assert is_pricing_eligible_with_constraints(row, 1000, min_term_months=24) is True
        assert is_pricing_eligible_with_constraints(row, 1000, min_term_months=36) is False

    def test_unlimited_term_satisfies_any_minimum(self):
        row = _pricing(term_months=None, term_km=None)
        assert is_pricing_eligible_with_constraints(
            row, 1000, min_term_months=120, min_term_km=500000
        ) is True

    def test_max_deductible(self):
        row = _pricing(deductible_cents=10000)
        assert is_pricing_eligible_with_constraints(row, 1000, max_deductible_cents=10000) is True
        assert is_pricing_eligible_with_constraints(row, 1000, max_deductible_cents=5000) is False


class TestEligiblePricingRows:
    def test_unknown_mileage_leaves_rows_unfiltered(self):
        rows = [_pricing(id="a", vehicle_mileage_max_km=10), _pricing(id="b")]
        assert [r.id for r in eligible_pricing_rows(rows, None)] == ["a", "b"]

    def test_filters_by_band(self):
        rows = [_pricing(id="a", vehicle_mileage_max_km=10), _pricing(id="b")]
        assert [r.id for r in eligible_pricing_rows(rows, 5000)] == ["b"]
