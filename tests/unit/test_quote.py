"""
Unit tests for the combined quote and volume discounts.
"""

import logging

import pytest

from naascalc.core.results import CalculationResult, Totals
from naascalc.dependencies.graph import build_default_graph
from naascalc.pricing.quote import Quote, build_quote, calculate_volume_discounts


def priced(one_time=0.0, monthly=0.0, annual=0.0, three_year=0.0):
    return CalculationResult(totals=Totals(one_time, monthly, annual, three_year))


@pytest.fixture
def scenario_results():
    """Capital, support and a three year contract as a recalculation leaves them."""
    return {
        "capital": priced(one_time=5000, three_year=5000),
        "support": priced(monthly=925, annual=11100, three_year=33300),
        "dynamics3Year": priced(monthly=1050, annual=12600, three_year=37800),
        "prtg": CalculationResult.disabled(),
    }


class TestVolumeDiscounts:
    """Tests for discount tiers."""

    def test_no_discount_below_thresholds(self):
        d = calculate_volume_discounts(1499, 2)
        assert d.monthly_discount == 0
        assert d.annual_discount == pytest.approx(0.02)
        assert d.term_discount == pytest.approx(0.05)
        assert not d.volume_discount
        assert not d.bundle_discount

    def test_volume_tier(self):
        d = calculate_volume_discounts(1500, 1)
        assert d.monthly_discount == pytest.approx(0.05)
        assert d.volume_discount

    def test_highest_volume_tier_wins(self):
        assert calculate_volume_discounts(5000, 1).monthly_discount == pytest.approx(0.10)
        assert calculate_volume_discounts(3000, 1).monthly_discount == pytest.approx(0.075)

    def test_bundle_adds_to_volume(self):
        d = calculate_volume_discounts(5000, 4)
        assert d.monthly_discount == pytest.approx(0.15)
        assert d.annual_discount == pytest.approx(0.17)
        assert d.term_discount == pytest.approx(0.20)
        assert d.bundle_discount

    def test_small_bundle(self):
        d = calculate_volume_discounts(0, 3)
        assert d.monthly_discount == pytest.approx(0.025)
        assert d.bundle_discount
        assert not d.volume_discount

    def test_to_dict(self):
        data = calculate_volume_discounts(1500, 3).to_dict()
        assert set(data) == {"monthlyDiscount", "annualDiscount", "termDiscount", "reasons"}
        assert data["reasons"]["volumeDiscount"] is True
        assert data["reasons"]["bundleDiscount"] is True


class TestBuildQuote:
    """Tests for combining results."""

    def test_contracts_excluded_with_graph(self, scenario_results):
        quote = build_quote(scenario_results, build_default_graph())

        assert set(quote.components) == {"capital", "support"}
        assert quote.excluded == ["dynamics3Year"]
        assert quote.subtotals == Totals(5000, 925, 11100, 38300)
        assert quote.totals == Totals(5000, 925, 10878, 36385)
        assert quote.is_complete

    def test_without_graph_everything_counts(self, scenario_results):
        quote = build_quote(scenario_results)
        assert "dynamics3Year" in quote.components
        assert quote.subtotals.monthly == 925 + 1050
        assert quote.excluded == []

    def test_custom_exclusions(self, scenario_results):
        quote = build_quote(scenario_results, build_default_graph(), exclude_categories=())
        assert "dynamics3Year" in quote.components

    def test_disabled_skipped(self, scenario_results):
        quote = build_quote(scenario_results, build_default_graph())
        assert "prtg" not in quote.components
        assert "prtg" not in quote.failed

    def test_failed_components_reported(self, caplog):
        results = {
            "capital": CalculationResult.fallback("boom", component_id="capital"),
            "support": priced(monthly=100, annual=1200, three_year=3600),
        }
        with caplog.at_level(logging.WARNING, logger="naascalc.pricing.quote"):
            quote = build_quote(results)

        assert quote.failed == ["capital"]
        assert not quote.is_complete
        assert quote.subtotals.monthly == 100
        assert "capital" in caplog.text

    def test_empty(self):
        quote = build_quote({})
        assert quote.totals == Totals()
        assert quote.components == {}

    def test_to_dict(self, scenario_results):
        data = build_quote(scenario_results, build_default_graph()).to_dict()
        assert data["totals"]["threeYear"] == 36385
        assert data["discounts"]["termDiscount"] == pytest.approx(0.05)
        assert data["excluded"] == ["dynamics3Year"]
        assert set(data["components"]) == {"capital", "support"}

    def test_default_quote(self):
        assert Quote().is_complete
