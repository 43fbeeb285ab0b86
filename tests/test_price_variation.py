# ==============================================================================
# Tests for PriceVariationAnalyzer
# ==============================================================================
"""
Tests for price anomaly splitting, distinct observations and the
per-product variation percentage.
"""

from decimal import Decimal

import pytest

from clickfunnel.core.exceptions import ComputationError
from clickfunnel.core.models import PriceObservation
from clickfunnel.core.price_variation import (
    PriceVariationAnalyzer,
    collect_observations,
    split_price_anomalies,
)


def _obs(product_id, price, brand="acme"):
    return PriceObservation(product_id=product_id, price=Decimal(price), category_id=1, brand=brand)


# ==============================================================================
# Variation
# ==============================================================================


class TestVariation:
    """Tests for the per-product spread."""

    def test_fifty_percent(self):
        result = PriceVariationAnalyzer.variation(1, [Decimal("10.00"), Decimal("15.00")])
        assert result.min_price == Decimal("10.00")
        assert result.max_price == Decimal("15.00")
        assert result.variation_pct == Decimal("50.00")

    def test_single_price_is_zero(self):
        result = PriceVariationAnalyzer.variation(1, [Decimal("7.25")])
        assert result.variation_pct == Decimal("0.00")

    def test_rounded_to_two_places_half_up(self):
        # (4.01 - 3.00) / 3.00 * 100 = 33.666...
        result = PriceVariationAnalyzer.variation(1, [Decimal("3.00"), Decimal("4.01")])
        assert result.variation_pct == Decimal("33.67")
        # (1.00125 - 1) / 1 * 100 = 0.125 -> 0.13
        result = PriceVariationAnalyzer.variation(2, [Decimal("1"), Decimal("1.00125")])
        assert result.variation_pct == Decimal("0.13")

    def test_zero_minimum_raises(self):
        with pytest.raises(ComputationError) as exc_info:
            PriceVariationAnalyzer.variation(42, [Decimal("0.00"), Decimal("5.00")])
        assert exc_info.value.product_id == 42

    def test_analyze_sorted_by_product(self):
        observations = [_obs(3, "2.00"), _obs(1, "10.00"), _obs(1, "15.00"), _obs(2, "4.00")]
        results = PriceVariationAnalyzer().analyze(observations)
        assert [r.product_id for r in results] == [1, 2, 3]
        assert results[0].variation_pct == Decimal("50.00")

    def test_partitioned_analysis_matches_single(self):
        observations = [_obs(pid, f"{price}.00") for pid in range(30) for price in (5, 6, 9)]
        single = PriceVariationAnalyzer().analyze(observations)
        sharded = PriceVariationAnalyzer(partitions=4, workers=2).analyze(observations)
        assert sharded == single

    def test_analyze_propagates_computation_error(self):
        with pytest.raises(ComputationError):
            PriceVariationAnalyzer().analyze([_obs(1, "0.00"), _obs(1, "3.00")])


# ==============================================================================
# Observations and anomalies
# ==============================================================================


class TestObservations:
    """Tests for splitting and deduplicating price observations."""

    def test_non_positive_and_missing_prices_are_anomalies(self, make_event):
        events = [
            make_event(price="10.00"),
            make_event(price="0.00"),
            make_event(price="-1.00"),
            make_event(price=None),
        ]
        priced, anomalies = split_price_anomalies(events)
        assert [e.price for e in priced] == [Decimal("10.00")]
        assert len(anomalies) == 3

    def test_repeated_prices_collapse(self, make_event):
        events = [make_event(price="10.00") for _ in range(5)] + [make_event(price="12.00")]
        assert len(collect_observations(events)) == 2

    def test_brand_change_is_a_separate_observation(self, make_event):
        events = [make_event(price="10.00", brand="a"), make_event(price="10.00", brand="b")]
        observations = collect_observations(events)
        assert len(observations) == 2
        result = PriceVariationAnalyzer().analyze(observations)
        assert result[0].variation_pct == Decimal("0.00")

    def test_events_without_product_ignored(self, make_event):
        assert collect_observations([make_event(product_id=None)]) == set()
