"""
Tests for the Watch Velocity Score.

These tests check:
1. The worked example (10 watchers, 2 bids, 5 days, $150 -> 2.8 Solid Demand)
2. Monotonicity in watchers, bids, price and competition
3. Floors and outlier penalties
4. Label thresholds and confidence bounds

Usage:
    pytest tests/test_wvs_scorer.py -v
"""

import pytest

from artpulse.scoring.scoring_config import DEFAULT_CONFIG, ScoringConfig
from artpulse.scoring.wvs_scorer import WVSInput, WVSScorer


def make_input(**overrides):
    values = {
        "watcher_count": 10,
        "bid_count": 2,
        "days_active": 5,
        "item_price": 150.0,
        "category_median_price": None,
        "similar_listings_count": 0,
    }
    values.update(overrides)
    return WVSInput(**values)


class TestWorkedExample:

    def setup_method(self):
        self.scorer = WVSScorer()

    def test_solid_demand_example(self):
        score = self.scorer.calculate(make_input())

        assert score.wvs == 2.8
        assert score.label == "Solid Demand"
        assert score.components.pulse_velocity == 2.8
        assert score.components.normalized_price_factor == 1.0
        assert score.components.competition_adjustment == 1.0

    def test_example_confidence(self):
        """12 engagements earn the bonus; 5 days do not."""
        score = self.scorer.calculate(make_input())
        assert score.confidence == 0.7

    def test_same_input_same_output(self):
        first = self.scorer.calculate(make_input())
        for _ in range(50):
            assert self.scorer.calculate(make_input()) == first


class TestMonotonicity:

    def setup_method(self):
        self.scorer = WVSScorer()

    def test_more_watchers_never_lower(self):
        scores = [self.scorer.calculate(make_input(watcher_count=w)).wvs for w in range(0, 40, 5)]
        assert scores == sorted(scores)

    def test_more_bids_never_lower(self):
        scores = [self.scorer.calculate(make_input(bid_count=b)).wvs for b in range(0, 10)]
        assert scores == sorted(scores)

    def test_higher_price_never_higher(self):
        scores = [
            self.scorer.calculate(make_input(item_price=p)).wvs
            for p in (10, 50, 150, 299, 301, 600, 2000)
        ]
        assert scores == sorted(scores, reverse=True)

    def test_more_competition_never_higher(self):
        scores = [
            self.scorer.calculate(make_input(similar_listings_count=k)).wvs
            for k in range(0, 6)
        ]
        assert scores == sorted(scores, reverse=True)

    def test_competition_adjustment(self):
        score = self.scorer.calculate(make_input(similar_listings_count=3))
        assert score.components.competition_adjustment == 0.25
        assert score.wvs == 0.7


class TestFloorsAndPenalties:

    def setup_method(self):
        self.scorer = WVSScorer()

    def test_no_engagement_scores_zero(self):
        score = self.scorer.calculate(make_input(watcher_count=0, bid_count=0))
        assert score.wvs == 0.0
        assert score.label == "Low Demand"

    def test_missing_watchers_treated_as_zero(self):
        score = self.scorer.calculate(make_input(watcher_count=None, bid_count=1))
        assert score.components.pulse_velocity == 0.4

    def test_days_active_floored_to_one(self):
        score = self.scorer.calculate(make_input(days_active=0))
        assert score.components.pulse_velocity == 14.0

    def test_outlier_price_penalized(self):
        """400 / 150 = 2.67 > 2, so the factor is multiplied by 1.5."""
        score = self.scorer.calculate(make_input(item_price=400))
        assert score.components.normalized_price_factor == 4.0
        assert score.wvs == 0.7

    def test_price_factor_floor(self):
        score = self.scorer.calculate(make_input(item_price=1))
        assert score.components.normalized_price_factor == 0.1
        assert score.wvs == 28.0

    def test_category_median_floor(self):
        score = self.scorer.calculate(make_input(item_price=1, category_median_price=0))
        assert score.components.normalized_price_factor == 1.0

    def test_explicit_category_median(self):
        score = self.scorer.calculate(make_input(item_price=150, category_median_price=300))
        assert score.components.normalized_price_factor == 0.5
        assert score.wvs == 5.6
        assert score.label == "High Demand"


class TestLabelsAndConfidence:

    def setup_method(self):
        self.scorer = WVSScorer()

    @pytest.mark.parametrize("wvs,label", [
        (5.01, "High Demand"),
        (5.0, "Solid Demand"),
        (2.01, "Solid Demand"),
        (2.0, "Moderate Demand"),
        (1.01, "Moderate Demand"),
        (1.0, "Low Demand"),
        (0.0, "Low Demand"),
    ])
    def test_thresholds_are_strict(self, wvs, label):
        assert self.scorer.label_for(wvs) == label

    def test_confidence_base(self):
        assert self.scorer.calculate_confidence(0, 0, 1) == 0.5

    def test_confidence_full(self):
        assert self.scorer.calculate_confidence(8, 2, 7) == pytest.approx(0.9)

    def test_confidence_bounds(self):
        for watchers in (0, 5, 50):
            for days in (1, 6, 7, 30):
                confidence = self.scorer.calculate_confidence(watchers, 0, days)
                assert 0.5 <= round(confidence, 2) <= 0.9


class TestScoringConfig:

    def test_default_config_valid(self):
        assert DEFAULT_CONFIG.validate() is True

    def test_custom_config(self):
        config = ScoringConfig()
        assert WVSScorer(config).calculate(make_input()).wvs == 2.8
