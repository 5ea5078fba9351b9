"""
Tests for the demand scoring engine and the category median book.
"""

import pytest
from datetime import datetime, timezone

from artpulse.clustering.topic_clusterer import TopicClusterer
from artpulse.data.config import PipelineConfig, Settings
from artpulse.data.data_models import CleanListing, SizeRollup, StyleRollup
from artpulse.data.ingestion_bridge import IngestionBridge
from artpulse.data.store import InMemoryStore
from artpulse.parsing.feature_parser import FeatureParser
from artpulse.scoring.demand_engine import (
    DemandScoringEngine,
    days_active_for,
    median_and_upper_quartile,
)
from artpulse.scoring.median_book import CategoryMedianBook

from conftest import RUN_DATE, make_raw_row


RUN_ID = "run-1"
OWNER_ID = "owner-1"


def prepare_run(store, settings, rows, parse=True):
    """Bridge, parse and cluster rows so the run is ready for scoring."""
    store.add_raw_rows(OWNER_ID, rows)
    IngestionBridge(store, settings).bridge(RUN_ID, OWNER_ID)
    if parse:
        FeatureParser(store, settings).parse_listings(RUN_ID, OWNER_ID)
    TopicClusterer(store).cluster_listings(RUN_ID, OWNER_ID)


class TestHelpers:

    def make_listing(self, first_seen):
        return CleanListing(
            id="l-1", run_id=RUN_ID, owner_id=OWNER_ID, url="u", title="t",
            price=10.0, dedupe_hash="h", first_seen_at=first_seen,
        )

    def test_days_active_counts_first_day(self):
        listing = self.make_listing(datetime(2026, 3, 10, 23, 0, tzinfo=timezone.utc))
        assert days_active_for(listing, RUN_DATE) == 1

    def test_days_active_whole_days(self):
        listing = self.make_listing(datetime(2026, 3, 8, 10, 0, tzinfo=timezone.utc))
        assert days_active_for(listing, RUN_DATE) == 3

    def test_days_active_floor(self):
        future = self.make_listing(datetime(2026, 3, 20, tzinfo=timezone.utc))
        assert days_active_for(future, RUN_DATE) == 1
        assert days_active_for(self.make_listing(None), RUN_DATE) == 1

    def test_quartiles(self):
        assert median_and_upper_quartile([100, 200, 300, 400]) == (250, 325)

    def test_quartiles_single_and_empty(self):
        assert median_and_upper_quartile([80.0]) == (80.0, 80.0)
        assert median_and_upper_quartile([]) == (0.0, 0.0)


class TestCategoryMedianBook:

    def test_lookup_requires_load(self):
        book = CategoryMedianBook(InMemoryStore())
        with pytest.raises(RuntimeError):
            book.median_for("large")

    def test_default_for_unknown_bucket(self):
        store = InMemoryStore()
        store.category_medians = {"large": 300.0, "small": 0.0}
        book = CategoryMedianBook(store, default_median=150.0).load()

        assert book.median_for("large") == 300.0
        assert book.median_for("small") == 150.0
        assert book.median_for(None) == 150.0
        assert len(book) == 1


class TestDemandScoringEngine:

    def setup_method(self):
        self.store = InMemoryStore()
        self.settings = Settings(store_backend="memory")

    def engine(self, settings=None):
        medians = CategoryMedianBook(self.store).load()
        return DemandScoringEngine(self.store, medians, settings or self.settings)

    def test_sold_listings_scored(self):
        """Sold listings: no competition, days_active 1, price at the median."""
        prepare_run(self.store, self.settings, [make_raw_row(i) for i in range(4)])

        report = self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert report.listings_scored == 4
        assert report.active_updated == 0
        assert report.topics_scored == 1

        score = self.store.get_topic_scores(RUN_DATE)[0]
        assert score.topic_label == "Abstract painting"
        assert score.wvs_score == 36.0
        assert score.velocity_score == 36.0
        assert score.demand_score == 100.0
        assert score.listing_count == 4
        assert score.auction_intensity == 1.0
        assert score.confidence == 0.7
        assert score.median_price == 150.0

    def test_active_listings_compete(self):
        rows = [make_raw_row(i, is_active=True) for i in range(3)]
        prepare_run(self.store, self.settings, rows)

        report = self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert report.active_updated == 3
        listings = self.store.get_clean_listings(RUN_ID, OWNER_ID)
        # 36 with two similar active listings -> 36 / 3
        assert all(l.wvs_score == 12.0 for l in listings)
        assert all(l.demand_label == "High Demand" for l in listings)
        assert all(l.scored_at is not None for l in listings)

    def test_category_median_applied(self):
        self.store.category_medians = {"large": 300.0}
        prepare_run(self.store, self.settings, [make_raw_row(0)])

        self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert self.store.get_topic_scores(RUN_DATE)[0].wvs_score == 72.0

    def test_price_quartiles_per_topic(self):
        rows = [make_raw_row(i, price=p) for i, p in enumerate((100, 200, 300, 400))]
        prepare_run(self.store, self.settings, rows)

        self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        score = self.store.get_topic_scores(RUN_DATE)[0]
        assert score.median_price == 250.0
        assert score.upper_quartile_price == 325.0

    def test_style_and_size_rollups(self):
        prepare_run(self.store, self.settings, [make_raw_row(i) for i in range(2)])

        report = self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert [s.style_term for s in report.top_styles] == ["Modern"]
        assert [s.size_bucket for s in report.top_sizes] == ["large"]
        style = self.store.style_rollups["Modern"]
        assert style.listing_count == 2
        assert style.demand_score == 10.0
        assert self.store.size_rollups["large"].demand_score == 10.0

    def test_unparsed_listings_use_default_rollup_keys(self):
        prepare_run(self.store, self.settings, [make_raw_row(0)], parse=False)

        self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert set(self.store.style_rollups) == {"Abstract"}
        assert set(self.store.size_rollups) == {"medium"}

    def test_empty_run(self):
        report = self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)
        assert report.listings_scored == 0
        assert self.store.topic_scores == {}

    def test_rescoring_same_day_overwrites(self):
        prepare_run(self.store, self.settings, [make_raw_row(0)])
        engine = self.engine()
        engine.process_run(RUN_ID, OWNER_ID, RUN_DATE)
        engine.process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert len(self.store.topic_scores) == 1

    def test_benchmark_refresh_when_enabled(self):
        settings = Settings(store_backend="memory", pipeline=PipelineConfig(refresh_benchmarks=True))
        prepare_run(self.store, settings, [make_raw_row(0)])

        report = self.engine(settings).process_run(RUN_ID, OWNER_ID, RUN_DATE)

        assert report.benchmarks_refreshed is True
        assert self.store.benchmark_refreshes == 1

    def test_benchmark_refresh_off_by_default(self):
        prepare_run(self.store, self.settings, [make_raw_row(0)])
        self.engine().process_run(RUN_ID, OWNER_ID, RUN_DATE)
        assert self.store.benchmark_refreshes == 0


class TestRecommendations:

    def test_no_data(self):
        assert DemandScoringEngine.generate_recommendations([], []) == [
            "Insufficient data for recommendations. Scan more subjects."
        ]

    def test_top_style_and_size(self):
        styles = [StyleRollup(style_term="Modern", avg_wvs=3.0, avg_price=200.0,
                              listing_count=8, demand_score=10.0)]
        sizes = [SizeRollup(size_bucket="large", avg_wvs=2.5, avg_price=220.0,
                            listing_count=5, demand_score=10.0)]

        recommendations = DemandScoringEngine.generate_recommendations(styles, sizes)

        assert recommendations[0].startswith("Focus on 'Modern'")
        assert "$160-$240" in recommendations[1]
        assert "large" in recommendations[2]
        assert len(recommendations) == 4
