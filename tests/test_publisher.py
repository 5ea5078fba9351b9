"""
Tests for opportunity guardrails and the publisher.
"""

import pytest
from datetime import date

from artpulse.data.config import PipelineConfig, Settings
from artpulse.data.data_models import (
    CleanListing,
    Opportunity,
    ParsedSignal,
    PriceBand,
    TopicMembership,
    TopicScoreDaily,
)
from artpulse.data.store import InMemoryStore
from artpulse.notifications.notifier import LoggingNotificationSink, NotificationSink
from artpulse.publishing.guardrails import validate_opportunity
from artpulse.publishing.publisher import (
    OpportunityPublisher,
    build_price_band,
    determine_format,
    round_half_up,
    top_by_frequency,
)


RUN_ID = "run-1"
OWNER_ID = "owner-1"
TARGET_DATE = date(2026, 3, 10)


def make_opportunity(**overrides):
    values = {
        "owner_id": OWNER_ID,
        "opportunity_date": TARGET_DATE,
        "rank": 1,
        "topic_id": "topic-1",
        "topic_label": "Abstract painting",
        "wvs_score": 3.0,
        "velocity_score": 3.0,
        "price_band": PriceBand(min=120, median=150, max=200),
        "confidence": 0.7,
        "keyword_stack": ["abstract"],
        "evidence_urls": [f"https://www.ebay.com/itm/{i}" for i in range(5)],
    }
    values.update(overrides)
    return Opportunity(**values)


def add_topic(store, slug, listing_count=6, wvs=3.0, confidence=0.7,
              auction_intensity=0.5, owner_id=OWNER_ID, run_id=RUN_ID):
    """Cluster with member listings, parsed signals and a daily score."""
    cluster, _ = store.create_cluster(slug, slug.replace("-", " ").capitalize(), run_id)
    listings, signals, memberships = [], [], []
    for i in range(listing_count):
        listing_id = f"{slug}-{i}"
        listings.append(CleanListing(
            id=listing_id,
            run_id=run_id,
            owner_id=owner_id,
            url=f"https://www.ebay.com/itm/{slug}/{i}",
            title="Abstract Acrylic Painting 24x36 Blue Gold Modern",
            price=150.0,
            dedupe_hash=f"hash-{listing_id}",
        ))
        signals.append(ParsedSignal(
            listing_id=listing_id,
            owner_id=owner_id,
            size_bucket="large" if i % 3 else "medium",
            medium="acrylic",
            subject="abstract",
            style="modern",
            color_tags=["blue", "gold"],
            confidence=1.0,
        ))
        memberships.append(TopicMembership(run_id=run_id, topic_id=cluster.id, listing_id=listing_id))
    store.insert_clean_listings(listings)
    store.insert_parsed_signals(signals)
    store.insert_memberships(memberships)
    store.upsert_topic_score(TopicScoreDaily(
        topic_id=cluster.id,
        score_date=TARGET_DATE,
        run_id=run_id,
        wvs_score=wvs,
        velocity_score=wvs,
        demand_score=min(wvs * 10, 100),
        median_price=150.0,
        upper_quartile_price=200.0,
        auction_intensity=auction_intensity,
        listing_count=listing_count,
        confidence=confidence,
    ))
    return cluster


class FailingSink(NotificationSink):

    def send(self, payload):
        raise RuntimeError("sink down")


class TestGuardrails:

    def test_valid(self):
        is_valid, errors = validate_opportunity(make_opportunity())
        assert is_valid
        assert errors == []

    def test_four_evidence_urls_rejected(self):
        opportunity = make_opportunity(evidence_urls=[f"https://x/{i}" for i in range(4)])
        is_valid, errors = validate_opportunity(opportunity)
        assert not is_valid
        assert "evidence" in errors[0]

    def test_confidence_floor(self):
        assert not validate_opportunity(make_opportunity(confidence=0.59))[0]
        assert validate_opportunity(make_opportunity(confidence=0.6))[0]

    def test_price_band_median_positive(self):
        opportunity = make_opportunity(price_band=PriceBand(min=0, median=0, max=0))
        assert not validate_opportunity(opportunity)[0]

    def test_keywords_required(self):
        assert not validate_opportunity(make_opportunity(keyword_stack=[]))[0]

    def test_all_errors_reported(self):
        opportunity = make_opportunity(evidence_urls=[], confidence=0.1, keyword_stack=[])
        assert len(validate_opportunity(opportunity)[1]) == 3


class TestHelpers:

    @pytest.mark.parametrize("intensity,fmt", [
        (0.0, "bin"),
        (0.29, "bin"),
        (0.3, "hybrid"),
        (0.6, "hybrid"),
        (0.61, "auction"),
        (1.0, "auction"),
    ])
    def test_determine_format(self, intensity, fmt):
        assert determine_format(intensity) == fmt

    def test_top_by_frequency(self):
        values = ["modern", "abstract", None, "abstract", "blue", "modern", "abstract", "gold"]
        assert top_by_frequency(values) == ["abstract", "modern", "blue"]

    def test_top_by_frequency_ties_keep_order(self):
        assert top_by_frequency(["b", "a", "c", "d"], n=2) == ["b", "a"]

    def test_price_band(self):
        band = build_price_band(150.0, 200.0)
        assert band == PriceBand(min=120, median=150, max=220)

    def test_price_band_rounds_halves_up(self):
        # Median of two listings priced 150 and 175
        band = build_price_band(162.5, 200.0)
        assert band == PriceBand(min=130, median=163, max=220)

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (2.5, 3), (162.5, 163), (162.4, 162), (119.99, 120)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestOpportunityPublisher:

    def setup_method(self):
        self.store = InMemoryStore()
        self.store.add_owner(OWNER_ID, email="artist@example.com", interest_terms=["abstract painting"])
        self.settings = Settings(store_backend="memory")
        self.sink = LoggingNotificationSink()
        self.publisher = OpportunityPublisher(self.store, self.settings, sink=self.sink)

    def publish(self, **kwargs):
        return self.publisher.publish_opportunities(RUN_ID, OWNER_ID, TARGET_DATE, **kwargs)

    def test_single_topic(self):
        add_topic(self.store, "abstract-painting")

        result = self.publish()

        assert result.published == 1
        opportunity = self.store.get_opportunities(OWNER_ID, TARGET_DATE)[0]
        assert opportunity.rank == 1
        assert opportunity.topic_label == "Abstract painting"
        assert opportunity.recommended_sizes == ["large", "medium"]
        assert opportunity.recommended_mediums == ["acrylic"]
        assert opportunity.keyword_stack == ["abstract", "modern", "blue"]
        assert len(opportunity.evidence_urls) == 6
        assert opportunity.format_recommendation == "hybrid"
        assert opportunity.price_band == PriceBand(min=120, median=150, max=220)

    def test_evidence_capped(self):
        add_topic(self.store, "abstract-painting", listing_count=14)
        self.publish()
        assert len(self.store.get_opportunities(OWNER_ID, TARGET_DATE)[0].evidence_urls) == 10

    def test_ranks_contiguous_after_rejection(self):
        add_topic(self.store, "first", wvs=9.0)
        add_topic(self.store, "thin", wvs=8.0, listing_count=4)
        add_topic(self.store, "third", wvs=7.0)

        result = self.publish()

        feed = self.store.get_opportunities(OWNER_ID, TARGET_DATE)
        assert [o.rank for o in feed] == [1, 2]
        assert [o.topic_label for o in feed] == ["First", "Third"]
        assert len(result.rejected) == 1

    def test_low_confidence_topics_not_candidates(self):
        add_topic(self.store, "shaky", confidence=0.59)
        result = self.publish()
        assert result.candidates == 0
        assert result.published == 0

    def test_top_n(self):
        for i in range(4):
            add_topic(self.store, f"topic-{i}", wvs=float(10 - i))
        result = self.publish(top_n=2)
        assert result.published == 2
        assert [o.wvs_score for o in result.opportunities] == [10.0, 9.0]

    def test_zero_top_n_publishes_nothing(self):
        add_topic(self.store, "abstract-painting")

        result = self.publish(top_n=0)

        assert result.published == 0
        assert self.store.get_opportunities(OWNER_ID, TARGET_DATE) == []

    def test_only_run_topics(self):
        add_topic(self.store, "other-run", run_id="run-2")
        assert self.publish().published == 0

    def test_owner_without_terms(self):
        self.store.add_owner(OWNER_ID, interest_terms=[])
        add_topic(self.store, "abstract-painting")

        result = self.publish()

        assert result.published == 0
        assert result.skipped_reason == "owner has no active interest terms"
        assert self.store.notifications == []

    def test_notification_and_hot_alert(self):
        add_topic(self.store, "abstract-painting", wvs=5.2)

        result = self.publish()

        assert result.notification_created
        assert self.store.notifications[0].title == "New Opportunities Available"
        assert "1 new art opportunities" in self.store.notifications[0].message
        assert result.alert_sent
        payload = self.sink.sent[0]
        assert payload["owner_email"] == "artist@example.com"
        assert payload["opportunities"][0] == {
            "topic": "Abstract painting",
            "score": 5.2,
            "evidence_link": "http://localhost:3000/opportunities",
        }

    def test_no_alert_below_hot_threshold(self):
        add_topic(self.store, "abstract-painting", wvs=3.0)
        result = self.publish()
        assert result.notification_created
        assert not result.alert_sent
        assert self.sink.sent == []

    def test_sink_failure_does_not_fail_publish(self):
        add_topic(self.store, "abstract-painting", wvs=6.0)
        publisher = OpportunityPublisher(self.store, self.settings, sink=FailingSink())

        result = publisher.publish_opportunities(RUN_ID, OWNER_ID, TARGET_DATE)

        assert result.published == 1
        assert not result.alert_sent

    def test_republish_overwrites_rank_slots(self):
        add_topic(self.store, "abstract-painting")
        self.publish()
        self.publish()
        assert len(self.store.get_opportunities(OWNER_ID, TARGET_DATE)) == 1

    def test_custom_evidence_minimum(self):
        settings = Settings(store_backend="memory", pipeline=PipelineConfig(min_evidence_urls=8))
        add_topic(self.store, "abstract-painting", listing_count=6)
        publisher = OpportunityPublisher(self.store, settings, sink=self.sink)
        assert publisher.publish_opportunities(RUN_ID, OWNER_ID, TARGET_DATE).published == 0
