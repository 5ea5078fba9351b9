"""
Tests for topic clustering.
"""

import pytest

from artpulse.clustering.topic_clusterer import (
    ClusterMode,
    TopicClusterer,
    make_label,
    normalize_key,
    slugify,
)
from artpulse.data.data_models import CleanListing, ParsedSignal
from artpulse.data.store import InMemoryStore


def add_listing(store, listing_id, search_term, run_id="run-1", owner_id="owner-1"):
    store.insert_clean_listings([CleanListing(
        id=listing_id,
        run_id=run_id,
        owner_id=owner_id,
        url=f"https://example.com/{listing_id}",
        title="Untitled",
        price=100.0,
        dedupe_hash=f"hash-{listing_id}",
        search_term=search_term,
    )])


class TestKeys:

    @pytest.mark.parametrize("raw,key", [
        ("abstract painting", "abstract painting"),
        ("  Abstract   Painting ", "abstract painting"),
        ("ABSTRACT\tpainting", "abstract painting"),
        ("", None),
        ("   ", None),
        (None, None),
    ])
    def test_normalize_key(self, raw, key):
        assert normalize_key(raw) == key

    def test_slug_and_label(self):
        assert slugify("abstract painting") == "abstract-painting"
        assert make_label("abstract painting") == "Abstract painting"


class TestTopicClusterer:

    def setup_method(self):
        self.store = InMemoryStore()
        self.clusterer = TopicClusterer(self.store)

    def test_groups_by_search_term(self):
        add_listing(self.store, "a", "abstract painting")
        add_listing(self.store, "b", "Abstract  Painting")
        add_listing(self.store, "c", "landscape")

        result = self.clusterer.cluster_listings("run-1", "owner-1")

        assert result.clusters_created == 2
        assert result.memberships_created == 3
        cluster = self.store.get_cluster_by_slug("abstract-painting")
        assert cluster.label == "Abstract painting"
        assert len(self.store.get_memberships("run-1", cluster.id)) == 2

    def test_rerun_is_idempotent(self):
        add_listing(self.store, "a", "abstract painting")
        self.clusterer.cluster_listings("run-1", "owner-1")

        again = self.clusterer.cluster_listings("run-1", "owner-1")

        assert again.clusters_created == 0
        assert again.clusters_reused == 1
        assert again.memberships_created == 0
        assert len(self.store.clusters) == 1
        assert len(self.store.memberships) == 1

    def test_cluster_reused_across_runs(self):
        add_listing(self.store, "a", "abstract painting", run_id="run-1")
        add_listing(self.store, "b", "abstract painting", run_id="run-2")

        first = self.clusterer.cluster_listings("run-1", "owner-1")
        second = self.clusterer.cluster_listings("run-2", "owner-1")

        assert first.topic_ids == second.topic_ids
        assert second.clusters_created == 0
        assert second.memberships_created == 1

    def test_listings_without_term_skipped(self):
        add_listing(self.store, "a", None)
        add_listing(self.store, "b", "  ")

        result = self.clusterer.cluster_listings("run-1", "owner-1")

        assert result.listings_without_key == 2
        assert result.memberships_created == 0
        assert self.store.clusters == {}

    def test_empty_run(self):
        result = self.clusterer.cluster_listings("run-1", "owner-1")
        assert result.listings_seen == 0
        assert result.topic_ids == []

    def test_style_mode(self):
        add_listing(self.store, "a", "abstract painting")
        add_listing(self.store, "b", "landscape")
        add_listing(self.store, "c", "landscape")
        self.store.insert_parsed_signals([
            ParsedSignal(listing_id="a", owner_id="owner-1", style="modern"),
            ParsedSignal(listing_id="b", owner_id="owner-1", style="modern"),
            ParsedSignal(listing_id="c", owner_id="owner-1"),
        ])

        result = self.clusterer.cluster_listings("run-1", "owner-1", mode=ClusterMode.STYLE)

        assert result.clusters_created == 1
        assert result.memberships_created == 2
        assert result.listings_without_key == 1
        assert self.store.get_cluster_by_slug("modern").label == "Modern"
