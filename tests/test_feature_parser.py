"""
Tests for title parsing: dimensions, size buckets, vocabulary matching,
confidence and the FeatureParser stage (including enrichment fallback).
"""

import pytest

from artpulse.data.data_models import CleanListing, ParsedSignal
from artpulse.exceptions import EnrichmentError
from artpulse.parsing.feature_parser import (
    PATTERN_EXTRACTOR_ID,
    FeatureParser,
    PatternSignalExtractor,
    SignalExtractor,
    compute_confidence,
    extract_dimensions,
    size_bucket_for,
)
from artpulse.parsing.vocabulary import COLORS, MEDIUMS, STYLES, SUBJECTS, all_matches, first_match


def make_listing(listing_id="l-1", title="Abstract Acrylic Painting 24x36", run_id="run-1", owner_id="owner-1"):
    return CleanListing(
        id=listing_id,
        run_id=run_id,
        owner_id=owner_id,
        url=f"https://example.com/{listing_id}",
        title=title,
        price=100.0,
        dedupe_hash=f"hash-{listing_id}",
    )


class FixedExtractor(SignalExtractor):
    """Returns a preset confidence; records every title it sees."""

    def __init__(self, confidence=0.9, fail=False):
        self.confidence = confidence
        self.fail = fail
        self.titles = []

    @property
    def identifier(self):
        return "llm:test-model"

    def extract(self, listing_id, owner_id, title):
        self.titles.append(title)
        if self.fail:
            raise EnrichmentError("model unavailable")
        return ParsedSignal(
            listing_id=listing_id,
            owner_id=owner_id,
            subject="abstract",
            style="modern",
            medium="oil",
            confidence=self.confidence,
            extractor=self.identifier,
        )


class TestDimensions:

    @pytest.mark.parametrize("title,expected", [
        ("Abstract Painting 24x36 canvas", (24, 36)),
        ("Abstract Painting 24 x 36 in", (24, 36)),
        ('Seascape 16"x20" oil', (16, 20)),
        ("Landscape 30 inch x 40 inch", (30, 40)),
        ("Floral 12×16 watercolor", (12, 16)),
        ("Portrait 18X24", (18, 24)),
        ("No size here", (None, None)),
        ("", (None, None)),
    ])
    def test_extract_dimensions(self, title, expected):
        assert extract_dimensions(title) == expected

    def test_first_pair_wins(self):
        assert extract_dimensions("Set of two: 8x10 and 16x20") == (8, 10)


class TestSizeBuckets:

    @pytest.mark.parametrize("width,height,bucket", [
        (10, 19, "small"),       # 190
        (10, 20, "medium"),      # 200 belongs to the larger bucket
        (20, 29, "medium"),      # 580
        (20, 30, "large"),       # 600
        (30, 39, "large"),       # 1170
        (30, 40, "extra-large"),  # 1200
        (48, 60, "extra-large"),
    ])
    def test_boundaries(self, width, height, bucket):
        assert size_bucket_for(width, height) == bucket

    def test_missing_dimension_has_no_bucket(self):
        assert size_bucket_for(None, 20) is None
        assert size_bucket_for(20, 0) is None


class TestVocabulary:

    def test_first_match_respects_list_order(self):
        assert first_match("Abstract Expressionist canvas", STYLES) == "abstract expressionist"
        assert first_match("Bold expressionist portrait", STYLES) == "expressionist"

    def test_case_insensitive(self):
        assert first_match("ACRYLIC on board", MEDIUMS) == "acrylic"

    def test_whole_words_only(self):
        assert first_match("Redwood forest landscape", COLORS) is None
        assert first_match("Printed oilcloth", MEDIUMS) is None

    def test_multi_word_terms(self):
        assert first_match("Vase still  life in oil", SUBJECTS) == "still life"
        assert first_match("Mixed Media collage", MEDIUMS) == "mixed media"

    def test_colors_collect_every_match_in_list_order(self):
        assert all_matches("Gold and blue abstract, red accents", COLORS) == ["red", "blue", "gold"]

    def test_empty_text(self):
        assert first_match("", MEDIUMS) is None
        assert all_matches(None, COLORS) == []


class TestConfidence:

    def test_base(self):
        assert compute_confidence(None, None, None, None, None) == 0.5

    def test_dimensions_add_point_two(self):
        assert compute_confidence(24, 36, None, None, None) == 0.7

    def test_all_fields(self):
        assert compute_confidence(24, 36, "oil", "abstract", "modern") == 1.0

    def test_partial_dimensions_do_not_count(self):
        assert compute_confidence(24, None, "oil", None, None) == 0.6


class TestPatternExtractor:

    def setup_method(self):
        self.extractor = PatternSignalExtractor()

    def test_full_title(self):
        signal = self.extractor.extract(
            "l-1", "owner-1",
            "Original Abstract Acrylic Painting on Canvas 24x36 Blue Gold Modern",
        )
        assert signal.width_in == 24
        assert signal.height_in == 36
        assert signal.size_bucket == "large"
        assert signal.medium == "acrylic"
        assert signal.subject == "abstract"
        assert signal.style == "modern"
        assert signal.color_tags == ["blue", "gold"]
        assert signal.confidence == 1.0
        assert signal.extractor == PATTERN_EXTRACTOR_ID

    def test_bare_title(self):
        signal = self.extractor.extract("l-2", "owner-1", "Beautiful piece for your home")
        assert signal.size_bucket is None
        assert signal.color_tags == []
        assert signal.confidence == 0.5


class TestFeatureParser:

    def setup_method(self):
        from artpulse.data.config import Settings
        from artpulse.data.store import InMemoryStore

        self.store = InMemoryStore()
        self.settings = Settings(store_backend="memory")

    def _add(self, *listings):
        self.store.insert_clean_listings(list(listings))

    def test_parses_every_listing_of_the_run(self):
        self._add(make_listing("a"), make_listing("b", title="Floral watercolor 8x10"))
        self._add(make_listing("other", run_id="run-2"))

        result = FeatureParser(self.store, self.settings).parse_listings("run-1", "owner-1")

        assert result.listings_seen == 2
        assert result.parsed == 2
        assert set(self.store.signals) == {"a", "b"}
        assert self.store.signals["b"].subject == "floral"

    def test_existing_signals_left_untouched(self):
        self._add(make_listing("a"))
        parser = FeatureParser(self.store, self.settings)
        parser.parse_listings("run-1", "owner-1")

        again = parser.parse_listings("run-1", "owner-1")

        assert again.parsed == 0
        assert again.already_parsed == 1
        assert again.signals_available == 1

    def test_no_listings(self):
        result = FeatureParser(self.store, self.settings).parse_listings("run-1", "owner-1")
        assert result.listings_seen == 0
        assert result.signals_available == 0

    def test_enrichment_used_for_low_confidence_titles(self):
        self._add(make_listing("a", title="Lovely piece"))
        enrichment = FixedExtractor(confidence=0.8)

        result = FeatureParser(self.store, self.settings, enrichment=enrichment).parse_listings(
            "run-1", "owner-1"
        )

        assert result.enriched == 1
        assert self.store.signals["a"].extractor == "llm:test-model"

    def test_enrichment_skipped_for_confident_titles(self):
        self._add(make_listing("a", title="Abstract Acrylic Painting 24x36"))
        enrichment = FixedExtractor(confidence=1.0)

        FeatureParser(self.store, self.settings, enrichment=enrichment).parse_listings("run-1", "owner-1")

        assert enrichment.titles == []
        assert self.store.signals["a"].extractor == PATTERN_EXTRACTOR_ID

    def test_enrichment_kept_only_when_more_confident(self):
        self._add(make_listing("a", title="Lovely piece"))
        enrichment = FixedExtractor(confidence=0.5)

        FeatureParser(self.store, self.settings, enrichment=enrichment).parse_listings("run-1", "owner-1")

        assert enrichment.titles == ["Lovely piece"]
        assert self.store.signals["a"].extractor == PATTERN_EXTRACTOR_ID

    def test_enrichment_failure_keeps_pattern_signal(self):
        self._add(make_listing("a", title="Lovely piece"))
        enrichment = FixedExtractor(fail=True)

        result = FeatureParser(self.store, self.settings, enrichment=enrichment).parse_listings(
            "run-1", "owner-1"
        )

        assert result.parsed == 1
        assert result.failed == 0
        assert self.store.signals["a"].confidence == 0.5
