"""
ArtPulse Feature Parser
=======================

Second pipeline stage: extracts structured attributes from listing titles.

Extraction rules (independent, case-insensitive):
    - Dimensions: first "<int> x <int>" with optional inch marks
    - Size bucket: width*height area; <200 small, <600 medium,
      <1200 large, else extra-large (needs both dimensions)
    - Medium / subject / style: first vocabulary match
    - Color tags: every vocabulary color found
    - Confidence: 0.5, +0.2 for both dimensions, +0.1 per medium,
      subject and style found, capped at 1.0

Low-confidence titles can be handed to an optional enrichment extractor
(see enrichment.py). Its result replaces the pattern result only when it
is more confident; any enrichment failure keeps the pattern result.

Usage:
    from artpulse.parsing import FeatureParser

    parser = FeatureParser(store)
    result = parser.parse_listings(run_id, owner_id)
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..data.config import Settings, get_settings
from ..data.data_models import CleanListing, ParsedSignal
from ..data.store import PipelineStore
from .vocabulary import COLORS, MEDIUMS, STYLES, SUBJECTS, all_matches, first_match

logger = logging.getLogger(__name__)

PATTERN_EXTRACTOR_ID = "pattern-rules"

_INCH_MARK = r"(?:\"|''|inches|inch|in)?"
DIMENSION_PATTERN = re.compile(
    rf"(?<![\d.])(\d+)\s*{_INCH_MARK}\s*[x×]\s*(\d+)\s*{_INCH_MARK}",
    re.IGNORECASE,
)

SIZE_BUCKETS: List[Tuple[int, str]] = [
    (200, "small"),
    (600, "medium"),
    (1200, "large"),
]
LARGEST_BUCKET = "extra-large"


def extract_dimensions(title: str) -> Tuple[Optional[int], Optional[int]]:
    """First "<int> x <int>" in the title as (width, height)."""
    match = DIMENSION_PATTERN.search(title or "")
    if not match:
        return None, None
    return int(match.group(1)), int(match.group(2))


def size_bucket_for(width: Optional[int], height: Optional[int]) -> Optional[str]:
    """Bucket by area. Boundaries belong to the larger bucket."""
    if not width or not height:
        return None
    area = width * height
    for upper, bucket in SIZE_BUCKETS:
        if area < upper:
            return bucket
    return LARGEST_BUCKET


def compute_confidence(
    width: Optional[int],
    height: Optional[int],
    medium: Optional[str],
    subject: Optional[str],
    style: Optional[str],
) -> float:
    confidence = 0.5
    if width and height:
        confidence += 0.2
    if medium:
        confidence += 0.1
    if subject:
        confidence += 0.1
    if style:
        confidence += 0.1
    return round(min(confidence, 1.0), 2)


# =============================================================================
# EXTRACTORS
# =============================================================================

class SignalExtractor(ABC):
    """Produces a ParsedSignal from a listing title."""

    @property
    @abstractmethod
    def identifier(self) -> str:
        """Recorded on every signal this extractor produces."""

    @abstractmethod
    def extract(self, listing_id: str, owner_id: str, title: str) -> ParsedSignal:
        pass


class PatternSignalExtractor(SignalExtractor):
    """Deterministic regex and vocabulary rules."""

    @property
    def identifier(self) -> str:
        return PATTERN_EXTRACTOR_ID

    def extract(self, listing_id: str, owner_id: str, title: str) -> ParsedSignal:
        width, height = extract_dimensions(title)
        medium = first_match(title, MEDIUMS)
        subject = first_match(title, SUBJECTS)
        style = first_match(title, STYLES)

        return ParsedSignal(
            listing_id=listing_id,
            owner_id=owner_id,
            width_in=width,
            height_in=height,
            size_bucket=size_bucket_for(width, height),
            medium=medium,
            subject=subject,
            style=style,
            color_tags=all_matches(title, COLORS),
            confidence=compute_confidence(width, height, medium, subject, style),
            extractor=self.identifier,
        )


# =============================================================================
# STAGE
# =============================================================================

@dataclass
class ParseResult:
    """Outcome of parsing one run's listings."""
    run_id: str
    listings_seen: int = 0
    parsed: int = 0
    already_parsed: int = 0
    enriched: int = 0
    failed: int = 0

    @property
    def signals_available(self) -> int:
        """Listings of the run that now have a signal."""
        return self.parsed + self.already_parsed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listings_seen": self.listings_seen,
            "parsed": self.parsed,
            "already_parsed": self.already_parsed,
            "enriched": self.enriched,
            "failed": self.failed,
        }


class FeatureParser:
    """
    Parses every clean listing of a run into a ParsedSignal.

    Listings that already carry a signal are left untouched.
    """

    def __init__(
        self,
        store: PipelineStore,
        settings: Optional[Settings] = None,
        enrichment: Optional[SignalExtractor] = None,
        extractor: Optional[SignalExtractor] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.extractor = extractor or PatternSignalExtractor()
        self.enrichment = enrichment
        self.enrichment_threshold = self.settings.pipeline.enrichment_threshold

    def parse_listings(self, run_id: str, owner_id: str) -> ParseResult:
        """
        Parse the run's clean listings for one owner.

        Returns:
            ParseResult; parsed counts newly stored signals
        """
        result = ParseResult(run_id=run_id)

        listings = self.store.get_clean_listings(run_id, owner_id)
        result.listings_seen = len(listings)
        if not listings:
            logger.info(f"No clean listings to parse for run {run_id}")
            return result

        existing = self.store.get_parsed_signals([l.id for l in listings])
        result.already_parsed = len(existing)

        signals: List[ParsedSignal] = []
        for listing in listings:
            if listing.id in existing:
                continue
            try:
                signal = self.parse_listing(listing, owner_id)
            except Exception as e:
                result.failed += 1
                logger.warning(f"Failed to parse listing {listing.id} ({listing.title[:60]!r}): {e}")
                continue
            if signal.extractor != self.extractor.identifier:
                result.enriched += 1
            signals.append(signal)

        result.parsed = self.store.insert_parsed_signals(signals)

        logger.info(
            f"Parsed {result.parsed} signals from {result.listings_seen} listings "
            f"({result.already_parsed} already parsed, {result.enriched} enriched, "
            f"{result.failed} failed)"
        )
        return result

    def parse_listing(self, listing: CleanListing, owner_id: str) -> ParsedSignal:
        """Pattern parse, then optional enrichment for low-confidence titles."""
        signal = self.extractor.extract(listing.id, owner_id, listing.title)

        if self.enrichment is None or signal.confidence >= self.enrichment_threshold:
            return signal

        try:
            enriched = self.enrichment.extract(listing.id, owner_id, listing.title)
        except Exception as e:
            logger.warning(f"Enrichment failed for listing {listing.id}, keeping pattern result: {e}")
            return signal

        if enriched.confidence > signal.confidence:
            logger.debug(
                f"Enriched listing {listing.id}: {signal.confidence} -> {enriched.confidence}"
            )
            return enriched
        return signal
