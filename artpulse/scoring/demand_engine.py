"""
ArtPulse Demand Scoring Engine
==============================

Fourth pipeline stage: scores every listing of a run with WVS and folds the
scores into per-topic, per-style and per-size rollups.

Per listing:
    - daysActive = whole days from first_seen_at to the score date, plus one
    - categoryMedian from the CategoryMedianBook (size bucket), default 150
    - similarListings = other active listings of the run in the same topic
      (sold listings compete with nothing)
    - active listings get wvs_score / watch_velocity / demand_label written back

Per topic (from the run's memberships), upserted per (topic, date):
    avg WVS, avg pulse velocity, demand = min(avgWVS*10, 100),
    median and upper-quartile price, auction intensity, mean WVS confidence

Per style / size, upserted last-write-wins:
    avg WVS, avg price, count, demand = min(avgWVS*10, 10)

Usage:
    from artpulse.scoring import DemandScoringEngine, CategoryMedianBook

    medians = CategoryMedianBook(store).load()
    engine = DemandScoringEngine(store, medians)
    report = engine.process_run(run_id, owner_id, date.today())
"""

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from ..data.config import Settings, get_settings
from ..data.data_models import (
    CleanListing,
    ParsedSignal,
    SizeRollup,
    StyleRollup,
    TopicScoreDaily,
    utc_now,
)
from ..data.store import PipelineStore
from .median_book import CategoryMedianBook
from .scoring_config import DEFAULT_CONFIG, ScoringConfig
from .wvs_scorer import WVSInput, WVSScore, WVSScorer

logger = logging.getLogger(__name__)


def days_active_for(listing: CleanListing, score_date: date) -> int:
    """Whole days since the listing was first seen, inclusive of that day."""
    first_seen = listing.first_seen_at or listing.observed_at
    if first_seen is None:
        return 1
    return max((score_date - first_seen.date()).days + 1, 1)


def median_and_upper_quartile(prices: List[float]):
    """(median, upper quartile). A single price is its own quartile."""
    if not prices:
        return 0.0, 0.0
    if len(prices) == 1:
        return prices[0], prices[0]
    median = statistics.median(prices)
    upper = statistics.quantiles(prices, n=4, method="inclusive")[2]
    return median, upper


def style_term_for(signal: Optional[ParsedSignal], default: str) -> str:
    if signal is None or not signal.style:
        return default
    return signal.style.title()


@dataclass
class ScoredListing:
    """One listing with its score, kept in memory for the rollups."""
    listing: CleanListing
    score: WVSScore
    days_active: int
    topic_id: Optional[str]
    signal: Optional[ParsedSignal]


@dataclass
class _Bucket:
    wvs: List[float] = field(default_factory=list)
    velocity: List[float] = field(default_factory=list)
    confidence: List[float] = field(default_factory=list)
    prices: List[float] = field(default_factory=list)
    auctions: int = 0

    def add(self, scored: ScoredListing) -> None:
        self.wvs.append(scored.score.wvs)
        self.velocity.append(scored.score.components.pulse_velocity)
        self.confidence.append(scored.score.confidence)
        self.prices.append(scored.listing.price)
        if scored.listing.is_auction:
            self.auctions += 1

    @property
    def count(self) -> int:
        return len(self.wvs)

    @property
    def avg_wvs(self) -> float:
        return sum(self.wvs) / self.count if self.count else 0.0

    @property
    def avg_price(self) -> float:
        return sum(self.prices) / self.count if self.count else 0.0


@dataclass
class ScoringReport:
    """Outcome of scoring one run."""
    run_id: str
    score_date: date
    listings_analyzed: int = 0
    listings_scored: int = 0
    active_updated: int = 0
    failed: int = 0
    topics_scored: int = 0
    top_styles: List[StyleRollup] = field(default_factory=list)
    top_sizes: List[SizeRollup] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    benchmarks_refreshed: bool = False
    generated_at: Any = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "score_date": self.score_date.isoformat(),
            "generated_at": self.generated_at.isoformat(),
            "listings_analyzed": self.listings_analyzed,
            "listings_scored": self.listings_scored,
            "active_updated": self.active_updated,
            "failed": self.failed,
            "topics_scored": self.topics_scored,
            "top_styles": [
                {"style_term": s.style_term, "avg_wvs": s.avg_wvs,
                 "listing_count": s.listing_count, "demand_score": s.demand_score}
                for s in self.top_styles
            ],
            "top_sizes": [
                {"size_bucket": s.size_bucket, "avg_wvs": s.avg_wvs, "avg_price": s.avg_price,
                 "listing_count": s.listing_count, "demand_score": s.demand_score}
                for s in self.top_sizes
            ],
            "recommendations": list(self.recommendations),
            "benchmarks_refreshed": self.benchmarks_refreshed,
        }


class DemandScoringEngine:
    """Scores a run's listings and writes the rollups."""

    def __init__(
        self,
        store: PipelineStore,
        medians: CategoryMedianBook,
        settings: Optional[Settings] = None,
        config: Optional[ScoringConfig] = None,
    ):
        self.store = store
        self.medians = medians
        self.settings = settings or get_settings()
        self.config = config or DEFAULT_CONFIG
        self.scorer = WVSScorer(self.config)

    # =========================================================================
    # MAIN ENTRY POINT
    # =========================================================================

    def process_run(self, run_id: str, owner_id: str, score_date: date) -> ScoringReport:
        """
        Score every clean listing of the run and upsert the rollups.

        Returns:
            ScoringReport; listings_scored is 0 when the run has no listings
        """
        report = ScoringReport(run_id=run_id, score_date=score_date)

        listings = self.store.get_clean_listings(run_id, owner_id)
        report.listings_analyzed = len(listings)
        if not listings:
            logger.info(f"No listings to score for run {run_id}")
            return report

        if not self.medians.is_loaded:
            self.medians.load()

        signals = self.store.get_parsed_signals([l.id for l in listings])
        topic_of = self._topic_index(run_id, listings)
        similar = self._similar_counts(listings, topic_of)

        scored: List[ScoredListing] = []
        scored_at = utc_now()

        for listing in listings:
            try:
                item = self._score_listing(listing, score_date, signals, topic_of, similar)
            except Exception as e:
                report.failed += 1
                logger.warning(f"Failed to score listing {listing.id}: {e}")
                continue

            if listing.is_active:
                self.store.update_listing_score(
                    listing.id,
                    wvs_score=item.score.wvs,
                    watch_velocity=item.score.components.pulse_velocity,
                    demand_label=item.score.label,
                    scored_at=scored_at,
                )
                report.active_updated += 1
            scored.append(item)

        report.listings_scored = len(scored)

        report.topics_scored = self._write_topic_scores(run_id, score_date, scored)
        report.top_styles = self._write_style_rollups(scored)
        report.top_sizes = self._write_size_rollups(scored)
        report.recommendations = self.generate_recommendations(report.top_styles, report.top_sizes)

        if self.settings.pipeline.refresh_benchmarks:
            report.benchmarks_refreshed = self._refresh_benchmarks()

        logger.info(
            f"Scored {report.listings_scored}/{report.listings_analyzed} listings "
            f"({report.active_updated} active updated), {report.topics_scored} topics"
        )
        return report

    # =========================================================================
    # PER-LISTING
    # =========================================================================

    def _topic_index(self, run_id: str, listings: List[CleanListing]) -> Dict[str, str]:
        """listing_id -> topic_id for the run's memberships."""
        owned = {l.id for l in listings}
        index: Dict[str, str] = {}
        for membership in self.store.get_memberships(run_id):
            if membership.listing_id in owned:
                index.setdefault(membership.listing_id, membership.topic_id)
        return index

    def _similar_counts(
        self,
        listings: List[CleanListing],
        topic_of: Dict[str, str],
    ) -> Dict[str, int]:
        """Other active listings sharing each active listing's topic."""
        active_per_topic: Dict[str, int] = defaultdict(int)
        for listing in listings:
            topic_id = topic_of.get(listing.id)
            if listing.is_active and topic_id:
                active_per_topic[topic_id] += 1

        counts: Dict[str, int] = {}
        for listing in listings:
            topic_id = topic_of.get(listing.id)
            if listing.is_active and topic_id:
                counts[listing.id] = active_per_topic[topic_id] - 1
            else:
                counts[listing.id] = 0
        return counts

    def _score_listing(
        self,
        listing: CleanListing,
        score_date: date,
        signals: Dict[str, ParsedSignal],
        topic_of: Dict[str, str],
        similar: Dict[str, int],
    ) -> ScoredListing:
        signal = signals.get(listing.id)
        days_active = days_active_for(listing, score_date)

        score = self.scorer.calculate(WVSInput(
            watcher_count=listing.watcher_count or 0,
            bid_count=listing.bid_count or 0,
            days_active=days_active,
            item_price=listing.price,
            category_median_price=self.medians.median_for(signal.size_bucket if signal else None),
            similar_listings_count=similar.get(listing.id, 0),
        ))

        return ScoredListing(
            listing=listing,
            score=score,
            days_active=days_active,
            topic_id=topic_of.get(listing.id),
            signal=signal,
        )

    # =========================================================================
    # ROLLUPS
    # =========================================================================

    def _write_topic_scores(self, run_id: str, score_date: date, scored: List[ScoredListing]) -> int:
        cfg = self.config.rollups
        buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
        for item in scored:
            if item.topic_id:
                buckets[item.topic_id].add(item)

        for topic_id, bucket in buckets.items():
            median, upper = median_and_upper_quartile(bucket.prices)
            avg_wvs = bucket.avg_wvs
            self.store.upsert_topic_score(TopicScoreDaily(
                topic_id=topic_id,
                score_date=score_date,
                run_id=run_id,
                wvs_score=round(avg_wvs, 4),
                velocity_score=round(sum(bucket.velocity) / bucket.count, 2),
                demand_score=round(min(avg_wvs * cfg.demand_multiplier, cfg.topic_demand_cap), 2),
                median_price=round(median, 2),
                upper_quartile_price=round(upper, 2),
                auction_intensity=round(bucket.auctions / bucket.count, 2),
                listing_count=bucket.count,
                confidence=round(sum(bucket.confidence) / bucket.count, 2),
            ))
            logger.debug(f"Topic {topic_id}: avg WVS {avg_wvs:.4f} over {bucket.count} listings")

        return len(buckets)

    def _write_style_rollups(self, scored: List[ScoredListing]) -> List[StyleRollup]:
        cfg = self.config.rollups
        buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
        for item in scored:
            buckets[style_term_for(item.signal, cfg.default_style)].add(item)

        rollups = []
        now = utc_now()
        for style_term, bucket in buckets.items():
            rollup = StyleRollup(
                style_term=style_term,
                avg_wvs=round(bucket.avg_wvs, 4),
                avg_price=round(bucket.avg_price, 2),
                listing_count=bucket.count,
                demand_score=round(min(bucket.avg_wvs * cfg.demand_multiplier, cfg.style_demand_cap), 2),
                updated_at=now,
            )
            self.store.upsert_style_rollup(rollup)
            rollups.append(rollup)

        rollups.sort(key=lambda r: r.avg_wvs, reverse=True)
        return rollups[:cfg.top_n]

    def _write_size_rollups(self, scored: List[ScoredListing]) -> List[SizeRollup]:
        cfg = self.config.rollups
        buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
        for item in scored:
            size = item.signal.size_bucket if item.signal and item.signal.size_bucket else cfg.default_size
            buckets[size].add(item)

        rollups = []
        now = utc_now()
        for size_bucket, bucket in buckets.items():
            rollup = SizeRollup(
                size_bucket=size_bucket,
                avg_wvs=round(bucket.avg_wvs, 4),
                avg_price=round(bucket.avg_price, 2),
                listing_count=bucket.count,
                demand_score=round(min(bucket.avg_wvs * cfg.demand_multiplier, cfg.style_demand_cap), 2),
                updated_at=now,
            )
            self.store.upsert_size_rollup(rollup)
            rollups.append(rollup)

        rollups.sort(key=lambda r: r.avg_wvs, reverse=True)
        return rollups[:cfg.top_n]

    def _refresh_benchmarks(self) -> bool:
        try:
            refreshed = self.store.refresh_global_benchmarks()
        except Exception as e:
            logger.warning(f"Global benchmark refresh failed (non-critical): {e}")
            return False
        if refreshed:
            logger.info("Global benchmarks refreshed")
        return bool(refreshed)

    # =========================================================================
    # REPORT
    # =========================================================================

    @staticmethod
    def generate_recommendations(
        styles: List[StyleRollup],
        sizes: List[SizeRollup],
    ) -> List[str]:
        """Short text hints derived from the best style and size."""
        if not styles:
            return ["Insufficient data for recommendations. Scan more subjects."]

        top = styles[0]
        recommendations = [
            f"Focus on '{top.style_term}', averaging a WVS of {top.avg_wvs:.1f} "
            f"across {top.listing_count} listings.",
            f"Target price band for fast sales: "
            f"${round(top.avg_price * 0.8)}-${round(top.avg_price * 1.2)}.",
        ]
        if sizes:
            recommendations.append(
                f"Best performing size: {sizes[0].size_bucket} (avg WVS {sizes[0].avg_wvs:.1f})."
            )
        recommendations.append(
            f"Optimize titles with keywords: {top.style_term.lower()}, original, canvas."
        )
        return recommendations
