"""
ArtPulse Pipeline Store
=======================

Collaborator store contract used by every pipeline stage, plus an
in-memory implementation for tests and offline runs.

The pipeline only needs insert, upsert-by-natural-key and filtered select
operations. Natural keys:
    - clean listings:   (run_id, dedupe_hash), insert-if-absent
    - parsed signals:   listing_id, insert-if-absent
    - topic clusters:   slug, get-or-create
    - memberships:      (run_id, topic_id, listing_id), insert-if-absent
    - topic scores:     (topic_id, score_date), upsert
    - style/size rollups: style term / size bucket, upsert
    - opportunities:    (owner_id, opportunity_date, rank), upsert

Every method returns the canonical DTOs from data_models; backends never
leak their native row shapes.

Usage:
    from artpulse.data.store import InMemoryStore

    store = InMemoryStore()
    store.add_raw_rows("owner-1", rows)
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .data_models import (
    CleanListing,
    Notification,
    Opportunity,
    ParsedSignal,
    RunRecord,
    RunStatus,
    SizeRollup,
    StyleRollup,
    TopicCluster,
    TopicMembership,
    TopicScoreDaily,
    utc_now,
)

logger = logging.getLogger(__name__)


class PipelineStore(ABC):
    """Abstract collaborator store."""

    # =========================================================================
    # Runs
    # =========================================================================

    @abstractmethod
    def create_run(self, owner_id: str, search_term: Optional[str] = None) -> RunRecord:
        """Create a RUNNING run record."""

    @abstractmethod
    def update_run(self, run: RunRecord) -> None:
        """Persist status, counters, error summary and end time."""

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[RunRecord]:
        pass

    @abstractmethod
    def get_last_run(self, owner_id: str) -> Optional[RunRecord]:
        pass

    @abstractmethod
    def find_running_run(self, owner_id: str, started_after: datetime) -> Optional[RunRecord]:
        """Most recent RUNNING run for the owner started after the given time."""

    # =========================================================================
    # Owners
    # =========================================================================

    @abstractmethod
    def list_active_owners(self) -> List[str]:
        pass

    @abstractmethod
    def get_owner_email(self, owner_id: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_interest_terms(self, owner_id: str) -> List[str]:
        """Owner's active interest keywords."""

    # =========================================================================
    # Listings
    # =========================================================================

    @abstractmethod
    def fetch_raw_listings(
        self,
        owner_id: str,
        search_term: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Raw source rows for one owner, oldest first."""

    @abstractmethod
    def insert_clean_listings(self, listings: List[CleanListing]) -> int:
        """Insert-if-absent on (run_id, dedupe_hash). Returns rows inserted."""

    @abstractmethod
    def get_clean_listings(self, run_id: str, owner_id: str) -> List[CleanListing]:
        pass

    @abstractmethod
    def get_listings(self, listing_ids: Iterable[str]) -> Dict[str, CleanListing]:
        pass

    @abstractmethod
    def update_listing_score(
        self,
        listing_id: str,
        wvs_score: float,
        watch_velocity: float,
        demand_label: str,
        scored_at: datetime,
    ) -> None:
        pass

    @abstractmethod
    def get_listings_missing_visuals(self, owner_id: str, limit: int) -> List[CleanListing]:
        pass

    @abstractmethod
    def save_visual_metadata(self, listing_id: str, metadata: Dict[str, Any]) -> None:
        pass

    # =========================================================================
    # Parsed signals
    # =========================================================================

    @abstractmethod
    def insert_parsed_signals(self, signals: List[ParsedSignal]) -> int:
        """Insert-if-absent on listing_id. Returns rows inserted."""

    @abstractmethod
    def get_parsed_signals(self, listing_ids: Iterable[str]) -> Dict[str, ParsedSignal]:
        pass

    # =========================================================================
    # Topics
    # =========================================================================

    @abstractmethod
    def get_cluster_by_slug(self, slug: str) -> Optional[TopicCluster]:
        pass

    @abstractmethod
    def create_cluster(self, slug: str, label: str, run_id: str) -> Tuple[TopicCluster, bool]:
        """
        Insert a cluster unless the slug exists.

        Returns (cluster, created). When the slug is already taken the
        existing cluster is returned with created=False.
        """

    @abstractmethod
    def get_clusters(self, topic_ids: Iterable[str]) -> Dict[str, TopicCluster]:
        pass

    @abstractmethod
    def insert_memberships(self, memberships: List[TopicMembership]) -> int:
        """Insert-if-absent on (run_id, topic_id, listing_id). Returns rows inserted."""

    @abstractmethod
    def get_memberships(self, run_id: str, topic_id: Optional[str] = None) -> List[TopicMembership]:
        pass

    # =========================================================================
    # Scores and rollups
    # =========================================================================

    @abstractmethod
    def get_category_medians(self) -> Dict[str, float]:
        """Median sold price per size bucket."""

    @abstractmethod
    def upsert_topic_score(self, score: TopicScoreDaily) -> None:
        pass

    @abstractmethod
    def get_topic_scores(
        self,
        score_date: date,
        min_confidence: float = 0.0,
        limit: Optional[int] = None,
        topic_ids: Optional[Iterable[str]] = None,
    ) -> List[TopicScoreDaily]:
        """Scores for the date, WVS descending, topic_label populated."""

    @abstractmethod
    def upsert_style_rollup(self, rollup: StyleRollup) -> None:
        pass

    @abstractmethod
    def upsert_size_rollup(self, rollup: SizeRollup) -> None:
        pass

    @abstractmethod
    def get_style_rollups(self, limit: int = 10) -> List[StyleRollup]:
        pass

    @abstractmethod
    def get_size_rollups(self, limit: int = 10) -> List[SizeRollup]:
        pass

    @abstractmethod
    def refresh_global_benchmarks(self) -> bool:
        """Trigger the optional owner-defined aggregate refresh."""

    # =========================================================================
    # Opportunity feed
    # =========================================================================

    @abstractmethod
    def upsert_opportunity(self, opportunity: Opportunity) -> None:
        pass

    @abstractmethod
    def get_opportunities(self, owner_id: str, opportunity_date: date) -> List[Opportunity]:
        """Feed for one owner and day, rank ascending."""

    @abstractmethod
    def create_notification(self, notification: Notification) -> None:
        pass

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class InMemoryStore(PipelineStore):
    """
    Dictionary-backed store.

    Used by the test-suite and offline runs. Returned objects are copies,
    so callers cannot mutate stored state by accident.
    """

    def __init__(self):
        self.runs: Dict[str, RunRecord] = {}
        self.raw_rows: Dict[str, List[Dict[str, Any]]] = {}
        self.owner_emails: Dict[str, str] = {}
        self.interest_terms: Dict[str, List[str]] = {}
        self.listings: Dict[str, CleanListing] = {}
        self.signals: Dict[str, ParsedSignal] = {}
        self.clusters: Dict[str, TopicCluster] = {}
        self.memberships: Dict[Tuple[str, str, str], TopicMembership] = {}
        self.category_medians: Dict[str, float] = {}
        self.topic_scores: Dict[Tuple[str, date], TopicScoreDaily] = {}
        self.style_rollups: Dict[str, StyleRollup] = {}
        self.size_rollups: Dict[str, SizeRollup] = {}
        self.opportunities: Dict[Tuple[str, date, int], Opportunity] = {}
        self.notifications: List[Notification] = []
        self.benchmark_refreshes = 0

    # =========================================================================
    # Seeding helpers
    # =========================================================================

    def add_raw_rows(self, owner_id: str, rows: List[Dict[str, Any]]) -> None:
        self.raw_rows.setdefault(owner_id, []).extend(copy.deepcopy(rows))

    def add_owner(
        self,
        owner_id: str,
        email: Optional[str] = None,
        interest_terms: Optional[List[str]] = None,
    ) -> None:
        if email:
            self.owner_emails[owner_id] = email
        self.interest_terms[owner_id] = list(interest_terms or [])

    # =========================================================================
    # Runs
    # =========================================================================

    def create_run(self, owner_id: str, search_term: Optional[str] = None) -> RunRecord:
        run = RunRecord(id=str(uuid.uuid4()), owner_id=owner_id, search_term=search_term)
        self.runs[run.id] = copy.deepcopy(run)
        return run

    def update_run(self, run: RunRecord) -> None:
        self.runs[run.id] = copy.deepcopy(run)

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        run = self.runs.get(run_id)
        return copy.deepcopy(run) if run else None

    def get_last_run(self, owner_id: str) -> Optional[RunRecord]:
        owned = [r for r in self.runs.values() if r.owner_id == owner_id]
        if not owned:
            return None
        return copy.deepcopy(max(owned, key=lambda r: r.started_at))

    def find_running_run(self, owner_id: str, started_after: datetime) -> Optional[RunRecord]:
        running = [
            r for r in self.runs.values()
            if r.owner_id == owner_id
            and r.status == RunStatus.RUNNING
            and r.started_at >= started_after
        ]
        if not running:
            return None
        return copy.deepcopy(max(running, key=lambda r: r.started_at))

    # =========================================================================
    # Owners
    # =========================================================================

    def list_active_owners(self) -> List[str]:
        return sorted(owner for owner, terms in self.interest_terms.items() if terms)

    def get_owner_email(self, owner_id: str) -> Optional[str]:
        return self.owner_emails.get(owner_id)

    def get_interest_terms(self, owner_id: str) -> List[str]:
        return list(self.interest_terms.get(owner_id, []))

    # =========================================================================
    # Listings
    # =========================================================================

    def fetch_raw_listings(
        self,
        owner_id: str,
        search_term: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        rows = self.raw_rows.get(owner_id, [])
        if search_term:
            rows = [
                r for r in rows
                if (r.get("search_term") or r.get("search_keyword")) == search_term
            ]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def insert_clean_listings(self, listings: List[CleanListing]) -> int:
        existing = {(l.run_id, l.dedupe_hash) for l in self.listings.values()}
        inserted = 0
        for listing in listings:
            key = (listing.run_id, listing.dedupe_hash)
            if key in existing:
                continue
            self.listings[listing.id] = copy.deepcopy(listing)
            existing.add(key)
            inserted += 1
        return inserted

    def get_clean_listings(self, run_id: str, owner_id: str) -> List[CleanListing]:
        return [
            copy.deepcopy(l) for l in self.listings.values()
            if l.run_id == run_id and l.owner_id == owner_id
        ]

    def get_listings(self, listing_ids: Iterable[str]) -> Dict[str, CleanListing]:
        return {
            lid: copy.deepcopy(self.listings[lid])
            for lid in listing_ids if lid in self.listings
        }

    def update_listing_score(
        self,
        listing_id: str,
        wvs_score: float,
        watch_velocity: float,
        demand_label: str,
        scored_at: datetime,
    ) -> None:
        listing = self.listings.get(listing_id)
        if listing is None:
            return
        listing.wvs_score = wvs_score
        listing.watch_velocity = watch_velocity
        listing.demand_label = demand_label
        listing.scored_at = scored_at

    def get_listings_missing_visuals(self, owner_id: str, limit: int) -> List[CleanListing]:
        pending = [
            l for l in self.listings.values()
            if l.owner_id == owner_id and l.image_url and l.visual_metadata is None
        ]
        return [copy.deepcopy(l) for l in pending[:limit]]

    def save_visual_metadata(self, listing_id: str, metadata: Dict[str, Any]) -> None:
        if listing_id in self.listings:
            self.listings[listing_id].visual_metadata = copy.deepcopy(metadata)

    # =========================================================================
    # Parsed signals
    # =========================================================================

    def insert_parsed_signals(self, signals: List[ParsedSignal]) -> int:
        inserted = 0
        for signal in signals:
            if signal.listing_id in self.signals:
                continue
            self.signals[signal.listing_id] = copy.deepcopy(signal)
            inserted += 1
        return inserted

    def get_parsed_signals(self, listing_ids: Iterable[str]) -> Dict[str, ParsedSignal]:
        return {
            lid: copy.deepcopy(self.signals[lid])
            for lid in listing_ids if lid in self.signals
        }

    # =========================================================================
    # Topics
    # =========================================================================

    def get_cluster_by_slug(self, slug: str) -> Optional[TopicCluster]:
        for cluster in self.clusters.values():
            if cluster.slug == slug:
                return copy.deepcopy(cluster)
        return None

    def create_cluster(self, slug: str, label: str, run_id: str) -> Tuple[TopicCluster, bool]:
        existing = self.get_cluster_by_slug(slug)
        if existing is not None:
            return existing, False
        cluster = TopicCluster(id=str(uuid.uuid4()), slug=slug, label=label, run_id=run_id)
        self.clusters[cluster.id] = copy.deepcopy(cluster)
        return cluster, True

    def get_clusters(self, topic_ids: Iterable[str]) -> Dict[str, TopicCluster]:
        return {
            tid: copy.deepcopy(self.clusters[tid])
            for tid in topic_ids if tid in self.clusters
        }

    def insert_memberships(self, memberships: List[TopicMembership]) -> int:
        inserted = 0
        for membership in memberships:
            key = (membership.run_id, membership.topic_id, membership.listing_id)
            if key in self.memberships:
                continue
            self.memberships[key] = copy.deepcopy(membership)
            inserted += 1
        return inserted

    def get_memberships(self, run_id: str, topic_id: Optional[str] = None) -> List[TopicMembership]:
        return [
            copy.deepcopy(m) for m in self.memberships.values()
            if m.run_id == run_id and (topic_id is None or m.topic_id == topic_id)
        ]

    # =========================================================================
    # Scores and rollups
    # =========================================================================

    def get_category_medians(self) -> Dict[str, float]:
        return dict(self.category_medians)

    def upsert_topic_score(self, score: TopicScoreDaily) -> None:
        self.topic_scores[(score.topic_id, score.score_date)] = copy.deepcopy(score)

    def get_topic_scores(
        self,
        score_date: date,
        min_confidence: float = 0.0,
        limit: Optional[int] = None,
        topic_ids: Optional[Iterable[str]] = None,
    ) -> List[TopicScoreDaily]:
        allowed = set(topic_ids) if topic_ids is not None else None
        rows = []
        for (topic_id, day), score in self.topic_scores.items():
            if day != score_date or score.confidence < min_confidence:
                continue
            if allowed is not None and topic_id not in allowed:
                continue
            row = copy.deepcopy(score)
            cluster = self.clusters.get(topic_id)
            row.topic_label = cluster.label if cluster else None
            rows.append(row)
        rows.sort(key=lambda s: s.wvs_score, reverse=True)
        return rows[:limit] if limit is not None else rows

    def upsert_style_rollup(self, rollup: StyleRollup) -> None:
        self.style_rollups[rollup.style_term] = copy.deepcopy(rollup)

    def upsert_size_rollup(self, rollup: SizeRollup) -> None:
        self.size_rollups[rollup.size_bucket] = copy.deepcopy(rollup)

    def get_style_rollups(self, limit: int = 10) -> List[StyleRollup]:
        ranked = sorted(self.style_rollups.values(), key=lambda r: r.avg_wvs, reverse=True)
        return [copy.deepcopy(r) for r in ranked[:limit]]

    def get_size_rollups(self, limit: int = 10) -> List[SizeRollup]:
        ranked = sorted(self.size_rollups.values(), key=lambda r: r.avg_wvs, reverse=True)
        return [copy.deepcopy(r) for r in ranked[:limit]]

    def refresh_global_benchmarks(self) -> bool:
        self.benchmark_refreshes += 1
        return True

    # =========================================================================
    # Opportunity feed
    # =========================================================================

    def upsert_opportunity(self, opportunity: Opportunity) -> None:
        key = (opportunity.owner_id, opportunity.opportunity_date, opportunity.rank)
        self.opportunities[key] = copy.deepcopy(opportunity)

    def get_opportunities(self, owner_id: str, opportunity_date: date) -> List[Opportunity]:
        feed = [
            copy.deepcopy(o) for (owner, day, _), o in self.opportunities.items()
            if owner == owner_id and day == opportunity_date
        ]
        return sorted(feed, key=lambda o: o.rank)

    def create_notification(self, notification: Notification) -> None:
        notification.created_at = notification.created_at or utc_now()
        self.notifications.append(copy.deepcopy(notification))


def create_store(settings=None) -> PipelineStore:
    """Build the store selected by Settings.store_backend."""
    from .config import get_settings

    settings = settings or get_settings()
    if settings.store_backend == "memory":
        logger.info("Using in-memory store")
        return InMemoryStore()

    from .postgres_store import PostgresStore
    return PostgresStore(settings=settings)
