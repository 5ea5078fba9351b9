"""
ArtPulse Data Models
====================

Dataclasses representing the entities the pipeline reads and writes.
These models are the canonical shape of every row crossing the store
boundary: stores convert their native rows into these DTOs before any
stage logic sees them.

Models:
    - RawListing: Listing row as supplied by the raw listing source
    - CleanListing: Deduplicated, run-scoped listing
    - ParsedSignal: Structured features extracted from a title
    - TopicCluster / TopicMembership: Named topic groupings
    - TopicScoreDaily: Daily demand aggregate for a topic
    - StyleRollup / SizeRollup: Global rollups keyed by style / size bucket
    - Opportunity: Published, ranked recommendation
    - Notification: In-app notification record
    - RunRecord: One pipeline execution
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any


class RunStatus(Enum):
    """Pipeline run status. Everything but RUNNING is terminal."""
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a datetime, date or ISO string into an aware UTC datetime.

    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_price(value: Any) -> Optional[float]:
    """
    Parse a price from a number or raw text ("$1,250.00", "US $45").

    Returns None when no number can be found.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = str(value).replace(",", "")
    match = re.search(r"\d+(?:\.\d+)?", cleaned)
    if not match:
        return None
    return float(match.group(0))


def parse_count(value: Any) -> Optional[int]:
    """Parse a count from a number or raw text ("3 bids", "12 watchers")."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    match = re.search(r"\d+", str(value))
    if not match:
        return None
    return int(match.group(0))


def parse_flag(value: Any, default: bool = False) -> bool:
    """Parse a boolean from a bool, number or text ("true", "0", "no")."""
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return default
        return text in ("true", "1", "yes", "y", "on", "t")
    return bool(value)


@dataclass
class RawListing:
    """
    Listing row as supplied by the raw listing source.

    watcher_count is absent for most historical (sold) rows.
    """
    owner_id: str
    url: str
    title: str
    price: float
    observed_at: Optional[datetime] = None
    currency: str = "USD"
    is_auction: bool = False
    bid_count: int = 0
    watcher_count: Optional[int] = None
    search_term: Optional[str] = None
    listed_at: Optional[datetime] = None
    is_active: bool = False
    image_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RawListing":
        """
        Build from a loosely-typed source row.

        Raises:
            ValueError: If url, title or price are missing or unparseable
        """
        url = (row.get("url") or row.get("item_url") or "").strip()
        title = (row.get("title") or row.get("title_raw") or "").strip()
        if not url:
            raise ValueError("row has no url")
        if not title:
            raise ValueError(f"row {url} has no title")

        price = parse_price(row.get("price", row.get("sold_price")))
        if price is None:
            raise ValueError(f"row {url} has no parseable price")

        bid_count = parse_count(row.get("bid_count")) or 0
        is_auction = parse_flag(row.get("is_auction"), default=bid_count > 0)

        return cls(
            owner_id=str(row.get("owner_id") or row.get("user_id") or ""),
            url=url,
            title=title,
            price=price,
            observed_at=to_utc_datetime(row.get("observed_at") or row.get("sold_date")),
            currency=(row.get("currency") or "USD").upper(),
            is_auction=is_auction,
            bid_count=bid_count,
            watcher_count=parse_count(row.get("watcher_count")),
            search_term=row.get("search_term") or row.get("search_keyword"),
            listed_at=to_utc_datetime(row.get("listed_at")),
            is_active=parse_flag(row.get("is_active")),
            image_url=row.get("image_url"),
        )


@dataclass
class CleanListing:
    """
    Deduplicated listing tied to one run.

    Maps to the clean_listings table. The score columns are only written
    for active listings, by the scoring stage.
    """
    id: str
    run_id: str
    owner_id: str
    url: str
    title: str
    price: float
    dedupe_hash: str
    currency: str = "USD"
    is_auction: bool = False
    bid_count: int = 0
    watcher_count: Optional[int] = None
    search_term: Optional[str] = None
    observed_at: Optional[datetime] = None
    first_seen_at: Optional[datetime] = None
    is_active: bool = False
    image_url: Optional[str] = None

    # Written in place for active listings
    wvs_score: Optional[float] = None
    watch_velocity: Optional[float] = None
    demand_label: Optional[str] = None
    scored_at: Optional[datetime] = None

    # Written by the visual analysis side stage
    visual_metadata: Optional[Dict[str, Any]] = None


@dataclass
class ParsedSignal:
    """Structured features extracted from one listing title."""
    listing_id: str
    owner_id: str
    width_in: Optional[int] = None
    height_in: Optional[int] = None
    size_bucket: Optional[str] = None
    medium: Optional[str] = None
    subject: Optional[str] = None
    style: Optional[str] = None
    color_tags: List[str] = field(default_factory=list)
    confidence: float = 0.5
    extractor: str = "pattern-rules"


@dataclass
class TopicCluster:
    """Durable named grouping of listings. Slug is globally unique."""
    id: str
    slug: str
    label: str
    run_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class TopicMembership:
    """Listing ∈ topic relation for one run."""
    run_id: str
    topic_id: str
    listing_id: str
    weight: float = 1.0


@dataclass
class TopicScoreDaily:
    """Daily demand aggregate for a topic. Natural key: (topic_id, score_date)."""
    topic_id: str
    score_date: date
    wvs_score: float
    velocity_score: float
    demand_score: float
    median_price: float
    upper_quartile_price: float
    auction_intensity: float
    listing_count: int
    confidence: float
    run_id: Optional[str] = None
    topic_label: Optional[str] = None


@dataclass
class StyleRollup:
    """Global rollup keyed by style term (last write wins)."""
    style_term: str
    avg_wvs: float
    avg_price: float
    listing_count: int
    demand_score: float
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class SizeRollup:
    """Global rollup keyed by size bucket (last write wins)."""
    size_bucket: str
    avg_wvs: float
    avg_price: float
    listing_count: int
    demand_score: float
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class PriceBand:
    """Recommended price band, whole currency units."""
    min: int
    median: int
    max: int

    def to_dict(self) -> Dict[str, int]:
        return {"min": self.min, "median": self.median, "max": self.max}


@dataclass
class Opportunity:
    """
    Published recommendation.

    Natural key: (owner_id, opportunity_date, rank). A later run on the
    same day overwrites the same rank slot.
    """
    owner_id: str
    opportunity_date: date
    rank: int
    topic_id: str
    topic_label: str
    wvs_score: float
    velocity_score: float
    price_band: PriceBand
    confidence: float
    run_id: Optional[str] = None
    recommended_sizes: List[str] = field(default_factory=list)
    recommended_mediums: List[str] = field(default_factory=list)
    keyword_stack: List[str] = field(default_factory=list)
    evidence_urls: List[str] = field(default_factory=list)
    format_recommendation: str = "hybrid"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "owner_id": self.owner_id,
            "run_id": self.run_id,
            "date": self.opportunity_date.isoformat(),
            "rank": self.rank,
            "topic_id": self.topic_id,
            "topic_label": self.topic_label,
            "wvs_score": self.wvs_score,
            "velocity_score": self.velocity_score,
            "recommended_price_band": self.price_band.to_dict(),
            "recommended_sizes": list(self.recommended_sizes),
            "recommended_mediums": list(self.recommended_mediums),
            "keyword_stack": list(self.keyword_stack),
            "evidence_urls": list(self.evidence_urls),
            "format_recommendation": self.format_recommendation,
            "confidence": self.confidence,
        }


@dataclass
class Notification:
    """In-app notification record."""
    owner_id: str
    type: str
    title: str
    message: str
    action_url: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class RunRecord:
    """
    One pipeline execution.

    Created RUNNING; counters are updated after each stage; finalized once.
    """
    id: str
    owner_id: str
    status: RunStatus = RunStatus.RUNNING
    search_term: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    ended_at: Optional[datetime] = None
    error_summary: Optional[str] = None

    # Per-stage counters
    records_inserted_clean: int = 0
    records_parsed: int = 0
    clusters_created: int = 0
    memberships_created: int = 0
    records_scored: int = 0
    opportunities_published: int = 0

    COUNTER_FIELDS = (
        "records_inserted_clean",
        "records_parsed",
        "clusters_created",
        "memberships_created",
        "records_scored",
        "opportunities_published",
    )

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    def counters(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in self.COUNTER_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.id,
            "owner_id": self.owner_id,
            "status": self.status.value,
            "search_term": self.search_term,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "error_summary": self.error_summary,
            **self.counters(),
        }
