"""
ArtPulse Ingestion Bridge
=========================

First pipeline stage: turns raw source rows into run-scoped clean listings.

Per row:
    1. Normalize into a RawListing (url, title and price are mandatory)
    2. Compute the dedupe hash from the URL
    3. Drop in-run duplicates (first occurrence wins)
    4. Insert-if-absent on (run_id, dedupe_hash)

Rows that cannot be normalized are logged and skipped; they never fail
the stage. An owner with no raw rows yields a zero count.

Usage:
    from artpulse.data.ingestion_bridge import IngestionBridge

    bridge = IngestionBridge(store)
    result = bridge.bridge(run_id, owner_id, search_term="abstract painting")
    print(result.inserted)
"""

import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Settings, get_settings
from .data_models import CleanListing, RawListing
from .store import PipelineStore

logger = logging.getLogger(__name__)


def compute_dedupe_hash(url: str) -> str:
    """
    Stable identity of a listing URL.

    SHA-256 of the stripped URL, hex digest truncated to 32 characters.
    """
    return hashlib.sha256(url.strip().encode("utf-8")).hexdigest()[:32]


@dataclass
class BridgeResult:
    """Outcome of one bridge call."""
    run_id: str
    owner_id: str
    rows_read: int = 0
    inserted: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
        }


class IngestionBridge:
    """Copies raw listings into the run's clean listing set."""

    def __init__(self, store: PipelineStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def bridge(
        self,
        run_id: str,
        owner_id: str,
        search_term: Optional[str] = None,
    ) -> BridgeResult:
        """
        Bridge one owner's raw rows into clean listings for the run.

        Args:
            run_id: Current run
            owner_id: Owner whose raw rows are read
            search_term: Optional filter on the raw rows' search term

        Returns:
            BridgeResult with the number of clean listings inserted
        """
        result = BridgeResult(run_id=run_id, owner_id=owner_id)
        limit = self.settings.pipeline.max_listings_per_run

        rows = self.store.fetch_raw_listings(owner_id, search_term=search_term, limit=limit)
        result.rows_read = len(rows)

        if not rows:
            logger.info(f"No raw listings for owner {owner_id} (term={search_term!r})")
            return result

        seen_hashes = set()
        clean: List[CleanListing] = []

        for row in rows:
            listing = self._clean_row(row, run_id, owner_id, search_term, result)
            if listing is None:
                continue
            if listing.dedupe_hash in seen_hashes:
                result.duplicates += 1
                continue
            seen_hashes.add(listing.dedupe_hash)
            clean.append(listing)

        result.inserted = self.store.insert_clean_listings(clean)

        logger.info(
            f"Bridged {result.inserted} clean listings from {result.rows_read} raw rows "
            f"({result.duplicates} duplicates, {result.skipped} skipped)"
        )
        return result

    def _clean_row(
        self,
        row: Dict[str, Any],
        run_id: str,
        owner_id: str,
        search_term: Optional[str],
        result: BridgeResult,
    ) -> Optional[CleanListing]:
        try:
            raw = RawListing.from_row(row)
        except (ValueError, TypeError) as e:
            result.skipped += 1
            result.errors.append(str(e))
            logger.warning(f"Skipping raw listing: {e}")
            return None

        return CleanListing(
            id=str(uuid.uuid4()),
            run_id=run_id,
            owner_id=owner_id,
            url=raw.url,
            title=raw.title,
            price=raw.price,
            dedupe_hash=compute_dedupe_hash(raw.url),
            currency=raw.currency,
            is_auction=raw.is_auction,
            bid_count=raw.bid_count,
            watcher_count=raw.watcher_count,
            search_term=raw.search_term or search_term,
            observed_at=raw.observed_at,
            first_seen_at=raw.listed_at or raw.observed_at,
            is_active=raw.is_active,
            image_url=raw.image_url,
        )
