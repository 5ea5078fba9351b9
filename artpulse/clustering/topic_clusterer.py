"""
ArtPulse Topic Clusterer
========================

Third pipeline stage: groups a run's listings into durable topic clusters.

Grouping key:
    - SEARCH_TERM mode: trimmed, lower-cased search term of the listing
    - STYLE mode: the listing's parsed style

Clusters are resolved get-or-create by slug, so the same key maps to the
same cluster id in every run. Memberships are insert-if-absent on
(run_id, topic_id, listing_id): clustering the same run twice creates no
new clusters and no extra memberships.

Usage:
    from artpulse.clustering import TopicClusterer

    clusterer = TopicClusterer(store)
    result = clusterer.cluster_listings(run_id, owner_id)
    print(result.clusters_created, result.memberships_created)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..data.data_models import CleanListing, TopicMembership
from ..data.store import PipelineStore
from ..exceptions import StoreError

logger = logging.getLogger(__name__)

DEFAULT_MEMBERSHIP_WEIGHT = 1.0


class ClusterMode(Enum):
    """Dimension used to group listings."""
    SEARCH_TERM = "search_term"
    STYLE = "style"


def normalize_key(value: Optional[str]) -> Optional[str]:
    """Trim, collapse inner whitespace and lower-case; blank values have no key."""
    if not value:
        return None
    key = " ".join(value.split()).lower()
    return key or None


def slugify(key: str) -> str:
    """Whitespace runs become single hyphens."""
    return re.sub(r"\s+", "-", key.strip())


def make_label(key: str) -> str:
    """Key with its first character upper-cased."""
    return key[:1].upper() + key[1:]


@dataclass
class ClusterResult:
    """Outcome of clustering one run."""
    run_id: str
    mode: ClusterMode = ClusterMode.SEARCH_TERM
    listings_seen: int = 0
    listings_without_key: int = 0
    clusters_created: int = 0
    clusters_reused: int = 0
    memberships_created: int = 0
    topic_ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "listings_seen": self.listings_seen,
            "listings_without_key": self.listings_without_key,
            "clusters_created": self.clusters_created,
            "clusters_reused": self.clusters_reused,
            "memberships_created": self.memberships_created,
            "topic_ids": list(self.topic_ids),
        }


class TopicClusterer:
    """Resolves clusters and writes memberships for one run."""

    def __init__(self, store: PipelineStore):
        self.store = store

    def cluster_listings(
        self,
        run_id: str,
        owner_id: str,
        mode: ClusterMode = ClusterMode.SEARCH_TERM,
    ) -> ClusterResult:
        """
        Cluster the run's clean listings.

        Returns:
            ClusterResult; clusters_created only counts clusters new to the store
        """
        result = ClusterResult(run_id=run_id, mode=mode)

        listings = self.store.get_clean_listings(run_id, owner_id)
        result.listings_seen = len(listings)
        if not listings:
            logger.info(f"No listings to cluster for run {run_id}")
            return result

        groups = self._group(listings, mode, result)

        for key, listing_ids in groups.items():
            slug = slugify(key)
            try:
                cluster, created = self.store.create_cluster(slug, make_label(key), run_id)
                memberships = [
                    TopicMembership(
                        run_id=run_id,
                        topic_id=cluster.id,
                        listing_id=listing_id,
                        weight=DEFAULT_MEMBERSHIP_WEIGHT,
                    )
                    for listing_id in listing_ids
                ]
                inserted = self.store.insert_memberships(memberships)
            except StoreError as e:
                result.errors.append(f"{slug}: {e}")
                logger.warning(f"Failed to resolve cluster '{slug}': {e}")
                continue

            if created:
                result.clusters_created += 1
                logger.info(f"Created topic cluster '{slug}' ({len(listing_ids)} listings)")
            else:
                result.clusters_reused += 1
            result.memberships_created += inserted
            result.topic_ids.append(cluster.id)

        logger.info(
            f"Clustering ({mode.value}): {result.clusters_created} new clusters, "
            f"{result.clusters_reused} reused, {result.memberships_created} memberships"
        )
        return result

    def _group(
        self,
        listings: List[CleanListing],
        mode: ClusterMode,
        result: ClusterResult,
    ) -> Dict[str, List[str]]:
        """Listing ids per normalized key, in first-seen order."""
        styles: Dict[str, Any] = {}
        if mode == ClusterMode.STYLE:
            signals = self.store.get_parsed_signals([l.id for l in listings])
            styles = {lid: s.style for lid, s in signals.items()}

        groups: Dict[str, List[str]] = {}
        for listing in listings:
            if mode == ClusterMode.STYLE:
                key = normalize_key(styles.get(listing.id))
            else:
                key = normalize_key(listing.search_term)

            if key is None:
                result.listings_without_key += 1
                continue
            groups.setdefault(key, []).append(listing.id)

        return groups
