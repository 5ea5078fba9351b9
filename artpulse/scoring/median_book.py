"""
Category median price lookup used by the WVS price factor.

Constructed once per pipeline run and loaded explicitly, so scoring never
triggers an implicit query on first use.
"""

import logging
from typing import Dict, Optional

from ..data.store import PipelineStore

logger = logging.getLogger(__name__)


class CategoryMedianBook:
    """Median sold price per size bucket, with a default for unknown buckets."""

    def __init__(self, store: PipelineStore, default_median: float = 150.0):
        self.store = store
        self.default_median = default_median
        self._medians: Dict[str, float] = {}
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> "CategoryMedianBook":
        """Read the medians from the store. Safe to call again to refresh."""
        medians = self.store.get_category_medians()
        self._medians = {bucket: price for bucket, price in medians.items() if price and price > 0}
        self._loaded = True
        logger.info(f"Loaded {len(self._medians)} category medians")
        return self

    def median_for(self, size_bucket: Optional[str]) -> float:
        if not self._loaded:
            raise RuntimeError("CategoryMedianBook.load() must be called before lookups")
        if size_bucket is None:
            return self.default_median
        return self._medians.get(size_bucket, self.default_median)

    def __len__(self) -> int:
        return len(self._medians)
