"""
Thresholds and constants for ArtPulse demand scoring.

Every number the WVS formula and the rollups depend on lives here, so the
scoring code itself carries no magic numbers.

WVS (Watch Velocity Score):
    pulseVelocity          = (watchers + 2 * bids) / max(daysActive, 1)
    priceFactor            = price / max(categoryMedian, 1)
    if priceFactor > 2:      priceFactor *= 1.5
    priceFactor            = max(priceFactor, 0.1)
    competitionAdjustment  = 1 / (1 + similarListings)
    WVS                    = pulseVelocity / priceFactor * competitionAdjustment
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class WVSConfig:
    """
    Per-listing WVS parameters.

    Labels are checked in order; a score must be strictly above the
    threshold to earn the label.
    """
    bid_weight: float = 2.0
    min_days_active: int = 1

    default_category_median: float = 150.0
    min_category_median: float = 1.0

    # Outlier-priced items are penalized harder
    outlier_price_factor: float = 2.0
    outlier_penalty: float = 1.5
    min_price_factor: float = 0.1

    label_thresholds: Tuple[Tuple[float, str], ...] = (
        (5.0, "High Demand"),
        (2.0, "Solid Demand"),
        (1.0, "Moderate Demand"),
    )
    default_label: str = "Low Demand"

    # Confidence
    base_confidence: float = 0.5
    engagement_threshold: int = 10     # watchers + bids
    engagement_bonus: float = 0.2
    maturity_days: int = 7
    maturity_bonus: float = 0.2
    max_confidence: float = 1.0

    # Rounding
    score_decimals: int = 4
    component_decimals: int = 2


@dataclass(frozen=True)
class RollupConfig:
    """Per-topic, per-style and per-size aggregation parameters."""
    demand_multiplier: float = 10.0
    topic_demand_cap: float = 100.0
    style_demand_cap: float = 10.0

    # Used for listings without a parsed value
    default_style: str = "Abstract"
    default_size: str = "medium"

    # Report
    top_n: int = 5


@dataclass
class ScoringConfig:
    """Entry point for scoring calibration."""
    wvs: WVSConfig = field(default_factory=WVSConfig)
    rollups: RollupConfig = field(default_factory=RollupConfig)

    def validate(self) -> bool:
        """Check configuration consistency."""
        thresholds = [t for t, _ in self.wvs.label_thresholds]
        assert thresholds == sorted(thresholds, reverse=True), \
            "label_thresholds must be ordered from highest to lowest"
        assert self.wvs.min_price_factor > 0, "min_price_factor must be positive"
        assert self.wvs.base_confidence <= self.wvs.max_confidence, \
            "base_confidence cannot exceed max_confidence"
        return True


DEFAULT_CONFIG = ScoringConfig()
