"""
ArtPulse WVS Scorer - deterministic per-listing demand metric.

The Watch Velocity Score combines how fast a listing gathers watchers and
bids, how its price compares to the category median, and how many similar
listings it competes with.

PHILOSOPHY:
- No ML, no learned weights
- Every score is REPRODUCIBLE from the same inputs
- Every score is EXPLAINABLE from its components

USAGE:
    from artpulse.scoring import WVSScorer, WVSInput

    scorer = WVSScorer()
    score = scorer.calculate(WVSInput(
        watcher_count=10, bid_count=2, days_active=5, item_price=150,
    ))
    print(score.wvs, score.label)   # 2.8 Solid Demand
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .scoring_config import ScoringConfig, DEFAULT_CONFIG


@dataclass
class WVSInput:
    """Signals for one listing. Missing watcher counts are passed as 0."""
    watcher_count: int
    bid_count: int
    days_active: int
    item_price: float
    category_median_price: Optional[float] = None
    similar_listings_count: int = 0


@dataclass
class WVSComponents:
    """Rounded intermediate values of the formula."""
    pulse_velocity: float
    normalized_price_factor: float
    competition_adjustment: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "pulse_velocity": self.pulse_velocity,
            "normalized_price_factor": self.normalized_price_factor,
            "competition_adjustment": self.competition_adjustment,
        }


@dataclass
class WVSScore:
    """Result of one WVS calculation."""
    wvs: float
    label: str
    components: WVSComponents
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wvs": self.wvs,
            "label": self.label,
            "components": self.components.to_dict(),
            "confidence": self.confidence,
        }


class WVSScorer:
    """
    Watch Velocity Score calculator.

    RULES:
    - daysActive is floored to 1, the median to 1, similar listings to 0
    - priceFactor above 2x median is multiplied by 1.5, then floored to 0.1
    - a listing with no watchers and no bids scores 0, never an error
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.config.validate()

    def calculate(self, data: WVSInput) -> WVSScore:
        """Score one listing."""
        cfg = self.config.wvs

        watchers = max(data.watcher_count or 0, 0)
        bids = max(data.bid_count or 0, 0)
        days_active = max(data.days_active, cfg.min_days_active)
        median = data.category_median_price
        if median is None:
            median = cfg.default_category_median
        median = max(median, cfg.min_category_median)
        similar = max(data.similar_listings_count or 0, 0)

        pulse_velocity = (watchers + cfg.bid_weight * bids) / days_active

        price_factor = data.item_price / median
        if price_factor > cfg.outlier_price_factor:
            price_factor *= cfg.outlier_penalty
        price_factor = max(price_factor, cfg.min_price_factor)

        competition_adjustment = 1 / (1 + similar)

        wvs = pulse_velocity * (1 / price_factor) * competition_adjustment

        decimals = cfg.component_decimals
        return WVSScore(
            wvs=round(wvs, cfg.score_decimals),
            label=self.label_for(wvs),
            components=WVSComponents(
                pulse_velocity=round(pulse_velocity, decimals),
                normalized_price_factor=round(price_factor, decimals),
                competition_adjustment=round(competition_adjustment, decimals),
            ),
            confidence=round(self.calculate_confidence(watchers, bids, days_active), decimals),
        )

    def label_for(self, wvs: float) -> str:
        for threshold, label in self.config.wvs.label_thresholds:
            if wvs > threshold:
                return label
        return self.config.wvs.default_label

    def calculate_confidence(self, watcher_count: int, bid_count: int, days_active: int) -> float:
        """0.5 base, +0.2 for 10+ engagements, +0.2 for a week of activity."""
        cfg = self.config.wvs
        confidence = cfg.base_confidence
        if watcher_count + bid_count >= cfg.engagement_threshold:
            confidence += cfg.engagement_bonus
        if days_active >= cfg.maturity_days:
            confidence += cfg.maturity_bonus
        return min(confidence, cfg.max_confidence)
