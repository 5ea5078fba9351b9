"""
ArtPulse Scoring Module
=======================

Deterministic demand scoring (pipeline stage 4).

Components:
    - WVSScorer: Per-listing Watch Velocity Score
    - CategoryMedianBook: Median price per size bucket
    - DemandScoringEngine: Scores a run and writes topic/style/size rollups
"""

from .scoring_config import ScoringConfig, WVSConfig, RollupConfig, DEFAULT_CONFIG
from .wvs_scorer import WVSScorer, WVSInput, WVSScore, WVSComponents
from .median_book import CategoryMedianBook
from .demand_engine import (
    DemandScoringEngine,
    ScoringReport,
    days_active_for,
    median_and_upper_quartile,
)

__all__ = [
    "ScoringConfig",
    "WVSConfig",
    "RollupConfig",
    "DEFAULT_CONFIG",
    "WVSScorer",
    "WVSInput",
    "WVSScore",
    "WVSComponents",
    "CategoryMedianBook",
    "DemandScoringEngine",
    "ScoringReport",
    "days_active_for",
    "median_and_upper_quartile",
]
