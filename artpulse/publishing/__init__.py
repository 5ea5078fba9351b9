"""
ArtPulse Publishing Module
==========================

Opportunity publishing (pipeline stage 5) and its guardrails.
"""

from .guardrails import validate_opportunity, MIN_EVIDENCE_URLS, MIN_CONFIDENCE
from .publisher import (
    OpportunityPublisher,
    PublishResult,
    determine_format,
    top_by_frequency,
    build_price_band,
)

__all__ = [
    "validate_opportunity",
    "MIN_EVIDENCE_URLS",
    "MIN_CONFIDENCE",
    "OpportunityPublisher",
    "PublishResult",
    "determine_format",
    "top_by_frequency",
    "build_price_band",
]
