"""
Opportunity Guardrails - evidence before publication
====================================================

Hard preconditions an opportunity must meet before it reaches an owner's
feed. A candidate failing any rule is dropped, never patched up or
replaced by the next candidate's data.

Rules:
    - at least 5 evidence URLs (sold or live comps)
    - confidence of at least 0.6
    - a price band with a positive median
    - at least one keyword

Usage:
    from artpulse.publishing.guardrails import validate_opportunity

    is_valid, errors = validate_opportunity(opportunity)
    if not is_valid:
        # drop the candidate
"""

from typing import List, Tuple

from ..data.data_models import Opportunity


# =============================================================================
# THRESHOLDS
# =============================================================================

MIN_EVIDENCE_URLS = 5
MIN_CONFIDENCE = 0.6
MIN_KEYWORDS = 1


# =============================================================================
# VALIDATION RULES
# =============================================================================

def check_evidence(opportunity: Opportunity, min_evidence: int = MIN_EVIDENCE_URLS) -> List[str]:
    count = len(opportunity.evidence_urls)
    if count < min_evidence:
        return [f"Only {count} evidence URLs (minimum {min_evidence})"]
    return []


def check_confidence(opportunity: Opportunity, min_confidence: float = MIN_CONFIDENCE) -> List[str]:
    if opportunity.confidence < min_confidence:
        return [f"Confidence {opportunity.confidence} < {min_confidence}"]
    return []


def check_price_band(opportunity: Opportunity) -> List[str]:
    band = opportunity.price_band
    if band is None or band.median <= 0:
        return ["Invalid price band (median must be positive)"]
    return []


def check_keywords(opportunity: Opportunity) -> List[str]:
    if len(opportunity.keyword_stack) < MIN_KEYWORDS:
        return ["No keywords"]
    return []


def validate_opportunity(
    opportunity: Opportunity,
    min_evidence: int = MIN_EVIDENCE_URLS,
    min_confidence: float = MIN_CONFIDENCE,
) -> Tuple[bool, List[str]]:
    """
    Validate a candidate opportunity against every guardrail.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors: List[str] = []
    errors.extend(check_evidence(opportunity, min_evidence))
    errors.extend(check_confidence(opportunity, min_confidence))
    errors.extend(check_price_band(opportunity))
    errors.extend(check_keywords(opportunity))

    return len(errors) == 0, errors
