"""
LLM-backed signal extractor.

Used by FeatureParser as the enrichment fallback for titles whose pattern
confidence is below PIPELINE_ENRICHMENT_THRESHOLD. Model output is
normalized against the same vocabulary as the pattern rules, and scored
with the same confidence rule, so both extractors are comparable.
"""

import logging
from typing import Any, Optional

from ..ai.llm_client import LLMClient
from ..data.data_models import ParsedSignal
from ..exceptions import EnrichmentError
from .feature_parser import SignalExtractor, compute_confidence, size_bucket_for
from .vocabulary import COLORS, MEDIUMS, STYLES, SUBJECTS, normalize_term

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You extract structured attributes from marketplace art listing titles. "
    "Only report what the title states or clearly implies. "
    "Use null for anything unknown."
)

RESPONSE_SCHEMA = {
    "width": "integer inches or null",
    "height": "integer inches or null",
    "medium": f"one of {MEDIUMS} or null",
    "subject": f"one of {SUBJECTS} or null",
    "style": f"one of {STYLES} or null",
    "colors": f"list drawn from {COLORS}",
}


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class LLMSignalExtractor(SignalExtractor):
    """Asks the configured LLM for the title's attributes."""

    def __init__(self, client: LLMClient):
        self.client = client

    @property
    def identifier(self) -> str:
        return f"llm:{self.client.model}"

    def extract(self, listing_id: str, owner_id: str, title: str) -> ParsedSignal:
        """
        Raises:
            EnrichmentError: If the model call fails or returns unusable output
        """
        try:
            data = self.client.generate_json(
                prompt=f"Listing title: {title}",
                system=SYSTEM_PROMPT,
                schema=RESPONSE_SCHEMA,
            )
        except Exception as e:
            raise EnrichmentError(f"LLM extraction failed: {e}") from e

        width = _positive_int(data.get("width"))
        height = _positive_int(data.get("height"))
        if not (width and height):
            width = height = None

        medium = normalize_term(data.get("medium"), MEDIUMS)
        subject = normalize_term(data.get("subject"), SUBJECTS)
        style = normalize_term(data.get("style"), STYLES)

        raw_colors = data.get("colors") or []
        if not isinstance(raw_colors, list):
            raise EnrichmentError(f"colors must be a list, got {type(raw_colors).__name__}")
        found = {normalize_term(c, COLORS) for c in raw_colors}
        colors = [c for c in COLORS if c in found]

        return ParsedSignal(
            listing_id=listing_id,
            owner_id=owner_id,
            width_in=width,
            height_in=height,
            size_bucket=size_bucket_for(width, height),
            medium=medium,
            subject=subject,
            style=style,
            color_tags=colors,
            confidence=compute_confidence(width, height, medium, subject, style),
            extractor=self.identifier,
        )
