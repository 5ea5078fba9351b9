"""
ArtPulse Visual Analyzer
========================

Optional side stage: describes listing images through the LLM client and
stores the result as the listing's visual metadata.

Runs between scoring and publishing when PIPELINE_ENABLE_VISUAL is set.
Per-image failures are logged and skipped; the orchestrator treats the
whole stage as non-critical.

Metadata shape:
    {
        "colors": ["#hex", ...],        # up to 5 dominant colors
        "primary_style": "Abstract",
        "sub_styles": ["Minimalist"],
        "composition": "...",
        "technique": "...",
        "mood": "...",
        "orientation": "horizontal" | "vertical" | "square"
    }
"""

import logging
import re
from typing import Any, Dict, Optional

from ..data.store import PipelineStore
from .llm_client import LLMClient

logger = logging.getLogger(__name__)

ORIENTATIONS = ("horizontal", "vertical", "square")
HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

VISUAL_PROMPT = """Analyze this artwork listing image.
Title: {title}

Report the dominant colors as up to 5 hex codes, the primary style (one of:
Abstract, Landscape, Portrait, Street Art, Minimalist, Pop Art, Realism),
secondary styles, the composition, the painting technique, the mood and the
orientation."""

VISUAL_SCHEMA = {
    "colors": ["#hex"],
    "primary_style": "string",
    "sub_styles": ["string"],
    "composition": "string",
    "technique": "string",
    "mood": "string",
    "orientation": "horizontal|vertical|square",
}


def normalize_visual_metadata(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Keep well-formed fields only. Returns None when nothing usable remains."""
    colors = [c for c in data.get("colors") or [] if isinstance(c, str) and HEX_COLOR.match(c)]
    orientation = str(data.get("orientation") or "").lower()

    metadata = {
        "colors": colors[:5],
        "primary_style": data.get("primary_style") or None,
        "sub_styles": [s for s in data.get("sub_styles") or [] if isinstance(s, str)],
        "composition": data.get("composition") or None,
        "technique": data.get("technique") or None,
        "mood": data.get("mood") or None,
        "orientation": orientation if orientation in ORIENTATIONS else None,
    }
    if not metadata["colors"] and not metadata["primary_style"]:
        return None
    return metadata


class VisualAnalyzer:
    """Fills visual metadata for listings that have an image but no metadata yet."""

    def __init__(self, store: PipelineStore, client: LLMClient):
        self.store = store
        self.client = client

    def process(self, owner_id: str, limit: int = 25) -> int:
        """
        Analyze up to `limit` pending images for the owner.

        Returns:
            Number of listings updated
        """
        listings = self.store.get_listings_missing_visuals(owner_id, limit)
        if not listings:
            return 0

        logger.info(f"Analyzing {len(listings)} listing images")

        processed = 0
        for listing in listings:
            try:
                data = self.client.generate_json(
                    prompt=VISUAL_PROMPT.format(title=listing.title),
                    schema=VISUAL_SCHEMA,
                    image_url=listing.image_url,
                )
            except Exception as e:
                logger.warning(f"Visual analysis failed for listing {listing.id}: {e}")
                continue

            metadata = normalize_visual_metadata(data)
            if metadata is None:
                logger.warning(f"Visual analysis for listing {listing.id} returned nothing usable")
                continue

            self.store.save_visual_metadata(listing.id, metadata)
            processed += 1

        logger.info(f"Visual analysis updated {processed}/{len(listings)} listings")
        return processed
