"""
ArtPulse Parsing Module
=======================

Feature extraction from listing titles (pipeline stage 2).

Components:
    - FeatureParser: Parses a run's clean listings into ParsedSignals
    - PatternSignalExtractor: Deterministic regex/vocabulary rules
    - LLMSignalExtractor: Optional enrichment for low-confidence titles
"""

from .feature_parser import (
    FeatureParser,
    ParseResult,
    SignalExtractor,
    PatternSignalExtractor,
    PATTERN_EXTRACTOR_ID,
    extract_dimensions,
    size_bucket_for,
    compute_confidence,
)
from .enrichment import LLMSignalExtractor

__all__ = [
    "FeatureParser",
    "ParseResult",
    "SignalExtractor",
    "PatternSignalExtractor",
    "PATTERN_EXTRACTOR_ID",
    "LLMSignalExtractor",
    "extract_dimensions",
    "size_bucket_for",
    "compute_confidence",
]
