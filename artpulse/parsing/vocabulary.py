"""
Title vocabulary for the feature parser.

Lists are ordered: the first match wins for medium, subject and style, so
multi-word terms are listed before the sub-terms they contain. Colors
collect every match, in list order.
"""

import re
from typing import Dict, List, Optional, Pattern


# =============================================================================
# VOCABULARY
# =============================================================================

MEDIUMS = [
    "oil",
    "acrylic",
    "watercolor",
    "watercolour",
    "pastel",
    "charcoal",
    "pencil",
    "ink",
    "mixed media",
    "gouache",
    "tempera",
    "spray paint",
    "digital",
    "print",
    "lithograph",
    "etching",
    "serigraph",
]

SUBJECTS = [
    "abstract",
    "landscape",
    "portrait",
    "still life",
    "seascape",
    "cityscape",
    "floral",
    "animal",
    "wildlife",
    "figurative",
    "nude",
    "religious",
    "historical",
    "fantasy",
    "surreal",
    "geometric",
    "botanical",
]

STYLES = [
    "abstract expressionist",
    "contemporary",
    "modern",
    "traditional",
    "impressionist",
    "expressionist",
    "cubist",
    "pop art",
    "minimalist",
    "realist",
    "surrealist",
    "vintage",
    "mid-century",
    "folk art",
    "naive",
]

COLORS = [
    "red",
    "blue",
    "green",
    "yellow",
    "orange",
    "purple",
    "pink",
    "black",
    "white",
    "gray",
    "grey",
    "brown",
    "gold",
    "silver",
    "bronze",
    "turquoise",
    "teal",
    "navy",
    "maroon",
    "beige",
]


# =============================================================================
# MATCHING
# =============================================================================

def _term_pattern(term: str) -> Pattern:
    """Whole-word, case-insensitive pattern; inner spaces match any whitespace run."""
    body = r"\s+".join(re.escape(word) for word in term.split())
    return re.compile(rf"(?<![\w-]){body}(?![\w-])", re.IGNORECASE)


_PATTERNS: Dict[str, Pattern] = {
    term: _term_pattern(term)
    for term in MEDIUMS + SUBJECTS + STYLES + COLORS
}


def first_match(text: str, vocabulary: List[str]) -> Optional[str]:
    """First vocabulary term found in text, in vocabulary order."""
    if not text:
        return None
    for term in vocabulary:
        if _PATTERNS[term].search(text):
            return term
    return None


def all_matches(text: str, vocabulary: List[str]) -> List[str]:
    """Every vocabulary term found in text, in vocabulary order."""
    if not text:
        return []
    return [term for term in vocabulary if _PATTERNS[term].search(text)]


def normalize_term(value: Optional[str], vocabulary: List[str]) -> Optional[str]:
    """
    Map a free-form value (e.g. LLM output) onto the vocabulary.

    Exact matches win; otherwise the first vocabulary term contained in the
    value. Unknown values map to None.
    """
    if not value or not isinstance(value, str):
        return None
    lowered = " ".join(value.lower().split())
    if lowered in vocabulary:
        return lowered
    return first_match(lowered, vocabulary)
