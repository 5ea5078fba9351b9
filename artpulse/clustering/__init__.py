"""
ArtPulse Clustering Module
==========================

Topic clustering (pipeline stage 3).
"""

from .topic_clusterer import (
    TopicClusterer,
    ClusterResult,
    ClusterMode,
    slugify,
    make_label,
    normalize_key,
)

__all__ = [
    "TopicClusterer",
    "ClusterResult",
    "ClusterMode",
    "slugify",
    "make_label",
    "normalize_key",
]
