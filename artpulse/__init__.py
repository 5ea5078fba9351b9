"""
ArtPulse
========

Demand intelligence for art listings: turns raw marketplace listings into a
ranked, evidence-backed feed of what to paint next.

Stages:
    1. Ingestion bridge   (artpulse.data)
    2. Feature parsing    (artpulse.parsing)
    3. Topic clustering   (artpulse.clustering)
    4. Demand scoring     (artpulse.scoring)
    5. Publishing         (artpulse.publishing)

Usage:
    from artpulse.orchestrator import PulsePipeline

    with PulsePipeline() as pipeline:
        result = pipeline.run("owner-1", search_term="abstract painting")
"""

__version__ = "2.0.0"
