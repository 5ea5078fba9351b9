"""
ArtPulse Data Module
====================

Configuration, canonical data models, the collaborator store contract and
the ingestion bridge (pipeline stage 1).

This module provides:
    - Settings: Environment-driven configuration
    - Data models: RawListing, CleanListing, ParsedSignal, TopicCluster, ...
    - PipelineStore: Store contract, with InMemoryStore and PostgresStore
    - IngestionBridge: Raw rows -> deduplicated clean listings

Quick Start:
    from artpulse.data import InMemoryStore, IngestionBridge

    store = InMemoryStore()
    store.add_raw_rows("owner-1", rows)
    result = IngestionBridge(store).bridge(run_id, "owner-1")

Configuration:
    Set environment variables or create a .env file.
    DATABASE_PASSWORD is required for the postgres backend only.
"""

from .config import get_settings, load_settings, reset_settings, Settings
from .data_models import (
    RunStatus,
    RawListing,
    CleanListing,
    ParsedSignal,
    TopicCluster,
    TopicMembership,
    TopicScoreDaily,
    StyleRollup,
    SizeRollup,
    PriceBand,
    Opportunity,
    Notification,
    RunRecord,
)
from .store import PipelineStore, InMemoryStore, create_store
from .ingestion_bridge import IngestionBridge, BridgeResult, compute_dedupe_hash

__all__ = [
    # Configuration
    "get_settings",
    "load_settings",
    "reset_settings",
    "Settings",
    # Models
    "RunStatus",
    "RawListing",
    "CleanListing",
    "ParsedSignal",
    "TopicCluster",
    "TopicMembership",
    "TopicScoreDaily",
    "StyleRollup",
    "SizeRollup",
    "PriceBand",
    "Opportunity",
    "Notification",
    "RunRecord",
    # Store
    "PipelineStore",
    "InMemoryStore",
    "create_store",
    # Stage 1
    "IngestionBridge",
    "BridgeResult",
    "compute_dedupe_hash",
]
