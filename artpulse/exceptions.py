"""
ArtPulse Exceptions
===================

Error types shared across pipeline stages.

Stages raise StoreError when the collaborator store cannot be reached or a
required query fails; the orchestrator catches it once and marks the run
failed. Per-record problems are logged and skipped, never raised.
"""

from typing import Optional


class ArtPulseError(Exception):
    """Base class for all ArtPulse errors."""
    pass


class StoreError(ArtPulseError):
    """Data store operation error."""
    pass


class RunInProgressError(ArtPulseError):
    """Raised when an owner already has a pipeline run in flight."""

    def __init__(self, owner_id: str, run_id: Optional[str] = None):
        self.owner_id = owner_id
        self.run_id = run_id
        super().__init__(
            f"Pipeline run already in progress for owner {owner_id}"
            + (f" (run_id={run_id})" if run_id else "")
        )


class EnrichmentError(ArtPulseError):
    """LLM-backed enrichment failed or returned unusable output."""
    pass


class NotificationError(ArtPulseError):
    """Notification sink could not deliver a payload."""
    pass
