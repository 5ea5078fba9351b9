"""ArtPulse HTTP API (FastAPI)."""
