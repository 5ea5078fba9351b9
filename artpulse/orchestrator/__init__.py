"""
ArtPulse Orchestrator Module
============================

Orchestration layer for the ArtPulse pipeline.

Components:
    - PulsePipeline: Runs the stages for one owner
    - PipelineScheduler: Daily execution for every active owner
    - CLI: Command-line interface

Usage:
    from artpulse.orchestrator import PulsePipeline

    with PulsePipeline() as pipeline:
        result = pipeline.run("owner-1")
"""

from .pulse_pipeline import (
    PulsePipeline,
    PipelineResult,
    PipelineStage,
    StageResult,
    StageStatus,
)
from .scheduler import (
    PipelineScheduler,
    SchedulerConfig,
    RunHistory,
)

__all__ = [
    # Pipeline
    "PulsePipeline",
    "PipelineResult",
    "PipelineStage",
    "StageResult",
    "StageStatus",
    # Scheduler
    "PipelineScheduler",
    "SchedulerConfig",
    "RunHistory",
]
