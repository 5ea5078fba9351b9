"""
ArtPulse Pipeline Scheduler
===========================

Runs the pulse pipeline for every active owner once a day.

Features:
    - Daily execution at a configurable time (default: 6:00 AM UTC)
    - Per-owner isolation: one owner's failure never stops the others
    - Manual trigger support
    - Run history tracking

Usage:
    # Start scheduler daemon
    python -m artpulse.orchestrator.scheduler

    # Or use programmatically
    from artpulse.orchestrator.scheduler import PipelineScheduler

    scheduler = PipelineScheduler()
    scheduler.start()

Configuration:
    SCHEDULER_CRON_HOUR: Hour for daily run (default: 6)
    SCHEDULER_CRON_MINUTE: Minute for daily run (default: 0)
    SCHEDULER_TIMEZONE: Timezone (default: UTC)
"""

import logging
import signal
from dataclasses import dataclass, field
from datetime import datetime
from threading import Event
from typing import Any, Callable, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..data.config import get_env, get_env_int
from ..data.data_models import RunStatus, utc_now
from .pulse_pipeline import PipelineResult, PulsePipeline

logger = logging.getLogger(__name__)

JOB_ID = "daily_pulse"


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""

    cron_hour: int = field(default_factory=lambda: get_env_int("SCHEDULER_CRON_HOUR", 6))
    cron_minute: int = field(default_factory=lambda: get_env_int("SCHEDULER_CRON_MINUTE", 0))
    timezone: str = field(default_factory=lambda: get_env("SCHEDULER_TIMEZONE", "UTC"))

    # Misfire grace time (seconds to consider a missed job)
    misfire_grace_time: int = field(default_factory=lambda: get_env_int("SCHEDULER_MISFIRE_GRACE", 3600))

    def __post_init__(self):
        if not 0 <= self.cron_hour <= 23:
            raise ValueError("SCHEDULER_CRON_HOUR must be within 0-23")
        if not 0 <= self.cron_minute <= 59:
            raise ValueError("SCHEDULER_CRON_MINUTE must be within 0-59")

    def get_cron_expression(self) -> str:
        """Get cron expression for logging."""
        return f"{self.cron_minute} {self.cron_hour} * * *"


@dataclass
class RunHistory:
    """Tracks scheduler run history, one entry per owner run."""
    last_run_at: Optional[datetime] = None
    total_batches: int = 0
    total_runs: int = 0
    total_successes: int = 0
    total_partial: int = 0
    total_failures: int = 0
    consecutive_failed_batches: int = 0

    def record_batch(self, results: List[PipelineResult]):
        """Record one scheduled batch of owner runs."""
        self.last_run_at = utc_now()
        self.total_batches += 1

        failures = 0
        for result in results:
            self.total_runs += 1
            if result.status == RunStatus.SUCCESS:
                self.total_successes += 1
            elif result.status == RunStatus.PARTIAL:
                self.total_partial += 1
            else:
                self.total_failures += 1
                failures += 1

        if results and failures == len(results):
            self.consecutive_failed_batches += 1
        else:
            self.consecutive_failed_batches = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "total_batches": self.total_batches,
            "total_runs": self.total_runs,
            "total_successes": self.total_successes,
            "total_partial": self.total_partial,
            "total_failures": self.total_failures,
            "consecutive_failed_batches": self.consecutive_failed_batches,
        }


class PipelineScheduler:
    """
    Scheduler for the ArtPulse daily pipeline.

    The pipeline factory is called once per batch so each batch gets its own
    store connection; tests pass a factory returning an in-memory pipeline.
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        pipeline_factory: Callable[[], PulsePipeline] = PulsePipeline,
    ):
        self.config = config or SchedulerConfig()
        self.pipeline_factory = pipeline_factory
        self._scheduler: Optional[BackgroundScheduler] = None
        self._stop_event = Event()
        self._history = RunHistory()

        logger.info(
            f"PipelineScheduler initialized: "
            f"schedule={self.config.get_cron_expression()} {self.config.timezone}"
        )

    @property
    def is_running(self) -> bool:
        """Check if scheduler is currently running."""
        if self._scheduler is None:
            return False
        return self._scheduler.running

    @property
    def history(self) -> RunHistory:
        return self._history

    # =========================================================================
    # APScheduler-based Scheduling
    # =========================================================================

    def start(self, blocking: bool = False):
        """
        Start the scheduler.

        Args:
            blocking: If True, blocks until scheduler is stopped
        """
        if self._scheduler is not None and self._scheduler.running:
            logger.warning("Scheduler is already running")
            return

        self._scheduler = BackgroundScheduler(timezone=self.config.timezone)
        self._scheduler.add_job(
            self._execute_batch,
            trigger=CronTrigger(
                hour=self.config.cron_hour,
                minute=self.config.cron_minute,
                timezone=self.config.timezone,
            ),
            id=JOB_ID,
            name="ArtPulse Daily Pipeline",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.config.misfire_grace_time,
        )
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

        self._scheduler.start()
        logger.info(f"Scheduler started. Next run at: {self._get_next_run_time()}")

        if blocking:
            self._run_blocking()

    def stop(self, wait: bool = True):
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Scheduler stopped")

        self._stop_event.set()

    def _run_blocking(self):
        """Block until stop signal received."""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, stopping scheduler...")
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        logger.info("Scheduler running in blocking mode. Press Ctrl+C to stop.")
        self._stop_event.wait()

    def run_now(self) -> List[PipelineResult]:
        """Trigger an immediate run for every active owner."""
        logger.info("Triggering immediate pipeline run")
        return self._execute_batch()

    def _execute_batch(self) -> List[PipelineResult]:
        logger.info("=== Scheduled Pipeline Execution Starting ===")

        results: List[PipelineResult] = []
        try:
            with self.pipeline_factory() as pipeline:
                results = pipeline.run_all_owners()
        except Exception as e:
            logger.exception(f"Scheduled batch failed before any owner ran: {e}")

        self._history.record_batch(results)
        if self._history.consecutive_failed_batches >= 3:
            logger.error(
                f"Every owner run has failed for {self._history.consecutive_failed_batches} "
                f"consecutive batches. Manual intervention required."
            )

        logger.info(
            f"=== Scheduled Pipeline Execution Complete: {len(results)} owner runs ==="
        )
        return results

    def _get_next_run_time(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def _on_job_error(self, event: JobExecutionEvent):
        logger.error(f"Job {event.job_id} raised an exception: {event.exception}")

    def _on_job_missed(self, event: JobExecutionEvent):
        logger.warning(f"Job {event.job_id} missed its scheduled time")

    def get_status(self) -> Dict[str, Any]:
        """Scheduler state and history."""
        next_run = self._get_next_run_time()
        return {
            "is_running": self.is_running,
            "config": {
                "schedule": self.config.get_cron_expression(),
                "timezone": self.config.timezone,
            },
            "next_run": next_run.isoformat() if next_run else None,
            "history": self._history.to_dict(),
        }


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Command-line entry point for scheduler."""
    import argparse
    import json

    from ..data.config import get_settings
    from .logging_config import setup_logging_from_config

    parser = argparse.ArgumentParser(description="ArtPulse Pipeline Scheduler")
    parser.add_argument(
        "--mode",
        choices=["daemon", "once", "status"],
        default="daemon",
        help="Scheduler mode",
    )
    args = parser.parse_args()

    setup_logging_from_config(get_settings().logging)
    scheduler = PipelineScheduler()

    if args.mode == "daemon":
        scheduler.start(blocking=True)
        return 0

    if args.mode == "once":
        results = scheduler.run_now()
        failed = [r for r in results if r.status == RunStatus.FAILED]
        return 1 if failed else 0

    print(json.dumps(scheduler.get_status(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())
