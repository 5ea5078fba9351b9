"""
ArtPulse Pulse Pipeline Orchestrator
====================================

Runs the demand intelligence stages for one owner, in order:
1. Ingestion bridge (raw rows -> clean listings)
2. Feature parsing (titles -> signals)
3. Topic clustering
4. Demand scoring (WVS + rollups)
5. Visual analysis (optional, non-critical)
6. Opportunity publishing

Features:
    - One RunRecord per execution, counters persisted after every stage
    - Short-circuits to PARTIAL when a stage produces nothing to work on
    - Any unhandled stage error marks the run FAILED; earlier writes are kept
    - Refuses to start while the owner has a recent RUNNING run

Usage:
    from artpulse.orchestrator.pulse_pipeline import PulsePipeline

    with PulsePipeline() as pipeline:
        result = pipeline.run("owner-1", search_term="abstract painting")
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..ai.llm_client import get_llm_client
from ..ai.visual_analyzer import VisualAnalyzer
from ..clustering.topic_clusterer import ClusterMode, TopicClusterer
from ..data.config import Settings, get_settings
from ..data.data_models import RunRecord, RunStatus, utc_now
from ..data.ingestion_bridge import IngestionBridge
from ..data.store import PipelineStore, create_store
from ..exceptions import RunInProgressError
from ..notifications.notifier import NotificationSink, get_notification_sink
from ..parsing.enrichment import LLMSignalExtractor
from ..parsing.feature_parser import FeatureParser, SignalExtractor
from ..publishing.publisher import OpportunityPublisher
from ..scoring.demand_engine import DemandScoringEngine
from ..scoring.median_book import CategoryMedianBook

logger = logging.getLogger(__name__)


class PipelineStage(Enum):
    """Pipeline execution stages."""
    INGESTION = "ingestion"
    PARSING = "parsing"
    CLUSTERING = "clustering"
    SCORING = "scoring"
    VISUAL = "visual"
    PUBLISHING = "publishing"


class StageStatus(Enum):
    """Outcome of a single stage."""
    RUNNING = "running"
    COMPLETED = "completed"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class StageResult:
    """Result of a single pipeline stage."""
    stage: PipelineStage
    status: StageStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Calculate stage duration."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def add_error(self, error_type: str, message: str, details: Optional[Dict] = None):
        """Record an error."""
        self.errors.append({
            "type": error_type,
            "message": message,
            "details": details or {},
            "timestamp": utc_now().isoformat(),
        })


@dataclass
class PipelineResult:
    """Complete pipeline run result."""
    run: RunRecord
    run_date: date
    stages: Dict[PipelineStage, StageResult] = field(default_factory=dict)
    message: Optional[str] = None

    @property
    def run_id(self) -> str:
        return self.run.id

    @property
    def status(self) -> RunStatus:
        return self.run.status

    @property
    def success(self) -> bool:
        return self.run.status == RunStatus.SUCCESS

    def get_summary(self) -> Dict[str, Any]:
        """Get pipeline run summary."""
        return {
            **self.run.to_dict(),
            "run_date": self.run_date.isoformat(),
            "message": self.message,
            "stages": {
                stage.value: {
                    "status": result.status.value,
                    "duration_seconds": result.duration_seconds,
                    "metrics": result.metrics,
                    "error_count": len(result.errors),
                }
                for stage, result in self.stages.items()
            },
        }


class _StopRun(Exception):
    """Internal signal: a stage produced nothing, the run ends PARTIAL."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PulsePipeline:
    """
    Pipeline orchestrator for ArtPulse.

    Stages share nothing but the store and the run id; every stage call
    receives the owner id explicitly.
    """

    def __init__(
        self,
        store: Optional[PipelineStore] = None,
        settings: Optional[Settings] = None,
        sink: Optional[NotificationSink] = None,
        enrichment: Optional[SignalExtractor] = None,
        visual_analyzer: Optional[VisualAnalyzer] = None,
        cluster_mode: ClusterMode = ClusterMode.SEARCH_TERM,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Collaborator store (built from settings if None)
            settings: Application settings (global settings if None)
            sink: Notification sink for pulse alerts
            enrichment: Extractor for low-confidence titles; built from the
                LLM settings when enrichment is enabled and none is given
            visual_analyzer: Image analyzer; built from the LLM settings
                when the visual stage is enabled and none is given
            cluster_mode: Grouping key used by the clustering stage
        """
        self.settings = settings or get_settings()
        self._store = store
        self._own_store = store is None
        self.sink = sink or get_notification_sink(self.settings.notifications)
        self.cluster_mode = cluster_mode

        self._enrichment = enrichment
        self._visual_analyzer = visual_analyzer
        self._llm_client = None
        self._enrichment_unavailable = False

        logger.info(
            f"PulsePipeline initialized: enrichment={self.settings.pipeline.enable_enrichment}, "
            f"visual={self.settings.pipeline.enable_visual}, cluster_mode={cluster_mode.value}"
        )

    @property
    def store(self) -> PipelineStore:
        """Lazy-initialize the store."""
        if self._store is None:
            self._store = create_store(self.settings)
        return self._store

    def _get_llm_client(self):
        if self._llm_client is None:
            self._llm_client = get_llm_client(self.settings.llm)
        return self._llm_client

    @property
    def enrichment(self) -> Optional[SignalExtractor]:
        """LLM extractor, or None when enrichment is disabled or unconfigured."""
        if (
            self._enrichment is None
            and self.settings.pipeline.enable_enrichment
            and not self._enrichment_unavailable
        ):
            try:
                self._enrichment = LLMSignalExtractor(self._get_llm_client())
            except ValueError as e:
                logger.warning(f"Enrichment enabled but unavailable: {e}")
                self._enrichment_unavailable = True
        return self._enrichment

    def close(self):
        """Clean up resources."""
        if self._own_store and self._store is not None:
            self._store.close()
            self._store = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # MAIN ORCHESTRATION
    # =========================================================================

    def run(
        self,
        owner_id: str,
        search_term: Optional[str] = None,
        run_date: Optional[date] = None,
    ) -> PipelineResult:
        """
        Run every stage for one owner.

        Args:
            owner_id: Owner whose raw listings are processed
            search_term: Optional filter on the raw listings' search term
            run_date: Score / opportunity date (default: today, UTC)

        Returns:
            PipelineResult holding the finalized RunRecord

        Raises:
            RunInProgressError: the owner has a RUNNING run inside the lock window
        """
        run_date = run_date or utc_now().date()
        self._check_run_lock(owner_id)

        run = self.store.create_run(owner_id, search_term)
        result = PipelineResult(run=run, run_date=run_date)
        log_extra = {"run_id": run.id, "owner_id": owner_id}

        logger.info(
            f"=== Starting Pulse Pipeline (run_id={run.id}, owner={owner_id}, "
            f"term={search_term!r}) ===",
            extra=log_extra,
        )

        try:
            self._run_ingestion_stage(result, owner_id, search_term)
            self._run_parsing_stage(result, owner_id)
            self._run_clustering_stage(result, owner_id)
            self._run_scoring_stage(result, owner_id, run_date)
            self._run_visual_stage(result, owner_id)
            self._run_publishing_stage(result, owner_id, run_date)
            run.status = RunStatus.SUCCESS

        except _StopRun as stop:
            run.status = RunStatus.PARTIAL
            run.error_summary = stop.message
            result.message = stop.message
            logger.warning(f"Pipeline stopped early: {stop.message}", extra=log_extra)

        except Exception as e:
            logger.exception(f"Critical pipeline failure: {e}", extra=log_extra)
            run.status = RunStatus.FAILED
            run.error_summary = f"{type(e).__name__}: {e}"
            result.message = run.error_summary
            for stage_result in result.stages.values():
                if stage_result.status == StageStatus.RUNNING:
                    stage_result.status = StageStatus.FAILED
                    stage_result.completed_at = utc_now()
                    stage_result.add_error(type(e).__name__, str(e))

        finally:
            run.ended_at = utc_now()
            self._persist_run(run)

        logger.info(
            f"=== Pipeline Complete ===\n"
            f"  Run ID: {run.id}\n"
            f"  Status: {run.status.value}\n"
            f"  Duration: {run.duration_seconds:.1f}s\n"
            f"  Clean listings: {run.records_inserted_clean}, scored: {run.records_scored}\n"
            f"  Opportunities published: {run.opportunities_published}",
            extra={**log_extra, "duration": run.duration_seconds},
        )
        return result

    def run_all_owners(self, run_date: Optional[date] = None) -> List[PipelineResult]:
        """
        Run the pipeline for every owner with active interest terms.

        A failing owner never stops the others.
        """
        results: List[PipelineResult] = []
        owners = self.store.list_active_owners()
        logger.info(f"Running pipeline for {len(owners)} active owners")

        for owner_id in owners:
            try:
                results.append(self.run(owner_id, run_date=run_date))
            except RunInProgressError as e:
                logger.warning(str(e))
            except Exception as e:
                logger.exception(f"Pipeline for owner {owner_id} could not start: {e}")
        return results

    def _check_run_lock(self, owner_id: str) -> None:
        window = timedelta(minutes=self.settings.pipeline.run_lock_minutes)
        active = self.store.find_running_run(owner_id, started_after=utc_now() - window)
        if active is not None:
            raise RunInProgressError(owner_id, active.id)

    def _persist_run(self, run: RunRecord) -> None:
        try:
            self.store.update_run(run)
        except Exception as e:
            logger.error(f"Failed to persist run {run.id}: {e}")

    def _begin(self, result: PipelineResult, stage: PipelineStage, number: int) -> StageResult:
        stage_result = StageResult(stage=stage, status=StageStatus.RUNNING, started_at=utc_now())
        result.stages[stage] = stage_result
        logger.info(
            f"--- STAGE {number}: {stage.value.upper()} ---",
            extra={"run_id": result.run_id, "stage": stage.value},
        )
        return stage_result

    def _end(
        self,
        result: PipelineResult,
        stage_result: StageResult,
        metrics: Dict[str, Any],
        empty_message: Optional[str] = None,
    ) -> None:
        """Close a stage, persist counters, and stop the run if it came up empty."""
        stage_result.metrics = metrics
        stage_result.completed_at = utc_now()
        stage_result.status = StageStatus.EMPTY if empty_message else StageStatus.COMPLETED
        self.store.update_run(result.run)
        if empty_message:
            raise _StopRun(empty_message)

    # =========================================================================
    # STAGE 1: INGESTION
    # =========================================================================

    def _run_ingestion_stage(
        self,
        result: PipelineResult,
        owner_id: str,
        search_term: Optional[str],
    ) -> None:
        stage_result = self._begin(result, PipelineStage.INGESTION, 1)

        bridged = IngestionBridge(self.store, self.settings).bridge(
            result.run_id, owner_id, search_term=search_term
        )
        for error in bridged.errors:
            stage_result.add_error("InvalidRow", error)

        result.run.records_inserted_clean = bridged.inserted
        self._end(
            result,
            stage_result,
            bridged.to_dict(),
            empty_message=None if bridged.inserted else "No listings found to process",
        )

    # =========================================================================
    # STAGE 2: PARSING
    # =========================================================================

    def _run_parsing_stage(self, result: PipelineResult, owner_id: str) -> None:
        stage_result = self._begin(result, PipelineStage.PARSING, 2)

        parser = FeatureParser(self.store, self.settings, enrichment=self.enrichment)
        parsed = parser.parse_listings(result.run_id, owner_id)

        result.run.records_parsed = parsed.parsed
        self._end(
            result,
            stage_result,
            parsed.to_dict(),
            empty_message=None if parsed.signals_available else "No listings could be parsed",
        )

    # =========================================================================
    # STAGE 3: CLUSTERING
    # =========================================================================

    def _run_clustering_stage(self, result: PipelineResult, owner_id: str) -> None:
        stage_result = self._begin(result, PipelineStage.CLUSTERING, 3)

        clustered = TopicClusterer(self.store).cluster_listings(
            result.run_id, owner_id, mode=self.cluster_mode
        )
        for error in clustered.errors:
            stage_result.add_error("ClusterError", error)

        result.run.clusters_created = clustered.clusters_created
        result.run.memberships_created = clustered.memberships_created
        self._end(
            result,
            stage_result,
            clustered.to_dict(),
            empty_message=(
                None if clustered.memberships_created
                else "No topic memberships could be created"
            ),
        )

    # =========================================================================
    # STAGE 4: SCORING
    # =========================================================================

    def _run_scoring_stage(self, result: PipelineResult, owner_id: str, run_date: date) -> None:
        stage_result = self._begin(result, PipelineStage.SCORING, 4)

        medians = CategoryMedianBook(
            self.store, default_median=self.settings.pipeline.default_median_price
        ).load()
        engine = DemandScoringEngine(self.store, medians, self.settings)
        report = engine.process_run(result.run_id, owner_id, run_date)

        result.run.records_scored = report.listings_scored
        self._end(
            result,
            stage_result,
            report.to_dict(),
            empty_message=None if report.listings_scored else "No listings could be scored",
        )

    # =========================================================================
    # STAGE 5: VISUAL ANALYSIS (non-critical)
    # =========================================================================

    def _run_visual_stage(self, result: PipelineResult, owner_id: str) -> None:
        if self._visual_analyzer is None and not self.settings.pipeline.enable_visual:
            return

        stage_result = self._begin(result, PipelineStage.VISUAL, 5)
        try:
            if self._visual_analyzer is None:
                self._visual_analyzer = VisualAnalyzer(self.store, self._get_llm_client())
            processed = self._visual_analyzer.process(
                owner_id, limit=self.settings.pipeline.visual_limit
            )
            stage_result.metrics = {"images_analyzed": processed}
            stage_result.status = StageStatus.COMPLETED
        except Exception as e:
            logger.error(f"Visual analysis failed (non-critical): {e}")
            stage_result.status = StageStatus.FAILED
            stage_result.add_error(type(e).__name__, str(e))
        stage_result.completed_at = utc_now()

    # =========================================================================
    # STAGE 6: PUBLISHING
    # =========================================================================

    def _run_publishing_stage(self, result: PipelineResult, owner_id: str, run_date: date) -> None:
        stage_result = self._begin(result, PipelineStage.PUBLISHING, 6)

        publisher = OpportunityPublisher(self.store, self.settings, self.sink)
        published = publisher.publish_opportunities(result.run_id, owner_id, run_date)
        for rejected in published.rejected:
            stage_result.add_error(
                "GuardrailRejected", "; ".join(rejected["errors"]), {"topic_id": rejected["topic_id"]}
            )

        result.run.opportunities_published = published.published
        self._end(result, stage_result, published.to_dict())
