"""
ArtPulse FastAPI Application
============================

REST API over the demand intelligence pipeline.

Endpoints:
    GET  /health                    - Health check
    POST /api/intelligence/run      - Run the pipeline for one owner
    GET  /api/runs/{run_id}         - Run status and counters
    GET  /api/opportunities         - Owner's published feed for a date
    POST /api/wvs                   - Single WVS calculation
    GET  /api/wvs?type=styles|sizes - Top global rollups

Usage:
    uvicorn artpulse.api.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from ..data.config import get_settings
from ..data.data_models import RunStatus, utc_now
from ..data.store import PipelineStore, create_store
from ..exceptions import RunInProgressError, StoreError
from ..orchestrator.pulse_pipeline import PulsePipeline
from ..scoring.wvs_scorer import WVSInput, WVSScorer
from .models import (
    HealthResponse,
    OpportunitiesResponse,
    RollupsResponse,
    RollupType,
    RunModel,
    RunPipelineRequest,
    RunPipelineResponse,
    WVSRequest,
    WVSResponse,
)

logger = logging.getLogger(__name__)

_store: Optional[PipelineStore] = None


def get_store() -> PipelineStore:
    """Process-wide store, created on first use."""
    global _store
    if _store is None:
        _store = create_store(get_settings())
    return _store


def get_pipeline(store: PipelineStore = Depends(get_store)) -> PulsePipeline:
    return PulsePipeline(store=store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global _store
    logger.info("Starting ArtPulse API...")
    yield
    if _store is not None:
        _store.close()
        _store = None
    logger.info("Shutting down ArtPulse API...")


app = FastAPI(
    title="ArtPulse API",
    description="Demand intelligence for art listings",
    version=get_settings().app_version,
    lifespan=lifespan,
)


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/health", response_model=HealthResponse)
def health_check(store: PipelineStore = Depends(get_store)):
    settings = get_settings()
    store_health = store.health_check()
    return HealthResponse(
        status="healthy" if store_health.get("status") == "healthy" else "degraded",
        store=store_health.get("status", "unknown"),
        version=settings.app_version,
        store_backend=settings.store_backend,
        environment=settings.environment,
    )


# ============================================================================
# PIPELINE ENDPOINTS
# ============================================================================

@app.post("/api/intelligence/run", response_model=RunPipelineResponse)
def run_intelligence(
    request: RunPipelineRequest,
    pipeline: PulsePipeline = Depends(get_pipeline),
):
    """
    Run the pipeline synchronously for one owner.

    409 when the owner already has a run in progress, 500 when the run failed.
    A partial run is returned with success=false and its explanation.
    """
    try:
        result = pipeline.run(
            request.ownerId,
            search_term=request.searchTerm,
            run_date=request.runDate,
        )
    except RunInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        logger.error(f"Pipeline could not start for owner {request.ownerId}: {e}")
        raise HTTPException(status_code=503, detail="Data store unavailable")

    if result.status == RunStatus.FAILED:
        raise HTTPException(status_code=500, detail=result.message or "Pipeline run failed")

    return RunPipelineResponse(
        success=result.success,
        message=result.message or "Pipeline completed successfully",
        run=RunModel(**result.run.to_dict()),
    )


@app.get("/api/runs/{run_id}", response_model=RunModel)
def get_run(run_id: str, store: PipelineStore = Depends(get_store)):
    run = store.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunModel(**run.to_dict())


@app.get("/api/opportunities", response_model=OpportunitiesResponse)
def get_opportunities(
    owner_id: str = Query(..., min_length=1, description="Owner id"),
    opportunity_date: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD, default today"),
    store: PipelineStore = Depends(get_store),
):
    """Owner's published opportunities for a date, rank ascending."""
    target_date = opportunity_date or utc_now().date()
    opportunities = store.get_opportunities(owner_id, target_date)
    return OpportunitiesResponse(
        owner_id=owner_id,
        date=target_date,
        count=len(opportunities),
        opportunities=[o.to_dict() for o in opportunities],
    )


# ============================================================================
# WVS ENDPOINTS
# ============================================================================

@app.post("/api/wvs", response_model=WVSResponse)
def calculate_wvs(request: WVSRequest):
    score = WVSScorer().calculate(WVSInput(
        watcher_count=request.watcherCount,
        bid_count=request.bidCount,
        days_active=request.daysActive,
        item_price=request.itemPrice,
        category_median_price=request.categoryMedianPrice,
        similar_listings_count=request.similarListingsCount,
    ))
    return WVSResponse(**score.to_dict())


@app.get("/api/wvs", response_model=RollupsResponse)
def get_rollups(
    rollup_type: RollupType = Query(RollupType.STYLES, alias="type"),
    limit: int = Query(10, ge=1, le=100),
    store: PipelineStore = Depends(get_store),
):
    """Top global style or size rollups by average WVS."""
    if rollup_type == RollupType.STYLES:
        rows = [
            {
                "style_term": r.style_term,
                "avg_wvs": r.avg_wvs,
                "avg_price": r.avg_price,
                "listing_count": r.listing_count,
                "demand_score": r.demand_score,
                "updated_at": r.updated_at.isoformat(),
            }
            for r in store.get_style_rollups(limit)
        ]
    else:
        rows = [
            {
                "size_bucket": r.size_bucket,
                "avg_wvs": r.avg_wvs,
                "avg_price": r.avg_price,
                "listing_count": r.listing_count,
                "demand_score": r.demand_score,
                "updated_at": r.updated_at.isoformat(),
            }
            for r in store.get_size_rollups(limit)
        ]
    return RollupsResponse(type=rollup_type, count=len(rows), data=rows)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("artpulse.api.main:app", host="0.0.0.0", port=8000)
