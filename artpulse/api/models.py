"""
ArtPulse API Models
===================

Pydantic models for API request/response serialization.
Fields are camelCase with snake_case aliases; both spellings are accepted
on input and responses are emitted with the snake_case aliases.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RollupType(str, Enum):
    """Global rollup families exposed by GET /api/wvs."""
    STYLES = "styles"
    SIZES = "sizes"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    storeBackend: str = Field(alias="store_backend")
    store: str
    environment: str

    class Config:
        populate_by_name = True


class RunPipelineRequest(BaseModel):
    """Request to run the pipeline for one owner."""
    ownerId: str = Field(alias="owner_id", min_length=1)
    searchTerm: Optional[str] = Field(None, alias="search_term")
    runDate: Optional[date] = Field(None, alias="run_date")

    class Config:
        populate_by_name = True


class RunModel(BaseModel):
    """One pipeline run with its counters."""
    runId: str = Field(alias="run_id")
    ownerId: str = Field(alias="owner_id")
    status: str
    searchTerm: Optional[str] = Field(None, alias="search_term")
    startedAt: datetime = Field(alias="started_at")
    endedAt: Optional[datetime] = Field(None, alias="ended_at")
    durationSeconds: Optional[float] = Field(None, alias="duration_seconds")
    errorSummary: Optional[str] = Field(None, alias="error_summary")

    recordsInsertedClean: int = Field(0, alias="records_inserted_clean")
    recordsParsed: int = Field(0, alias="records_parsed")
    clustersCreated: int = Field(0, alias="clusters_created")
    membershipsCreated: int = Field(0, alias="memberships_created")
    recordsScored: int = Field(0, alias="records_scored")
    opportunitiesPublished: int = Field(0, alias="opportunities_published")

    class Config:
        populate_by_name = True


class RunPipelineResponse(BaseModel):
    """Response after a pipeline run."""
    success: bool
    message: str
    run: RunModel

    class Config:
        populate_by_name = True


class PriceBandModel(BaseModel):
    min: int
    median: int
    max: int


class OpportunityModel(BaseModel):
    """Published opportunity."""
    rank: int
    topicId: str = Field(alias="topic_id")
    topicLabel: str = Field(alias="topic_label")
    wvsScore: float = Field(alias="wvs_score")
    velocityScore: float = Field(alias="velocity_score")
    recommendedPriceBand: PriceBandModel = Field(alias="recommended_price_band")
    recommendedSizes: List[str] = Field(default_factory=list, alias="recommended_sizes")
    recommendedMediums: List[str] = Field(default_factory=list, alias="recommended_mediums")
    keywordStack: List[str] = Field(default_factory=list, alias="keyword_stack")
    evidenceUrls: List[str] = Field(default_factory=list, alias="evidence_urls")
    formatRecommendation: str = Field(alias="format_recommendation")
    confidence: float

    class Config:
        populate_by_name = True


class OpportunitiesResponse(BaseModel):
    """An owner's feed for one date."""
    ownerId: str = Field(alias="owner_id")
    opportunityDate: date = Field(alias="date")
    count: int
    opportunities: List[OpportunityModel]

    class Config:
        populate_by_name = True


class WVSRequest(BaseModel):
    """Single WVS calculation."""
    watcherCount: int = Field(0, alias="watcher_count", ge=0)
    bidCount: int = Field(0, alias="bid_count", ge=0)
    daysActive: int = Field(1, alias="days_active")
    itemPrice: float = Field(alias="item_price", ge=0)
    categoryMedianPrice: Optional[float] = Field(None, alias="category_median_price")
    similarListingsCount: int = Field(0, alias="similar_listings_count", ge=0)

    class Config:
        populate_by_name = True


class WVSResponse(BaseModel):
    """Result of a single WVS calculation."""
    wvs: float
    label: str
    confidence: float
    components: Dict[str, float]


class RollupsResponse(BaseModel):
    """Top global style or size rollups, avg WVS descending."""
    type: RollupType
    count: int
    data: List[Dict[str, Any]]
