"""
Pydantic schemas for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


# ── Market Pull ──────────────────────────────────

class MarketPullRequest(BaseModel):
    service_category: str = Field(min_length=1, max_length=200, description="e.g. 'plumber', 'hvac'")
    region: str = Field("michigan", description="Region catalog slug")
    min_reviews: int = Field(30, ge=0)
    max_results: int = Field(500, ge=1, le=5000)
    limit_one_per_domain: bool = False

    @field_validator("service_category")
    @classmethod
    def category_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("service_category must not be blank")
        return v


class MarketPullStarted(BaseModel):
    job_id: str
    message: str = "Job started"


class JobStatsResponse(BaseModel):
    businesses_found: int
    websites_found: int
    emails_discovered: int
    emails_verified: int

    class Config:
        from_attributes = True


class JobStatusResponse(BaseModel):
    id: str
    status: str
    stage: str
    progress: int
    progress_total: int
    message: str
    stats: JobStatsResponse
    csv_data: Optional[str]
    error: Optional[str]
    started_at: Optional[str]
    completed_at: Optional[str]
    cooldown_remaining: int = Field(0, description="Milliseconds until a new job may start")

    class Config:
        from_attributes = True


class RegionInfo(BaseModel):
    slug: str
    name: str
    abbreviation: str
    sub_region_count: int
    sub_regions: List[str] = Field(default_factory=list)
