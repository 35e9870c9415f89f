"""
Schemas for the crawler trigger and reporting endpoints.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from grantflow.schemas.common import BaseSchema


class CrawlerInfo(BaseSchema):
    """Registered crawler."""

    name: str
    description: str


class CrawlerStatusResponse(CrawlerInfo):
    """Runtime state of a crawler."""

    status: str = Field(description="idle, running, completed or error")
    last_run: datetime | None = None
    last_error: str | None = None
    opportunities_found: int = 0


class RunCrawlersRequest(BaseSchema):
    """Body for run-all and run-one triggers."""

    profile_ids: list[UUID] = Field(
        default_factory=list,
        description="Profiles to match against; empty means all profiles",
    )


class RunForProfileRequest(BaseSchema):
    """Body for a single-profile trigger."""

    crawlers: list[str] | None = Field(
        default=None,
        description="Crawler names to run; omitted runs every crawler",
    )


class CrawlTriggerResponse(BaseSchema):
    """Acknowledgement of a background run."""

    success: bool = True
    message: str
    crawlers: list[str]
    profile_ids: list[UUID] = Field(default_factory=list)


class CrawlUrlRequest(BaseSchema):
    """Body for a synchronous single-page crawl."""

    url: str = Field(..., min_length=1, max_length=2000)
    profile_id: UUID | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v


class CrawlUrlResponse(BaseSchema):
    """Opportunities extracted from a page."""

    success: bool = True
    url: str
    opportunities_found: int
    opportunities: list[dict[str, Any]] = Field(default_factory=list)


class MatchResponse(BaseSchema):
    """Match joined with its opportunity."""

    id: UUID
    opportunity_id: UUID
    score: int
    reasons: list[str] = Field(default_factory=list)
    category: str | None = None
    matched_at: datetime | None = None

    source: str
    title: str
    sponsor: str | None = None
    description: str | None = None
    amount_min: float | None = None
    amount_max: float | None = None
    deadline: date | None = None
    url: str | None = None


class CrawlerStatsResponse(BaseSchema):
    """Discovery totals plus crawler states."""

    total_opportunities: int
    by_source: dict[str, int]
    total_matches: int
    recent_opportunities: int = Field(description="Opportunities first seen in the last 7 days")
    crawlers: list[CrawlerStatusResponse]
