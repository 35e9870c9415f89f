"""
Pydantic schemas for API request/response validation.
"""

from grantflow.schemas.common import (
    BaseSchema,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
)
from grantflow.schemas.crawler import (
    CrawlerInfo,
    CrawlerStatsResponse,
    CrawlerStatusResponse,
    CrawlTriggerResponse,
    CrawlUrlRequest,
    CrawlUrlResponse,
    MatchResponse,
    RunCrawlersRequest,
    RunForProfileRequest,
)

__all__ = [
    # Common
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    # Crawlers
    "CrawlerInfo",
    "CrawlerStatsResponse",
    "CrawlerStatusResponse",
    "CrawlTriggerResponse",
    "CrawlUrlRequest",
    "CrawlUrlResponse",
    "MatchResponse",
    "RunCrawlersRequest",
    "RunForProfileRequest",
]
