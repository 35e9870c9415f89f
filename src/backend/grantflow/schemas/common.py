"""
Schemas shared by every endpoint.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class HealthResponse(BaseModel):
    status: str = Field(default="healthy")
    version: str
    environment: str
    crawlers_registered: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorDetail(BaseModel):
    """Body of an error, mirrors ``AppException.to_dict``."""

    code: str = Field(description="Machine-readable error code, e.g. CRAWLER_NOT_FOUND")
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Envelope returned for every handled error."""

    error: ErrorDetail
