"""
Application errors.

Every error carries a machine-readable code and the HTTP status the API
answers with; ``main`` renders them as ``{"error": {...}}`` bodies.
"""

from typing import Any


class AppException(Exception):
    """
    Base for all handled errors.

    Attributes:
        message: Human-readable error message
        error_code: Stable code clients can branch on
        status_code: HTTP status returned by the API
        details: Extra context included in the response body
    """

    error_code = "APP_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.error_code, "message": self.message, "details": self.details}}


class DatabaseException(AppException):
    """A persistence call failed; the original error is chained."""

    error_code = "DB_ERROR"

    def __init__(self, message: str = "Database operation failed", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details=details)


class EntityNotFoundException(AppException):
    error_code = "ENTITY_NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str | None = None, details: dict[str, Any] | None = None) -> None:
        message = f"{entity_type} with id '{entity_id}' not found" if entity_id else f"{entity_type} not found"
        super().__init__(message, details=details)


class CrawlerNotFoundException(EntityNotFoundException):
    """No crawler is registered under the requested name."""

    error_code = "CRAWLER_NOT_FOUND"

    def __init__(self, name: str) -> None:
        super().__init__("Crawler", name, {"crawler": name})


class CrawlerException(AppException):
    error_code = "CRAWLER_ERROR"


class FetchException(CrawlerException):
    """An outbound request still failed after every retry attempt."""

    error_code = "FETCH_ERROR"

    def __init__(self, url: str, reason: str, attempts: int) -> None:
        super().__init__(
            f"Failed to fetch {url} after {attempts} attempt(s): {reason}",
            details={"url": url, "attempts": attempts},
        )
        self.url = url
        self.attempts = attempts


class ExternalServiceException(AppException):
    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 503

    def __init__(self, service_name: str, message: str = "External service call failed") -> None:
        super().__init__(f"{service_name}: {message}", details={"service": service_name})


class AIServiceException(ExternalServiceException):
    """The OpenAI extraction call failed or returned something unusable."""

    def __init__(self, message: str = "AI extraction failed") -> None:
        super().__init__("OpenAI", message)
