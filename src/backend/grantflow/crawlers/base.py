"""
Source crawler contract and runtime state.

A crawler loads profiles through the persistence gateway, queries its
source, scores each candidate per profile and persists what clears its
threshold. ``run`` never raises: failures are recorded on the runtime
and returned as an unsuccessful ``CrawlRunResult``.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from grantflow.core.config import get_settings
from grantflow.core.logging import LoggerMixin, crawl_context
from grantflow.db.gateway import PersistenceGateway
from grantflow.services.fetcher import Fetcher


class CrawlerStatus(str, Enum):
    """Lifecycle of a crawler run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class CrawlerRuntime:
    """In-memory state of one crawler; reset on process restart."""
    name: str
    description: str
    status: CrawlerStatus = CrawlerStatus.IDLE
    last_run: datetime | None = None
    last_error: str | None = None
    opportunities_found: int = 0

    def start(self) -> None:
        self.status = CrawlerStatus.RUNNING
        self.last_run = datetime.now(timezone.utc)
        self.opportunities_found = 0

    def complete(self) -> None:
        self.status = CrawlerStatus.COMPLETED

    def fail(self, error: str) -> None:
        self.status = CrawlerStatus.ERROR
        self.last_error = error

    def snapshot(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "last_run": self.last_run,
            "last_error": self.last_error,
            "opportunities_found": self.opportunities_found,
        }


@dataclass
class CrawlRunResult:
    """Outcome of one ``BaseCrawler.run`` call."""
    success: bool
    opportunities_found: int = 0
    profiles: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "opportunities_found": self.opportunities_found,
                "profiles": self.profiles,
            }
        return {"success": False, "error": self.error}


class BaseCrawler(ABC, LoggerMixin):
    """
    Base class for all source crawlers.

    Subclasses set ``name``, ``description``, ``source`` and implement
    ``crawl``. New opportunities are counted on ``runtime`` by the save
    helpers in ``grantflow.crawlers.persistence``.

    Args:
        gateway: Storage used to load profiles and persist results
        fetcher: Shared HTTP fetcher
        request_delay: Pause after each request group, in seconds
    """

    name: str = ""
    description: str = ""
    source: str = ""

    def __init__(
        self,
        gateway: PersistenceGateway,
        fetcher: Fetcher,
        request_delay: float | None = None,
    ) -> None:
        self.gateway = gateway
        self.fetcher = fetcher
        self.request_delay = (
            get_settings().crawler_request_delay if request_delay is None else request_delay
        )
        self.runtime = CrawlerRuntime(name=self.name, description=self.description)

    @abstractmethod
    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        """Query the source for each profile and persist matches."""

    async def pause(self, seconds: float | None = None) -> None:
        """Cooperative politeness delay between requests."""
        delay = self.request_delay if seconds is None else seconds
        if delay > 0:
            await asyncio.sleep(delay)

    async def run(self, profile_ids: Sequence[UUID | str] | None = None) -> CrawlRunResult:
        """
        Run the crawler for the given profiles.

        Args:
            profile_ids: Profiles to match against; empty runs for all

        Returns:
            CrawlRunResult: Success with counts, or failure with the error
        """
        self.runtime.start()
        with crawl_context(self.name):
            self.logger.info("Crawler started", profile_ids=len(profile_ids or []))

            try:
                profiles = await self.gateway.list_profiles(list(profile_ids or []))
                await self.crawl(profiles)
            except Exception as e:
                message = str(e) or type(e).__name__
                self.runtime.fail(message)
                self.logger.exception("Crawler failed", error=message)
                return CrawlRunResult(success=False, error=message)

            self.runtime.complete()
            self.logger.info(
                "Crawler completed",
                profiles=len(profiles),
                opportunities_found=self.runtime.opportunities_found,
            )
        return CrawlRunResult(
            success=True,
            opportunities_found=self.runtime.opportunities_found,
            profiles=len(profiles),
        )
