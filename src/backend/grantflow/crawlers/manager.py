"""
Crawl manager.

Registry of named crawlers with sequential run orchestration. A failing
crawler is reported in its result and never stops the others.
"""

from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from grantflow.core.exceptions import CrawlerNotFoundException
from grantflow.core.logging import get_logger
from grantflow.crawlers.base import BaseCrawler, CrawlRunResult

logger = get_logger(__name__)


class CrawlerManager:
    """Registry and sequential runner for source crawlers."""

    def __init__(self) -> None:
        self._crawlers: dict[str, BaseCrawler] = {}

    def register(self, crawler: BaseCrawler) -> None:
        """Register a crawler under its name, replacing any previous one."""
        self._crawlers[crawler.name] = crawler

    def get(self, name: str) -> BaseCrawler | None:
        return self._crawlers.get(name)

    def get_or_raise(self, name: str) -> BaseCrawler:
        crawler = self._crawlers.get(name)
        if crawler is None:
            raise CrawlerNotFoundException(name)
        return crawler

    def get_all(self) -> list[BaseCrawler]:
        return list(self._crawlers.values())

    def get_status(self) -> list[dict[str, Any]]:
        """State snapshot of every crawler, in registration order."""
        return [crawler.runtime.snapshot() for crawler in self._crawlers.values()]

    async def run_crawler(
        self,
        name: str,
        profile_ids: Sequence[UUID | str] | None = None,
    ) -> CrawlRunResult:
        """
        Run one crawler.

        Raises:
            CrawlerNotFoundException: No crawler registered under ``name``
        """
        crawler = self.get_or_raise(name)
        return await crawler.run(profile_ids or [])

    async def run_selected(
        self,
        names: Iterable[str],
        profile_ids: Sequence[UUID | str] | None = None,
    ) -> dict[str, CrawlRunResult]:
        """Run the named crawlers one after another; unknown names are skipped."""
        results: dict[str, CrawlRunResult] = {}
        for name in names:
            crawler = self._crawlers.get(name)
            if crawler is None:
                logger.warning("Skipping unknown crawler", crawler=name)
                continue
            results[name] = await crawler.run(profile_ids or [])
        return results

    async def run_all(
        self,
        profile_ids: Sequence[UUID | str] | None = None,
    ) -> dict[str, CrawlRunResult]:
        """Run every registered crawler sequentially."""
        logger.info("Running all crawlers", crawlers=len(self._crawlers))
        results = await self.run_selected(list(self._crawlers), profile_ids)
        logger.info(
            "All crawlers finished",
            succeeded=sum(1 for r in results.values() if r.success),
            failed=sum(1 for r in results.values() if not r.success),
        )
        return results
