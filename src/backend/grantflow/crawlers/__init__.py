"""
Source crawlers and the crawl manager.
"""

from grantflow.crawlers.base import BaseCrawler, CrawlerRuntime, CrawlerStatus, CrawlRunResult
from grantflow.crawlers.benefits_gov import BenefitsGovCrawler
from grantflow.crawlers.dsire import DSIRECrawler
from grantflow.crawlers.grants_gov import GrantsGovCrawler
from grantflow.crawlers.irs990 import IRS990Crawler
from grantflow.crawlers.manager import CrawlerManager
from grantflow.crawlers.source_directory import SourceDirectoryCrawler
from grantflow.crawlers.university_scholarships import UniversityScholarshipsCrawler
from grantflow.crawlers.website import WebsiteCrawler
from grantflow.db.gateway import PersistenceGateway
from grantflow.services.ai_extractor import OpportunityExtractor
from grantflow.services.fetcher import Fetcher


def build_manager(
    gateway: PersistenceGateway,
    fetcher: Fetcher,
    extractor: OpportunityExtractor | None = None,
) -> CrawlerManager:
    """
    Create a manager with every source crawler registered.

    Registration order is the order ``run_all`` uses.
    """
    manager = CrawlerManager()
    manager.register(GrantsGovCrawler(gateway, fetcher))
    manager.register(BenefitsGovCrawler(gateway, fetcher))
    manager.register(DSIRECrawler(gateway, fetcher))
    manager.register(IRS990Crawler(gateway, fetcher))
    manager.register(SourceDirectoryCrawler(gateway, fetcher))
    manager.register(UniversityScholarshipsCrawler(gateway, fetcher))
    manager.register(WebsiteCrawler(gateway, fetcher, extractor))
    return manager


__all__ = [
    "BaseCrawler",
    "BenefitsGovCrawler",
    "CrawlRunResult",
    "CrawlerManager",
    "CrawlerRuntime",
    "CrawlerStatus",
    "DSIRECrawler",
    "GrantsGovCrawler",
    "IRS990Crawler",
    "SourceDirectoryCrawler",
    "UniversityScholarshipsCrawler",
    "WebsiteCrawler",
    "build_manager",
]
