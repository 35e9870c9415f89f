"""
Website crawler.

Extracts opportunities from an arbitrary page on demand. Listing markup
is tried first, then AI extraction, then a scan of headings that look
like program names. Scheduled runs do nothing for this crawler.
"""

import re
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import clean_text, parse_amount, parse_date, select_text, short_hash
from grantflow.crawlers.persistence import save_opportunity, save_scored
from grantflow.db.gateway import PersistenceGateway
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    OpportunityCandidate,
    score_opportunity,
)
from grantflow.services.ai_extractor import OpportunityExtractor
from grantflow.services.fetcher import Fetcher

STRIPPED_TAGS = ["script", "style", "nav", "footer", "header", "aside"]

LISTING_SELECTORS = (
    ".grant-item",
    ".opportunity-card",
    ".funding-opportunity",
    ".scholarship-item",
    ".program-listing",
    "article.grant",
    "[data-grant]",
    "[data-opportunity]",
    ".listing-item",
)

HEADING_KEYWORDS = ("grant", "scholarship", "funding", "award", "fellowship", "program")
MAX_HEADING_RESULTS = 10
MAX_DESCRIPTION_CHARS = 500

_DOLLAR_AMOUNT = re.compile(r"\$[\d,]+")

MATCH_THRESHOLD = 20


def extract_dollar_amount(text: str | None) -> float | None:
    if not text:
        return None
    found = _DOLLAR_AMOUNT.search(text)
    return parse_amount(found.group(0)) if found else None


def structural_extraction(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """Opportunities from the first known listing selector present on the page."""
    for selector in LISTING_SELECTORS:
        opportunities = []
        for element in soup.select(selector):
            title = select_text(element, "h2, h3, .title, .name")
            if not title:
                continue
            opportunities.append({
                "title": title,
                "sponsor": select_text(element, ".sponsor, .organization, .funder"),
                "description": select_text(element, ".description, .summary, p"),
                "amount_min": extract_dollar_amount(select_text(element, ".amount, .award")),
                "amount_max": None,
                "deadline": select_text(element, ".deadline, .due-date"),
                "eligibility": select_text(element, ".eligibility, .requirements"),
                "focus_areas": [],
            })
        if opportunities:
            return opportunities
    return []


def heading_extraction(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """Headings that look like program names, with the nearby paragraph as description."""
    site_name = soup.select_one('meta[property="og:site_name"]')
    sponsor = site_name.get("content", "") if site_name else ""

    opportunities = []
    for heading in soup.find_all(["h1", "h2", "h3"]):
        title = clean_text(heading.get_text(" "))
        if not any(keyword in title.lower() for keyword in HEADING_KEYWORDS):
            continue
        paragraph = heading.parent.find("p") if heading.parent else None
        description = clean_text(paragraph.get_text(" ")) if paragraph else ""
        opportunities.append({
            "title": title,
            "sponsor": sponsor,
            "description": description[:MAX_DESCRIPTION_CHARS],
            "amount_min": None,
            "amount_max": None,
            "deadline": None,
            "eligibility": "",
            "focus_areas": [],
        })
        if len(opportunities) >= MAX_HEADING_RESULTS:
            break
    return opportunities


def to_candidate(opportunity: dict[str, Any], page_url: str) -> OpportunityCandidate:
    title = clean_text(opportunity.get("title"))
    focus_areas = opportunity.get("focus_areas")
    return OpportunityCandidate(
        source="website",
        source_id=f"web_{short_hash(page_url, title)}",
        title=title,
        sponsor=clean_text(opportunity.get("sponsor")) or urlparse(page_url).hostname,
        description=clean_text(opportunity.get("description")),
        amount_min=parse_amount(opportunity.get("amount_min")),
        amount_max=parse_amount(opportunity.get("amount_max")),
        deadline=parse_date(opportunity.get("deadline")),
        eligibility=clean_text(opportunity.get("eligibility")),
        focus_areas=[clean_text(a) for a in focus_areas if clean_text(a)] if isinstance(focus_areas, list) else [],
        url=page_url,
    )


class WebsiteCrawler(BaseCrawler):
    """Generic website crawler with AI extraction."""

    name = "website"
    description = "Generic website crawler with AI extraction"
    source = "website"

    def __init__(
        self,
        gateway: PersistenceGateway,
        fetcher: Fetcher,
        extractor: OpportunityExtractor | None = None,
        request_delay: float | None = None,
    ) -> None:
        super().__init__(gateway, fetcher, request_delay)
        self.extractor = extractor or OpportunityExtractor()

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Website crawler only runs for explicit URLs")

    async def extract(self, url: str, html: str) -> list[dict[str, Any]]:
        """Run the extraction chain on a fetched page."""
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(STRIPPED_TAGS):
            tag.decompose()

        opportunities = structural_extraction(soup)
        if opportunities:
            self.logger.info("Structural extraction succeeded", url=url, found=len(opportunities))
            return opportunities

        body = soup.body or soup
        text = clean_text(body.get_text(" "))
        opportunities = await self.extractor.extract(url, text)
        if opportunities:
            return opportunities

        self.logger.info("Falling back to heading extraction", url=url)
        return heading_extraction(soup)

    async def save_extracted(
        self,
        opportunity: dict[str, Any],
        page_url: str,
        criteria: MatchingCriteria | None,
        profile_id: str | None,
    ) -> bool:
        """Persist one extracted opportunity; scored only when criteria are given."""
        candidate = to_candidate(opportunity, page_url)
        if not candidate.title:
            return False
        if criteria is None:
            return await save_opportunity(self.runtime, self.gateway, candidate) is not None
        match = score_opportunity(candidate, criteria)
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            MATCH_THRESHOLD, MatchCategory.CUSTOM,
        )

    async def crawl_url(
        self,
        url: str,
        criteria: MatchingCriteria | None = None,
        profile_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch a page, extract its opportunities and persist them.

        With criteria, candidates scoring 20 or more are saved (plus a
        match when ``profile_id`` is given); without criteria every
        candidate is saved unscored.

        Returns:
            The extracted opportunity dicts, saved or not

        Raises:
            FetchException: The page could not be fetched
        """
        self.logger.info("Crawling URL", url=url)
        html = await self.fetcher.fetch(url)
        opportunities = await self.extract(url, html)

        for opportunity in opportunities:
            try:
                await self.save_extracted(opportunity, url, criteria, profile_id)
            except Exception:
                self.logger.exception("Skipping malformed opportunity", url=url, title=opportunity.get("title"))

        self.logger.info("URL crawl finished", url=url, found=len(opportunities))
        return opportunities
