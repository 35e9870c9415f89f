"""
University scholarships crawler.

Scrapes scholarship aggregator listings for student profiles and adds
an institutional-scholarship lead for each of the profile's target
colleges. Listing markup varies by site, so a list of selectors is
tried in order and the first that yields results wins.
"""

from typing import Any
from urllib.parse import quote_plus

from bs4 import BeautifulSoup, Tag

from grantflow.core.config import get_settings
from grantflow.core.exceptions import FetchException
from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import clean_text, parse_amount_range, parse_date, select_text, short_hash
from grantflow.crawlers.persistence import save_scored
from grantflow.db.gateway import PersistenceGateway
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    OpportunityCandidate,
    build_criteria,
    score_opportunity,
)
from grantflow.services.fetcher import Fetcher

COLLEGE_SEARCH_URL = "https://www.google.com/search?q={query}"

# (name, listing URL)
SCHOLARSHIP_SOURCES: tuple[tuple[str, str], ...] = (
    ("Fastweb", "https://www.fastweb.com/college-scholarships"),
    ("Scholarships.com", "https://www.scholarships.com/scholarship-search"),
    ("Bold.org", "https://bold.org/scholarships"),
    ("Cappex", "https://www.cappex.com/scholarships"),
    ("Niche", "https://www.niche.com/scholarships"),
)

LISTING_SELECTORS = (
    ".scholarship-card",
    ".scholarship-result",
    ".scholarship-item",
    "[data-scholarship]",
    ".result-item",
    "article.scholarship",
)

MAX_LISTINGS = 30
MAX_TARGET_COLLEGES = 5

FIRST_GEN_BOOST = 15
VETERAN_BOOST = 15
ETHNICITY_BOOST = 10

MATCH_THRESHOLD = 25
TARGET_COLLEGE_THRESHOLD = 20


def build_search_params(criteria: MatchingCriteria) -> dict[str, str]:
    """Filters the aggregators accept as query parameters."""
    params = {}
    if criteria.location.state:
        params["state"] = criteria.location.state
    if criteria.major:
        params["major"] = criteria.major
    if criteria.gpa:
        params["gpa"] = str(criteria.gpa)
    return params


def parse_listing(element: Tag, source_name: str) -> dict[str, Any]:
    link = element.select_one("a[href]")
    return {
        "title": select_text(element, "h2, h3, .title, .name, .scholarship-name"),
        "amount": select_text(element, ".amount, .award, .value, [data-amount]"),
        "deadline": select_text(element, ".deadline, .due-date, [data-deadline]"),
        "description": select_text(element, ".description, .summary, p"),
        "eligibility": select_text(element, ".eligibility, .requirements, .criteria"),
        "url": link.get("href") if link else None,
        "sponsor": select_text(element, ".sponsor, .provider, .organization") or source_name,
    }


def parse_listings(html: str, source_name: str) -> list[dict[str, Any]]:
    """Scholarships from the first selector that yields titled listings."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in LISTING_SELECTORS:
        listings = [parse_listing(el, source_name) for el in soup.select(selector)]
        listings = [item for item in listings if item["title"]]
        if listings:
            return listings[:MAX_LISTINGS]
    return []


def scholarship_to_candidate(scholarship: dict[str, Any], source_name: str) -> OpportunityCandidate:
    amount = parse_amount_range(scholarship.get("amount"))
    url = scholarship.get("url")
    return OpportunityCandidate(
        source="university_scholarships",
        source_id=f"scholarship_{source_name}_{short_hash(scholarship['title'])}",
        title=scholarship["title"],
        sponsor=scholarship.get("sponsor") or source_name,
        description=scholarship.get("description") or "",
        amount_min=(amount[0] or None) if amount else None,
        amount_max=(amount[1] or None) if amount else None,
        deadline=parse_date(scholarship.get("deadline")),
        eligibility=scholarship.get("eligibility") or "",
        focus_areas=["education", "scholarship"],
        url=url if url and str(url).startswith("http") else None,
    )


def target_college_candidate(college: str) -> OpportunityCandidate:
    query = f"{college} scholarships financial aid"
    return OpportunityCandidate(
        source="university_scholarships",
        source_id=f"univ_{short_hash(college)}",
        title=f"{college} - Institutional Scholarships",
        sponsor=college,
        description=(
            f"Scholarship opportunities at {college}. Visit the university's financial aid office "
            "for available merit, need-based, and departmental scholarships."
        ),
        amount_min=1000,
        eligibility="Enrolled or admitted students",
        focus_areas=["education", "scholarship"],
        url=COLLEGE_SEARCH_URL.format(query=quote_plus(query)),
    )


class UniversityScholarshipsCrawler(BaseCrawler):
    """Scholarships from aggregators, universities and colleges."""

    name = "university_scholarships"
    description = "Scholarships from universities and colleges"
    source = "university_scholarships"

    def __init__(
        self,
        gateway: PersistenceGateway,
        fetcher: Fetcher,
        request_delay: float | None = None,
    ) -> None:
        if request_delay is None:
            request_delay = get_settings().crawler_scholarship_delay
        super().__init__(gateway, fetcher, request_delay)

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            if not criteria.is_student:
                continue
            profile_id = profile.get("id")

            for source_name, url in SCHOLARSHIP_SOURCES:
                try:
                    await self.crawl_source(source_name, url, criteria, profile_id)
                except Exception:
                    self.logger.exception("Scholarship source could not be processed", source_name=source_name)
                await self.pause()

            for college in criteria.target_colleges[:MAX_TARGET_COLLEGES]:
                try:
                    await self.add_target_college(college, criteria, profile_id)
                except Exception:
                    self.logger.exception("Skipping target college", college=college)

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def crawl_source(
        self,
        source_name: str,
        url: str,
        criteria: MatchingCriteria,
        profile_id: str | None,
    ) -> int:
        try:
            html = await self.fetcher.fetch(url, params=build_search_params(criteria) or None)
        except FetchException as e:
            self.logger.error("Scholarship source failed", source_name=source_name, error=e.message)
            return 0

        saved = 0
        for scholarship in parse_listings(html, source_name):
            try:
                if await self.process_scholarship(scholarship, criteria, profile_id, source_name):
                    saved += 1
            except Exception:
                self.logger.exception(
                    "Skipping malformed scholarship", source_name=source_name, title=scholarship.get("title")
                )
        return saved

    async def process_scholarship(
        self,
        scholarship: dict[str, Any],
        criteria: MatchingCriteria,
        profile_id: str | None,
        source_name: str,
    ) -> bool:
        candidate = scholarship_to_candidate(scholarship, source_name)
        match = score_opportunity(candidate, criteria)

        eligibility = clean_text(scholarship.get("eligibility")).lower()
        if criteria.is_first_gen and "first-generation" in eligibility:
            match.boost(FIRST_GEN_BOOST, "First-generation student eligible")
        if criteria.veteran and "veteran" in eligibility:
            match.boost(VETERAN_BOOST, "Veteran eligible")
        if criteria.ethnicity and criteria.ethnicity.lower() in eligibility:
            match.boost(ETHNICITY_BOOST, "Demographic match")

        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            MATCH_THRESHOLD, MatchCategory.SCHOLARSHIP,
        )

    async def add_target_college(self, college: str, criteria: MatchingCriteria, profile_id: str | None) -> bool:
        candidate = target_college_candidate(college)
        match = score_opportunity(candidate, criteria)
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            TARGET_COLLEGE_THRESHOLD, MatchCategory.SCHOLARSHIP,
        )
