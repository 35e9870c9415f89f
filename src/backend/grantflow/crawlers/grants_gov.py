"""
Grants.gov crawler.

Searches the Grants.gov REST API for forecasted and posted federal
opportunities using queries built from each profile.
"""

from typing import Any

from grantflow.core.exceptions import FetchException
from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import clean_text, parse_amount, parse_date
from grantflow.crawlers.persistence import save_scored
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    OpportunityCandidate,
    build_criteria,
    score_opportunity,
)

SEARCH_URL = "https://www.grants.gov/grantsws/rest/opportunities/search"
DETAIL_URL = "https://www.grants.gov/search-results-detail/{number}"

# Grants.gov eligibility code for 501(c)(3) nonprofits
NONPROFIT_ELIGIBILITY_CODE = "25"

MAX_QUERIES = 10
SEARCH_TIMEOUT = 60.0
MATCH_THRESHOLD = 30


def build_search_queries(criteria: MatchingCriteria) -> list[str]:
    """
    Search keywords for a profile, most specific first.

    Focus areas and keywords come first, then canned queries for each
    profile signal. Duplicates are dropped and at most 10 are returned.
    """
    queries: list[str] = [*criteria.focus_areas[:5], *criteria.keywords[:3]]

    signal_queries = (
        (criteria.is_nonprofit, "nonprofit community development"),
        (criteria.is_student, "education scholarship fellowship"),
        (criteria.is_healthcare_worker, "healthcare workforce training"),
        (criteria.is_teacher, "education teacher training"),
        (criteria.is_farmer, "agriculture rural development"),
        (criteria.rural_area, "rural community development"),
        (criteria.faith_based, "faith-based community initiatives"),
        (criteria.veteran, "veteran services employment"),
        (criteria.disability, "disability services rehabilitation"),
    )
    queries.extend(query for applies, query in signal_queries if applies)

    return list(dict.fromkeys(queries))[:MAX_QUERIES]


def extract_focus_areas(hit: dict[str, Any]) -> list[str]:
    """CFDA numbers (semicolon separated) plus the funding activity category."""
    areas: list[str] = []
    cfda = hit.get("cfdaNumbers")
    if isinstance(cfda, str):
        areas.extend(n.strip() for n in cfda.split(";") if n.strip())
    elif isinstance(cfda, list):
        areas.extend(str(n).strip() for n in cfda if str(n).strip())
    category = hit.get("categoryOfFundingActivity")
    if category:
        areas.append(str(category))
    return areas


def hit_to_candidate(hit: dict[str, Any]) -> OpportunityCandidate | None:
    """Map one search hit to a candidate; None when it has no id or title."""
    source_id = hit.get("id") or hit.get("opportunityNumber")
    title = clean_text(hit.get("title") or hit.get("opportunityTitle"))
    if not source_id or not title:
        return None

    number = hit.get("opportunityNumber") or hit.get("id")
    return OpportunityCandidate(
        source="grants_gov",
        source_id=str(source_id),
        title=title,
        sponsor=clean_text(hit.get("agency") or hit.get("agencyName")) or None,
        description=clean_text(hit.get("synopsis") or hit.get("description")),
        amount_min=parse_amount(hit.get("awardFloor")),
        amount_max=parse_amount(hit.get("awardCeiling")),
        deadline=parse_date(hit.get("closeDate") or hit.get("applicationDueDate")),
        eligibility=clean_text(hit.get("eligibleApplicants")),
        focus_areas=extract_focus_areas(hit),
        url=DETAIL_URL.format(number=number),
        raw_data=hit,
    )


class GrantsGovCrawler(BaseCrawler):
    """Federal grants from Grants.gov."""

    name = "grants_gov"
    description = "Federal grants from Grants.gov"
    source = "grants_gov"

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            for query in build_search_queries(criteria):
                try:
                    await self.search(query, criteria, profile.get("id"))
                except FetchException as e:
                    self.logger.error("Search failed", query=query, error=e.message)
                except Exception:
                    self.logger.exception("Search results could not be processed", query=query)
                await self.pause()

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def search(self, keyword: str, criteria: MatchingCriteria, profile_id: str | None) -> int:
        """
        Run one search and persist hits that clear the threshold.

        Returns:
            Number of hits that cleared the threshold
        """
        params = {
            "keyword": keyword,
            "oppStatuses": "forecasted|posted",
            "sortBy": "openDate|desc",
            "rows": 50,
        }
        if criteria.is_nonprofit:
            params["eligibilities"] = NONPROFIT_ELIGIBILITY_CODE

        payload = await self.fetcher.fetch_json(SEARCH_URL, params=params, timeout=SEARCH_TIMEOUT)
        hits = payload.get("oppHits") if isinstance(payload, dict) else None

        saved = 0
        for hit in hits or []:
            if not isinstance(hit, dict):
                continue
            try:
                if await self.process_hit(hit, criteria, profile_id):
                    saved += 1
            except Exception:
                self.logger.exception("Skipping malformed search hit", hit_id=hit.get("id"))
        return saved

    async def process_hit(self, hit: dict[str, Any], criteria: MatchingCriteria, profile_id: str | None) -> bool:
        candidate = hit_to_candidate(hit)
        if candidate is None:
            return False
        match = score_opportunity(candidate, criteria)
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            MATCH_THRESHOLD, MatchCategory.FEDERAL,
        )
