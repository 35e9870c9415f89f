"""
IRS 990 crawler.

Discovers private foundations through the ProPublica Nonprofit Explorer
API and estimates their typical grant size from Form 990 filings.
Grant-making foundations clear a lower threshold.
"""

import math
from typing import Any

from grantflow.core.exceptions import FetchException
from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import clean_text, parse_amount, short_hash
from grantflow.crawlers.persistence import save_scored
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    OpportunityCandidate,
    build_criteria,
    score_opportunity,
)

API_URL = "https://projects.propublica.org/nonprofits/api/v2"
SEARCH_URL = f"{API_URL}/search.json"
ORGANIZATION_URL = f"{API_URL}/organizations/{{ein}}.json"
PROFILE_URL = "https://projects.propublica.org/nonprofits/organizations/{ein}"

# ProPublica subsection filter: 3 = private foundations
PRIVATE_FOUNDATION_CODE = "3"

MAX_SEARCH_TERMS = 8
SEARCH_RESULTS = 20
LOCAL_RESULTS = 15

MATCH_THRESHOLD = 30
GRANT_MAKING_THRESHOLD = 20

NTEE_CATEGORIES = {
    "A": "Arts, Culture & Humanities",
    "B": "Education",
    "C": "Environment",
    "D": "Animal-Related",
    "E": "Health Care",
    "F": "Mental Health",
    "G": "Disease/Disorders",
    "H": "Medical Research",
    "I": "Crime & Legal",
    "J": "Employment",
    "K": "Food & Nutrition",
    "L": "Housing & Shelter",
    "M": "Public Safety",
    "N": "Recreation & Sports",
    "O": "Youth Development",
    "P": "Human Services",
    "Q": "International",
    "R": "Civil Rights",
    "S": "Community Development",
    "T": "Philanthropy & Grantmaking",
    "U": "Science & Technology",
    "V": "Social Science",
    "W": "Public Affairs",
    "X": "Religion",
    "Y": "Mutual & Membership",
    "Z": "Unknown",
}


def ntee_name(code: Any) -> str | None:
    """Major group name for an NTEE code such as ``B82``."""
    code = clean_text(code)
    if not code:
        return None
    return NTEE_CATEGORIES.get(code[0].upper())


def build_search_terms(criteria: MatchingCriteria) -> list[str]:
    terms: list[str] = list(criteria.focus_areas[:3])

    signal_terms = (
        (criteria.is_student, "education scholarship"),
        (criteria.has_health_condition, "health medical"),
        (criteria.veteran, "veteran military"),
        (criteria.disability, "disability"),
        (criteria.faith_based, "religious ministry"),
        (criteria.rural_area, "rural community"),
        (criteria.lgbtq, "LGBTQ"),
    )
    terms.extend(term for applies, term in signal_terms if applies)
    terms.extend(criteria.keywords[:2])

    return list(dict.fromkeys(terms))[:MAX_SEARCH_TERMS]


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_grant_size(foundation: dict[str, Any], details: dict[str, Any] | None) -> int | None:
    """
    Rough typical grant size.

    Uses a tenth of grants paid from the latest filing, else 5% of its
    revenue, else 5% of the search result's income amount.
    """
    filings = (details or {}).get("filings_with_data")
    if isinstance(filings, list) and filings and isinstance(filings[0], dict):
        filing = filings[0]
        grants_paid = parse_amount(filing.get("totgrantspd"))
        if grants_paid:
            return _round(grants_paid / 10)
        revenue = parse_amount(filing.get("totrevenue"))
        if revenue:
            return _round(revenue * 0.05)

    income = parse_amount(foundation.get("income_amount"))
    if income:
        return _round(income * 0.05)

    return None


def is_grant_making(foundation: dict[str, Any], details: dict[str, Any] | None) -> bool:
    organization = (details or {}).get("organization")
    if not isinstance(organization, dict):
        organization = {}
    ntee_code = clean_text(foundation.get("ntee_code")).upper()
    return bool(organization.get("foundation_giving_info")) or ntee_code.startswith("T")


def build_description(foundation: dict[str, Any], details: dict[str, Any] | None, match_term: str) -> str:
    description = f"{foundation.get('name')} is a private foundation"

    if foundation.get("city") and foundation.get("state"):
        description += f" based in {foundation['city']}, {foundation['state']}"

    category = ntee_name(foundation.get("ntee_code"))
    if category:
        description += f". Focus area: {category}"

    description += f". Matched search term: {match_term}."

    organization = (details or {}).get("organization")
    ruling_date = organization.get("ruling_date") if isinstance(organization, dict) else None
    if ruling_date:
        description += f" Established: {ruling_date}."

    return description


def build_eligibility(foundation: dict[str, Any]) -> str:
    notes = []
    if foundation.get("state"):
        notes.append(f"May prioritize {foundation['state']} organizations")
    category = ntee_name(foundation.get("ntee_code"))
    if category:
        notes.append(f"Focus: {category}")
    notes.append("Contact foundation for application requirements")
    return ". ".join(notes)


def foundation_to_candidate(
    foundation: dict[str, Any],
    details: dict[str, Any] | None,
    match_term: str,
) -> OpportunityCandidate | None:
    name = clean_text(foundation.get("name"))
    if not name:
        return None

    ein = foundation.get("ein")
    grant_size = estimate_grant_size(foundation, details)

    return OpportunityCandidate(
        source="irs_990",
        source_id=f"irs990_{ein or short_hash(name)}",
        title=f"{name} - Foundation Grants",
        sponsor=name,
        description=build_description(foundation, details, match_term),
        amount_min=math.floor(grant_size * 0.1) if grant_size else None,
        amount_max=grant_size or None,
        eligibility=build_eligibility(foundation),
        focus_areas=[a for a in (match_term, clean_text(foundation.get("ntee_code"))) if a],
        url=PROFILE_URL.format(ein=ein) if ein else None,
    )


class IRS990Crawler(BaseCrawler):
    """Foundation giving patterns from IRS 990 filings."""

    name = "irs_990"
    description = "Foundation giving patterns from IRS 990 filings"
    source = "irs_990"

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            profile_id = profile.get("id")

            for term in build_search_terms(criteria):
                try:
                    await self.search_foundations(term, criteria, profile_id)
                except Exception:
                    self.logger.exception("Foundation search could not be processed", term=term)
                await self.pause()

            if criteria.location.state:
                try:
                    await self.search_local_foundations(criteria, profile_id)
                except Exception:
                    self.logger.exception(
                        "Local foundation search could not be processed", state=criteria.location.state
                    )

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def _search(self, params: dict[str, str], limit: int) -> list[dict[str, Any]]:
        payload = await self.fetcher.fetch_json(SEARCH_URL, params=params)
        organizations = payload.get("organizations") if isinstance(payload, dict) else None
        return [org for org in (organizations or [])[:limit] if isinstance(org, dict)]

    async def search_foundations(self, term: str, criteria: MatchingCriteria, profile_id: str | None) -> int:
        try:
            foundations = await self._search({"q": term, "c_code[id]": PRIVATE_FOUNDATION_CODE}, SEARCH_RESULTS)
        except FetchException as e:
            self.logger.error("Foundation search failed", term=term, error=e.message)
            return 0

        return await self.process_foundations(foundations, criteria, profile_id, term)

    async def search_local_foundations(self, criteria: MatchingCriteria, profile_id: str | None) -> int:
        query = f"community foundation {criteria.location.state}"
        try:
            foundations = await self._search({"q": query}, LOCAL_RESULTS)
        except FetchException as e:
            self.logger.error("Local foundation search failed", state=criteria.location.state, error=e.message)
            return 0

        return await self.process_foundations(foundations, criteria, profile_id, "local")

    async def process_foundations(
        self,
        foundations: list[dict[str, Any]],
        criteria: MatchingCriteria,
        profile_id: str | None,
        match_term: str,
    ) -> int:
        saved = 0
        for foundation in foundations:
            try:
                if await self.process_foundation(foundation, criteria, profile_id, match_term):
                    saved += 1
            except Exception:
                self.logger.exception("Skipping malformed foundation", ein=foundation.get("ein"))
        return saved

    async def fetch_details(self, ein: Any) -> dict[str, Any] | None:
        """Organization detail with filings; None when unavailable."""
        if not ein:
            return None
        try:
            details = await self.fetcher.fetch_json(ORGANIZATION_URL.format(ein=ein))
        except FetchException as e:
            self.logger.debug("Foundation details unavailable", ein=ein, error=e.message)
            return None
        return details if isinstance(details, dict) else None

    async def process_foundation(
        self,
        foundation: dict[str, Any],
        criteria: MatchingCriteria,
        profile_id: str | None,
        match_term: str,
    ) -> bool:
        details = await self.fetch_details(foundation.get("ein"))
        candidate = foundation_to_candidate(foundation, details, match_term)
        if candidate is None:
            return False

        threshold = GRANT_MAKING_THRESHOLD if is_grant_making(foundation, details) else MATCH_THRESHOLD
        match = score_opportunity(candidate, criteria)
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            threshold, MatchCategory.FOUNDATION,
        )
