"""
Source directory crawler.

Synthesizes local funding leads for a profile's city and state:
community foundations, service clubs, United Way chapters and
state-level humanities, arts and health funders. No network access is
needed; each lead points at a search for the local chapter.
"""

from typing import Any
from urllib.parse import quote_plus

from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import short_hash
from grantflow.crawlers.persistence import save_scored
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    MatchResult,
    OpportunityCandidate,
    build_criteria,
    score_opportunity,
)

SEARCH_URL = "https://www.google.com/search?q={query}"

SERVICE_CLUBS = {
    "rotary": ("Rotary Club", ("community service", "education", "peace", "disease prevention", "water")),
    "lions": ("Lions Club", ("vision", "hearing", "diabetes", "hunger", "environment", "childhood cancer")),
    "kiwanis": ("Kiwanis Club", ("children", "youth", "education", "community")),
}

# (funder suffix, focus)
STATE_FUNDERS = (
    ("humanities council", "humanities, arts, culture"),
    ("arts commission", "arts, artists, cultural organizations"),
    ("health foundation", "health, healthcare access, public health"),
)

LOCAL_BOOST = 15
CLUB_FOCUS_BOOST = 10
UNITED_WAY_NONPROFIT_BOOST = 10

MATCH_THRESHOLD = 25
STATE_FUNDER_THRESHOLD = 20


def _location_name(state: str, city: str | None) -> str:
    return f"{city}, {state}" if city else state


def _local_id(prefix: str, state: str, city: str | None) -> str:
    return "_".join(f"{prefix}_{state}_{city or 'state'}".lower().split())


def _search_url(*terms: str) -> str:
    return SEARCH_URL.format(query="+".join(quote_plus(t) for t in terms))


def community_foundation_candidate(state: str, city: str | None) -> OpportunityCandidate:
    location = _location_name(state, city)
    return OpportunityCandidate(
        source="source_directory",
        source_id=_local_id("cf", state, city),
        title=f"Community Foundation of {location} - Local Grants",
        sponsor=f"Community Foundation of {location}",
        description=(
            f"Community foundations provide grants to local nonprofits and individuals in {location}. "
            "They typically fund education, health, human services, arts, and community development. "
            "Many offer scholarship programs, emergency assistance, and donor-advised fund grants."
        ),
        amount_min=500,
        amount_max=50000,
        eligibility=(
            f"Located in or serving {location}. 501(c)(3) nonprofits preferred. "
            "Some individual assistance available."
        ),
        focus_areas=["community", "local", state],
        url=_search_url("community foundation", location),
    )


def service_club_candidate(club_type: str, state: str, city: str | None) -> OpportunityCandidate:
    club_name, focus = SERVICE_CLUBS[club_type]
    location = _location_name(state, city)
    return OpportunityCandidate(
        source="source_directory",
        source_id=_local_id(club_type, state, city),
        title=f"{club_name} of {location} - Community Grants",
        sponsor=f"{club_name} of {location}",
        description=(
            f"{club_name}s provide community grants and service projects in {location}. "
            f"Focus areas include: {', '.join(focus)}."
        ),
        amount_min=250,
        amount_max=5000,
        eligibility=f"Projects benefiting {location} community. Contact local club for specific requirements.",
        focus_areas=list(focus),
        url=_search_url(club_name, location),
    )


def united_way_candidate(state: str, city: str | None) -> OpportunityCandidate:
    location = _location_name(state, city)
    return OpportunityCandidate(
        source="source_directory",
        source_id=_local_id("uw", state, city),
        title=f"United Way of {location} - Community Investment",
        sponsor=f"United Way of {location}",
        description=(
            f"United Way invests in education, financial stability, and health programs in {location}. "
            "They provide grants to nonprofits addressing community needs and individual assistance programs."
        ),
        amount_min=1000,
        amount_max=100000,
        eligibility=(
            f"501(c)(3) nonprofits serving {location}. "
            "Programs must address education, income, or health."
        ),
        focus_areas=["education", "financial stability", "health", "community"],
        url=_search_url("united way", location),
    )


def state_funder_candidates(state: str) -> list[OpportunityCandidate]:
    candidates = []
    for suffix, focus in STATE_FUNDERS:
        pattern = f"{state} {suffix}"
        candidates.append(
            OpportunityCandidate(
                source="source_directory",
                source_id=f"state_{short_hash(pattern)}",
                title=f"{state} {suffix.capitalize()}",
                sponsor=pattern[0].upper() + pattern[1:],
                description=f"State-level funding for {focus} in {state}.",
                amount_min=1000,
                amount_max=25000,
                eligibility=f"Organizations and projects in {state} focused on {focus}.",
                focus_areas=focus.split(", "),
                url=_search_url(pattern),
            )
        )
    return candidates


def club_focus_matches(criteria: MatchingCriteria, club_focus: tuple[str, ...]) -> bool:
    """Whether any profile focus area overlaps the club's causes, in either direction."""
    return any(
        focus in area.lower() or area.lower() in focus
        for area in criteria.focus_areas
        for focus in club_focus
    )


class SourceDirectoryCrawler(BaseCrawler):
    """Community foundations, service clubs, and local funders."""

    name = "source_directory"
    description = "Community foundations, service clubs, and local funders"
    source = "source_directory"

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            if not criteria.location.state:
                continue
            await self.find_local_sources(criteria, profile.get("id"))

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def _save(
        self,
        candidate: OpportunityCandidate,
        match: MatchResult,
        profile_id: str | None,
        threshold: int = MATCH_THRESHOLD,
    ) -> bool:
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            threshold, MatchCategory.LOCAL,
        )

    async def find_local_sources(self, criteria: MatchingCriteria, profile_id: str | None) -> int:
        state = criteria.location.state
        city = criteria.location.city
        if not state:
            return 0
        saved = 0

        for kind, add in (
            ("community_foundation", self.add_community_foundation),
            ("service_clubs", self.add_service_clubs),
            ("united_way", self.add_united_way),
            ("state_funders", self.add_state_funders),
        ):
            try:
                saved += await add(state, city, criteria, profile_id)
            except Exception:
                self.logger.exception("Local source could not be processed", kind=kind, state=state)

        return saved

    async def add_community_foundation(
        self, state: str, city: str | None, criteria: MatchingCriteria, profile_id: str | None
    ) -> int:
        candidate = community_foundation_candidate(state, city)
        match = score_opportunity(candidate, criteria)
        match.boost(LOCAL_BOOST, "Local funding source")
        return int(await self._save(candidate, match, profile_id))

    async def add_service_clubs(
        self, state: str, city: str | None, criteria: MatchingCriteria, profile_id: str | None
    ) -> int:
        saved = 0
        for club_type, (club_name, club_focus) in SERVICE_CLUBS.items():
            candidate = service_club_candidate(club_type, state, city)
            match = score_opportunity(candidate, criteria)
            if club_focus_matches(criteria, club_focus):
                match.boost(CLUB_FOCUS_BOOST, f"Focus aligns with {club_name} priorities")
            saved += await self._save(candidate, match, profile_id)
        return saved

    async def add_united_way(
        self, state: str, city: str | None, criteria: MatchingCriteria, profile_id: str | None
    ) -> int:
        candidate = united_way_candidate(state, city)
        match = score_opportunity(candidate, criteria)
        if criteria.is_nonprofit:
            match.boost(UNITED_WAY_NONPROFIT_BOOST, "Nonprofit eligible for United Way funding")
        return int(await self._save(candidate, match, profile_id))

    async def add_state_funders(
        self, state: str, city: str | None, criteria: MatchingCriteria, profile_id: str | None
    ) -> int:
        saved = 0
        for candidate in state_funder_candidates(state):
            match = score_opportunity(candidate, criteria)
            saved += await self._save(candidate, match, profile_id, STATE_FUNDER_THRESHOLD)
        return saved
