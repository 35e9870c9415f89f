"""
DSIRE crawler.

Energy and efficiency incentives from the Database of State Incentives
for Renewables & Efficiency, plus a fixed catalog of federal programs.
Only runs for profiles with an energy signal, farmers, rural service
areas or nonprofits.
"""

from typing import Any

from bs4 import BeautifulSoup

from grantflow.core.exceptions import FetchException
from grantflow.crawlers.base import BaseCrawler
from grantflow.crawlers.parsing import clean_text, select_text, short_hash
from grantflow.crawlers.persistence import save_scored
from grantflow.matching import (
    MatchCategory,
    MatchingCriteria,
    OpportunityCandidate,
    build_criteria,
    score_opportunity,
)

BASE_URL = "https://www.dsireusa.org"
STATE_PROGRAMS_URL = "https://www.dsireusa.org/programs"
FEDERAL_PROGRAMS_URL = "https://www.dsireusa.org/programs?type=federal"

ENERGY_KEYWORDS = (
    "energy", "solar", "wind", "renewable", "sustainability",
    "green", "efficiency", "environmental", "climate",
)

PROGRAM_SELECTOR = ".program-result, .incentive-card, table tbody tr"

# (name, incentive type, sectors)
FEDERAL_PROGRAMS: tuple[tuple[str, str, str], ...] = (
    ("Investment Tax Credit (ITC)", "Tax Credit", "Solar, Wind"),
    ("Production Tax Credit (PTC)", "Tax Credit", "Wind, Renewable"),
    ("USDA REAP Grants", "Grant", "Rural, Agriculture"),
    ("DOE Weatherization Assistance", "Grant", "Low-Income, Efficiency"),
    ("EPA Clean Energy Programs", "Grant", "Environmental"),
)

MATCH_THRESHOLD = 25


def _has_energy_term(values: tuple[str, ...]) -> bool:
    return any(kw in value.lower() for value in values for kw in ENERGY_KEYWORDS)


def is_relevant_profile(criteria: MatchingCriteria) -> bool:
    return (
        _has_energy_term(criteria.focus_areas)
        or _has_energy_term(criteria.keywords)
        or criteria.is_farmer
        or criteria.rural_area
        or criteria.is_nonprofit
    )


def federal_candidates() -> list[OpportunityCandidate]:
    """Candidates for the hard-coded federal incentive catalog."""
    return [
        OpportunityCandidate(
            source="dsire",
            source_id=f"dsire_federal_{short_hash(name)}",
            title=name,
            sponsor="Federal Government",
            description=(
                f"{incentive_type} for {sectors}. "
                "Federal incentive program for renewable energy and efficiency."
            ),
            eligibility=sectors,
            focus_areas=["energy", "sustainability", sectors.lower()],
            url=FEDERAL_PROGRAMS_URL,
        )
        for name, incentive_type, sectors in FEDERAL_PROGRAMS
    ]


def parse_state_programs(html: str, state: str) -> list[OpportunityCandidate]:
    """Program candidates from a DSIRE state listing page."""
    soup = BeautifulSoup(html, "html.parser")
    candidates = []
    for element in soup.select(PROGRAM_SELECTOR):
        title = select_text(element, ".title, .name, td:first-child")
        if not title:
            continue
        incentive_type = select_text(element, ".type, .category, td:nth-child(2)")
        sector = select_text(element, ".sector, .eligibility")
        description = select_text(element, ".description, .summary")
        link = element.select_one("a[href]")
        href = link.get("href") if link else None
        if href and not href.startswith("http"):
            href = f"{BASE_URL}{href}"

        candidates.append(
            OpportunityCandidate(
                source="dsire",
                source_id=f"dsire_{state}_{short_hash(title)}",
                title=title,
                sponsor=f"{state} State",
                description=description or clean_text(f"{incentive_type} - {sector}"),
                eligibility=sector,
                focus_areas=[a for a in ("energy", "renewable", incentive_type.lower()) if a],
                url=href,
            )
        )
    return candidates


class DSIRECrawler(BaseCrawler):
    """Energy incentives and renewable programs."""

    name = "dsire"
    description = "Energy incentives and renewable programs from DSIRE"
    source = "dsire"

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            if not is_relevant_profile(criteria):
                continue

            state = criteria.location.state
            if state:
                await self.crawl_state_programs(state, criteria, profile.get("id"))
                await self.pause()
            else:
                self.logger.info("No state on profile, federal programs only", profile_id=profile.get("id"))
            await self.process_candidates(federal_candidates(), criteria, profile.get("id"))

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def crawl_state_programs(self, state: str, criteria: MatchingCriteria, profile_id: str | None) -> int:
        try:
            html = await self.fetcher.fetch(STATE_PROGRAMS_URL, params={"state": state})
        except FetchException as e:
            self.logger.error("State program crawl failed", state=state, error=e.message)
            return 0
        try:
            candidates = parse_state_programs(html, state)
        except Exception:
            self.logger.exception("State program page could not be parsed", state=state)
            return 0
        return await self.process_candidates(candidates, criteria, profile_id)

    async def process_candidates(
        self,
        candidates: list[OpportunityCandidate],
        criteria: MatchingCriteria,
        profile_id: str | None,
    ) -> int:
        saved = 0
        for candidate in candidates:
            try:
                match = score_opportunity(candidate, criteria)
                if await save_scored(
                    self.runtime, self.gateway, profile_id, candidate, match,
                    MATCH_THRESHOLD, MatchCategory.ENERGY,
                ):
                    saved += 1
            except Exception:
                self.logger.exception("Skipping program", source_id=candidate.source_id)
        return saved
