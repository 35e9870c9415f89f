"""
Benefits.gov crawler.

Finds assistance programs for individuals and families. Each relevant
benefit category is queried through the benefit finder API, falling
back to the public category page when the API is unavailable.
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

BASE_URL = "https://www.benefits.gov"
API_URL = "https://www.benefits.gov/benefit-finder/api/benefits"
CATEGORY_URL = "https://www.benefits.gov/categories/{category}"

INDIVIDUAL_PROFILE_TYPES = frozenset(
    {"individual", "high_school", "college", "graduate", "homeschool", "medical", "family"}
)

LISTING_SELECTOR = ".benefit-result, .program-card"

DEFAULT_SPONSOR = "Federal Government"
MATCH_THRESHOLD = 25


def is_individual_profile(criteria: MatchingCriteria) -> bool:
    return criteria.profile_type in INDIVIDUAL_PROFILE_TYPES


def _household_size(criteria: MatchingCriteria) -> int:
    try:
        return int(criteria.household_size or 0)
    except (TypeError, ValueError):
        return 0


def build_questionnaire(criteria: MatchingCriteria) -> dict[str, str]:
    """Benefit finder answers derived from the profile, as query parameters."""
    answers: dict[str, str] = {}
    if criteria.location.state:
        answers["state"] = criteria.location.state
    if criteria.low_income:
        answers["income"] = "low"

    flags = (
        (criteria.veteran, ("veteran",)),
        (criteria.disability, ("disability",)),
        (criteria.is_student, ("student",)),
        (criteria.single_parent, ("parent", "singleParent")),
        (criteria.has_health_condition, ("healthCondition",)),
        (criteria.on_medicaid, ("medicaid",)),
        (criteria.on_snap, ("snap",)),
        (criteria.on_ssi, ("ssi",)),
    )
    for applies, keys in flags:
        if applies:
            answers.update({key: "true" for key in keys})
    return answers


def relevant_categories(criteria: MatchingCriteria) -> list[str]:
    """Benefit categories to query, general assistance first."""
    categories = ["financial-assistance"]
    if criteria.low_income or criteria.on_snap:
        categories.append("food-nutrition")
    if criteria.homeless or criteria.low_income:
        categories.append("housing")
    if criteria.has_health_condition or criteria.disability:
        categories.extend(["health-care", "disability-assistance"])
    if criteria.is_student:
        categories.append("education-training")
    if criteria.veteran:
        categories.append("veteran-benefits")
    if criteria.single_parent or _household_size(criteria) > 1:
        categories.append("family-children")
    if criteria.disaster_survivor:
        categories.append("disaster-relief")
    return list(dict.fromkeys(categories))


def parse_category_page(html: str) -> list[dict[str, Any]]:
    """Benefit listings from a Benefits.gov category page."""
    soup = BeautifulSoup(html, "html.parser")
    benefits = []
    for element in soup.select(LISTING_SELECTOR):
        link = element.select_one("a[href]")
        benefits.append({
            "title": select_text(element, ".title, h3, h4"),
            "description": select_text(element, ".description, .summary, p"),
            "agency": select_text(element, ".agency, .source"),
            "url": link.get("href") if link else None,
            "eligibility": select_text(element, ".eligibility"),
        })
    return benefits


def benefit_to_candidate(benefit: dict[str, Any], category: str) -> OpportunityCandidate | None:
    title = clean_text(benefit.get("title"))
    if not title:
        return None

    url = clean_text(benefit.get("url"))
    if url and not url.startswith("http"):
        url = f"{BASE_URL}{url}"

    return OpportunityCandidate(
        source="benefits_gov",
        source_id=str(benefit.get("id") or f"benefits_gov_{short_hash(title)}"),
        title=title,
        sponsor=clean_text(benefit.get("agency")) or DEFAULT_SPONSOR,
        description=clean_text(benefit.get("description") or benefit.get("summary")),
        eligibility=clean_text(benefit.get("eligibility") or benefit.get("eligibleApplicants")),
        focus_areas=[category],
        url=url or None,
    )


class BenefitsGovCrawler(BaseCrawler):
    """Government benefits and assistance programs for individuals."""

    name = "benefits_gov"
    description = "Government benefits and assistance programs from Benefits.gov"
    source = "benefits_gov"

    async def crawl(self, profiles: list[dict[str, Any]]) -> None:
        self.logger.info("Starting crawl", profiles=len(profiles))

        for profile in profiles:
            criteria = build_criteria(profile)
            if not is_individual_profile(criteria):
                continue
            for category in relevant_categories(criteria):
                try:
                    await self.crawl_category(category, criteria, profile.get("id"))
                except Exception:
                    self.logger.exception("Benefit category could not be processed", category=category)
                await self.pause()

        self.logger.info("Crawl finished", opportunities_found=self.runtime.opportunities_found)

    async def fetch_benefits(self, category: str, criteria: MatchingCriteria) -> list[dict[str, Any]]:
        """Benefits for a category from the API, or the category page when it fails."""
        params = {
            "category": category,
            "state": criteria.location.state or "",
            **build_questionnaire(criteria),
        }
        try:
            payload = await self.fetcher.fetch_json(API_URL, params=params)
        except FetchException as e:
            self.logger.info("Benefit API unavailable, scraping category page", category=category, error=e.message)
        else:
            benefits = payload.get("benefits") if isinstance(payload, dict) else None
            return [b for b in benefits or [] if isinstance(b, dict)]

        try:
            html = await self.fetcher.fetch(CATEGORY_URL.format(category=category))
        except FetchException as e:
            self.logger.error("Category scrape failed", category=category, error=e.message)
            return []
        return parse_category_page(html)

    async def crawl_category(self, category: str, criteria: MatchingCriteria, profile_id: str | None) -> int:
        saved = 0
        for benefit in await self.fetch_benefits(category, criteria):
            try:
                if await self.process_benefit(benefit, category, criteria, profile_id):
                    saved += 1
            except Exception:
                self.logger.exception("Skipping malformed benefit", category=category, benefit_id=benefit.get("id"))
        return saved

    async def process_benefit(
        self,
        benefit: dict[str, Any],
        category: str,
        criteria: MatchingCriteria,
        profile_id: str | None,
    ) -> bool:
        candidate = benefit_to_candidate(benefit, category)
        if candidate is None:
            return False
        match = score_opportunity(candidate, criteria)
        return await save_scored(
            self.runtime, self.gateway, profile_id, candidate, match,
            MATCH_THRESHOLD, MatchCategory.BENEFITS,
        )
