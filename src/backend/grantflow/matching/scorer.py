"""
Relevance scoring of opportunities against matching criteria.

Each dimension contributes to the denominator only when the opportunity
exposes the data it needs, so sparse listings are not penalised for
what they do not say. Special-population bonuses add to the numerator
only and the result is capped at 100.
"""

import math

from grantflow.matching.criteria import MatchingCriteria
from grantflow.matching.models import MatchResult, OpportunityCandidate

GEOGRAPHY_WEIGHT = 20
ELIGIBILITY_WEIGHT = 15
FOCUS_WEIGHT = 25
FOCUS_POINTS_PER_MATCH = 10
KEYWORD_WEIGHT = 15
KEYWORD_POINTS_PER_MATCH = 5
POPULATION_BONUS = 10

NEUTRAL_SCORE = 50

NATIONAL_MARKERS = ("national", "all states")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _distinct(values: tuple[str, ...]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        key = value.lower()
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result


def score_opportunity(opportunity: OpportunityCandidate, criteria: MatchingCriteria) -> MatchResult:
    """
    Score one opportunity for one profile.

    Args:
        opportunity: Candidate produced by a crawler
        criteria: Normalized profile criteria

    Returns:
        MatchResult: Score in 0..100 with human-readable reasons
    """
    score = 0
    max_score = 0
    reasons: list[str] = []

    # Geography
    if opportunity.location:
        max_score += GEOGRAPHY_WEIGHT
        location = opportunity.location.lower()
        state = criteria.location.state
        if any(marker in location for marker in NATIONAL_MARKERS):
            score += GEOGRAPHY_WEIGHT
            reasons.append("Available nationally")
        elif state and state.lower() in location:
            score += GEOGRAPHY_WEIGHT
            reasons.append(f"Available in {state}")

    # Eligibility type (both branches can apply)
    if opportunity.eligibility_type:
        max_score += ELIGIBILITY_WEIGHT
        eligibility_type = opportunity.eligibility_type.lower()
        if criteria.is_nonprofit and ("nonprofit" in eligibility_type or "501(c)" in eligibility_type):
            score += ELIGIBILITY_WEIGHT
            reasons.append("Eligible for nonprofits")
        if criteria.is_student and ("student" in eligibility_type or "individual" in eligibility_type):
            score += ELIGIBILITY_WEIGHT
            reasons.append("Open to students")

    # Focus areas
    if opportunity.focus_areas and criteria.focus_areas:
        max_score += FOCUS_WEIGHT
        opportunity_areas = " ".join(opportunity.focus_areas).lower()
        matching = [area for area in _distinct(criteria.focus_areas) if area.lower() in opportunity_areas]
        if matching:
            score += min(FOCUS_WEIGHT, len(matching) * FOCUS_POINTS_PER_MATCH)
            reasons.append(f"Matches focus areas: {', '.join(matching)}")

    # Keywords
    description = (opportunity.description or "").lower()
    if description and criteria.keywords:
        max_score += KEYWORD_WEIGHT
        matching = [kw for kw in _distinct(criteria.keywords) if kw.lower() in description]
        if matching:
            score += min(KEYWORD_WEIGHT, len(matching) * KEYWORD_POINTS_PER_MATCH)
            reasons.append(f"Keyword matches: {', '.join(matching)}")

    # Special populations
    population_bonuses = (
        (criteria.veteran, "veteran", "Veteran eligibility"),
        (criteria.disability, "disab", "Disability eligibility"),
        (criteria.low_income, "low-income", "Low-income eligibility"),
        (criteria.is_first_gen, "first-generation", "First-generation eligibility"),
    )
    for applies, marker, reason in population_bonuses:
        if applies and marker in description:
            score += POPULATION_BONUS
            reasons.append(reason)

    if max_score == 0:
        final = NEUTRAL_SCORE
    else:
        final = _round_half_up(min(100.0, score / max_score * 100))

    return MatchResult(score=final, reasons=reasons, matched_criteria=list(reasons))
