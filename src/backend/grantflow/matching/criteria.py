"""
Profile normalization.

Turns a loosely-typed profile record (table columns merged with the
free-form ``profile_data`` object) into the immutable criteria the
scorer and the crawlers work from.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

STUDENT_PROFILE_TYPES = frozenset({"high_school", "college", "graduate", "homeschool"})

_TRUTHY_STRINGS = frozenset({"true", "yes", "y", "1", "on"})

# (flag, label) in merge order; chronic illness takes its label from the profile
_HEALTH_CONDITION_FLAGS: tuple[tuple[str, str], ...] = (
    ("cancer", "cancer"),
    ("chronic_illness", "chronic illness"),
    ("dialysis", "kidney disease"),
    ("organ_transplant", "transplant"),
    ("hiv_aids", "HIV/AIDS"),
    ("tbi", "traumatic brain injury"),
    ("neurodivergent", "neurodivergent"),
    ("visual_impairment", "visual impairment"),
    ("hearing_impairment", "hearing impairment"),
    ("mental_health", "mental health"),
)


@dataclass(frozen=True)
class Location:
    city: str | None = None
    state: str | None = None
    zip: str | None = None


@dataclass(frozen=True)
class MatchingCriteria:
    """Normalized view of a profile used for scoring and query building."""

    profile_type: str | None = None
    location: Location = field(default_factory=Location)
    name: str | None = None

    # Organization
    is_nonprofit: bool = False
    ein: str | None = None
    annual_budget: Any = None
    staff_count: Any = None

    focus_areas: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    mission: str | None = None

    # Education
    is_student: bool = False
    grade_level: Any = None
    gpa: Any = None
    major: str | None = None
    is_first_gen: bool = False
    is_pell_eligible: bool = False
    target_colleges: tuple[str, ...] = ()

    # Demographics
    ethnicity: str | None = None
    veteran: bool = False
    disability: bool = False
    lgbtq: bool = False

    # Financial
    low_income: bool = False
    annual_income: Any = None
    household_size: Any = None

    # Government assistance
    on_medicaid: bool = False
    on_snap: bool = False
    on_ssi: bool = False

    # Health
    has_health_condition: bool = False
    health_conditions: tuple[str, ...] = ()

    # Occupation
    is_healthcare_worker: bool = False
    is_teacher: bool = False
    is_first_responder: bool = False
    is_public_servant: bool = False
    is_farmer: bool = False

    # Family situation
    single_parent: bool = False
    foster_youth: bool = False
    homeless: bool = False
    domestic_violence_survivor: bool = False
    disaster_survivor: bool = False

    # Compliance
    sam_registered: bool = False
    has_audited_financials: bool = False
    hipaa_compliant: bool = False
    ferpa_compliant: bool = False

    # Designations
    rural_area: bool = False
    faith_based: bool = False
    minority_serving: bool = False
    tribal_affiliation: bool = False


def is_truthy(value: Any) -> bool:
    """Interpret a profile flag stored as bool, 0/1 or a string."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return bool(value)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _string_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if item is not None and str(item).strip())
    if isinstance(value, str):
        return _split_csv(value)
    return ()


def parse_focus_areas(value: Any) -> tuple[str, ...]:
    """
    Parse focus areas stored as a list, a JSON string or a comma string.

    Anything else yields an empty tuple.
    """
    if isinstance(value, (list, tuple)):
        return _string_list(value)
    if not isinstance(value, str) or not value.strip():
        return ()

    try:
        parsed = json.loads(value)
    except ValueError:
        return _split_csv(value)

    if isinstance(parsed, list):
        return _string_list(parsed)
    if isinstance(parsed, str):
        return (parsed.strip(),) if parsed.strip() else ()
    return _split_csv(value)


def parse_health_conditions(profile: Mapping[str, Any]) -> tuple[str, ...]:
    conditions = []
    for flag, label in _HEALTH_CONDITION_FLAGS:
        if not is_truthy(profile.get(flag)):
            continue
        if flag == "chronic_illness":
            label = _text(profile.get("chronic_illness_type")) or label
        conditions.append(label)
    return tuple(conditions)


def build_criteria(profile: Mapping[str, Any]) -> MatchingCriteria:
    """
    Build matching criteria from a profile record.

    Never raises: missing or malformed attributes produce neutral values.

    Args:
        profile: Profile columns merged with its ``profile_data``

    Returns:
        MatchingCriteria: Immutable normalized criteria
    """
    def flag(*keys: str) -> bool:
        return any(is_truthy(profile.get(key)) for key in keys)

    profile_type = (
        _text(profile.get("profile_type"))
        or _text(profile.get("organization_type"))
        or _text(profile.get("applicant_type"))
    )
    organization_type = _text(profile.get("organization_type")) or ""

    return MatchingCriteria(
        profile_type=profile_type,
        location=Location(
            city=_text(profile.get("city")),
            state=_text(profile.get("state")),
            zip=_text(profile.get("zip")),
        ),
        name=_text(profile.get("name")),
        is_nonprofit=flag("public_charity", "private_foundation") or "501" in organization_type,
        ein=_text(profile.get("ein")),
        annual_budget=profile.get("annual_budget"),
        staff_count=profile.get("staff_count"),
        focus_areas=parse_focus_areas(profile.get("focus_areas")),
        keywords=_string_list(profile.get("keywords")),
        mission=_text(profile.get("mission")) or _text(profile.get("goals")),
        is_student=profile_type in STUDENT_PROFILE_TYPES,
        grade_level=profile.get("grade_level"),
        gpa=profile.get("gpa"),
        major=_text(profile.get("intended_major")),
        is_first_gen=flag("first_gen_college"),
        is_pell_eligible=flag("pell_grant_eligible"),
        target_colleges=_string_list(profile.get("target_colleges")),
        ethnicity=_text(profile.get("ethnicity")),
        veteran=flag("veteran", "military_spouse", "military_dependent"),
        disability=flag("disabled", "iep_504_status"),
        lgbtq=flag("lgbtq"),
        low_income=flag("low_income"),
        annual_income=profile.get("annual_income"),
        household_size=profile.get("household_size"),
        on_medicaid=flag("medicaid"),
        on_snap=flag("snap"),
        on_ssi=flag("ssi"),
        has_health_condition=flag("cancer", "chronic_illness", "dialysis", "mental_health"),
        health_conditions=parse_health_conditions(profile),
        is_healthcare_worker=flag("healthcare_worker"),
        is_teacher=flag("teacher"),
        is_first_responder=flag("firefighter", "law_enforcement"),
        is_public_servant=flag("public_servant"),
        is_farmer=flag("farmer"),
        single_parent=flag("single_parent"),
        foster_youth=flag("foster_youth"),
        homeless=flag("homeless"),
        domestic_violence_survivor=flag("domestic_violence_survivor"),
        disaster_survivor=flag("disaster_survivor"),
        sam_registered=flag("sam_registered"),
        has_audited_financials=flag("audited_financials"),
        hipaa_compliant=flag("hipaa_compliant"),
        ferpa_compliant=flag("ferpa_compliant"),
        rural_area=flag("serves_rural"),
        faith_based=flag("faith_based"),
        minority_serving=flag("minority_serving"),
        tribal_affiliation=flag("tribal_affiliation"),
    )
