"""
Data models shared by the scorer, the crawlers and the persistence gateway.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class MatchCategory(str, Enum):
    """Source family tag stored on match records."""
    FEDERAL = "federal"          # Grants.gov
    BENEFITS = "benefits"        # Benefits.gov
    ENERGY = "energy"            # DSIRE incentives
    FOUNDATION = "foundation"    # IRS 990 / ProPublica
    LOCAL = "local"              # Community foundations, service clubs
    SCHOLARSHIP = "scholarship"  # Scholarship aggregators
    CUSTOM = "custom"            # Arbitrary website


@dataclass
class OpportunityCandidate:
    """Opportunity as produced by a crawler, before it is persisted."""
    source: str
    source_id: str
    title: str
    sponsor: str | None = None
    description: str | None = None
    amount_min: float | None = None
    amount_max: float | None = None
    deadline: date | None = None
    eligibility: str | None = None
    focus_areas: list[str] = field(default_factory=list)
    url: str | None = None

    # Scoring-only attributes, never persisted
    location: str | None = None
    eligibility_type: str | None = None

    raw_data: dict[str, Any] | None = None

    def to_record(self) -> dict[str, Any]:
        """Persisted columns of the candidate."""
        return {
            "source": self.source,
            "source_id": self.source_id,
            "title": self.title,
            "sponsor": self.sponsor,
            "description": self.description,
            "amount_min": self.amount_min,
            "amount_max": self.amount_max,
            "deadline": self.deadline,
            "eligibility": self.eligibility,
            "focus_areas": list(self.focus_areas),
            "url": self.url,
            "raw_data": self.raw_data,
        }


@dataclass
class MatchResult:
    """Outcome of scoring one opportunity against one profile."""
    score: int
    reasons: list[str] = field(default_factory=list)
    matched_criteria: list[str] = field(default_factory=list)

    def boost(self, points: int, reason: str) -> None:
        """Add source-specific points, keeping the score within 0..100."""
        self.score = max(0, min(100, self.score + points))
        self.reasons.append(reason)
