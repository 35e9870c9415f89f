"""
Profile normalization and opportunity scoring.
"""

from grantflow.matching.criteria import Location, MatchingCriteria, build_criteria
from grantflow.matching.models import MatchCategory, MatchResult, OpportunityCandidate
from grantflow.matching.scorer import score_opportunity

__all__ = [
    "Location",
    "MatchCategory",
    "MatchResult",
    "MatchingCriteria",
    "OpportunityCandidate",
    "build_criteria",
    "score_opportunity",
]
