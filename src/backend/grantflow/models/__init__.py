"""
SQLAlchemy ORM models for the funding discovery engine.
"""

from grantflow.models.match import Match
from grantflow.models.opportunity import FundingOpportunity
from grantflow.models.profile import Profile

__all__ = [
    "FundingOpportunity",
    "Match",
    "Profile",
]
