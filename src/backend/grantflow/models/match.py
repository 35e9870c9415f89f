"""
Match model - scored relation between a profile and an opportunity.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.db.base import Base

if TYPE_CHECKING:
    from grantflow.models.opportunity import FundingOpportunity
    from grantflow.models.profile import Profile


class Match(Base):
    """
    One record per (profile, opportunity) pair.

    Written once, when a crawl first scores the pair above its source's
    threshold; later crawls never overwrite it.
    """

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("profile_id", "opportunity_id", name="uq_matches_profile_opportunity"),
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    opportunity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("funding_opportunities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    reasons: Mapped[list[str]] = mapped_column(JSON, default=list)
    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Source family tag: federal, benefits, energy, foundation, local, scholarship, custom",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    opportunity: Mapped["FundingOpportunity"] = relationship(
        "FundingOpportunity",
        back_populates="matches",
    )
    profile: Mapped["Profile"] = relationship("Profile")

    def __repr__(self) -> str:
        return f"<Match(profile_id={self.profile_id}, opportunity_id={self.opportunity_id}, score={self.score})>"
