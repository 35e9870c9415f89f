"""
FundingOpportunity model - Core entity for discovered funding offers.

Identity is the (source, source_id) pair assigned by the crawler that
found it; the UUID primary key is storage-assigned.
"""

from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Date, Float, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from grantflow.models.match import Match


class FundingOpportunity(Base, TimestampMixin):
    """
    A grant, scholarship, benefit program or incentive.

    Created on first sighting of a (source, source_id) pair and updated
    in place on later sightings. Never deleted by the crawlers.
    """

    __tablename__ = "funding_opportunities"
    __table_args__ = (
        UniqueConstraint("source", "source_id", name="uq_funding_opportunities_source"),
    )

    # Dedup key
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identifier assigned by the originating crawler",
    )

    # Basic Information
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    sponsor: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Value (many opportunities have no fixed amount)
    amount_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    amount_max: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Rolling/ongoing opportunities have no deadline
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)

    eligibility: Mapped[str | None] = mapped_column(Text, nullable=True)
    focus_areas: Mapped[list[str]] = mapped_column(JSON, default=list)
    url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    raw_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Original scraped data for debugging",
    )

    # Relationships
    matches: Mapped[list["Match"]] = relationship(
        "Match",
        back_populates="opportunity",
    )

    def __repr__(self) -> str:
        return f"<FundingOpportunity(id={self.id}, source='{self.source}', title='{self.title[:50]}')>"
