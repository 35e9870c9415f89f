"""
Profile model - applicant or organization records.

Profiles are maintained by the surrounding application; the discovery
engine only reads them.
"""

from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grantflow.db.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    """
    An individual applicant or an organization.

    Schema-less attributes (demographics, special-population flags,
    education data) live in ``profile_data`` and are merged over the
    columns when the profile is read for matching.
    """

    __tablename__ = "profiles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="individual, college, high_school, nonprofit, ...",
    )

    # Location
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Organization
    ein: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mission: Mapped[str | None] = mapped_column(Text, nullable=True)

    focus_areas: Mapped[Any | None] = mapped_column(
        JSON,
        nullable=True,
        comment="List of focus areas, or a JSON/comma-separated string",
    )
    keywords: Mapped[str | None] = mapped_column(Text, nullable=True)

    profile_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name='{self.name}', type='{self.profile_type}')>"
