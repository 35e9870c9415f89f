"""
Persistence gateway for the discovery engine.

Crawlers only see the ``PersistenceGateway`` protocol; the SQLAlchemy
implementation below owns sessions and transactions. Every database
error is re-raised as ``DatabaseException`` so callers can handle
persistence failures without importing SQLAlchemy.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grantflow.core.exceptions import DatabaseException
from grantflow.core.logging import get_logger
from grantflow.db.base import model_to_dict
from grantflow.db.session import session_scope
from grantflow.matching.models import OpportunityCandidate
from grantflow.models import FundingOpportunity, Match, Profile

logger = get_logger(__name__)

RECENT_WINDOW_DAYS = 7


class PersistenceGateway(Protocol):
    """Storage operations the crawlers and the trigger surface rely on."""

    async def find_opportunity_by_source_id(self, source: str, source_id: str) -> UUID | None: ...

    async def upsert_opportunity(
        self, candidate: OpportunityCandidate, existing_id: UUID | None = None
    ) -> UUID: ...

    async def find_match(self, profile_id: UUID | str, opportunity_id: UUID) -> UUID | None: ...

    async def insert_match(
        self,
        profile_id: UUID | str,
        opportunity_id: UUID,
        score: int,
        reasons: list[str],
        category: str,
    ) -> UUID: ...

    async def list_profiles(self, ids: Iterable[UUID | str] | None = None) -> list[dict[str, Any]]: ...

    async def get_profile(self, profile_id: UUID | str) -> dict[str, Any] | None: ...

    async def list_matches_for_profile(self, profile_id: UUID | str) -> list[dict[str, Any]]: ...

    async def get_stats(self) -> dict[str, Any]: ...


def to_uuid(value: UUID | str | None) -> UUID | None:
    """Coerce an id to UUID, returning None when it is not a valid UUID."""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def profile_to_record(profile: Profile) -> dict[str, Any]:
    """
    Flatten a profile row for matching.

    ``profile_data`` is merged over the columns; a value that is not a
    JSON object is ignored. The row id is never overridden.
    """
    record = model_to_dict(profile)
    extra = profile.profile_data
    if isinstance(extra, dict):
        record.update(extra)
        record["id"] = str(profile.id)
    return record


class SqlAlchemyGateway:
    """
    ``PersistenceGateway`` backed by async SQLAlchemy sessions.

    Each call runs in its own unit of work.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_opportunity_by_source_id(self, source: str, source_id: str) -> UUID | None:
        try:
            async with session_scope(self._session_factory) as db:
                return await db.scalar(
                    select(FundingOpportunity.id).where(
                        FundingOpportunity.source == source,
                        FundingOpportunity.source_id == source_id,
                    )
                )
        except SQLAlchemyError as e:
            raise DatabaseException(
                "Failed to look up opportunity",
                details={"source": source, "source_id": source_id, "error": str(e)},
            ) from e

    async def upsert_opportunity(
        self, candidate: OpportunityCandidate, existing_id: UUID | None = None
    ) -> UUID:
        """
        Insert a new opportunity or update an existing one in place.

        Args:
            candidate: Opportunity data from a crawler
            existing_id: Id found by a previous lookup; None inserts

        Returns:
            UUID: Id of the stored opportunity
        """
        values = candidate.to_record()
        try:
            async with session_scope(self._session_factory) as db:
                opportunity = await db.get(FundingOpportunity, existing_id) if existing_id else None
                if opportunity is None:
                    opportunity = FundingOpportunity(**values)
                    db.add(opportunity)
                else:
                    # Identity and created_at stay as first recorded
                    for key, value in values.items():
                        if key not in ("source", "source_id"):
                            setattr(opportunity, key, value)
                await db.flush()
                return opportunity.id
        except SQLAlchemyError as e:
            raise DatabaseException(
                "Failed to save opportunity",
                details={"source": candidate.source, "source_id": candidate.source_id, "error": str(e)},
            ) from e

    async def find_match(self, profile_id: UUID | str, opportunity_id: UUID) -> UUID | None:
        profile_uuid = to_uuid(profile_id)
        if profile_uuid is None:
            return None
        try:
            async with session_scope(self._session_factory) as db:
                return await db.scalar(
                    select(Match.id).where(
                        Match.profile_id == profile_uuid,
                        Match.opportunity_id == opportunity_id,
                    )
                )
        except SQLAlchemyError as e:
            raise DatabaseException("Failed to look up match", details={"error": str(e)}) from e

    async def insert_match(
        self,
        profile_id: UUID | str,
        opportunity_id: UUID,
        score: int,
        reasons: list[str],
        category: str,
    ) -> UUID:
        profile_uuid = to_uuid(profile_id)
        if profile_uuid is None:
            raise DatabaseException(
                "Invalid profile id for match",
                details={"profile_id": str(profile_id)},
            )
        try:
            async with session_scope(self._session_factory) as db:
                match = Match(
                    profile_id=profile_uuid,
                    opportunity_id=opportunity_id,
                    score=score,
                    reasons=list(reasons),
                    category=category,
                )
                db.add(match)
                await db.flush()
                return match.id
        except SQLAlchemyError as e:
            raise DatabaseException(
                "Failed to save match",
                details={"profile_id": str(profile_id), "opportunity_id": str(opportunity_id), "error": str(e)},
            ) from e

    async def list_profiles(self, ids: Iterable[UUID | str] | None = None) -> list[dict[str, Any]]:
        """
        Load profiles for a crawl.

        Args:
            ids: Profile ids to load; None or empty loads every profile.
                Ids that are not valid UUIDs are ignored.
        """
        query = select(Profile).order_by(Profile.created_at)
        id_list = list(ids or [])
        if id_list:
            uuids = [u for u in (to_uuid(i) for i in id_list) if u is not None]
            if not uuids:
                return []
            query = query.where(Profile.id.in_(uuids))

        try:
            async with session_scope(self._session_factory) as db:
                result = await db.scalars(query)
                return [profile_to_record(p) for p in result.all()]
        except SQLAlchemyError as e:
            raise DatabaseException("Failed to load profiles", details={"error": str(e)}) from e

    async def get_profile(self, profile_id: UUID | str) -> dict[str, Any] | None:
        profile_uuid = to_uuid(profile_id)
        if profile_uuid is None:
            return None
        try:
            async with session_scope(self._session_factory) as db:
                profile = await db.get(Profile, profile_uuid)
                return profile_to_record(profile) if profile else None
        except SQLAlchemyError as e:
            raise DatabaseException("Failed to load profile", details={"error": str(e)}) from e

    async def list_matches_for_profile(self, profile_id: UUID | str) -> list[dict[str, Any]]:
        """Matches for a profile joined with their opportunity, best first."""
        profile_uuid = to_uuid(profile_id)
        if profile_uuid is None:
            return []

        query = (
            select(Match, FundingOpportunity)
            .join(FundingOpportunity, Match.opportunity_id == FundingOpportunity.id)
            .where(Match.profile_id == profile_uuid)
            .order_by(Match.score.desc(), Match.created_at.desc())
        )
        try:
            async with session_scope(self._session_factory) as db:
                rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            raise DatabaseException("Failed to load matches", details={"error": str(e)}) from e

        return [
            {
                "id": match.id,
                "opportunity_id": opportunity.id,
                "score": match.score,
                "reasons": match.reasons or [],
                "category": match.category,
                "matched_at": match.created_at,
                "source": opportunity.source,
                "title": opportunity.title,
                "sponsor": opportunity.sponsor,
                "description": opportunity.description,
                "amount_min": opportunity.amount_min,
                "amount_max": opportunity.amount_max,
                "deadline": opportunity.deadline,
                "url": opportunity.url,
            }
            for match, opportunity in rows
        ]

    async def get_stats(self) -> dict[str, Any]:
        """Aggregate counts for the stats endpoint."""
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_WINDOW_DAYS)
        try:
            async with session_scope(self._session_factory) as db:
                total = await db.scalar(select(func.count(FundingOpportunity.id))) or 0
                by_source_rows = (
                    await db.execute(
                        select(FundingOpportunity.source, func.count(FundingOpportunity.id))
                        .group_by(FundingOpportunity.source)
                    )
                ).all()
                total_matches = await db.scalar(select(func.count(Match.id))) or 0
                recent = await db.scalar(
                    select(func.count(FundingOpportunity.id)).where(
                        FundingOpportunity.created_at >= since
                    )
                ) or 0
        except SQLAlchemyError as e:
            raise DatabaseException("Failed to compute stats", details={"error": str(e)}) from e

        return {
            "total_opportunities": total,
            "by_source": {source: count for source, count in by_source_rows},
            "total_matches": total_matches,
            "recent_opportunities": recent,
        }
