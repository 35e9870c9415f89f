"""
Dedup-aware save helpers used by every crawler.

Persistence errors are logged and swallowed here so a single bad row
never aborts a crawl; the caller sees ``None`` / ``False``.
"""

from uuid import UUID

from grantflow.core.exceptions import DatabaseException
from grantflow.core.logging import get_logger
from grantflow.crawlers.base import CrawlerRuntime
from grantflow.db.gateway import PersistenceGateway
from grantflow.matching.models import MatchCategory, MatchResult, OpportunityCandidate

logger = get_logger(__name__)


async def save_opportunity(
    runtime: CrawlerRuntime,
    gateway: PersistenceGateway,
    candidate: OpportunityCandidate,
) -> UUID | None:
    """
    Insert or update an opportunity keyed by (source, source_id).

    Only inserts increment ``runtime.opportunities_found``.

    Returns:
        Id of the stored opportunity, or None when storage failed
    """
    if not candidate.source or not candidate.source_id:
        logger.warning("Skipping opportunity without identity", title=candidate.title)
        return None

    try:
        existing_id = await gateway.find_opportunity_by_source_id(candidate.source, candidate.source_id)
        opportunity_id = await gateway.upsert_opportunity(candidate, existing_id)
    except DatabaseException as e:
        logger.error(
            "Error saving opportunity",
            crawler=runtime.name,
            source_id=candidate.source_id,
            error=e.message,
        )
        return None

    if existing_id is None:
        runtime.opportunities_found += 1
    return opportunity_id


async def save_match(
    gateway: PersistenceGateway,
    profile_id: UUID | str | None,
    candidate: OpportunityCandidate,
    match: MatchResult,
    category: MatchCategory,
) -> bool:
    """
    Record a match for a stored opportunity unless one already exists.

    Returns:
        True when a new match record was written
    """
    if not profile_id:
        return False

    try:
        opportunity_id = await gateway.find_opportunity_by_source_id(candidate.source, candidate.source_id)
        if opportunity_id is None:
            return False
        if await gateway.find_match(profile_id, opportunity_id) is not None:
            return False
        await gateway.insert_match(profile_id, opportunity_id, match.score, match.reasons, category.value)
    except DatabaseException as e:
        logger.error(
            "Error saving match",
            profile_id=str(profile_id),
            source_id=candidate.source_id,
            error=e.message,
        )
        return False

    return True


async def save_scored(
    runtime: CrawlerRuntime,
    gateway: PersistenceGateway,
    profile_id: UUID | str | None,
    candidate: OpportunityCandidate,
    match: MatchResult,
    threshold: int,
    category: MatchCategory,
) -> bool:
    """
    Persist a candidate and its match when the score clears ``threshold``.

    Returns:
        True when the candidate cleared the threshold
    """
    if match.score < threshold:
        return False
    await save_opportunity(runtime, gateway, candidate)
    await save_match(gateway, profile_id, candidate, match, category)
    return True
