"""
Crawler trigger and reporting endpoints.

Run triggers schedule work as background tasks and return immediately;
outcomes are visible through ``/status``, ``/stats`` and the logs.
Only ``/crawl-url`` runs synchronously.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status

from grantflow.core.exceptions import CrawlerNotFoundException, EntityNotFoundException
from grantflow.core.logging import get_logger
from grantflow.crawlers import CrawlerManager, WebsiteCrawler
from grantflow.db.gateway import PersistenceGateway
from grantflow.matching import build_criteria
from grantflow.schemas.common import ErrorResponse
from grantflow.schemas.crawler import (
    CrawlerInfo,
    CrawlerStatsResponse,
    CrawlerStatusResponse,
    CrawlTriggerResponse,
    CrawlUrlRequest,
    CrawlUrlResponse,
    MatchResponse,
    RunCrawlersRequest,
    RunForProfileRequest,
)

logger = get_logger(__name__)
router = APIRouter()


def get_manager(request: Request) -> CrawlerManager:
    return request.app.state.crawler_manager


def get_gateway(request: Request) -> PersistenceGateway:
    return request.app.state.gateway


Manager = Annotated[CrawlerManager, Depends(get_manager)]
Gateway = Annotated[PersistenceGateway, Depends(get_gateway)]


@router.get("/status", response_model=list[CrawlerStatusResponse])
async def get_crawler_status(manager: Manager) -> list[CrawlerStatusResponse]:
    """Current state of every registered crawler."""
    return [CrawlerStatusResponse(**state) for state in manager.get_status()]


@router.get("/list", response_model=list[CrawlerInfo])
async def list_crawlers(manager: Manager) -> list[CrawlerInfo]:
    return [CrawlerInfo(name=c.name, description=c.description) for c in manager.get_all()]


@router.post(
    "/run-all",
    response_model=CrawlTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def run_all_crawlers(
    manager: Manager,
    background_tasks: BackgroundTasks,
    body: RunCrawlersRequest | None = None,
) -> CrawlTriggerResponse:
    """Run every crawler sequentially in the background."""
    profile_ids = body.profile_ids if body else []
    background_tasks.add_task(manager.run_all, profile_ids)

    logger.info("Scheduled all crawlers", profile_ids=len(profile_ids))
    return CrawlTriggerResponse(
        message="Crawlers started",
        crawlers=[c.name for c in manager.get_all()],
        profile_ids=profile_ids,
    )


@router.post(
    "/run/{name}",
    response_model=CrawlTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}},
)
async def run_crawler(
    name: str,
    manager: Manager,
    background_tasks: BackgroundTasks,
    body: RunCrawlersRequest | None = None,
) -> CrawlTriggerResponse:
    """Run one crawler in the background."""
    crawler = manager.get_or_raise(name)
    profile_ids = body.profile_ids if body else []
    background_tasks.add_task(crawler.run, profile_ids)

    logger.info("Scheduled crawler", crawler=name, profile_ids=len(profile_ids))
    return CrawlTriggerResponse(
        message=f"Crawler {name} started",
        crawlers=[name],
        profile_ids=profile_ids,
    )


@router.post(
    "/run-for-profile/{profile_id}",
    response_model=CrawlTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}},
)
async def run_for_profile(
    profile_id: UUID,
    manager: Manager,
    gateway: Gateway,
    background_tasks: BackgroundTasks,
    body: RunForProfileRequest | None = None,
) -> CrawlTriggerResponse:
    """
    Run crawlers for a single profile in the background.

    Runs the requested subset when ``crawlers`` is given (unknown names
    are skipped), otherwise every crawler.
    """
    profile = await gateway.get_profile(profile_id)
    if profile is None:
        raise EntityNotFoundException("Profile", str(profile_id))

    requested = body.crawlers if body and body.crawlers else None
    if requested:
        names = [n for n in requested if manager.get(n) is not None]
        background_tasks.add_task(manager.run_selected, requested, [profile_id])
    else:
        names = [c.name for c in manager.get_all()]
        background_tasks.add_task(manager.run_all, [profile_id])

    logger.info("Scheduled crawlers for profile", profile_id=str(profile_id), crawlers=names)
    return CrawlTriggerResponse(
        message=f"Crawlers started for profile {profile.get('name')}",
        crawlers=names,
        profile_ids=[profile_id],
    )


@router.post("/crawl-url", response_model=CrawlUrlResponse)
async def crawl_url(
    body: CrawlUrlRequest,
    manager: Manager,
    gateway: Gateway,
) -> CrawlUrlResponse:
    """
    Extract opportunities from a single page and wait for the result.

    With a known ``profile_id`` the page's opportunities are scored
    against that profile; otherwise they are saved unscored.
    """
    crawler = manager.get("website")
    if not isinstance(crawler, WebsiteCrawler):
        raise CrawlerNotFoundException("website")

    criteria = None
    if body.profile_id is not None:
        profile = await gateway.get_profile(body.profile_id)
        if profile is None:
            logger.warning("Profile not found, crawling without criteria", profile_id=str(body.profile_id))
        else:
            criteria = build_criteria(profile)

    opportunities = await crawler.crawl_url(
        body.url,
        criteria,
        str(body.profile_id) if criteria is not None and body.profile_id else None,
    )
    return CrawlUrlResponse(
        url=body.url,
        opportunities_found=len(opportunities),
        opportunities=opportunities,
    )


@router.get("/matches/{profile_id}", response_model=list[MatchResponse])
async def list_profile_matches(profile_id: UUID, gateway: Gateway) -> list[MatchResponse]:
    """Matches for a profile with their opportunity details, best score first."""
    rows = await gateway.list_matches_for_profile(profile_id)
    return [MatchResponse(**row) for row in rows]


@router.get("/stats", response_model=CrawlerStatsResponse)
async def get_crawler_stats(manager: Manager, gateway: Gateway) -> CrawlerStatsResponse:
    stats = await gateway.get_stats()
    return CrawlerStatsResponse(
        **stats,
        crawlers=[CrawlerStatusResponse(**state) for state in manager.get_status()],
    )
