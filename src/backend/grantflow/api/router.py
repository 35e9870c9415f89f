"""
Main API router that aggregates all endpoint routers.
"""

from fastapi import APIRouter

from grantflow.api.endpoints import crawlers

api_router = APIRouter()

api_router.include_router(
    crawlers.router,
    prefix="/crawlers",
    tags=["Crawlers"],
)
