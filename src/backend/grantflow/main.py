"""
FastAPI entry point for the funding discovery service.

The app owns one gateway, one HTTP fetcher and one crawler manager,
all created at startup and kept on ``app.state`` for the endpoints.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from grantflow.api.router import api_router
from grantflow.core.config import get_settings
from grantflow.core.exceptions import AppException
from grantflow.core.logging import get_logger, setup_logging
from grantflow.crawlers import build_manager
from grantflow.db.gateway import SqlAlchemyGateway
from grantflow.db.session import close_db, get_engine, get_session_factory
from grantflow.schemas.common import ErrorDetail, ErrorResponse, HealthResponse
from grantflow.services.fetcher import Fetcher

logger = get_logger(__name__)


async def verify_database(engine: AsyncEngine) -> None:
    """Fail startup early when the database is unreachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        raise
    logger.info("Database connection verified")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, check the database and wire the crawlers.
    Shutdown: release the HTTP client and the connection pool.
    """
    setup_logging()
    settings = get_settings()
    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    engine = get_engine()
    await verify_database(engine)

    fetcher = Fetcher()
    app.state.gateway = SqlAlchemyGateway(get_session_factory(engine))
    app.state.crawler_manager = build_manager(app.state.gateway, fetcher)
    logger.info(
        "Crawlers registered",
        crawlers=[c.name for c in app.state.crawler_manager.get_all()],
    )

    yield

    logger.info("Application shutting down")
    await fetcher.aclose()
    await close_db()


def create_application() -> FastAPI:
    """
    Application factory.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Funding opportunity discovery and profile matching",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.exception_handler(AppException)
    async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
        logger.warning(
            "Request failed",
            error_code=exc.error_code,
            message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", error=str(exc), path=request.url.path)
        body = ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"error": str(exc)} if settings.debug else {},
            )
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Liveness check that also reports how many crawlers are registered."""
        manager = getattr(request.app.state, "crawler_manager", None)
        return HealthResponse(
            version=settings.app_version,
            environment=settings.environment,
            crawlers_registered=len(manager.get_all()) if manager else 0,
        )

    return app


app = create_application()


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "grantflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
