"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from barshift.api.v1.router import api_router
from barshift.config import settings
from barshift.core.approval_policy import load_policy
from barshift.core.redis_client import check_redis_connection, close_redis_connection
from barshift.core.timeframes import venue_zone
from barshift.database import check_database_connection, engine
from barshift.middleware.error_handler import register_exception_handlers
from barshift.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Validates scheduling policy up front so a bad approver table or time
    zone fails at startup instead of on the first request.
    """
    logger.info("application_startup", environment=settings.environment)

    load_policy(settings.override_approver_policy)
    logger.info(
        "scheduling_policy_loaded",
        venue_timezone=str(venue_zone()),
        unranked_tiebreak=settings.unranked_tiebreak,
    )

    if await check_database_connection():
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    if await check_redis_connection():
        logger.info("redis_connected", events_channel=settings.events_channel)
    else:
        logger.warning("redis_connection_failed", note="Domain events will not be published")

    yield

    logger.info("application_shutdown")
    await engine.dispose()
    logger.info("database_connections_closed")
    close_redis_connection()
    logger.info("redis_connection_closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shift staffing engine: auto-fill, overrides, trades and tip baselines",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_v1_prefix)

# Prometheus instrumentation
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service banner."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "barshift.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
