"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from hera.api.v1.endpoints import health
from hera.api.v1.router import api_router
from hera.core.config import settings
from hera.core.database import DatabaseClient, create_database_engine, create_session_maker
from hera.core.llm_client import CompletionClient
from hera.notifications.gateway import PushGatewaySink
from hera.pipeline.context import PipelineContext
from hera.pipeline.retry import RetryPolicy
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


def build_completion_client(http_client: httpx.AsyncClient):
    """Completion client from settings, or None when no API key is configured."""
    if not settings.llm.api_key:
        LOGGER.warning("LLM_API_KEY is missing; AI enrichment and clinic generation are disabled")
        return None
    return CompletionClient(
        api_key=settings.llm.api_key,
        model=settings.llm.model,
        base_url=settings.llm.api_url,
        timeout=settings.llm.timeout,
        max_retries=settings.llm.max_retries,
        retry_delay=settings.llm.retry_delay,
        http_client=http_client,
    )


def build_notification_sink(http_client: httpx.AsyncClient):
    """Push gateway sink from settings, or None when no gateway is configured."""
    if not settings.notifications.gateway_url:
        LOGGER.warning("PUSH_GATEWAY_URL is missing; legal updates are stored but not pushed")
        return None
    return PushGatewaySink(
        http_client,
        gateway_url=settings.notifications.gateway_url,
        token=settings.notifications.gateway_token,
        timeout=settings.notifications.timeout,
        retry_policy=RetryPolicy(max_attempts=settings.notifications.max_attempts),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    engine = create_database_engine(settings)
    db_client = DatabaseClient(engine)
    app.state.db_client = db_client
    app.state.session_maker = create_session_maker(engine)

    LOGGER.info("Starting database initialization...")
    try:
        await asyncio.wait_for(db_client.create_tables(), timeout=settings.db_init_timeout)
        LOGGER.info("Database initialized successfully")
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    http_client = httpx.AsyncClient(
        timeout=settings.crawler.http_timeout,
        follow_redirects=True,
    )
    app.state.pipeline_context = PipelineContext.from_settings(
        settings,
        session_factory=app.state.session_maker,
        http_client=http_client,
        llm_client=build_completion_client(http_client),
    )
    app.state.notification_sink = build_notification_sink(http_client)

    yield

    # Shutdown
    LOGGER.info("Shutting down application")
    await http_client.aclose()
    try:
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Clinic and state legal-information ingestion service for HERA",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    application.include_router(api_router, prefix=settings.api_prefix)
    application.include_router(health.router, prefix="/health", tags=["Health"])

    @application.get(
        "/",
        response_model=RootResponse,
        tags=["Root"],
        summary="Root endpoint",
        description="Get basic information about the API",
        operation_id="get_public_root_metadata",
    )
    async def root() -> RootResponse:
        return RootResponse(
            message="Server is running",
            version=settings.app_version,
            docs="/docs",
            health="/health",
        )

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hera.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
