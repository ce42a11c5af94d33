"""
FastAPI Application
===================

Main FastAPI application for the SQLGuard query governance service.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes.health import router as health_router
from api.routes.query import router as query_router
from api.schemas import ErrorResponse
from observability.logging_config import get_logger, setup_logging
from observability.metrics import metrics_endpoint, setup_metrics
from observability.tracing import setup_tracing
from sqlguard.config import Settings, get_settings
from sqlguard.database import SQLiteExecutor, SQLiteSchemaProvider, create_sample_database
from sqlguard.llm import LLMInterface, MockLLM, OpenAIChatLLM
from sqlguard.service import QueryService

logger = get_logger(__name__)


# Canned responses used when no LLM API key is configured
DEMO_RESPONSES = {
    "insightful summary": ["The query ran successfully; see the returned rows."],
    "premium": ["SELECT name, email FROM customers WHERE tier = 'premium'"],
    "revenue": ["SELECT SUM(amount) AS revenue FROM orders"],
    "orders": ["SELECT * FROM orders LIMIT 10"],
    "products": ["SELECT name, price FROM products ORDER BY price DESC LIMIT 5"],
    "customers": ["SELECT * FROM customers LIMIT 10"],
}


def create_llms(settings: Settings) -> tuple[LLMInterface, LLMInterface]:
    """Return (retry generator, agent generator)."""
    if settings.llm_api_key is None:
        logger.warning("No LLM API key configured, using MockLLM")
        llm = MockLLM(responses=DEMO_RESPONSES)
        return llm, llm

    api_key = settings.llm_api_key.get_secret_value()
    common = {
        "api_key": api_key,
        "base_url": settings.llm_base_url,
        "timeout": settings.llm_timeout,
    }
    return (
        OpenAIChatLLM(model=settings.llm_model, **common),
        OpenAIChatLLM(model=settings.agent_model, **common),
    )


def create_service(settings: Settings) -> QueryService:
    """
    Create and configure the query service.

    The configured database is only ever opened read-only. Demo tables are
    created only when ``create_demo_db`` is set and the file is missing.
    """
    if settings.create_demo_db and not Path(settings.database_path).exists():
        logger.info("Creating demo database", path=settings.database_path)
        create_sample_database(settings.database_path)
    llm, agent_llm = create_llms(settings)

    return QueryService(
        llm=llm,
        agent_llm=agent_llm,
        executor=SQLiteExecutor(settings.database_path, timeout=settings.db_timeout),
        schema_provider=SQLiteSchemaProvider(
            settings.database_path, timeout=settings.db_timeout
        ),
        max_attempts=settings.max_attempts,
        max_steps=settings.max_steps,
        backoff_base=settings.backoff_base,
        observation_limit=settings.observation_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    settings = app.state.settings
    logger.info("Starting SQLGuard API", version=__version__)

    if getattr(app.state, "service", None) is None:
        app.state.service = create_service(settings)

    yield

    logger.info("Shutting down SQLGuard API")
    app.state.service.close()


def create_app(settings: Settings | None = None, service: QueryService | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (default: from the environment)
        service: Preconfigured service; built from settings at startup if omitted
    """
    settings = settings or get_settings()
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_format.lower() == "json" or None,
        environment=settings.environment,
    )

    app = FastAPI(
        title="SQLGuard API",
        description=(
            "Natural language to SQL with a read-only policy sandbox, "
            "bounded self-correction and a tool-using agent mode."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(query_router)

    setup_metrics(app, environment=settings.environment)
    app.add_route("/metrics", metrics_endpoint)
    setup_tracing(
        app,
        otlp_endpoint=settings.otlp_endpoint,
        environment=settings.environment,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        request_id = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", error=str(exc))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
