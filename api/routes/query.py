"""
Query Routes
============

Governed natural-language query endpoint and schema inspection.
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.schemas import ErrorResponse, QueryRequest, QueryResponse, SchemaResponse
from observability.logging_config import get_logger
from observability.metrics import track_query_metrics
from observability.tracing import annotate_span, get_tracer
from sqlguard.exceptions import SchemaError
from sqlguard.service import QueryService

router = APIRouter(prefix="/api/v1", tags=["Query"])
logger = get_logger(__name__)
tracer = get_tracer(__name__)


def get_service(request: Request) -> QueryService:
    """Dependency to get the configured service from app state."""
    return request.app.state.service


def get_request_id(request: Request) -> str:
    """Request ID assigned by the telemetry middleware."""
    return request.state.request_id


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Failure before orchestration started"},
    },
    summary="Answer a natural language question with governed SQL",
    description=(
        "Generates SQL, enforces the read-only policy, executes it and summarizes "
        "the results. Validation rejections, exhausted attempts and agent timeouts "
        "are reported in the response body."
    ),
)
async def process_query(
    request: QueryRequest,
    service: QueryService = Depends(get_service),
    request_id: str = Depends(get_request_id),
):
    """
    Process a natural language query.

    Args:
        request: Query request with natural language question
        service: Injected QueryService instance
        request_id: Request ID from the telemetry middleware

    Returns:
        QueryResponse with the full result aggregate
    """
    start_time = time.perf_counter()
    mode = "agent" if request.agent_mode else "retry"

    with tracer.start_as_current_span(f"sqlguard.{mode}") as span:
        try:
            result = await run_in_threadpool(
                service.answer,
                request.query,
                agent_mode=request.agent_mode,
                max_attempts=request.max_attempts,
                max_steps=request.max_steps,
            )
        except SchemaError as e:
            logger.error("Schema unavailable", error=str(e))
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(
                    error="SchemaUnavailable",
                    message=str(e),
                    request_id=request_id,
                ).model_dump(),
            )
        annotate_span(span, result)

    track_query_metrics(result)
    processing_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "Query completed",
        mode=mode,
        attempts=result.attempt_count,
        success=result.succeeded,
    )

    return QueryResponse.from_result(result, request_id, processing_time_ms)


@router.get(
    "/schema",
    response_model=SchemaResponse,
    summary="Database schema",
    description="Returns the schema description given to the generator",
)
async def get_schema(service: QueryService = Depends(get_service)) -> SchemaResponse:
    schema = await run_in_threadpool(service.schema_provider.get_schema)
    return SchemaResponse(schema_text=schema)
