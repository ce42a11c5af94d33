"""
Prometheus Metrics
==================

Application metrics for monitoring and alerting.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    multiprocess,
)

from sqlguard import __version__
from sqlguard.agent import TIMEOUT_ANSWER
from sqlguard.models import QueryResult

# Create a custom registry for this application
REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "sqlguard",
    "SQLGuard application information",
    registry=REGISTRY,
)

QUERIES_TOTAL = Counter(
    "sqlguard_queries_total",
    "Total number of governed queries",
    ["mode", "outcome"],  # retry|agent, success|failure|timeout
    registry=REGISTRY,
)

QUERY_DURATION = Histogram(
    "sqlguard_query_duration_seconds",
    "Orchestrator duration in seconds",
    ["mode"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

QUERY_ATTEMPTS = Histogram(
    "sqlguard_query_attempts",
    "Attempts (retry mode) or steps (agent mode) consumed per query",
    ["mode"],
    buckets=[1, 2, 3, 4, 5, 10],
    registry=REGISTRY,
)

RECORDED_ERRORS = Counter(
    "sqlguard_recorded_errors_total",
    "Recoverable errors recorded in the error history, by kind",
    ["kind"],
    registry=REGISTRY,
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=REGISTRY,
)

ACTIVE_QUERIES = Gauge(
    "sqlguard_active_queries",
    "Number of queries currently being processed",
    registry=REGISTRY,
)


def setup_metrics(app: FastAPI, environment: str = "development") -> None:
    """
    Set up Prometheus metrics for the FastAPI application.

    Args:
        app: FastAPI application instance
        environment: Deployment environment name
    """
    APP_INFO.info({
        "version": __version__,
        "environment": environment,
    })

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        """Middleware to track HTTP metrics."""
        start_time = time.perf_counter()

        is_query_endpoint = request.url.path == "/api/v1/query"
        if is_query_endpoint:
            ACTIVE_QUERIES.inc()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code,
            ).inc()

            HTTP_REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path,
            ).observe(duration)

            return response
        finally:
            if is_query_endpoint:
                ACTIVE_QUERIES.dec()


def query_outcome(result: QueryResult) -> str:
    if not result.succeeded:
        return "failure"
    if result.agent_mode and result.final_answer == TIMEOUT_ANSWER:
        return "timeout"
    return "success"


def track_query_metrics(result: QueryResult) -> None:
    """
    Track metrics for a completed query.

    Args:
        result: Aggregate returned by an orchestrator
    """
    mode = "agent" if result.agent_mode else "retry"
    QUERIES_TOTAL.labels(mode=mode, outcome=query_outcome(result)).inc()
    QUERY_DURATION.labels(mode=mode).observe(result.elapsed_time)
    QUERY_ATTEMPTS.labels(mode=mode).observe(result.attempt_count)

    for error in result.error_history:
        RECORDED_ERRORS.labels(kind=error.kind.value).inc()


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    # Handle multiprocess mode if using gunicorn
    try:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        metrics = generate_latest(registry)
    except ValueError:
        # Not in multiprocess mode
        metrics = generate_latest(REGISTRY)

    return Response(
        content=metrics,
        media_type=CONTENT_TYPE_LATEST,
    )
