"""
OpenTelemetry Tracing
=====================

Distributed tracing for request flow visualization.
"""

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from sqlguard import __version__
from sqlguard.models import QueryResult

logger = structlog.get_logger(__name__)


def setup_tracing(
    app: FastAPI,
    service_name: str = "sqlguard-api",
    otlp_endpoint: str = "disabled",
    environment: str = "development",
) -> None:
    """
    Set up OpenTelemetry tracing for the application.

    Args:
        app: FastAPI application instance
        service_name: Name of the service for traces
        otlp_endpoint: OTLP collector endpoint, or "disabled"
        environment: Deployment environment name
    """
    resource = Resource.create({
        SERVICE_NAME: service_name,
        "service.version": __version__,
        "deployment.environment": environment,
    })

    provider = TracerProvider(resource=resource)

    if otlp_endpoint and otlp_endpoint != "disabled":
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info("OTLP span export enabled", endpoint=otlp_endpoint)

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)


def get_tracer(name: str = __name__) -> trace.Tracer:
    """Get a tracer; a no-op tracer until ``setup_tracing`` has run."""
    return trace.get_tracer(name)


def annotate_span(span: trace.Span, result: QueryResult) -> None:
    """Record the governance outcome on a span."""
    span.set_attribute("query.agent_mode", result.agent_mode)
    span.set_attribute("query.succeeded", result.succeeded)
    span.set_attribute("query.attempts", result.attempt_count)
    span.set_attribute("query.errors", len(result.error_history))
    span.set_attribute("query.is_valid", result.is_valid)
