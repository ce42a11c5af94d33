"""
Observability Module
====================

Full-stack observability: metrics, tracing, and structured logging.
"""

from observability.metrics import setup_metrics, track_query_metrics
from observability.tracing import annotate_span, get_tracer, setup_tracing
from observability.logging_config import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)

__all__ = [
    "setup_metrics",
    "track_query_metrics",
    "setup_tracing",
    "get_tracer",
    "annotate_span",
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
