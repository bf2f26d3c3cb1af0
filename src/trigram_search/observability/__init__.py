"""Observability module for logging, tracing and metrics."""

from trigram_search.observability.context import get_trace_context, set_trace_context, trace_context
from trigram_search.observability.logging import (
    JsonFormatter,
    configure_logging,
    configure_logging_from_settings,
)
from trigram_search.observability.metrics import (
    BATCH_FAILURES,
    QUERY_COUNT,
    QUERY_LATENCY,
    ROWS_WRITTEN,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from trigram_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "BATCH_FAILURES",
    "QUERY_COUNT",
    "QUERY_LATENCY",
    "ROWS_WRITTEN",
    "JsonFormatter",
    "configure_logging",
    "configure_logging_from_settings",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
