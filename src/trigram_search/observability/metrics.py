"""Prometheus metrics for fuzzy queries and reindexing, bridged to OpenTelemetry."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None}


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        meter = otel_metrics.get_meter(__name__)
        _meter_holder["meter"] = meter
    return meter


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to OTel instruments created on first use."""

    def __init__(
        self,
        prom_metric: Counter | Histogram,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._ensure_otel_instrument().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._ensure_otel_instrument().record(value, labels)


_QUERY_LATENCY_PROM = Histogram(
    "fuzzy_query_latency_seconds",
    "Fuzzy query latency in seconds",
    ["owner_type", "field"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

_QUERY_COUNT_PROM = Counter(
    "fuzzy_queries_total",
    "Total fuzzy queries",
    ["owner_type", "field", "status"],
)

_ROWS_WRITTEN_PROM = Counter(
    "trigram_rows_written_total",
    "Trigram rows written by reindexing",
    ["owner_type", "field", "path"],
)

_BATCH_FAILURES_PROM = Counter(
    "trigram_batch_failures_total",
    "Bulk reindex batches rolled back",
    ["owner_type", "field"],
)

QUERY_LATENCY = MetricBridge(
    _QUERY_LATENCY_PROM,
    otel_name="fuzzy_query_latency_seconds",
    otel_description="Fuzzy query latency in seconds",
    otel_kind="histogram",
)

QUERY_COUNT = MetricBridge(
    _QUERY_COUNT_PROM,
    otel_name="fuzzy_queries_total",
    otel_description="Total fuzzy queries",
    otel_kind="counter",
)

ROWS_WRITTEN = MetricBridge(
    _ROWS_WRITTEN_PROM,
    otel_name="trigram_rows_written_total",
    otel_description="Trigram rows written by reindexing",
    otel_kind="counter",
)

BATCH_FAILURES = MetricBridge(
    _BATCH_FAILURES_PROM,
    otel_name="trigram_batch_failures_total",
    otel_description="Bulk reindex batches rolled back",
    otel_kind="counter",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
