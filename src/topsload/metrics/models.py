"""Metric type definitions and the names of built-in metrics."""

from __future__ import annotations

from enum import Enum


class MetricType(str, Enum):
    """How samples of a metric are aggregated.

    - ``COUNTER``: sum of values, plus a per-second rate.
    - ``GAUGE``: last value, with min and max.
    - ``RATE``: fraction of non-zero (true) samples.
    - ``TREND``: distribution with mean, median, extremes and percentiles.
    """

    COUNTER = "counter"
    GAUGE = "gauge"
    RATE = "rate"
    TREND = "trend"


class BuiltinMetric(str, Enum):
    """Metrics recorded by the runtime itself rather than by a script."""

    HTTP_REQS = "http_reqs"
    HTTP_REQ_DURATION = "http_req_duration"
    HTTP_REQ_FAILED = "http_req_failed"
    ITERATIONS = "iterations"
    ITERATION_DURATION = "iteration_duration"
    VUS = "vus"
    CHECKS = "checks"


BUILTIN_TYPES: dict[BuiltinMetric, tuple[MetricType, str]] = {
    BuiltinMetric.HTTP_REQS: (MetricType.COUNTER, "default"),
    BuiltinMetric.HTTP_REQ_DURATION: (MetricType.TREND, "time"),
    BuiltinMetric.HTTP_REQ_FAILED: (MetricType.RATE, "default"),
    BuiltinMetric.ITERATIONS: (MetricType.COUNTER, "default"),
    BuiltinMetric.ITERATION_DURATION: (MetricType.TREND, "time"),
    BuiltinMetric.VUS: (MetricType.GAUGE, "default"),
    BuiltinMetric.CHECKS: (MetricType.RATE, "default"),
}

# Percentiles reported for every trend, keyed as they appear in the snapshot.
TREND_PERCENTILES: dict[str, float] = {"med": 50.0, "p(90)": 90.0, "p(95)": 95.0}
