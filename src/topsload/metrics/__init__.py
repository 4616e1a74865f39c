"""Metric recording and aggregation for topsload."""

from __future__ import annotations

from topsload.metrics.custom import Counter, Gauge, Rate, Trend
from topsload.metrics.models import BuiltinMetric, MetricType
from topsload.metrics.recorder import InMemoryRecorder, MetricRecorder

__all__ = [
    "BuiltinMetric",
    "Counter",
    "Gauge",
    "InMemoryRecorder",
    "MetricRecorder",
    "MetricType",
    "Rate",
    "Trend",
]
