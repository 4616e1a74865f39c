"""topsload: synthetic HTTP load against the TOPS health and status endpoints."""

from __future__ import annotations

from topsload.dsl.checks import check
from topsload.dsl.http_client import HttpClient, Response
from topsload.metrics.custom import Counter, Gauge, Rate, Trend
from topsload.metrics.recorder import InMemoryRecorder, MetricRecorder
from topsload.options import DEFAULT_OPTIONS, Options, Stage, Threshold
from topsload.script import ENDPOINTS, LoadTestScript
from topsload.summary import SummaryRecord, build_summary, handle_summary

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_OPTIONS",
    "ENDPOINTS",
    "Counter",
    "Gauge",
    "HttpClient",
    "InMemoryRecorder",
    "LoadTestScript",
    "MetricRecorder",
    "Options",
    "Rate",
    "Response",
    "Stage",
    "SummaryRecord",
    "Threshold",
    "Trend",
    "build_summary",
    "check",
    "handle_summary",
]
