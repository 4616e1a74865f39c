"""End-of-run summary: derive the headline numbers, print them, export JSON."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from topsload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from topsload._internal.types import Snapshot

logger = get_logger("summary")

SUMMARY_PATH = "/tmp/results.json"  # noqa: S108

_STREAM_TARGETS = ("stdout", "stderr")


@dataclass(frozen=True)
class SummaryRecord:
    """Headline numbers derived from the aggregated metrics snapshot.

    Attributes:
        total_requests: ``http_reqs`` count.
        failed_requests: ``http_req_failed`` passes (requests that failed).
        avg_response_time: Mean ``http_req_duration`` in milliseconds.
        p95_response_time: 95th percentile ``http_req_duration`` in ms.
        error_rate: ``errors`` rate, a fraction between 0 and 1.
    """

    total_requests: float = 0
    failed_requests: float = 0
    avg_response_time: float = 0.0
    p95_response_time: float = 0.0
    error_rate: float = 0.0


def _metric_value(metrics: Mapping[str, Any], metric: str, key: str) -> Any:
    entry = metrics.get(metric)
    if not entry:
        return 0
    return entry.get("values", {}).get(key, 0)


def build_summary(data: Snapshot) -> SummaryRecord:
    """Extract the summary fields, using zero for any missing metric."""
    metrics = data.get("metrics") or {}
    return SummaryRecord(
        total_requests=_metric_value(metrics, "http_reqs", "count"),
        failed_requests=_metric_value(metrics, "http_req_failed", "passes"),
        avg_response_time=_metric_value(metrics, "http_req_duration", "avg"),
        p95_response_time=_metric_value(metrics, "http_req_duration", "p(95)"),
        error_rate=_metric_value(metrics, "errors", "rate"),
    )


def _format_count(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_summary(summary: SummaryRecord) -> list[str]:
    """Render the six report lines."""
    return [
        "=== Load Test Summary ===",
        f"Total Requests: {_format_count(summary.total_requests)}",
        f"Failed Requests: {_format_count(summary.failed_requests)}",
        f"Average Response Time: {summary.avg_response_time:.2f}ms",
        f"P95 Response Time: {summary.p95_response_time:.2f}ms",
        f"Error Rate: {summary.error_rate * 100:.2f}%",
    ]


def handle_summary(data: Snapshot, stream: IO[str] | None = None) -> dict[str, str]:
    """Print the report and ask the runtime to export the raw snapshot.

    Args:
        data: Full aggregated snapshot at the end of the run.
        stream: Where the report is printed. Defaults to stdout.

    Returns:
        Mapping of output destination to content: the whole snapshot as
        JSON indented by two spaces, destined for ``/tmp/results.json``.
    """
    if stream is None:
        stream = sys.stdout
    for line in format_summary(build_summary(data)):
        print(line, file=stream)

    return {SUMMARY_PATH: json.dumps(data, indent=2)}


def write_outputs(outputs: Mapping[str, str]) -> list[Path]:
    """Deliver the mapping returned by :func:`handle_summary`.

    ``"stdout"`` and ``"stderr"`` keys are written to those streams; every
    other key is a file path, created along with missing parent directories.

    Returns:
        Paths of the files written.
    """
    written: list[Path] = []
    for target, content in outputs.items():
        if target in _STREAM_TARGETS:
            getattr(sys, target).write(content)
            continue
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        logger.info("Summary written to %s", path)
        written.append(path)
    return written
