"""In-memory metric recorder that aggregates samples into a summary snapshot."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import numpy as np

from topsload._internal.errors import ScriptError
from topsload._internal.logging import get_logger
from topsload.metrics.models import BUILTIN_TYPES, TREND_PERCENTILES, MetricType

if TYPE_CHECKING:
    from topsload._internal.types import Snapshot

logger = get_logger("metrics.recorder")


class MetricRecorder(Protocol):
    """Narrow interface between load scripts and the metric backend."""

    def record(self, name: str, value: float | bool) -> None:
        """Append one sample to the named metric."""
        ...

    def get_snapshot(self) -> Snapshot:
        """Return aggregated values for every metric with samples."""
        ...


@dataclass
class _MetricSeries:
    type: MetricType
    contains: str
    samples: list[float] = field(default_factory=list)


def _aggregate(series: _MetricSeries, elapsed_seconds: float) -> dict[str, float]:
    arr = np.asarray(series.samples, dtype=np.float64)

    if series.type is MetricType.COUNTER:
        count = float(arr.sum())
        return {"count": count, "rate": count / max(elapsed_seconds, 0.001)}

    if series.type is MetricType.GAUGE:
        return {
            "value": float(arr[-1]),
            "min": float(arr.min()),
            "max": float(arr.max()),
        }

    if series.type is MetricType.RATE:
        passes = int(np.count_nonzero(arr))
        total = int(arr.size)
        return {"rate": passes / total, "passes": passes, "fails": total - passes}

    percentiles = np.percentile(arr, list(TREND_PERCENTILES.values()))
    values = {
        "avg": float(arr.mean()),
        "min": float(arr.min()),
        "max": float(arr.max()),
    }
    for key, value in zip(TREND_PERCENTILES, percentiles, strict=True):
        values[key] = float(value)
    return values


class InMemoryRecorder:
    """Collects metric samples for the lifetime of one test run.

    Samples are appended as they arrive and only aggregated when
    :meth:`get_snapshot` is called. Every virtual user runs on the same
    event loop, so appends need no locking.

    Built-in metrics are defined on construction; scripts define their own
    custom metrics through :meth:`define` (normally via the
    :class:`~topsload.metrics.custom.Rate` and ``Trend`` handles).
    """

    def __init__(self) -> None:
        self._series: dict[str, _MetricSeries] = {}
        self._start = time.monotonic()
        for metric, (metric_type, contains) in BUILTIN_TYPES.items():
            self.define(metric.value, metric_type, contains=contains)

    def define(
        self,
        name: str,
        metric_type: MetricType,
        *,
        contains: str = "default",
    ) -> None:
        """Register a metric.

        Defining the same name twice with the same type is a no-op.

        Raises:
            ScriptError: If *name* is already defined with another type.
        """
        existing = self._series.get(name)
        if existing is not None:
            if existing.type is not metric_type:
                msg = (
                    f"Metric {name!r} is already defined as {existing.type.value}, "
                    f"cannot redefine as {metric_type.value}"
                )
                raise ScriptError(msg)
            return
        self._series[name] = _MetricSeries(type=metric_type, contains=contains)
        logger.debug("Defined %s metric %r", metric_type.value, name)

    def record(self, name: str, value: float | bool) -> None:
        """Append one sample to a defined metric.

        Raises:
            ScriptError: If the metric has not been defined.
        """
        series = self._series.get(name)
        if series is None:
            msg = f"Metric {name!r} is not defined"
            raise ScriptError(msg)
        series.samples.append(float(value))

    def sample_count(self, name: str) -> int:
        series = self._series.get(name)
        return len(series.samples) if series is not None else 0

    def get_snapshot(self, elapsed_seconds: float | None = None) -> Snapshot:
        """Aggregate every metric that has at least one sample.

        Args:
            elapsed_seconds: Run duration used for counter rates. Defaults to
                the time since this recorder was created.

        Returns:
            ``{"metrics": {name: {"type", "contains", "values"}}}``. Metrics
            without samples are left out.
        """
        if elapsed_seconds is None:
            elapsed_seconds = time.monotonic() - self._start

        metrics: dict[str, dict[str, object]] = {}
        for name, series in self._series.items():
            if not series.samples:
                continue
            metrics[name] = {
                "type": series.type.value,
                "contains": series.contains,
                "values": _aggregate(series, elapsed_seconds),
            }
        return {"metrics": metrics}
