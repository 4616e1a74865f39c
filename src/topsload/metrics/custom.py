"""Typed metric handles bound to a recorder."""

from __future__ import annotations

from typing import TYPE_CHECKING

from topsload.metrics.models import MetricType

if TYPE_CHECKING:
    from topsload.metrics.recorder import InMemoryRecorder


class _Metric:
    metric_type: MetricType
    contains = "default"

    def __init__(self, name: str, recorder: InMemoryRecorder) -> None:
        self.name = name
        self._recorder = recorder
        recorder.define(name, self.metric_type, contains=self.contains)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Counter(_Metric):
    """Cumulative sum, e.g. number of retries."""

    metric_type = MetricType.COUNTER

    def add(self, value: float = 1.0) -> None:
        self._recorder.record(self.name, value)


class Gauge(_Metric):
    """Last-value metric that also tracks its min and max."""

    metric_type = MetricType.GAUGE

    def add(self, value: float) -> None:
        self._recorder.record(self.name, value)


class Rate(_Metric):
    """Fraction of samples that were true.

    ``Rate("errors").add(not passed)`` yields the share of failed iterations.
    """

    metric_type = MetricType.RATE

    def add(self, value: bool) -> None:
        self._recorder.record(self.name, bool(value))


class Trend(_Metric):
    """Distribution of numeric samples (mean, median, percentiles)."""

    metric_type = MetricType.TREND
    contains = "time"

    def add(self, value: float) -> None:
        self._recorder.record(self.name, value)
