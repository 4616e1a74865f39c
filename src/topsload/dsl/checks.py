"""Named boolean assertions over a value, recorded into the ``checks`` metric."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, TypeVar

from topsload.metrics.models import BuiltinMetric

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from topsload.metrics.recorder import MetricRecorder

T = TypeVar("T")


class CheckTally:
    """Per-check pass/fail counts for the summary's ``root_group``."""

    def __init__(self) -> None:
        self._passes: dict[str, int] = defaultdict(int)
        self._fails: dict[str, int] = defaultdict(int)
        self._order: list[str] = []

    def add(self, name: str, ok: bool) -> None:
        if name not in self._passes and name not in self._fails:
            self._order.append(name)
        if ok:
            self._passes[name] += 1
        else:
            self._fails[name] += 1

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"name": name, "passes": self._passes[name], "fails": self._fails[name]}
            for name in self._order
        ]


def check(
    value: T,
    checks: Mapping[str, Callable[[T], bool]],
    recorder: MetricRecorder,
    tally: CheckTally | None = None,
) -> bool:
    """Evaluate every named predicate against *value*.

    All predicates run even after one fails, and each result is recorded as
    a sample of the ``checks`` rate metric.

    Args:
        value: Object the predicates inspect, typically a Response.
        checks: Mapping of check name to predicate.
        recorder: Metric recorder receiving the ``checks`` samples.
        tally: Optional per-name counter for the summary.

    Returns:
        True only if every predicate returned a truthy value.
    """
    passed = True
    for name, predicate in checks.items():
        ok = bool(predicate(value))
        recorder.record(BuiltinMetric.CHECKS.value, ok)
        if tally is not None:
            tally.add(name, ok)
        passed = passed and ok
    return passed
