"""Pass/fail evaluation of thresholds over the aggregated snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from topsload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from topsload._internal.types import Snapshot
    from topsload.options import Threshold

logger = get_logger("engine.thresholds")


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of one threshold.

    Attributes:
        threshold: The threshold that was evaluated.
        ok: Whether the condition held.
        observed: Aggregated value compared, or None if the metric or
            aggregation was absent from the snapshot.
    """

    threshold: Threshold
    ok: bool
    observed: float | None


def evaluate_thresholds(
    snapshot: Snapshot,
    thresholds: Iterable[Threshold],
) -> list[ThresholdResult]:
    """Check every threshold and annotate the snapshot with the outcome.

    Each evaluated metric entry gains a ``thresholds`` mapping of
    ``expression -> {"ok": bool}``. A threshold on a metric with no samples
    passes, since nothing was observed that could violate it. A present
    metric lacking the requested aggregation fails.

    Args:
        snapshot: Snapshot from the recorder; modified in place.
        thresholds: Thresholds to evaluate.

    Returns:
        One result per threshold, in input order.
    """
    metrics = snapshot.setdefault("metrics", {})
    results: list[ThresholdResult] = []

    for threshold in thresholds:
        parsed = threshold.parse()
        entry = metrics.get(threshold.metric)
        if entry is None:
            logger.info(
                "Threshold not evaluated, no samples: %s %s",
                threshold.metric,
                threshold.expression,
            )
            results.append(ThresholdResult(threshold=threshold, ok=True, observed=None))
            continue

        observed: float | None = None
        value = entry.get("values", {}).get(parsed.aggregation)
        if value is not None:
            observed = float(value)

        ok = observed is not None and parsed.holds(observed)
        entry.setdefault("thresholds", {})[threshold.expression] = {"ok": ok}

        if not ok:
            logger.warning(
                "Threshold failed: %s %s (observed=%s)",
                threshold.metric,
                threshold.expression,
                "n/a" if observed is None else f"{observed:.4f}",
            )
        results.append(ThresholdResult(threshold=threshold, ok=ok, observed=observed))

    return results
