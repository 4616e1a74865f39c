"""Stage-driven pattern: piecewise-linear ramps between virtual-user targets."""

from __future__ import annotations

from typing import TYPE_CHECKING

from topsload._internal.errors import ConfigError
from topsload.patterns.base import LoadPattern, _validate_positive

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from topsload.options import Stage


class StagesPattern(LoadPattern):
    """Ramp concurrency through an ordered list of stages.

    The run starts at zero virtual users. During each stage the target moves
    linearly from the previous stage's target to this stage's target, so a
    stage whose target equals the previous one is a hold. A zero-length
    stage jumps straight to its target.

    Example::

        pattern = StagesPattern([Stage(30.0, 5), Stage(120.0, 5), Stage(30.0, 0)])
        pattern.target_at(15.0)   # 2 (halfway up the first ramp, rounded)
        pattern.target_at(100.0)  # 5
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            msg = "stages must contain at least one stage"
            raise ConfigError(msg)
        self._stages = tuple(stages)

    @property
    def total_duration(self) -> float:
        return sum(stage.duration for stage in self._stages)

    def target_at(self, elapsed: float) -> int:
        """Return the interpolated virtual-user target at *elapsed* seconds."""
        previous = 0
        stage_start = 0.0
        for stage in self._stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                fraction = (elapsed - stage_start) / stage.duration
                return max(round(previous + (stage.target - previous) * fraction), 0)
            previous = stage.target
            stage_start = stage_end
        return previous

    def iter_concurrency(
        self,
        duration_seconds: float | None = None,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed, target_concurrency)`` across all stages.

        Args:
            duration_seconds: Cut-off for the timeline. Defaults to the sum
                of stage durations.
            tick_interval: Seconds between ticks.

        Yields:
            ``(elapsed_seconds, target_concurrency)`` tuples. The last tick
            always lands on the end of the timeline.
        """
        _validate_positive(tick_interval, "tick_interval")
        end = self.total_duration if duration_seconds is None else duration_seconds

        tick = 0
        elapsed = 0.0
        while elapsed < end:
            yield (elapsed, self.target_at(elapsed))
            tick += 1
            elapsed = tick * tick_interval
        yield (end, self.target_at(end))

    def describe(self) -> str:
        legs = ", ".join(f"{stage.duration:g}s->{stage.target}" for stage in self._stages)
        return f"Stages: {legs} ({self.total_duration:g}s total)"
