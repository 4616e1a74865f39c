"""Run options: the ramp stage schedule and pass/fail thresholds."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from topsload._internal.errors import ConfigError

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_THRESHOLD_EXPR = re.compile(
    r"^\s*(?P<agg>[a-z]+(?:\(\d+(?:\.\d+)?\))?)"
    r"\s*(?P<op><=|>=|==|!=|<|>)"
    r"\s*(?P<bound>-?\d+(?:\.\d+)?)\s*$"
)

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

_OPERATORS = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def parse_duration(value: str | float) -> float:
    """Parse a k6-style duration into seconds.

    Accepts bare numbers (seconds) and unit strings such as ``"30s"``,
    ``"2m"``, ``"1m30s"`` or ``"500ms"``.

    Args:
        value: Duration to parse.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the value is malformed, negative or not finite.
    """
    if isinstance(value, int | float):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                msg = f"Invalid duration: {value!r}"
                raise ConfigError(msg) from None
            seconds = sum(float(n) * _UNIT_SECONDS[u] for n, u in parts)

    if not math.isfinite(seconds):
        msg = f"Duration must be finite, got: {value!r}"
        raise ConfigError(msg)
    if seconds < 0:
        msg = f"Duration must be non-negative, got: {value!r}"
        raise ConfigError(msg)
    return seconds


def _format_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        return f"{int(seconds // 60)}m"
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds}s"


@dataclass(frozen=True)
class Stage:
    """One leg of the virtual-user ramp.

    Attributes:
        duration: Seconds spent moving from the previous target to ``target``.
        target: Virtual-user count reached at the end of the stage.
    """

    duration: float
    target: int

    def __post_init__(self) -> None:
        if self.duration < 0:
            msg = f"Stage duration must be non-negative, got {self.duration}"
            raise ConfigError(msg)
        if self.target < 0:
            msg = f"Stage target must be non-negative, got {self.target}"
            raise ConfigError(msg)

    @classmethod
    def from_string(cls, text: str) -> Stage:
        """Build a stage from ``"<duration>:<target>"``, e.g. ``"30s:5"``."""
        duration_str, sep, target_str = text.rpartition(":")
        if not sep:
            msg = f"Stage must look like '<duration>:<target>', got: {text!r}"
            raise ConfigError(msg)
        try:
            target = int(target_str)
        except ValueError:
            msg = f"Stage target must be an integer, got: {target_str!r}"
            raise ConfigError(msg) from None
        return cls(duration=parse_duration(duration_str), target=target)

    def to_dict(self) -> dict[str, Any]:
        return {"duration": _format_duration(self.duration), "target": self.target}


@dataclass(frozen=True)
class ParsedThreshold:
    """A threshold expression split into its parts.

    Attributes:
        aggregation: Key into the metric's aggregated values, e.g. ``"p(95)"``.
        operator: Comparison operator.
        bound: Right-hand side of the comparison.
    """

    aggregation: str
    operator: str
    bound: float

    def holds(self, value: float) -> bool:
        """Return True if ``value <operator> bound`` is satisfied."""
        return bool(_OPERATORS[self.operator](value, self.bound))


@dataclass(frozen=True)
class Threshold:
    """A pass/fail condition on one metric, e.g. ``errors: rate<0.1``."""

    metric: str
    expression: str

    def parse(self) -> ParsedThreshold:
        """Split the expression into aggregation, operator and bound.

        Raises:
            ConfigError: If the expression is malformed.
        """
        match = _THRESHOLD_EXPR.match(self.expression)
        if match is None:
            msg = f"Invalid threshold for {self.metric!r}: {self.expression!r}"
            raise ConfigError(msg)
        return ParsedThreshold(
            aggregation=match["agg"],
            operator=match["op"],
            bound=float(match["bound"]),
        )


@dataclass(frozen=True)
class Options:
    """Complete run configuration consumed by the host runtime."""

    stages: tuple[Stage, ...]
    thresholds: tuple[Threshold, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.stages:
            msg = "At least one stage is required"
            raise ConfigError(msg)
        for threshold in self.thresholds:
            threshold.parse()

    @property
    def total_duration(self) -> float:
        """Sum of all stage durations in seconds."""
        return sum(stage.duration for stage in self.stages)

    @property
    def max_vus(self) -> int:
        return max(stage.target for stage in self.stages)

    def to_dict(self) -> dict[str, Any]:
        """Render the options block embedded in the summary snapshot."""
        thresholds: dict[str, list[str]] = {}
        for threshold in self.thresholds:
            thresholds.setdefault(threshold.metric, []).append(threshold.expression)
        return {
            "stages": [stage.to_dict() for stage in self.stages],
            "thresholds": thresholds,
        }


DEFAULT_STAGES = (
    Stage(duration=30.0, target=5),  # ramp up to 5
    Stage(duration=120.0, target=5),
    Stage(duration=30.0, target=10),  # ramp up to 10
    Stage(duration=60.0, target=10),
    Stage(duration=30.0, target=0),  # ramp down
)

DEFAULT_THRESHOLDS = (
    Threshold(metric="http_req_duration", expression="p(95)<2000"),
    Threshold(metric="errors", expression="rate<0.1"),
)

DEFAULT_OPTIONS = Options(stages=DEFAULT_STAGES, thresholds=DEFAULT_THRESHOLDS)
