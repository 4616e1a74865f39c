"""Abstract base class for concurrency patterns."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from topsload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator


class LoadPattern(ABC):
    """Abstract base for concurrency patterns.

    A pattern defines how many virtual users should be active at each point
    in time. Concrete subclasses implement :meth:`iter_concurrency`.
    """

    @abstractmethod
    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target_concurrency)`` at each tick.

        Args:
            duration_seconds: Total duration to generate ticks for.
            tick_interval: Seconds between each yielded tick.

        Yields:
            Time offset from the start and the number of virtual users that
            should be active at that moment.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description for logs and banners."""


def _validate_positive(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is not strictly positive."""
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigError(msg)
