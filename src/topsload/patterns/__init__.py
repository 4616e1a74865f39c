"""Virtual-user concurrency patterns.

Patterns implement :class:`LoadPattern` and yield
``(elapsed_seconds, target_concurrency)`` tuples via
:meth:`LoadPattern.iter_concurrency`.
"""

from __future__ import annotations

from topsload.patterns.base import LoadPattern
from topsload.patterns.stages import StagesPattern

__all__ = ["LoadPattern", "StagesPattern"]
