"""Shared type aliases for topsload."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

# Aggregated metrics snapshot, shaped like a k6 summary document.
Snapshot = dict[str, Any]

# Coroutine function used for the pause between iterations.
SleepFunc = Callable[[float], Awaitable[None]]
