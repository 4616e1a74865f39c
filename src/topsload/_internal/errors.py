"""Custom exception hierarchy for topsload."""

from __future__ import annotations


class TopsLoadError(Exception):
    """Base exception for all topsload errors.

    Every error raised by the package inherits from this class, so callers
    such as the CLI can catch them with a single except clause.
    """


class ConfigError(TopsLoadError):
    """Raised when configuration is invalid or missing.

    Examples:
        - ``TOPSLOAD_REQUEST_TIMEOUT`` is not a positive number.
        - A stage string such as ``"30x:5"`` cannot be parsed.
        - A threshold expression has no comparison operator.
    """


class ScriptError(TopsLoadError):
    """Raised when a load script misuses the metric API.

    Examples:
        - Recording a sample into a metric that was never defined.
        - Redefining a metric name with a different metric type.
    """


class EngineError(TopsLoadError):
    """Raised when the host runtime fails while driving virtual users."""
