"""Configuration loading for topsload."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from topsload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_TARGET_URL = "http://localhost:8080"
DEFAULT_REQUEST_TIMEOUT = 60.0

TARGET_URL_VAR = "TARGET_URL"
REQUEST_TIMEOUT_VAR = "TOPSLOAD_REQUEST_TIMEOUT"


@dataclass(frozen=True)
class TopsLoadConfig:
    """Resolved run configuration.

    Attributes:
        target_url: Base URL every endpoint path is appended to.
        request_timeout: Total timeout for a single request in seconds.
    """

    target_url: str = DEFAULT_TARGET_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def resolve_target_url(env: Mapping[str, str] | None = None) -> str:
    """Return ``TARGET_URL`` from *env*, or the local default when unset or empty."""
    if env is None:
        env = os.environ
    return env.get(TARGET_URL_VAR) or DEFAULT_TARGET_URL


def load_config(env: Mapping[str, str] | None = None) -> TopsLoadConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        TARGET_URL: Base URL of the service under test.
        TOPSLOAD_REQUEST_TIMEOUT: Request timeout in seconds (default: 60.0).

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Populated TopsLoadConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    if env is None:
        env = os.environ

    timeout_str = env.get(REQUEST_TIMEOUT_VAR) or str(DEFAULT_REQUEST_TIMEOUT)
    try:
        timeout = float(timeout_str)
    except ValueError:
        msg = f"{REQUEST_TIMEOUT_VAR} must be a number, got: {timeout_str!r}"
        raise ConfigError(msg) from None

    if not math.isfinite(timeout) or timeout <= 0:
        msg = f"{REQUEST_TIMEOUT_VAR} must be positive and finite, got: {timeout}"
        raise ConfigError(msg)

    return TopsLoadConfig(
        target_url=resolve_target_url(env),
        request_timeout=timeout,
    )
