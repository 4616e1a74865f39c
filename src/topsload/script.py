"""The load script: one virtual-user iteration against the TOPS endpoints.

Each iteration picks one endpoint at random, sends a GET, records the
latency and pass/fail outcome into the ``response_time`` trend and the
``errors`` rate, then pauses for one to three seconds.

Metrics, randomness, environment and sleeping are all injected so a run
can be reproduced under test.
"""

from __future__ import annotations

import asyncio
import math
import os
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from topsload._internal.config import DEFAULT_TARGET_URL, resolve_target_url
from topsload.dsl.checks import CheckTally, check
from topsload.metrics.custom import Rate, Trend

if TYPE_CHECKING:
    from collections.abc import Mapping

    from topsload._internal.types import SleepFunc
    from topsload.dsl.http_client import HttpClient, Response
    from topsload.metrics.recorder import InMemoryRecorder

__all__ = [
    "DEFAULT_TARGET_URL",
    "ENDPOINTS",
    "IterationResult",
    "LoadTestScript",
]

ENDPOINTS: tuple[str, ...] = (
    "/api/v1/health",
    "/api/v1/status",
)

ERRORS_METRIC = "errors"
RESPONSE_TIME_METRIC = "response_time"

MAX_DURATION_MS = 2000.0

CHECK_STATUS = "status is 200"
CHECK_DURATION = "response time < 2000ms"

RESPONSE_CHECKS = {
    CHECK_STATUS: lambda r: r.status == 200,
    CHECK_DURATION: lambda r: r.duration_ms < MAX_DURATION_MS,
}


@dataclass(frozen=True)
class IterationResult:
    """What a single iteration did, for logging and tests."""

    url: str
    status: int
    duration_ms: float
    passed: bool
    sleep_seconds: float


class LoadTestScript:
    """Virtual-user behaviour for the TOPS endpoint load test.

    Args:
        recorder: Metric backend for this run. The script defines its
            ``errors`` rate and ``response_time`` trend on it.
        rng: Random source for endpoint choice and think time.
        env: Environment read for ``TARGET_URL`` on every iteration.
        sleep: Coroutine used for the pause after each request.
    """

    def __init__(
        self,
        recorder: InMemoryRecorder,
        *,
        rng: random.Random | None = None,
        env: Mapping[str, str] | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.recorder = recorder
        self.errors = Rate(ERRORS_METRIC, recorder)
        self.response_time = Trend(RESPONSE_TIME_METRIC, recorder)
        self.check_tally = CheckTally()
        self._rng = rng if rng is not None else random.Random()  # noqa: S311
        self._env = env if env is not None else os.environ
        self._sleep = sleep

    def target_url(self) -> str:
        return resolve_target_url(self._env)

    def pick_endpoint(self) -> str:
        """Choose an endpoint uniformly at random."""
        index = math.floor(self._rng.random() * len(ENDPOINTS))
        return ENDPOINTS[index]

    def think_time(self) -> float:
        """Seconds to pause after a request, in [1.0, 3.0)."""
        return self._rng.random() * 2 + 1

    async def iteration(self, client: HttpClient) -> IterationResult:
        """Run one request/record/pause cycle.

        Non-200 statuses, slow responses and network errors are all
        recorded as failed iterations; none of them raise.
        """
        url = f"{self.target_url()}{self.pick_endpoint()}"

        response: Response = await client.get(url)

        self.response_time.add(response.duration_ms)

        passed = check(response, RESPONSE_CHECKS, self.recorder, self.check_tally)
        self.errors.add(not passed)

        pause = self.think_time()
        await self._sleep(pause)

        return IterationResult(
            url=url,
            status=response.status,
            duration_ms=response.duration_ms,
            passed=passed,
            sleep_seconds=pause,
        )
