"""Test session: drives virtual users through the stage schedule."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from topsload._internal.config import DEFAULT_REQUEST_TIMEOUT
from topsload._internal.errors import EngineError
from topsload._internal.logging import get_logger
from topsload.dsl.http_client import HttpClient
from topsload.metrics.models import BuiltinMetric
from topsload.patterns.stages import StagesPattern

if TYPE_CHECKING:
    from collections.abc import Callable

    from topsload._internal.types import Snapshot
    from topsload.options import Options
    from topsload.script import LoadTestScript

logger = get_logger("engine.session")

# Pause before retrying after an iteration raised, so a broken script cannot spin.
_FAILED_ITERATION_BACKOFF = 1.0


class SessionState(Enum):
    """State machine for a test session."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class TestSession:
    """Runs a load script under the stage schedule in a single event loop.

    Every virtual user is an asyncio task owning its own
    :class:`HttpClient` and calling ``script.iteration`` until it is told
    to stop. Scaling down cancels the newest users first; their in-flight
    requests are abandoned.

    State machine: CREATED -> RUNNING -> STOPPING -> COMPLETED
                                      -> FAILED (on error)
    """

    __test__ = False

    def __init__(
        self,
        script: LoadTestScript,
        options: Options,
        *,
        tick_interval: float = 1.0,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        on_tick: Callable[[float, int], None] | None = None,
    ) -> None:
        """Initialize a test session.

        Args:
            script: The load script; its recorder collects all metrics.
            options: Stage schedule and thresholds for the run.
            tick_interval: Seconds between concurrency adjustments.
            request_timeout: Per-request timeout handed to each HttpClient.
            on_tick: Optional callback receiving ``(elapsed, active_users)``
                after every adjustment.
        """
        self._script = script
        self._options = options
        self._recorder = script.recorder
        self._pattern = StagesPattern(options.stages)
        self._tick_interval = tick_interval
        self._request_timeout = request_timeout
        self._on_tick = on_tick

        self._state = SessionState.CREATED
        self._user_tasks: list[tuple[int, asyncio.Task[None]]] = []
        self._next_user_id = 0
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_user_count(self) -> int:
        return len(self._user_tasks)

    async def run(self) -> Snapshot:
        """Execute the schedule and return the aggregated snapshot.

        Returns:
            The recorder snapshot extended with ``state``, ``options`` and
            ``root_group`` blocks.

        Raises:
            EngineError: If the scheduling loop fails.
        """
        logger.info(
            "Starting test session: duration=%.1fs, max_vus=%d, %s",
            self._pattern.total_duration,
            self._options.max_vus,
            self._pattern.describe(),
        )
        self._install_signal_handlers()

        timeline = self._pattern.iter_concurrency(self._pattern.total_duration, self._tick_interval)
        start_time = time.monotonic()
        self._state = SessionState.RUNNING

        try:
            for tick_elapsed, target in timeline:
                if self._stop_event.is_set():
                    break

                target_time = start_time + tick_elapsed
                now = time.monotonic()
                if target_time > now:
                    with contextlib.suppress(TimeoutError):
                        await asyncio.wait_for(self._stop_event.wait(), target_time - now)

                if self._stop_event.is_set():
                    break

                await self._scale_users(target)
                self._recorder.record(BuiltinMetric.VUS.value, self.active_user_count)

                elapsed = time.monotonic() - start_time
                logger.debug("Tick %.1fs: vus=%d", elapsed, self.active_user_count)
                if self._on_tick is not None:
                    self._on_tick(elapsed, self.active_user_count)

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Test session failed")
            msg = "Test session failed"
            raise EngineError(msg) from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            await self._shutdown_all_users()
            self._remove_signal_handlers()

        duration = time.monotonic() - start_time
        snapshot = self._recorder.get_snapshot(elapsed_seconds=duration)
        snapshot["state"] = {"testRunDurationMs": duration * 1000}
        snapshot["options"] = self._options.to_dict()
        snapshot["root_group"] = {
            "name": "",
            "path": "",
            "checks": self._script.check_tally.to_list(),
        }

        self._state = SessionState.COMPLETED
        logger.info(
            "Test completed: duration=%.1fs, iterations=%d",
            duration,
            self._recorder.sample_count(BuiltinMetric.ITERATIONS.value),
        )
        return snapshot

    def stop(self) -> None:
        """Request a graceful stop after the current tick."""
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    async def _run_virtual_user(self, user_id: int) -> None:
        async with HttpClient(self._recorder, timeout=self._request_timeout) as client:
            with contextlib.suppress(asyncio.CancelledError):
                while not self._stop_event.is_set():
                    started = time.monotonic()
                    try:
                        await self._script.iteration(client)
                    except asyncio.CancelledError:
                        raise
                    except Exception:
                        logger.debug("Iteration failed for user %d", user_id, exc_info=True)
                        await asyncio.sleep(_FAILED_ITERATION_BACKOFF)
                        continue
                    self._recorder.record(BuiltinMetric.ITERATIONS.value, 1)
                    self._recorder.record(
                        BuiltinMetric.ITERATION_DURATION.value,
                        (time.monotonic() - started) * 1000,
                    )

    async def _scale_users(self, target: int) -> None:
        """Start or cancel virtual users until *target* are active."""
        self._user_tasks = [(uid, t) for uid, t in self._user_tasks if not t.done()]
        current = self.active_user_count

        if target > current:
            for _ in range(target - current):
                user_id = self._next_user_id
                self._next_user_id += 1
                task = asyncio.create_task(
                    self._run_virtual_user(user_id),
                    name=f"virtual-user-{user_id}",
                )
                self._user_tasks.append((user_id, task))

        elif target < current:
            for _ in range(current - target):
                _uid, task = self._user_tasks.pop()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                    await asyncio.wait_for(asyncio.shield(task), timeout=2.0)

    async def _shutdown_all_users(self) -> None:
        """Cancel every remaining user; in-flight requests are abandoned."""
        self._stop_event.set()
        tasks = [t for _, t in self._user_tasks]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks, timeout=5.0)
        self._user_tasks.clear()
        logger.debug("All virtual users shut down")

    def _install_signal_handlers(self) -> None:
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, _signal_handler)

    def _remove_signal_handlers(self) -> None:
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)
