"""Instrumented HTTP client with auto-timing and built-in metric emission."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

import aiohttp

from topsload._internal.config import DEFAULT_REQUEST_TIMEOUT
from topsload._internal.logging import get_logger
from topsload.metrics.models import BuiltinMetric
from topsload.metrics.recorder import MetricRecorder

logger = get_logger("dsl.http_client")


@dataclass(frozen=True)
class Response:
    """Outcome of one HTTP request.

    Attributes:
        url: Full request URL.
        method: HTTP method.
        status: Response status code, or 0 if the request never completed.
        duration_ms: Wall time from issuing the request to reading the
            whole body. On a fresh connection this includes DNS lookup and
            TCP/TLS connect, which k6's ``http_req_duration`` leaves out;
            a reused keep-alive connection is timed from send to last byte.
        body: Response body bytes (empty on failure).
        error: ``"<ExceptionType>: <message>"`` when the request failed.
    """

    url: str
    method: str
    status: int
    duration_ms: float
    body: bytes = b""
    error: str | None = None

    @property
    def failed(self) -> bool:
        """True for transport errors and 4xx/5xx statuses."""
        return self.status == 0 or self.status >= 400


class HttpClient:
    """Async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed and recorded into the ``http_reqs``,
    ``http_req_duration`` and ``http_req_failed`` metrics. Transport errors
    and timeouts do not raise: they come back as a :class:`Response` with
    ``status == 0`` so that load scripts can treat them as failed checks.
    """

    def __init__(
        self,
        recorder: MetricRecorder,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._recorder = recorder
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers: dict[str, str] = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get(self, url: str, **kwargs: object) -> Response:
        """Send a GET request to an absolute URL."""
        return await self.request("GET", url, **kwargs)

    async def request(self, method: str, url: str, **kwargs: object) -> Response:
        """Send an HTTP request, time it and record the built-in metrics.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Absolute request URL.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The request outcome; never raises for network failures.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        status = 0
        body = b""
        error: str | None = None

        # Includes connection setup when the pool has no idle connection.
        start = time.monotonic()
        try:
            async with self._session.request(
                method,
                url,
                headers=self.headers,
                **kwargs,  # type: ignore[arg-type]
            ) as resp:
                body = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.debug("%s %s failed: %s", method, url, error)
        duration_ms = (time.monotonic() - start) * 1000

        response = Response(
            url=url,
            method=method,
            status=status,
            duration_ms=duration_ms,
            body=body,
            error=error,
        )
        self._recorder.record(BuiltinMetric.HTTP_REQS.value, 1)
        self._recorder.record(BuiltinMetric.HTTP_REQ_DURATION.value, duration_ms)
        self._recorder.record(BuiltinMetric.HTTP_REQ_FAILED.value, response.failed)
        return response
