"""Instrumented HTTP client with auto-timing and metric emission."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadcheck._internal.types import Headers


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (defaults to the URL).
        method: HTTP method (GET, POST, etc.).
        url: Full request URL.
        status_code: HTTP response status code (0 if the transport failed).
        latency_ms: Time until the full body was read, in milliseconds.
        content_length: Response body size in bytes.
        error: Error message if the request failed, None otherwise.
        vu_id: Virtual user that made the request.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None
    vu_id: int = 0


@dataclass
class Response:
    """A fully read HTTP response, handed to checks.

    Attributes:
        status_code: HTTP status code.
        latency_ms: Request latency in milliseconds.
        body: Raw response body.
        url: Final request URL.
        headers: Response headers, looked up case-insensitively.
    """

    status_code: int
    latency_ms: float
    body: bytes = b""
    url: str = ""
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: CIMultiDictProxy(CIMultiDict()))

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the body, replacing undecodable bytes."""
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json.loads(self.body)


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed from send until the body has been read, and
    emits a ``RequestMetric`` through ``metric_callback`` whether it
    succeeds or fails. Transport failures are re-raised to the caller
    after the metric is emitted.

    Attributes:
        base_url: Prefix for relative request paths. Absolute URLs
            (``http://...``) are used as given.
        headers: Headers applied to every request.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        vu_id: int = 0,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Prefix for relative request paths.
            headers: Default headers applied to every request.
            metric_callback: Called with a ``RequestMetric`` after each
                request. Defaults to a no-op.
            vu_id: Virtual user identifier for metric tagging.
            timeout: Total request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Headers = dict(headers or {})
        self._metric_callback = metric_callback or _noop_callback
        self._vu_id = vu_id
        self._timeout = aiohttp.ClientTimeout(total=timeout)
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

    def url_for(self, path: str) -> str:
        """Resolve *path* against ``base_url``."""
        if path.startswith(("http://", "https://")) or not self.base_url:
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def get(
        self,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send a GET request.

        Args:
            path: Absolute URL, or path appended to ``base_url``.
            name: Logical name for metric grouping. Defaults to the URL.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The fully read response.
        """
        return await self.request("GET", path, name=name, **kwargs)

    async def post(
        self,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send a POST request. See ``get`` for the arguments."""
        return await self.request("POST", path, name=name, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send an HTTP request with auto-timing and metric emission.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: Absolute URL, or path appended to ``base_url``.
            name: Logical name for metric grouping. Defaults to the URL.
            **kwargs: Additional keyword arguments passed to aiohttp. A
                ``headers`` mapping is merged over the client headers.

        Returns:
            The fully read response.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
            aiohttp.ClientError: On connection-level failures.
            TimeoutError: If the request exceeds the configured timeout.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = self.url_for(path)
        headers: Headers = {**self.headers, **(kwargs.pop("headers", None) or {})}  # type: ignore[dict-item]
        start = time.monotonic()
        status_code = 0
        body = b""
        error: str | None = None
        cancelled = False

        try:
            async with self._session.request(
                method,
                url,
                headers=headers,
                **kwargs,  # type: ignore[arg-type]
            ) as resp:
                status_code = resp.status
                body = await resp.read()
                resp_headers = CIMultiDictProxy(CIMultiDict(resp.headers))
        except asyncio.CancelledError:
            # Abandoned at shutdown: not a completed request.
            cancelled = True
            raise
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            latency_ms = (time.monotonic() - start) * 1000
            if not cancelled:
                self._emit(
                    RequestMetric(
                        timestamp=start,
                        name=name or url,
                        method=method,
                        url=url,
                        status_code=status_code,
                        latency_ms=latency_ms,
                        content_length=len(body),
                        error=error,
                        vu_id=self._vu_id,
                    )
                )

        return Response(
            status_code=status_code,
            latency_ms=latency_ms,
            body=body,
            url=url,
            headers=resp_headers,
        )

    def _emit(self, metric: RequestMetric) -> None:
        self._metric_callback(metric)
