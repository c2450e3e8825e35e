"""HTTP transport to the research backend (httpx, async).

Two requests: the long-lived comparison stream and the aggregate metrics
summary. Every transport-level problem surfaces as TransportError.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from ..core.constants import COMPARE_PATH, SUMMARY_PATH
from ..core.models import ComparisonSummary
from ..stream.decoder import iter_payloads

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The stream could not be opened or broke while reading."""


class BackendClient:
    """Async client for the comparison endpoints.

    Usage::

        client = BackendClient("http://localhost:8080")
        async with client.stream_comparison(body) as payloads:
            async for payload in payloads:
                ...
    """

    def __init__(
        self,
        base_url: str,
        *,
        compare_path: str = COMPARE_PATH,
        summary_path: str = SUMMARY_PATH,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._compare_path = compare_path
        self._summary_path = summary_path
        # No read timeout: the stream may stay quiet for minutes, the
        # coordinator's watchdog bounds the run instead.
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(None, connect=connect_timeout),
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: dict, **kwargs) -> "BackendClient":
        backend = config.get("backend", {})
        return cls(
            backend.get("url", "http://localhost:8080"),
            compare_path=backend.get("compare_path", COMPARE_PATH),
            summary_path=backend.get("summary_path", SUMMARY_PATH),
            connect_timeout=float(backend.get("connect_timeout_s", 10.0)),
            **kwargs,
        )

    @asynccontextmanager
    async def stream_comparison(self, body: dict) -> AsyncIterator[AsyncIterator[str]]:
        """Open the comparison stream; yields an iterator of ``data:`` payloads.

        The response is closed when the context exits, whichever way.
        """
        try:
            async with self._client.stream(
                "POST",
                self._compare_path,
                json=body,
                headers={"Accept": "text/event-stream"},
            ) as response:
                if not response.is_success:
                    raise TransportError(f"HTTP error! status: {response.status_code}")
                logger.debug("Comparison stream opened (%s)", response.headers.get("content-type"))
                yield iter_payloads(response.aiter_text())
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def fetch_comparison_summary(self) -> ComparisonSummary:
        """GET the aggregate per-model metrics."""
        try:
            response = await self._client.get(self._summary_path)
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e
        if not response.is_success:
            raise TransportError(f"HTTP error! status: {response.status_code}")
        try:
            return ComparisonSummary.from_dict(response.json())
        except ValueError as e:
            raise TransportError(f"Invalid comparison summary: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
