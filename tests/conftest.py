"""Shared test fixtures."""

import asyncio
import json
from contextlib import asynccontextmanager

import pytest
import tomli_w

from deepcompare.compare.client import TransportError
from deepcompare.stream.decoder import iter_payloads


def frame(**data) -> str:
    """One event-stream record carrying ``data`` as JSON."""
    return f"data: {json.dumps(data)}\n\n"


async def settle(turns: int = 20) -> None:
    """Let pending tasks run for a few loop iterations."""
    for _ in range(turns):
        await asyncio.sleep(0)


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """In-memory stand-in for BackendClient.

    Chunks given up front are delivered in order; with ``hold_open`` the
    stream stays open until :meth:`finish`, and :meth:`push` adds chunks to
    the most recently opened stream.
    """

    def __init__(self, chunks=(), *, hold_open=False, error=None, summary=None):
        self.chunks = list(chunks)
        self.hold_open = hold_open
        self.error = error
        self.summary = summary
        self.requests: list[dict] = []
        self.open_streams = 0
        self.max_open_streams = 0
        self.closed_streams = 0
        self.summary_calls = 0
        self.closed = False
        self._queue: asyncio.Queue | None = None

    @asynccontextmanager
    async def stream_comparison(self, body: dict):
        self.requests.append(body)
        if self.error is not None:
            raise self.error

        self._queue = asyncio.Queue()
        for chunk in self.chunks:
            self._queue.put_nowait(chunk)
        if not self.hold_open:
            self._queue.put_nowait(None)

        self.open_streams += 1
        self.max_open_streams = max(self.max_open_streams, self.open_streams)
        try:
            yield iter_payloads(self._read(self._queue))
        finally:
            self.open_streams -= 1
            self.closed_streams += 1

    async def _read(self, queue: asyncio.Queue):
        while True:
            chunk = await queue.get()
            if chunk is None:
                return
            yield chunk

    def push(self, *chunks: str) -> None:
        for chunk in chunks:
            self._queue.put_nowait(chunk)

    def finish(self) -> None:
        self._queue.put_nowait(None)

    async def fetch_comparison_summary(self):
        self.summary_calls += 1
        if self.summary is None:
            raise TransportError("summary unavailable")
        return self.summary

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_config(tmp_path, monkeypatch):
    """Point the user config at tmp_path with keys/history files inside it."""
    config_path = tmp_path / "config.toml"
    config = {
        "backend": {"url": "http://backend.test"},
        "paths": {
            "keys_file": str(tmp_path / "api-keys.json"),
            "history_file": str(tmp_path / "history.json"),
        },
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)
    monkeypatch.setenv("DEEPCOMPARE_CONFIG", str(config_path))
    monkeypatch.delenv("DEEPCOMPARE_BACKEND_URL", raising=False)
    return config_path


@pytest.fixture
def sample_result_dict():
    return {
        "model": "zhipu",
        "duration": 120.0,
        "stage_timings": {
            "clarification": 10.0,
            "research_brief": 20.0,
            "research_execution": 60.0,
            "final_report": 30.0,
        },
        "sources_found": 12,
        "word_count": 1500,
        "success": True,
        "report_content": "# Report\n\nLatency compared.",
        "supervisor_tools_used": ["tavily_search", "think"],
    }
