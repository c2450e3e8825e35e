"""Incremental decoder for ``data: <payload>`` event-stream lines.

Chunks may split a line anywhere, including inside a multi-byte UTF-8
character. Only lines carrying a ``data:`` field are returned; comments,
other fields and blank separators are dropped.
"""

import codecs
from typing import AsyncIterable, AsyncIterator

DATA_PREFIX = "data:"


class FrameDecoder:
    """Buffers partial lines across chunks and yields complete payloads."""

    def __init__(self):
        self._buffer = ""
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: str | bytes) -> list[str]:
        """Add a chunk, returning the payloads of every line it completes."""
        if isinstance(chunk, bytes):
            chunk = self._bytes.decode(chunk)
        self._buffer += chunk

        *lines, self._buffer = self._buffer.split("\n")
        return [p for p in (_payload(line) for line in lines) if p is not None]

    def flush(self) -> list[str]:
        """End of stream: emit a final line that had no terminating newline."""
        tail = self._buffer + self._bytes.decode(b"", final=True)
        self._buffer = ""
        payload = _payload(tail)
        return [] if payload is None else [payload]


def _payload(line: str) -> str | None:
    """Extract the payload of a ``data:`` line, or None for anything else."""
    if line.endswith("\r"):
        line = line[:-1]
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload.startswith(" "):
        payload = payload[1:]
    return payload


async def iter_payloads(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[str]:
    """Adapt an async chunk stream into payload strings (fresh decoder per call)."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            yield payload
    for payload in decoder.flush():
        yield payload
