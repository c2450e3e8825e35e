"""Classify decoded payloads into typed stream events.

``interpret`` never raises: a payload is either turned into an event or
discarded with a short reason, so one corrupt frame cannot end a run.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Callable

from ..core.events import (
    KIND_ERROR,
    KIND_HEARTBEAT,
    KIND_MODEL_COMPLETE,
    KIND_MODEL_ERROR,
    KIND_MODEL_PROGRESS,
    KIND_SESSION_COMPLETE,
    KIND_SESSION_START,
    Heartbeat,
    ModelComplete,
    ModelError,
    ModelProgress,
    SessionComplete,
    SessionStart,
    StreamError,
    StreamEvent,
)
from ..core.models import Result, ResultSummary, Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of interpreting one payload: an event, or a discard reason."""
    event: StreamEvent | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.event is not None


class _Discard(Exception):
    """Internal: payload does not describe a usable event."""


def interpret(payload: str) -> ParseResult:
    """Parse one ``data:`` payload into a ParseResult."""
    try:
        data = json.loads(payload)
    except ValueError:
        return ParseResult(reason="malformed JSON")
    if not isinstance(data, dict):
        return ParseResult(reason="payload is not an object")

    kind = data.get("type")
    builder = _BUILDERS.get(kind) if isinstance(kind, str) else None
    if builder is None:
        return ParseResult(reason=f"unknown event type {kind!r}")

    try:
        return ParseResult(event=builder(data))
    except _Discard as e:
        return ParseResult(reason=f"{kind}: {e}")


# ── Field helpers ────────────────────────────────────────────────

def _str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise _Discard(f"missing {key!r}")
    return value


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # JSON integers too large for a float
        return False


def _elapsed(data: dict, *, required: bool = True) -> float | None:
    value = data.get("elapsed")
    if value is None and not required:
        return None
    if not _is_number(value) or value < 0:
        raise _Discard("bad 'elapsed'")
    return float(value)


def _progress(data: dict, *, required: bool = True) -> int | None:
    value = data.get("progress")
    if value is None and not required:
        return None
    if not _is_number(value):
        raise _Discard("bad 'progress'")
    return int(min(100, max(0, value)))


# ── Builders ─────────────────────────────────────────────────────

def _session_start(data: dict) -> SessionStart:
    return SessionStart(session_id=_str(data, "session_id"))


def _model_progress(data: dict) -> ModelProgress:
    return ModelProgress(
        model=_str(data, "model"),
        stage=_str(data, "stage"),
        elapsed=_elapsed(data),
        progress=_progress(data),
    )


def _model_complete(data: dict) -> ModelComplete:
    model = _str(data, "model")
    elapsed = _elapsed(data)
    try:
        summary = ResultSummary.from_dict(data.get("summary"))
    except ValueError as e:
        raise _Discard(f"bad 'summary' ({e})") from e

    result = None
    if data.get("result") is not None:
        try:
            result = Result.from_dict(data["result"])
        except ValueError as e:
            # The summary alone is still a usable completion.
            logger.debug("Dropping malformed result for %s: %s", model, e)
    return ModelComplete(model=model, elapsed=elapsed, summary=summary, result=result)


def _model_error(data: dict) -> ModelError:
    return ModelError(
        model=_str(data, "model"),
        stage=_optional_str(data, "stage"),
        elapsed=_elapsed(data, required=False),
        progress=_progress(data, required=False),
        error=_optional_str(data, "error"),
    )


def _stream_error(data: dict) -> StreamError:
    return StreamError(message=_str(data, "message"))


def _session_complete(data: dict) -> SessionComplete:
    try:
        return SessionComplete(session=Session.from_dict(data.get("session")))
    except ValueError as e:
        raise _Discard(f"bad 'session' ({e})") from e


def _heartbeat(data: dict) -> Heartbeat:
    return Heartbeat()


_BUILDERS: dict[str, Callable[[dict], StreamEvent]] = {
    KIND_SESSION_START: _session_start,
    KIND_MODEL_PROGRESS: _model_progress,
    KIND_MODEL_COMPLETE: _model_complete,
    KIND_MODEL_ERROR: _model_error,
    KIND_ERROR: _stream_error,
    KIND_SESSION_COMPLETE: _session_complete,
    KIND_HEARTBEAT: _heartbeat,
}
