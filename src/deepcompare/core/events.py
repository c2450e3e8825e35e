"""Comparison stream event protocol.

One dataclass per event kind the backend pushes over the comparison
stream. Instances are produced by ``stream.interpreter.interpret`` and
consumed by the coordinator.
"""

from dataclasses import dataclass

from .models import Result, ResultSummary, Session

KIND_SESSION_START = "session_start"
KIND_MODEL_PROGRESS = "model_progress"
KIND_MODEL_COMPLETE = "model_complete"
KIND_MODEL_ERROR = "model_error"
KIND_ERROR = "error"
KIND_SESSION_COMPLETE = "session_complete"
KIND_HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class SessionStart:
    """Stream handshake acknowledged."""
    session_id: str
    kind = KIND_SESSION_START


@dataclass(frozen=True)
class ModelProgress:
    """Authoritative progress tick for one worker."""
    model: str
    stage: str
    elapsed: float
    progress: int  # 0 to 100
    kind = KIND_MODEL_PROGRESS


@dataclass(frozen=True)
class ModelComplete:
    """Worker finished successfully."""
    model: str
    elapsed: float
    summary: ResultSummary
    result: Result | None = None
    kind = KIND_MODEL_COMPLETE


@dataclass(frozen=True)
class ModelError:
    """Worker failed."""
    model: str
    stage: str | None = None
    elapsed: float | None = None
    progress: int | None = None
    error: str | None = None
    kind = KIND_MODEL_ERROR


@dataclass(frozen=True)
class StreamError:
    """Stream-level failure; does not fail individual workers."""
    message: str
    kind = KIND_ERROR


@dataclass(frozen=True)
class SessionComplete:
    """Run finished; the session is the authoritative final state."""
    session: Session
    kind = KIND_SESSION_COMPLETE


@dataclass(frozen=True)
class Heartbeat:
    """Liveness signal only."""
    kind = KIND_HEARTBEAT


StreamEvent = (
    SessionStart
    | ModelProgress
    | ModelComplete
    | ModelError
    | StreamError
    | SessionComplete
    | Heartbeat
)
