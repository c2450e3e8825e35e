"""Per-worker progress state machine.

pending -> running -> completed | failed. Terminal states ignore every
further transition; each transition method returns whether it applied.
"""

from dataclasses import dataclass
from enum import Enum

from ..core.constants import STAGE_DONE, STAGE_FAILED, STAGE_INITIALIZING, STAGE_RUNNING
from ..core.events import ModelComplete, ModelError, ModelProgress
from ..core.models import Result, ResultSummary
from .estimator import synthetic_progress


class WorkerState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (WorkerState.COMPLETED, WorkerState.FAILED)


@dataclass(frozen=True)
class WorkerSnapshot:
    """Immutable view of one worker for observers."""
    model: str
    state: WorkerState
    stage: str
    elapsed: float
    progress: int
    summary: ResultSummary | None
    result: Result | None
    error: str | None

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "state": self.state.value,
            "stage": self.stage,
            "elapsed": round(self.elapsed, 1),
            "progress": self.progress,
            "summary": self.summary.to_dict() if self.summary else None,
            "error": self.error,
        }


class WorkerProgress:
    """Mutable lifecycle state of one worker. Owned by the coordinator."""

    def __init__(self, model: str, index: int, now: float):
        self.model = model
        self.index = index
        self.state = WorkerState.PENDING
        self.stage = STAGE_INITIALIZING
        self.started_at = now
        self.elapsed = 0.0
        self.displayed_progress = 0
        self.summary: ResultSummary | None = None
        self.result: Result | None = None
        self.error: str | None = None
        # Last server elapsed and the local time it arrived, for extrapolation
        self._server_elapsed: tuple[float, float] | None = None

    @property
    def terminal(self) -> bool:
        return self.state.terminal

    def begin(self, now: float) -> bool:
        """Optimistic pending -> running at run start."""
        if self.state is not WorkerState.PENDING:
            return False
        self.state = WorkerState.RUNNING
        self.stage = STAGE_RUNNING
        self.started_at = now
        return True

    def apply_progress(self, event: ModelProgress, now: float) -> bool:
        """Authoritative server tick; displayed progress never regresses."""
        if self.terminal:
            return False
        self.state = WorkerState.RUNNING
        self.stage = event.stage
        self._set_server_elapsed(event.elapsed, now)
        self._raise_progress(event.progress)
        return True

    def tick(self, now: float) -> bool:
        """Local one-second tick: advance elapsed and the synthetic estimate."""
        if self.state is not WorkerState.RUNNING:
            return False
        if self._server_elapsed is not None:
            server_elapsed, received_at = self._server_elapsed
            self.elapsed = server_elapsed + max(0.0, now - received_at)
        else:
            self.elapsed = max(0.0, now - self.started_at)
        self._raise_progress(synthetic_progress(now - self.started_at, self.index))
        return True

    def complete(self, event: ModelComplete, now: float) -> bool:
        if self.terminal:
            return False
        self.state = WorkerState.COMPLETED
        self.stage = STAGE_DONE
        self.displayed_progress = 100
        self.summary = event.summary
        self.result = event.result
        self._set_server_elapsed(event.elapsed, now)
        return True

    def replace_result(self, event: ModelComplete) -> bool:
        """Take the summary and result of a repeated completion.

        Only an already completed worker accepts it; state, stage and
        elapsed keep the values of the first completion.
        """
        if self.state is not WorkerState.COMPLETED:
            return False
        self.summary = event.summary
        self.result = event.result
        return True

    def apply_error(self, event: ModelError, now: float) -> bool:
        """Server-reported worker failure."""
        return self.fail(
            event.stage or event.error or STAGE_FAILED,
            now,
            elapsed=event.elapsed,
            progress=event.progress,
            error=event.error,
        )

    def fail(
        self,
        stage: str,
        now: float,
        *,
        elapsed: float | None = None,
        progress: int | None = None,
        error: str | None = None,
    ) -> bool:
        if self.terminal:
            return False
        self.state = WorkerState.FAILED
        self.stage = stage
        self.error = error
        if elapsed is not None:
            self._set_server_elapsed(elapsed, now)
        elif self._server_elapsed is None:
            self.elapsed = max(0.0, now - self.started_at)
        if progress is not None:
            self._raise_progress(progress)
        return True

    def finish_from_result(self, result: Result, now: float) -> bool:
        """Reconcile a still-open worker with its entry in the final session."""
        if self.terminal:
            return False
        if result.success:
            summary = ResultSummary(
                word_count=result.word_count,
                sources_found=result.sources_found,
                duration=result.duration,
            )
            return self.complete(
                ModelComplete(self.model, result.duration, summary, result), now
            )
        return self.fail(
            result.error or STAGE_FAILED, now, elapsed=result.duration, error=result.error
        )

    def snapshot(self) -> WorkerSnapshot:
        return WorkerSnapshot(
            model=self.model,
            state=self.state,
            stage=self.stage,
            elapsed=self.elapsed,
            progress=self.displayed_progress,
            summary=self.summary,
            result=self.result,
            error=self.error,
        )

    def _set_server_elapsed(self, elapsed: float, now: float) -> None:
        self._server_elapsed = (elapsed, now)
        self.elapsed = elapsed

    def _raise_progress(self, value: int) -> None:
        self.displayed_progress = max(self.displayed_progress, min(100, max(0, int(value))))
