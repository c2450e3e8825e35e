"""Comparison run coordinator.

Owns at most one run at a time: opens the backend stream, routes decoded
events to the per-worker state machines, drives the synthetic-progress ticker
and the timeout watchdog, and assembles the final session. Everything runs on
one asyncio loop. Once a run is stopped, expired or replaced, any later
event or timer callback for it is a no-op.

Public operations never raise for run failures; they surface as state
(``error`` and the worker states).
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Mapping

from ..core.config import resolve_path
from ..core.constants import (
    RUN_TIMEOUT_S,
    STAGE_FAILED,
    STAGE_STOPPED,
    STAGE_STRANDED,
    STAGE_TIMED_OUT,
    TICK_INTERVAL_S,
    model_display_name,
)
from ..core.events import (
    ModelComplete,
    ModelError,
    ModelProgress,
    SessionComplete,
    SessionStart,
    StreamError,
    StreamEvent,
)
from ..core.history import HistoryStore
from ..core.models import ComparisonSummary, Result, Session
from ..progress.worker import WorkerProgress, WorkerSnapshot, WorkerState
from ..stream.interpreter import interpret
from .client import BackendClient, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompareContext:
    """What a run needs from the surrounding application."""
    credentials: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable view of the current (or last) run."""
    query: str
    models: tuple[str, ...]
    is_running: bool
    workers: tuple[WorkerSnapshot, ...]
    early_results: tuple[Result, ...]
    session: Session | None
    session_id: str | None
    error: str | None

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "models": list(self.models),
            "is_running": self.is_running,
            "workers": [w.to_dict() for w in self.workers],
            "early_results": [r.to_dict() for r in self.early_results],
            "session": self.session.to_dict() if self.session else None,
            "session_id": self.session_id,
            "error": self.error,
        }


class _Run:
    """Mutable state of one comparison run."""

    def __init__(self, query: str, models: list[str], now: float):
        self.query = query
        self.models = models
        self.workers = {m: WorkerProgress(m, i, now) for i, m in enumerate(models)}
        self.early_results: dict[str, Result] = {}
        self.session: Session | None = None
        self.session_id: str | None = None
        self.error: str | None = None
        self.running = False
        self.cancelled = False
        self.stream_task: asyncio.Task | None = None
        self.timers: list[asyncio.Task] = []

    @property
    def active(self) -> bool:
        return self.running and not self.cancelled

    def open_workers(self) -> list[WorkerProgress]:
        return [w for w in self.workers.values() if not w.terminal]


class ComparisonCoordinator:
    """Runs one query against several research backends over a single stream."""

    def __init__(
        self,
        client: BackendClient,
        *,
        history: HistoryStore | None = None,
        timeout_s: float = RUN_TIMEOUT_S,
        tick_interval_s: float = TICK_INTERVAL_S,
        clock=time.monotonic,
    ):
        self._client = client
        self._history = history
        self._timeout_s = timeout_s
        self._tick_interval_s = tick_interval_s
        self._clock = clock
        self._run: _Run | None = None
        self._start_lock = asyncio.Lock()
        self.metrics: ComparisonSummary | None = None

    # ── Control surface ───────────────────────────────────────────

    async def start(
        self,
        query: str,
        models: list[str],
        context: CompareContext | None = None,
    ) -> bool:
        """Begin a run. Returns False (and sets ``error``) if the input is invalid.

        Any active run is stopped and its stream closed before the new one
        opens.
        """
        models = list(dict.fromkeys(models))
        context = context or CompareContext()
        problem = _validate(query, models, context)
        if problem:
            self._reject(problem)
            return False

        # Overlapping starts queue here so each retires its predecessor.
        async with self._start_lock:
            await self._retire_current()

            now = self._clock()
            run = _Run(query.strip(), models, now)
            self._run = run
            for worker in run.workers.values():
                worker.begin(now)
            run.running = True

            body = {
                "query": run.query,
                "models": run.models,
                "api_keys": {m: context.credentials.get(m, "") for m in models},
            }
            run.stream_task = asyncio.create_task(self._consume(run, body))
            run.timers = [
                asyncio.create_task(self._tick_loop(run)),
                asyncio.create_task(self._watchdog(run)),
            ]
        logger.info("Started comparison of %s", ", ".join(models))
        return True

    def stop(self) -> None:
        """Cancel the active run; open workers fail as stopped. Idempotent."""
        self._stop_run(self._run)

    def _stop_run(self, run: _Run | None) -> None:
        if run is None or not run.running:
            return
        run.cancelled = True
        now = self._clock()
        for worker in run.open_workers():
            worker.fail(STAGE_STOPPED, now)
        self._end(run)
        logger.info("Comparison stopped by user")

    def reset(self) -> None:
        """Stop, then forget the run entirely."""
        self.stop()
        self._run = None

    async def wait(self) -> None:
        """Wait until the current run's stream task has finished."""
        run = self._run
        if run is not None and run.stream_task is not None:
            await asyncio.wait([run.stream_task])

    async def run(
        self,
        query: str,
        models: list[str],
        context: CompareContext | None = None,
    ) -> RunSnapshot:
        """Start a run and wait for it to end."""
        if await self.start(query, models, context):
            await self.wait()
        return self.snapshot()

    def tick(self) -> None:
        """Advance elapsed time and synthetic progress of running workers."""
        run = self._run
        if run is not None and run.active:
            self._tick(run)

    async def aclose(self) -> None:
        """Stop any run, wait for its stream to close, then close the client."""
        self.stop()
        await self.wait()
        await self._client.aclose()

    async def refresh_metrics(self) -> ComparisonSummary | None:
        """Best-effort fetch of the aggregate metrics."""
        try:
            self.metrics = await self._client.fetch_comparison_summary()
        except TransportError as e:
            logger.info("Could not refresh comparison metrics: %s", e)
        return self.metrics

    # ── Observables ───────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._run is not None and self._run.running

    @property
    def query(self) -> str:
        return self._run.query if self._run else ""

    @property
    def error(self) -> str | None:
        return self._run.error if self._run else None

    @property
    def session(self) -> Session | None:
        return self._run.session if self._run else None

    @property
    def workers(self) -> dict[str, WorkerSnapshot]:
        if self._run is None:
            return {}
        return {m: w.snapshot() for m, w in self._run.workers.items()}

    @property
    def early_results(self) -> list[Result]:
        """One result per worker that completed, in selection order."""
        if self._run is None:
            return []
        run = self._run
        return [run.early_results[m] for m in run.models if m in run.early_results]

    def snapshot(self) -> RunSnapshot:
        run = self._run
        if run is None:
            return RunSnapshot("", (), False, (), (), None, None, None)
        return RunSnapshot(
            query=run.query,
            models=tuple(run.models),
            is_running=run.running,
            workers=tuple(w.snapshot() for w in run.workers.values()),
            early_results=tuple(self.early_results),
            session=run.session,
            session_id=run.session_id,
            error=run.error,
        )

    # ── Stream consumption ────────────────────────────────────────

    async def _consume(self, run: _Run, body: dict) -> None:
        try:
            async with self._client.stream_comparison(body) as payloads:
                async for payload in payloads:
                    if not run.active:
                        break
                    if run is not self._run:
                        # Replaced without being retired; close this stream.
                        self._stop_run(run)
                        break
                    parsed = interpret(payload)
                    if not parsed.ok:
                        logger.debug("Discarded frame: %s", parsed.reason)
                        continue
                    self._dispatch(run, parsed.event)
                    if run.session is not None:
                        break
        except TransportError as e:
            if run.active:
                logger.warning("Comparison stream failed: %s", e)
                self._fail_all(run, str(e))
            return
        except Exception as e:
            logger.exception("Unexpected failure while consuming the comparison stream")
            if run.active:
                self._fail_all(run, str(e) or type(e).__name__)
            return

        if run.active:
            self._complete(run)
            await self.refresh_metrics()

    def _dispatch(self, run: _Run, event: StreamEvent) -> None:
        now = self._clock()
        if isinstance(event, SessionStart):
            run.session_id = event.session_id
        elif isinstance(event, ModelProgress):
            worker = self._worker(run, event.model)
            if worker:
                worker.apply_progress(event, now)
        elif isinstance(event, ModelComplete):
            worker = self._worker(run, event.model)
            if worker:
                if not worker.complete(event, now):
                    worker.replace_result(event)
                # A repeated completion replaces the earlier result; a failed
                # worker never gains one.
                if worker.state is WorkerState.COMPLETED:
                    run.early_results[event.model] = (
                        event.result or Result.from_summary(event.model, event.summary)
                    )
        elif isinstance(event, ModelError):
            worker = self._worker(run, event.model)
            if worker:
                worker.apply_error(event, now)
        elif isinstance(event, StreamError):
            logger.warning("Backend reported an error: %s", event.message)
            run.error = event.message
        elif isinstance(event, SessionComplete):
            self._accept_session(run, event.session, now)

    def _worker(self, run: _Run, model: str) -> WorkerProgress | None:
        worker = run.workers.get(model)
        if worker is None:
            logger.debug("Ignoring event for unselected model %r", model)
        return worker

    def _accept_session(self, run: _Run, session: Session, now: float) -> None:
        """The server's session is authoritative; settle open workers from it."""
        run.session = session
        run.session_id = session.session_id
        for model, worker in run.workers.items():
            result = session.result_for(model)
            if result is not None:
                worker.finish_from_result(result, now)
        self._save_history(session)

    # ── Timers ────────────────────────────────────────────────────

    async def _tick_loop(self, run: _Run) -> None:
        while True:
            await asyncio.sleep(self._tick_interval_s)
            if run is not self._run or not run.active:
                return
            self._tick(run)

    def _tick(self, run: _Run) -> None:
        now = self._clock()
        for worker in run.workers.values():
            worker.tick(now)

    async def _watchdog(self, run: _Run) -> None:
        await asyncio.sleep(self._timeout_s)
        # A live run expires even if it is no longer the current one.
        if not run.active:
            return
        run.cancelled = True
        now = self._clock()
        for worker in run.open_workers():
            worker.fail(STAGE_TIMED_OUT, now)
        self._end(run)
        logger.warning("Comparison timed out after %.0fs", self._timeout_s)

    # ── Teardown ──────────────────────────────────────────────────

    def _complete(self, run: _Run) -> None:
        """Normal end of stream: fail stranded workers, then finish."""
        now = self._clock()
        stranded = run.open_workers()
        for worker in stranded:
            worker.fail(STAGE_STRANDED, now)
        if stranded:
            logger.warning(
                "Stream ended with open workers: %s",
                ", ".join(w.model for w in stranded),
            )
        self._end(run)

    def _fail_all(self, run: _Run, message: str) -> None:
        run.error = message
        now = self._clock()
        for worker in run.open_workers():
            worker.fail(STAGE_FAILED, now, error=message)
        self._end(run)

    def _end(self, run: _Run) -> None:
        """Mark the run finished, cancel its tasks and settle the session."""
        run.running = False
        current = _current_task()
        for task in [run.stream_task, *run.timers]:
            if task is not None and task is not current and not task.done():
                task.cancel()

        if run.session is None and run.early_results:
            run.session = Session.assemble(
                run.query,
                [run.early_results[m] for m in run.models if m in run.early_results],
                run.session_id,
            )
            self._save_history(run.session)

    def _save_history(self, session: Session) -> None:
        if self._history is None or not session.results:
            return
        try:
            self._history.save(session)
        except (OSError, ValueError) as e:
            logger.warning("Session %s not saved to history: %s", session.session_id, e)

    def _reject(self, problem: str) -> None:
        if self._run is None:
            self._run = _Run("", [], self._clock())
        self._run.error = problem
        logger.info("Comparison not started: %s", problem)

    async def _retire_current(self) -> None:
        run = self._run
        if run is None:
            return
        self.stop()
        if run.stream_task is not None:
            await asyncio.wait([run.stream_task])


def _validate(query: str, models: list[str], context: CompareContext) -> str | None:
    """Reason a run cannot start, or None."""
    if not query or not query.strip():
        return "Query must not be empty"
    if not models:
        return "Select at least one model"
    missing = [m for m in models if not (context.credentials.get(m) or "").strip()]
    if missing:
        names = ", ".join(model_display_name(m) for m in missing)
        return f"Missing API keys for: {names}. Please configure all keys first."
    return None


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


# ── Module-level API ──────────────────────────────────────────────

def build_coordinator(config: dict, **client_kwargs) -> ComparisonCoordinator:
    """Wire a coordinator (client + history) from a loaded config."""
    run_cfg = config.get("run", {})
    return ComparisonCoordinator(
        BackendClient.from_config(config, **client_kwargs),
        history=HistoryStore(resolve_path(config, "history_file")),
        timeout_s=float(run_cfg.get("timeout_s", RUN_TIMEOUT_S)),
        tick_interval_s=float(run_cfg.get("tick_interval_s", TICK_INTERVAL_S)),
    )
