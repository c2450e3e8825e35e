"""Comparison data model: results, sessions and aggregate metrics.

All ``from_dict`` constructors accept the backend's JSON shapes and are
lenient about missing optional fields. Required fields that are missing or
of the wrong type raise ValueError.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .constants import STAGE_TIMING_KEYS


def _number(data: dict, key: str, default: float | None = None) -> float:
    """Read a numeric field, rejecting bools and non-numbers."""
    value = data.get(key)
    if value is None:
        value = default
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Field {key!r} must be a number")
    try:
        if not math.isfinite(value):
            raise ValueError(f"Field {key!r} must be finite")
        return float(value)
    except OverflowError as e:
        raise ValueError(f"Field {key!r} is out of range") from e


def _count(data: dict, key: str) -> int:
    return max(0, int(_number(data, key, 0)))


def count_words(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


@dataclass(frozen=True)
class StageTimings:
    """Seconds spent in each research stage."""
    clarification: float = 0.0
    research_brief: float = 0.0
    research_execution: float = 0.0
    final_report: float = 0.0

    @classmethod
    def from_dict(cls, data: dict | None) -> "StageTimings":
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("Stage timings must be an object")
        # Negative timings carry no meaning; clamp them to zero.
        return cls(**{k: max(0.0, _number(data, k, 0.0)) for k in STAGE_TIMING_KEYS})

    @property
    def total(self) -> float:
        return sum(self.to_dict().values())

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in STAGE_TIMING_KEYS}


@dataclass(frozen=True)
class ResultSummary:
    """Early per-worker summary pushed with model_complete."""
    word_count: int = 0
    sources_found: int = 0
    duration: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ResultSummary":
        if not isinstance(data, dict):
            raise ValueError("Summary must be an object")
        return cls(
            word_count=_count(data, "word_count"),
            sources_found=_count(data, "sources_found"),
            duration=max(0.0, _number(data, "duration", 0.0)),
        )

    def to_dict(self) -> dict:
        return {
            "word_count": self.word_count,
            "sources_found": self.sources_found,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class Result:
    """Outcome of one worker.

    When ``success`` is False the stage timings and report are not
    meaningful; use :meth:`stage_fractions` rather than the raw timings for
    anything proportional.
    """
    model: str
    duration: float
    success: bool
    stage_timings: StageTimings = field(default_factory=StageTimings)
    sources_found: int = 0
    word_count: int = 0
    error: str | None = None
    report_content: str = ""
    supervisor_tools_used: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Result":
        if not isinstance(data, dict):
            raise ValueError("Result must be an object")
        model = data.get("model")
        if not isinstance(model, str) or not model:
            raise ValueError("Result is missing 'model'")
        tools = data.get("supervisor_tools_used") or []
        if not isinstance(tools, list):
            raise ValueError("Field 'supervisor_tools_used' must be a list")
        success = data.get("success")
        if success is None:
            success = False
        elif not isinstance(success, bool):
            raise ValueError("Field 'success' must be a boolean")
        error = data.get("error")
        return cls(
            model=model,
            duration=max(0.0, _number(data, "duration", 0.0)),
            success=success,
            stage_timings=StageTimings.from_dict(data.get("stage_timings")),
            sources_found=_count(data, "sources_found"),
            word_count=_count(data, "word_count"),
            error=str(error) if error else None,
            report_content=str(data.get("report_content") or ""),
            supervisor_tools_used=tuple(str(t) for t in tools),
        )

    @classmethod
    def from_summary(cls, model: str, summary: ResultSummary) -> "Result":
        """Build a provisional successful result from an early summary."""
        return cls(
            model=model,
            duration=summary.duration,
            success=True,
            sources_found=summary.sources_found,
            word_count=summary.word_count,
        )

    @property
    def timings_consistent(self) -> bool:
        """True when the stage timings can be drawn against the duration."""
        return (
            self.success
            and self.duration > 0
            and self.stage_timings.total <= self.duration + 1e-6
        )

    def stage_fractions(self) -> dict[str, float] | None:
        """Fraction of the duration spent per stage, or None if untrustworthy."""
        if not self.timings_consistent:
            return None
        return {k: v / self.duration for k, v in self.stage_timings.to_dict().items()}

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "duration": self.duration,
            "stage_timings": self.stage_timings.to_dict(),
            "sources_found": self.sources_found,
            "word_count": self.word_count,
            "success": self.success,
            "error": self.error,
            "report_content": self.report_content,
            "supervisor_tools_used": list(self.supervisor_tools_used),
        }


@dataclass(frozen=True)
class Session:
    """Immutable finalized outcome of one comparison run."""
    session_id: str
    query: str
    timestamp: str
    results: tuple[Result, ...] = ()
    user_feedback: dict | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        if not isinstance(data, dict):
            raise ValueError("Session must be an object")
        session_id = data.get("session_id")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("Session is missing 'session_id'")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ValueError("Field 'results' must be a list")
        feedback = data.get("user_feedback")
        return cls(
            session_id=session_id,
            query=str(data.get("query") or ""),
            timestamp=str(data.get("timestamp") or ""),
            results=tuple(Result.from_dict(r) for r in results),
            user_feedback=feedback if isinstance(feedback, dict) else None,
        )

    @classmethod
    def assemble(
        cls,
        query: str,
        results: list[Result],
        session_id: str | None = None,
    ) -> "Session":
        """Create a session locally from whatever results a run produced."""
        return cls(
            session_id=session_id or str(uuid.uuid4()),
            query=query,
            timestamp=datetime.now(timezone.utc).isoformat(),
            results=tuple(results),
        )

    def result_for(self, model: str) -> Result | None:
        for result in self.results:
            if result.model == model:
                return result
        return None

    def to_dict(self) -> dict:
        data = {
            "session_id": self.session_id,
            "query": self.query,
            "timestamp": self.timestamp,
            "results": [r.to_dict() for r in self.results],
        }
        if self.user_feedback is not None:
            data["user_feedback"] = self.user_feedback
        return data


@dataclass(frozen=True)
class ModelMetrics:
    """Historical aggregate metrics for one model."""
    model: str
    total_requests: int = 0
    average_duration: float = 0.0
    success_rate: float = 0.0
    average_sources_found: float = 0.0
    average_word_count: float = 0.0
    last_used: str | None = None
    average_stage_timings: StageTimings | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ModelMetrics":
        if not isinstance(data, dict) or not isinstance(data.get("model"), str):
            raise ValueError("Model metrics must be an object with a 'model'")
        timings = data.get("average_stage_timings")
        return cls(
            model=data["model"],
            total_requests=_count(data, "total_requests"),
            average_duration=_number(data, "average_duration", 0.0),
            success_rate=_number(data, "success_rate", 0.0),
            average_sources_found=_number(data, "average_sources_found", 0.0),
            average_word_count=_number(data, "average_word_count", 0.0),
            last_used=data.get("last_used"),
            average_stage_timings=StageTimings.from_dict(timings) if timings else None,
        )

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "total_requests": self.total_requests,
            "average_duration": self.average_duration,
            "success_rate": self.success_rate,
            "average_sources_found": self.average_sources_found,
            "average_word_count": self.average_word_count,
            "last_used": self.last_used,
            "average_stage_timings": (
                self.average_stage_timings.to_dict() if self.average_stage_timings else None
            ),
        }


@dataclass(frozen=True)
class ComparisonSummary:
    """Response of the comparison-summary endpoint."""
    models: tuple[ModelMetrics, ...]
    total_requests: int
    generated_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "ComparisonSummary":
        if not isinstance(data, dict):
            raise ValueError("Comparison summary must be an object")
        models = data.get("models") or []
        if not isinstance(models, list):
            raise ValueError("Field 'models' must be a list")
        return cls(
            models=tuple(ModelMetrics.from_dict(m) for m in models),
            total_requests=_count(data, "total_requests"),
            generated_at=str(data.get("generated_at") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "models": [m.to_dict() for m in self.models],
            "total_requests": self.total_requests,
            "generated_at": self.generated_at,
        }

    @property
    def average_duration(self) -> float:
        """Mean of the per-model average durations, ignoring models without data."""
        with_data = [m.average_duration for m in self.models if m.average_duration > 0]
        if not with_data:
            return 0.0
        return sum(with_data) / len(with_data)
