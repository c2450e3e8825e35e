"""Tests for CLI formatting helpers and tables."""

from datetime import datetime, timezone

from rich.console import Console

from deepcompare.cli.formatting import (
    format_duration,
    format_timestamp,
    metrics_table,
    results_table,
    worker_table,
)
from deepcompare.compare.coordinator import RunSnapshot
from deepcompare.core.models import ComparisonSummary, Result, Session, StageTimings
from deepcompare.progress.worker import WorkerSnapshot, WorkerState

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _render(renderable) -> str:
    console = Console(width=140, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(0) == "0s"
        assert format_duration(42.4) == "42s"

    def test_minutes(self):
        assert format_duration(185) == "3m 05s"

    def test_hours(self):
        assert format_duration(3720) == "1h 02m"

    def test_negative_clamped(self):
        assert format_duration(-5) == "0s"


class TestFormatTimestamp:
    def test_just_now(self):
        assert format_timestamp("2026-06-01T11:59:30+00:00", NOW) == "just now"

    def test_minutes(self):
        assert format_timestamp("2026-06-01T11:45:00+00:00", NOW) == "15 min ago"

    def test_hours(self):
        assert format_timestamp("2026-06-01T09:00:00+00:00", NOW) == "3 h ago"

    def test_days(self):
        assert format_timestamp("2026-05-29T12:00:00+00:00", NOW) == "3 days ago"

    def test_old_dates_absolute(self):
        assert format_timestamp("2026-01-02T08:30:00+00:00", NOW) == "2026-01-02 08:30"

    def test_naive_treated_as_utc(self):
        assert format_timestamp("2026-06-01T11:00:00", NOW) == "1 h ago"

    def test_unparsable_passthrough(self):
        assert format_timestamp("yesterday-ish", NOW) == "yesterday-ish"


class TestTables:
    def test_worker_table(self):
        workers = (
            WorkerSnapshot("zhipu", WorkerState.COMPLETED, "Completed", 30.0, 100, None, None, None),
            WorkerSnapshot("kimi", WorkerState.RUNNING, "[search] step", 12.0, 40, None, None, None),
        )
        snapshot = RunSnapshot("q", ("zhipu", "kimi"), True, workers, (), None, None, None)
        text = _render(worker_table(snapshot))
        assert "1/2 completed" in text
        assert "Kimi K2 Thinking" in text
        # Stage text is shown literally, not parsed as markup
        assert "[search] step" in text

    def test_results_table(self):
        ok = Result("zhipu", 100.0, True,
                    StageTimings(10.0, 20.0, 50.0, 20.0), sources_found=7, word_count=800)
        failed = Result("deepseek", 5.0, False, error="quota exceeded")
        session = Session("s1", "compare latency", "2026-06-01T11:00:00+00:00", (ok, failed))
        text = _render(results_table(session))
        assert 'Query: "compare latency"' in text
        assert "10% / 20% / 50% / 20%" in text
        assert "quota exceeded" in text
        assert "FAIL" in text

    def test_metrics_table(self):
        summary = ComparisonSummary.from_dict({"models": [
            {"model": "deepseek", "total_requests": 5, "success_rate": 80.0,
             "average_duration": 95.0, "average_sources_found": 6.25,
             "average_word_count": 1450.4},
        ]})
        text = _render(metrics_table(summary))
        assert "DeepSeek V3.2" in text
        assert "80.0%" in text
        assert "1m 35s" in text
        assert "1450" in text
