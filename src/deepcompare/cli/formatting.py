"""Rich renderables and text helpers shared by CLI commands."""

from datetime import datetime, timezone

from rich.markup import escape
from rich.progress_bar import ProgressBar
from rich.table import Table

from ..compare.coordinator import RunSnapshot
from ..core.constants import model_display_name
from ..core.models import ComparisonSummary, Session
from ..progress.worker import WorkerState

STATE_STYLES = {
    "pending": "[dim]pending[/dim]",
    "running": "[yellow]running[/yellow]",
    "completed": "[green]completed[/green]",
    "failed": "[red]failed[/red]",
}


def format_duration(seconds: float) -> str:
    """Compact duration: 42s, 3m 05s, 1h 02m."""
    seconds = max(0, int(round(seconds)))
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


def format_timestamp(timestamp: str, now: datetime | None = None) -> str:
    """Relative age for recent ISO timestamps, a plain date for older ones."""
    try:
        when = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    minutes = int((now - when).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if minutes < 24 * 60:
        return f"{minutes // 60} h ago"
    if minutes < 7 * 24 * 60:
        return f"{minutes // (24 * 60)} days ago"
    return when.strftime("%Y-%m-%d %H:%M")


def worker_table(snapshot: RunSnapshot) -> Table:
    """Live progress table, one row per worker."""
    done = sum(1 for w in snapshot.workers if w.state is WorkerState.COMPLETED)
    table = Table(
        title=f"{done}/{len(snapshot.workers)} completed",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Model", style="cyan")
    table.add_column("Status")
    table.add_column("Progress")
    table.add_column("%", justify="right")
    table.add_column("Elapsed", justify="right")
    table.add_column("Stage")

    for w in snapshot.workers:
        table.add_row(
            model_display_name(w.model),
            STATE_STYLES.get(w.state.value, w.state.value),
            ProgressBar(total=100, completed=w.progress, width=24),
            f"{w.progress}",
            format_duration(w.elapsed),
            escape(w.stage),
        )
    return table


def results_table(session: Session) -> Table:
    """Per-model outcome of a finished session."""
    table = Table(title=f"Query: \"{escape(session.query)}\"", show_header=True, header_style="bold")
    table.add_column("Model", style="cyan")
    table.add_column("Result")
    table.add_column("Duration", justify="right")
    table.add_column("Sources", justify="right")
    table.add_column("Words", justify="right")
    table.add_column("Stages")

    for r in session.results:
        icon = "[green]OK[/green]" if r.success else "[red]FAIL[/red]"
        fractions = r.stage_fractions()
        stages = (
            " / ".join(f"{v:.0%}" for v in fractions.values())
            if fractions else escape(r.error or "")
        )
        table.add_row(
            model_display_name(r.model),
            icon,
            format_duration(r.duration),
            str(r.sources_found),
            str(r.word_count),
            stages,
        )
    return table


def metrics_table(summary: ComparisonSummary) -> Table:
    """Historical per-model performance."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Model", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Avg time", justify="right")
    table.add_column("Avg sources", justify="right")
    table.add_column("Avg words", justify="right")

    for m in summary.models:
        table.add_row(
            model_display_name(m.model),
            str(m.total_requests),
            f"{m.success_rate:.1f}%",
            format_duration(m.average_duration),
            f"{m.average_sources_found:.1f}",
            f"{m.average_word_count:.0f}",
        )
    return table
