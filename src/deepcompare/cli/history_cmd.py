"""deepcompare history — Browse finalized comparison sessions."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.config import load_config, resolve_path
from ..core.history import HistoryStore
from .formatting import format_timestamp, results_table

console = Console()

app = typer.Typer(help="Browse saved comparison sessions.", no_args_is_help=True)


def _store() -> HistoryStore:
    return HistoryStore(resolve_path(load_config(), "history_file"))


@app.command("list")
def list_sessions() -> None:
    """List saved sessions, newest first."""
    sessions = _store().list_sessions()
    if not sessions:
        console.print("[dim]No saved sessions.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Session", style="cyan")
    table.add_column("When")
    table.add_column("Query")
    table.add_column("Results", justify="right")
    for s in sessions:
        ok = sum(1 for r in s.results if r.success)
        table.add_row(s.session_id, format_timestamp(s.timestamp), escape(s.query), f"{ok}/{len(s.results)}")
    console.print(table)


@app.command("show")
def show(session_id: str = typer.Argument(..., help="Session id")) -> None:
    """Show the per-model results of one session."""
    session = _store().get(session_id)
    if session is None:
        console.print(f"[red]No session {session_id!r}[/red]")
        raise typer.Exit(1)
    console.print(results_table(session))


@app.command("delete")
def delete(session_id: str = typer.Argument(..., help="Session id")) -> None:
    """Delete one session."""
    if not _store().delete(session_id):
        console.print(f"[red]No session {session_id!r}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {session_id}[/green]")
