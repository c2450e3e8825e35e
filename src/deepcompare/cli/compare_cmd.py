"""deepcompare compare — Run one query against several models with live progress."""

import asyncio

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape

from ..compare.coordinator import (
    CompareContext,
    ComparisonCoordinator,
    RunSnapshot,
    build_coordinator,
)
from ..core.config import load_config, resolve_path
from ..core.credentials import CredentialStore
from .formatting import results_table, worker_table

console = Console()


def compare(
    query: str = typer.Argument(..., help="Research question sent to every model"),
    model: list[str] = typer.Option(
        None,
        "--model", "-m",
        help="Model to include (repeatable; defaults to models.default)",
    ),
    timeout: float = typer.Option(
        None,
        "--timeout",
        help="Give up after this many seconds (overrides run.timeout_s)",
    ),
    report: bool = typer.Option(
        False,
        "--report",
        help="Print each model's full report text afterwards",
    ),
) -> None:
    """Compare research models side by side on one query."""
    config = load_config()
    models = model or config.get("models", {}).get("default", [])
    if timeout is not None:
        config.setdefault("run", {})["timeout_s"] = timeout

    store = CredentialStore(resolve_path(config, "keys_file"))
    try:
        context = CompareContext(credentials=store.select(models))
    except ValueError as e:
        console.print(f"[red]{e}: {store.path}[/red]")
        raise typer.Exit(1)
    coordinator = build_coordinator(config)

    console.print(f"[bold]Comparing {len(models)} models[/bold]")
    console.print(f"Query:   {escape(query)}")
    console.print(f"Backend: {config['backend']['url']}")
    console.print()

    snapshot = asyncio.run(_run_live(coordinator, query, models, context))

    if snapshot.session is not None and snapshot.session.results:
        console.print()
        console.print(results_table(snapshot.session))
        if report:
            for result in snapshot.session.results:
                console.rule(f"[bold]{result.model}[/bold]")
                console.print(result.report_content or "[dim](no report)[/dim]", markup=False)

    if snapshot.error:
        console.print(f"\n[red]Error:[/red] {escape(snapshot.error)}")
        if not snapshot.early_results:
            raise typer.Exit(1)


async def _run_live(
    coordinator: ComparisonCoordinator,
    query: str,
    models: list[str],
    context: CompareContext,
) -> RunSnapshot:
    """Drive the run while redrawing the worker table."""
    try:
        if await coordinator.start(query, models, context):
            with Live(worker_table(coordinator.snapshot()), console=console, refresh_per_second=4) as live:
                while coordinator.is_running:
                    await asyncio.sleep(0.25)
                    live.update(worker_table(coordinator.snapshot()))
                live.update(worker_table(coordinator.snapshot()))
            await coordinator.wait()
    except asyncio.CancelledError:
        # Ctrl-C cancels this task; stop the run so open workers are settled.
        console.print("[yellow]Stopping...[/yellow]")
        coordinator.stop()
    finally:
        await coordinator.aclose()
    return coordinator.snapshot()
