"""deepcompare metrics — Show historical per-model performance."""

import asyncio

import typer
from rich.console import Console

from ..compare.client import BackendClient, TransportError
from ..core.config import load_config
from ..core.models import ComparisonSummary
from .formatting import format_duration, metrics_table

console = Console()


def metrics() -> None:
    """Show aggregate metrics reported by the research backend."""
    config = load_config()
    client = BackendClient.from_config(config)

    try:
        summary = asyncio.run(_fetch(client))
    except TransportError as e:
        console.print(f"[red]Could not load metrics from {client.base_url}:[/red] {e}")
        raise typer.Exit(1)

    if not summary.models:
        console.print("[dim]No comparisons recorded yet.[/dim]")
        return

    console.print(f"\n[bold]Total comparisons:[/bold] {summary.total_requests}")
    console.print(f"[bold]Avg response time:[/bold] {format_duration(summary.average_duration)}")
    console.print(f"[bold]Active models:[/bold]     {len(summary.models)}")
    console.print()
    console.print(metrics_table(summary))
    if summary.generated_at:
        console.print(f"[dim]Generated at {summary.generated_at}[/dim]")


async def _fetch(client: BackendClient) -> ComparisonSummary:
    try:
        return await client.fetch_comparison_summary()
    finally:
        await client.aclose()
