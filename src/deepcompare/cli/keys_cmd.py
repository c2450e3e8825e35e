"""deepcompare keys — Manage the API keys sent with each comparison."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..core.config import load_config, resolve_path
from ..core.constants import KNOWN_MODELS
from ..core.credentials import CredentialStore

console = Console()

app = typer.Typer(help="Manage model API keys (stored locally).", no_args_is_help=True)


def _store() -> CredentialStore:
    """The configured key store, loaded; exits if the file is unreadable."""
    store = CredentialStore(resolve_path(load_config(), "keys_file"))
    try:
        store.keys
    except ValueError as e:
        console.print(f"[red]{e}: {store.path}[/red]")
        raise typer.Exit(1)
    return store


@app.command("set")
def set_key(
    model: str = typer.Argument(..., help=f"Model id ({', '.join(KNOWN_MODELS)})"),
    key: str = typer.Argument(..., help="API key"),
) -> None:
    """Store the API key for one model."""
    if model not in KNOWN_MODELS:
        console.print(f"[yellow]Note:[/yellow] {model!r} is not a known model")
    _store().set(model, key)
    console.print(f"[green]Key saved for {model}[/green]")


@app.command("import")
def import_keys(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to import"),
) -> None:
    """Import keys from a previously exported JSON file."""
    try:
        count = _store().import_file(source)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Imported {count} keys[/green]")


@app.command("export")
def export_keys(
    dest: Path = typer.Argument(Path("api-keys.json"), help="Destination JSON file"),
) -> None:
    """Write all stored keys to a JSON file."""
    _store().export_file(dest)
    console.print(f"Keys exported to {dest}")


@app.command("clear")
def clear_keys(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every stored key."""
    if not yes and not typer.confirm("Remove all stored API keys?"):
        raise typer.Exit(0)
    # No load first, so clearing also recovers an unreadable file
    CredentialStore(resolve_path(load_config(), "keys_file")).clear()
    console.print("[green]All keys cleared[/green]")


@app.command("status")
def status() -> None:
    """Show which models have a key configured."""
    store = _store()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Model", style="cyan")
    table.add_column("Name")
    table.add_column("Key")
    for model_id, name, configured in store.status():
        table.add_row(model_id, name, "[green]configured[/green]" if configured else "[dim]missing[/dim]")
    console.print(table)
    console.print(f"{store.configured_count()}/{len(KNOWN_MODELS)} configured")
