"""deepcompare config — Show or change configuration."""

import typer
from rich.console import Console
from rich.markup import escape

from ..core.config import load_config, set_config_value, user_config_path

console = Console()

app = typer.Typer(help="Show or change configuration.", no_args_is_help=True)


@app.command("show")
def show() -> None:
    """Print the effective configuration (defaults + user file + env)."""
    config = load_config()
    console.print(f"[dim]User config: {user_config_path()}[/dim]")
    for section, values in config.items():
        console.print(f"\n[bold]{escape(f'[{section}]')}[/bold]")
        for key, value in values.items():
            console.print(f"  {key} = {value!r}", markup=False)


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Dotted key, e.g. backend.url"),
    value: str = typer.Argument(..., help="New value (lists are comma-separated)"),
) -> None:
    """Set a value in the user config file."""
    try:
        set_config_value(key, value)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)
    except ValueError:
        console.print(f"[red]Invalid value for {key}: {value!r}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{key} updated[/green]")
