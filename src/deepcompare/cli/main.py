"""deepcompare CLI — Typer application with subcommands."""

import logging

import typer
from rich.logging import RichHandler

from . import config_cmd, history_cmd, keys_cmd
from .compare_cmd import compare
from .metrics_cmd import metrics
from .web_cmd import web

app = typer.Typer(
    name="deepcompare",
    help="Run one research query against several AI research backends and compare them.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every subcommand."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


app.command()(compare)
app.command()(metrics)
app.command()(web)
app.add_typer(keys_cmd.app, name="keys")
app.add_typer(history_cmd.app, name="history")
app.add_typer(config_cmd.app, name="config")


if __name__ == "__main__":
    app()
