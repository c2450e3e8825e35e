"""deepcompare web — Serve the comparison control API for a browser dashboard."""

import typer
from rich.console import Console

from ..core.config import load_config

console = Console()

ROUTES = [
    ("POST", "/compare/start", "begin a comparison run"),
    ("POST", "/compare/stop", "cancel the active run"),
    ("GET", "/compare/progress", "live worker state (SSE)"),
    ("GET", "/metrics", "per-model history from the backend"),
    ("GET", "/history", "locally saved sessions"),
]


def web(
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        help="Interface to listen on (use 0.0.0.0 to expose on the network)",
    ),
    port: int = typer.Option(
        8000,
        "--port", "-p",
        help="Port for the control API",
    ),
) -> None:
    """Run the control API; one comparison at a time is shared by all clients."""
    import uvicorn

    base = f"http://{host}:{port}"
    console.print(f"[bold]deepcompare API[/bold] on {base}")
    console.print(f"Research backend: {load_config()['backend']['url']}")
    for method, path, purpose in ROUTES:
        console.print(f"  [cyan]{method:<5}[/cyan] {path:<18} [dim]{purpose}[/dim]")
    console.print()

    uvicorn.run("deepcompare.web.app:app", host=host, port=port, log_level="info")
