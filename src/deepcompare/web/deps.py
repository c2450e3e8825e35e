"""Per-app shared objects, created lazily on first use."""

from fastapi import Request

from ..compare.coordinator import ComparisonCoordinator, build_coordinator
from ..core.config import load_config, resolve_path
from ..core.credentials import CredentialStore
from ..core.history import HistoryStore


def get_config(request: Request) -> dict:
    state = request.app.state
    if getattr(state, "config", None) is None:
        state.config = load_config()
    return state.config


def get_coordinator(request: Request) -> ComparisonCoordinator:
    """The app's single coordinator; one run at a time for the whole dashboard."""
    state = request.app.state
    if getattr(state, "coordinator", None) is None:
        state.coordinator = build_coordinator(get_config(request))
    return state.coordinator


def get_credentials(request: Request) -> CredentialStore:
    return CredentialStore(resolve_path(get_config(request), "keys_file"))


def get_history(request: Request) -> HistoryStore:
    return HistoryStore(resolve_path(get_config(request), "history_file"))
