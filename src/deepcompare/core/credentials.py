"""API key store: a JSON file mapping model id -> key.

The coordinator never reads this file itself; callers resolve keys here
and pass them in a CompareContext.
"""

import json
from pathlib import Path

from .constants import KNOWN_MODELS, model_display_name


class CredentialStore:
    """Keyed string map persisted as JSON."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._keys: dict[str, str] | None = None

    @property
    def keys(self) -> dict[str, str]:
        if self._keys is None:
            self._keys = self._load()
        return self._keys

    def get(self, model: str) -> str:
        return self.keys.get(model, "")

    def set(self, model: str, key: str) -> None:
        self.keys[model] = key.strip()
        self._save()

    def clear(self) -> None:
        self._keys = {}
        self._save()

    def configured_count(self) -> int:
        return sum(1 for key in self.keys.values() if key.strip())

    def missing_for(self, models: list[str]) -> list[str]:
        """Models among ``models`` that have no usable key."""
        return [m for m in models if not self.get(m).strip()]

    def select(self, models: list[str]) -> dict[str, str]:
        """Keys for the given models only."""
        return {m: self.get(m) for m in models}

    def import_file(self, source: Path) -> int:
        """Merge keys from an exported JSON file. Returns the number imported.

        Raises ValueError if the file is not JSON or mentions no known model.
        """
        try:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError("Failed to parse key file") from e
        if not isinstance(data, dict) or not any(m in data for m in KNOWN_MODELS):
            raise ValueError("Invalid key file format")

        imported = {k: str(v) for k, v in data.items() if isinstance(v, str)}
        self.keys.update(imported)
        self._save()
        return len(imported)

    def export_file(self, dest: Path) -> None:
        Path(dest).write_text(json.dumps(self.keys, indent=2), encoding="utf-8")

    def status(self) -> list[tuple[str, str, bool]]:
        """(model id, display name, configured) for every known model."""
        return [(m, model_display_name(m), bool(self.get(m).strip())) for m in KNOWN_MODELS]

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError("Invalid key file format") from e
        if not isinstance(data, dict):
            raise ValueError("Invalid key file format")
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.keys, indent=2), encoding="utf-8")
