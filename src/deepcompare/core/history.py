"""Local session history: finalized sessions stored in one JSON file."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from .models import Session

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only store of finalized sessions keyed by session id."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, session: Session) -> str:
        """Persist a session (replacing one with the same id). Returns its id."""
        entries = self._load()
        seq = max((e.get("seq", 0) for e in entries.values()), default=0) + 1
        entries[session.session_id] = {
            "session": session.to_dict(),
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "seq": seq,
        }
        self._write(entries)
        logger.info("Saved session %s to history", session.session_id)
        return session.session_id

    def list_sessions(self) -> list[Session]:
        """All sessions, newest first."""
        entries = sorted(
            self._load().values(),
            key=lambda e: e.get("seq", 0),
            reverse=True,
        )
        return [Session.from_dict(e["session"]) for e in entries]

    def get(self, session_id: str) -> Session | None:
        entry = self._load().get(session_id)
        return Session.from_dict(entry["session"]) if entry else None

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns True if it existed."""
        entries = self._load()
        if session_id not in entries:
            return False
        del entries[session_id]
        self._write(entries)
        logger.info("Deleted session %s from history", session_id)
        return True

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def _write(self, entries: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2, ensure_ascii=False)
