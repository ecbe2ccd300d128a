"""Durable storage for hub session state.

A session is one JSON document with the top-level keys in ``STATE_KEYS``.
Two back-ends share the same interface: a single JSON file replaced
atomically on every save, and a SQLite table with one row per session.
"""

import json
import logging
import os
import sqlite3
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STATE_KEYS = ("agents", "findings", "issues", "fixes", "recommendations", "help_requests")


class StateStoreError(RuntimeError):
    """Structured persistence error."""

    def __init__(self, code: str, message: str):
        self.code = str(code)
        self.message = str(message)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


def normalize_state(raw: Any) -> Dict[str, Any]:
    """Coerce a loaded document into the session shape.

    Missing or malformed collections become empty; unknown top-level keys
    are dropped.
    """
    raw = raw if isinstance(raw, dict) else {}
    state: Dict[str, Any] = {}
    for key in STATE_KEYS:
        value = raw.get(key)
        state[key] = list(value) if isinstance(value, list) else []
    context = raw.get("context")
    state["context"] = dict(context) if isinstance(context, dict) else {}
    return state


class StateStore:
    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, state: Dict[str, Any]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class JsonStateStore(StateStore):
    """One JSON file per session, written to a temp file then renamed."""

    def __init__(self, path: str) -> None:
        if not path:
            raise ValueError("JsonStateStore requires a path")
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> Optional[Dict[str, Any]]:
        """Stored state, or None when nothing has been saved yet."""
        with self._lock:
            if not os.path.exists(self.path):
                return None
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except json.JSONDecodeError as exc:
                raise StateStoreError("corrupt_state", f"{self.path}: {exc}") from exc
            except OSError as exc:
                raise StateStoreError("read_failed", f"{self.path}: {exc}") from exc
        return normalize_state(raw)

    def save(self, state: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        with self._lock:
            tmp_path = None
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(state, f, indent=2, default=str)
                os.replace(tmp_path, self.path)
                tmp_path = None
            except (OSError, TypeError, ValueError) as exc:
                raise StateStoreError("write_failed", f"{self.path}: {exc}") from exc
            finally:
                if tmp_path and os.path.exists(tmp_path):
                    os.unlink(tmp_path)


class SqliteStateStore(StateStore):
    """SQLite-backed session storage.

    One table, hub_sessions, holding the whole session document as JSON text
    keyed by session id.
    """

    def __init__(self, db_path: str = ":memory:", session_id: str = "default") -> None:
        self._db_path = db_path
        self.session_id = session_id
        self._lock = threading.Lock()
        try:
            if db_path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except (sqlite3.Error, OSError) as exc:
            raise StateStoreError("open_failed", f"{db_path}: {exc}") from exc

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS hub_sessions (
                id          TEXT PRIMARY KEY,
                state       TEXT NOT NULL DEFAULT '{}',
                updated     TEXT NOT NULL
            );
        """)

    def load(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT state FROM hub_sessions WHERE id = ?", (self.session_id,)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StateStoreError("read_failed", str(exc)) from exc
        if row is None:
            return None
        try:
            raw = json.loads(row["state"])
        except json.JSONDecodeError as exc:
            raise StateStoreError("corrupt_state", f"session {self.session_id}: {exc}") from exc
        return normalize_state(raw)

    def save(self, state: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(state, default=str)
        except (TypeError, ValueError) as exc:
            raise StateStoreError("write_failed", str(exc)) from exc
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            try:
                self._conn.execute(
                    """INSERT INTO hub_sessions (id, state, updated) VALUES (?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET state = excluded.state, updated = excluded.updated""",
                    (self.session_id, payload, now),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StateStoreError("write_failed", str(exc)) from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()
