"""SQLite persistence for ``PersistedState``.

Segments are kept as BLOB rows keyed by position.  The scalar state
(digest, source lists, display state) is kept as JSON in a key-value
table.  ``save()`` rewrites both in one transaction, so a concurrent
``load()`` sees either the old state or the new one.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from stillframe.models.state import PersistedState

logger = logging.getLogger(__name__)

_CREATE_SEGMENTS = """
CREATE TABLE IF NOT EXISTS segments (
    position INTEGER PRIMARY KEY,
    data     BLOB NOT NULL
);
"""

_CREATE_STATE = """
CREATE TABLE IF NOT EXISTS state (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_STATE_KEY = "preserver"


class StateStore:
    """Loads and saves the preserver's state in a SQLite database.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_CREATE_SEGMENTS)
            conn.execute(_CREATE_STATE)
            conn.commit()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def save(self, state: PersistedState) -> None:
        """Replace the stored state with *state* atomically."""
        scalar = state.model_dump(mode="json", exclude={"segments"})
        with self._connect() as conn:
            conn.execute("DELETE FROM segments")
            conn.executemany(
                "INSERT INTO segments (position, data) VALUES (?, ?)",
                [(i, sqlite3.Binary(seg)) for i, seg in enumerate(state.segments)],
            )
            conn.execute(
                "INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)",
                (_STATE_KEY, json.dumps(scalar, sort_keys=True)),
            )
            conn.commit()
        logger.debug(
            "Saved state (%d segments) to %s", len(state.segments), self._db_path
        )

    def load(self) -> PersistedState | None:
        """Return the saved state, or ``None`` if nothing was saved yet."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM state WHERE key = ?", (_STATE_KEY,)
            ).fetchone()
            if row is None:
                return None
            segments = [
                bytes(r[0])
                for r in conn.execute(
                    "SELECT data FROM segments ORDER BY position ASC"
                ).fetchall()
            ]
        scalar = json.loads(row[0])
        return PersistedState(segments=segments, **scalar)
