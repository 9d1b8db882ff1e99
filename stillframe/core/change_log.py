"""Append-only, hash-chained change log backed by SQLite.

Every mutation event published on the ``EventBus`` can be sealed into
this log, giving a tamper-evident history of who changed the sources,
digest, chunks and display state, and when.

Design:
- Append-only: only ``append()`` writes; no update, no delete.
- Hash-chained: each entry includes SHA-256 of the previous entry.
- WAL journal mode for concurrent readers.
- entry_hash UNIQUE constraint for tamper detection.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stillframe.core.hasher import canonical_json_bytes, compute_entry_hash, sha256_hex
from stillframe.models.events import ChangeEvent, ChangeLogEntry

_CREATE_LOG = """
CREATE TABLE IF NOT EXISTS change_log (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id            TEXT NOT NULL UNIQUE,
    kind                TEXT NOT NULL,
    actor               TEXT NOT NULL DEFAULT '',
    role                TEXT NOT NULL DEFAULT '',
    payload_json        TEXT NOT NULL DEFAULT '{}',
    timestamp_utc       TEXT NOT NULL,
    previous_entry_hash TEXT NOT NULL DEFAULT '',
    entry_hash          TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_KIND = """
CREATE INDEX IF NOT EXISTS idx_kind ON change_log(kind, id);
"""


class ChangeLogIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class ChangeLog:
    """Append-only, hash-chained log of change events.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_LOG)
            conn.execute(_CREATE_IDX_KIND)
            conn.commit()

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, event: ChangeEvent) -> ChangeLogEntry:
        """Seal *event* onto the end of the chain and persist it."""
        previous_hash = self._get_latest_hash()

        entry = ChangeLogEntry.from_event(event).model_copy(
            update={"previous_entry_hash": previous_hash}
        )
        entry_dict = entry.model_dump(mode="json")
        entry_hash = compute_entry_hash(entry_dict)
        sealed = entry.model_copy(update={"entry_hash": entry_hash})

        self._insert(sealed)
        return sealed

    def _insert(self, entry: ChangeLogEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO change_log
                    (event_id, kind, actor, role, payload_json, timestamp_utc,
                     previous_entry_hash, entry_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.event_id,
                    entry.kind.value,
                    entry.actor,
                    entry.role,
                    json.dumps(entry.payload, sort_keys=True),
                    entry.timestamp_utc.isoformat(),
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )
            conn.commit()

    def _get_latest_hash(self) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM change_log ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def entries(self, kind: str | None = None) -> list[ChangeLogEntry]:
        """Return all entries in chronological order, optionally by kind."""
        with self._connect() as conn:
            if kind is None:
                rows = conn.execute(
                    "SELECT * FROM change_log ORDER BY id ASC"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM change_log WHERE kind = ? ORDER BY id ASC",
                    (kind,),
                ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def __len__(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM change_log").fetchone()
        return row[0] if row else 0

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self) -> bool:
        """Walk the chain, recomputing every hash and link.

        Returns True if the chain is valid, raises ChangeLogIntegrityError
        otherwise.
        """
        prev_hash = ""
        for entry in self.entries():
            if entry.previous_entry_hash != prev_hash:
                raise ChangeLogIntegrityError(
                    f"Chain broken at event {entry.event_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )

            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise ChangeLogIntegrityError(
                    f"Tampered event {entry.event_id}: "
                    f"expected hash={expected_hash!r}, "
                    f"got {entry.entry_hash!r}"
                )

            prev_hash = entry.entry_hash

        return True

    # ------------------------------------------------------------------
    # External anchoring
    # ------------------------------------------------------------------

    def export_anchor(self) -> dict[str, Any]:
        """Export a tamper-evident anchor for external witnessing.

        Comparing a previously exported anchor against the current chain
        detects retroactive rewrites.
        """
        entries = self.entries()
        payload: dict[str, Any] = {
            "entry_count": len(entries),
            "root_hash": entries[-1].entry_hash if entries else "",
            "first_entry_hash": entries[0].entry_hash if entries else "",
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
        payload["anchor_hash"] = (
            sha256_hex(canonical_json_bytes(payload)) if entries else ""
        )
        return payload

    def verify_against_anchor(self, anchor: dict[str, Any]) -> bool:
        """Verify the current chain against a previously exported anchor."""
        entries = self.entries()

        expected_count = anchor.get("entry_count", 0)
        if len(entries) < expected_count:
            raise ChangeLogIntegrityError(
                f"Chain has {len(entries)} entries but anchor expects "
                f"at least {expected_count}."
            )
        if expected_count == 0:
            return True

        if entries[0].entry_hash != anchor.get("first_entry_hash", ""):
            raise ChangeLogIntegrityError(
                "First entry hash mismatch; chain may have been rewritten "
                "from the beginning."
            )
        if entries[expected_count - 1].entry_hash != anchor.get("root_hash", ""):
            raise ChangeLogIntegrityError(
                f"Root hash mismatch at entry {expected_count}; chain may "
                f"have been retroactively modified."
            )

        self.verify_chain()
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: tuple) -> ChangeLogEntry:
        (
            _id,
            event_id,
            kind,
            actor,
            role,
            payload_json,
            timestamp_utc,
            previous_entry_hash,
            entry_hash,
        ) = row
        return ChangeLogEntry(
            event_id=event_id,
            kind=kind,
            actor=actor,
            role=role,
            payload=json.loads(payload_json),
            timestamp_utc=timestamp_utc,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
