"""Canonical hashing helpers for content verification and the change log."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def normalize_digest(digest: str | None) -> str:
    """Normalize a hex digest for comparison.

    Strips whitespace, an optional ``sha256:`` or ``0x`` prefix, and
    lowercases.  ``None`` normalizes to the empty string.
    """
    if not digest:
        return ""
    value = digest.strip().lower()
    value = value.removeprefix("sha256:")
    value = value.removeprefix("0x")
    return value


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a change-log entry (excluding the entry_hash field itself)."""
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
