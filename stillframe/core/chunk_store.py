"""Ordered, append-only segment store for the compressed thumbnail.

Segments are immutable ``bytes``.  The live sequence is held as a tuple
and swapped wholesale on every write, so a reader holding the previous
tuple never observes a partially written sequence.  Replacing the
sequence makes the old segments unreachable; nothing is edited in place.

The store accepts segments of any size.  Callers split their payload
with :func:`split_into_chunks` to respect the medium's per-write limit.
"""

from __future__ import annotations

from collections.abc import Iterable


class ChunkNotFoundError(LookupError):
    """Raised when reassembling before any segment has been written."""


def split_into_chunks(data: bytes, limit: int) -> list[bytes]:
    """Split *data* into consecutive chunks of at most *limit* bytes.

    Empty data yields a single empty chunk so that an empty payload
    still counts as written.
    """
    if limit <= 0:
        raise ValueError(f"Chunk size limit must be positive, got {limit}")
    if not data:
        return [b""]
    return [bytes(data[i:i + limit]) for i in range(0, len(data), limit)]


class ChunkStore:
    """Ordered collection of immutable byte segments."""

    def __init__(self, segments: Iterable[bytes] = ()) -> None:
        self._segments: tuple[bytes, ...] = tuple(bytes(s) for s in segments)

    @property
    def segments(self) -> tuple[bytes, ...]:
        """Snapshot of the current sequence."""
        return self._segments

    def __len__(self) -> int:
        return len(self._segments)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def replace_all(self, chunks: Iterable[bytes]) -> None:
        """Discard the current sequence and install *chunks* in order."""
        self._segments = tuple(bytes(c) for c in chunks)

    def append(self, chunks: Iterable[bytes]) -> None:
        """Add *chunks* after the current sequence, preserving order."""
        self._segments = self._segments + tuple(bytes(c) for c in chunks)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """True iff at least one segment has been written."""
        return len(self._segments) > 0

    def reassemble(self) -> bytes:
        """Concatenate all segments in sequence order."""
        segments = self._segments
        if not segments:
            raise ChunkNotFoundError("No segments have been written")
        return b"".join(segments)

    @property
    def total_size(self) -> int:
        """Sum of segment lengths in bytes."""
        return sum(len(s) for s in self._segments)
