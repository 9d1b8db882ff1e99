"""Ordered, de-duplicated candidate source lists.

Two partitions are kept: artist-controlled and collector-controlled.
Identifiers are unique *within* a partition; the same URI may appear in
both.  ``combined_ordered()`` puts the artist partition first, which
expresses artist priority, not freshness or reliability.

Both partitions live in a single immutable ``(artist, collector)`` pair
that is swapped on every mutation, so readers always see one coherent
state without locking.

Collector removal is an explicit swap-with-last-then-pop: the last entry
moves into the vacated slot.  Each removal returns a ``SwapRemoval``
record so callers can see exactly which entry moved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from stillframe.core.event_bus import EventBus
from stillframe.models.events import ChangeEvent, ChangeKind
from stillframe.models.sources import SourceEntry, SourceRole, SwapRemoval

logger = logging.getLogger(__name__)


class EmptyIdentifierError(ValueError):
    """Raised when inserting an empty source identifier."""


class DuplicateIdentifierError(ValueError):
    """Raised when a URI already exists in the target partition."""


class SourceIndexOutOfRangeError(IndexError):
    """Raised when a collector index does not address an existing entry."""


class SourceList:
    """Artist and collector source partitions.

    Parameters
    ----------
    artist_sources, collector_sources:
        Initial partition contents, taken as-is (used when restoring
        persisted state).
    bus:
        Optional event bus; every successful mutation publishes one event.
    """

    def __init__(
        self,
        artist_sources: Iterable[str] = (),
        collector_sources: Iterable[str] = (),
        *,
        bus: EventBus | None = None,
    ) -> None:
        self._state: tuple[tuple[str, ...], tuple[str, ...]] = (
            tuple(artist_sources),
            tuple(collector_sources),
        )
        self._bus = bus

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def artist_sources(self) -> tuple[str, ...]:
        return self._state[0]

    @property
    def collector_sources(self) -> tuple[str, ...]:
        return self._state[1]

    def restore(
        self, artist_sources: Iterable[str], collector_sources: Iterable[str]
    ) -> None:
        """Install both partitions as-is without publishing an event.

        Used to roll back a mutation whose persistence failed.
        """
        self._state = (tuple(artist_sources), tuple(collector_sources))

    def combined_ordered(self) -> list[SourceEntry]:
        """Artist entries in insertion order, then collector entries."""
        artist, collector = self._state
        return [SourceEntry(uri=u, role=SourceRole.ARTIST) for u in artist] + [
            SourceEntry(uri=u, role=SourceRole.COLLECTOR) for u in collector
        ]

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def add_artist_source(
        self, uri: str, *, actor: str = "", actor_role: str = ""
    ) -> SourceEntry:
        """Append *uri* to the artist partition."""
        return self._add(uri, SourceRole.ARTIST, actor, actor_role)

    def add_collector_source(
        self, uri: str, *, actor: str = "", actor_role: str = ""
    ) -> SourceEntry:
        """Append *uri* to the collector partition."""
        return self._add(uri, SourceRole.COLLECTOR, actor, actor_role)

    def _add(
        self, uri: str, role: SourceRole, actor: str, actor_role: str
    ) -> SourceEntry:
        artist, collector = self._state
        partition = artist if role == SourceRole.ARTIST else collector

        if not uri:
            raise EmptyIdentifierError(f"Cannot add an empty {role.value} source")
        if uri in partition:
            raise DuplicateIdentifierError(
                f"{uri!r} is already a {role.value} source"
            )

        if role == SourceRole.ARTIST:
            self._state = (artist + (uri,), collector)
        else:
            self._state = (artist, collector + (uri,))

        logger.info("Added %s source %s", role.value, uri)
        self._emit(
            ChangeKind.SOURCE_ADDED,
            actor=actor,
            role=actor_role or role.value,
            payload={"uri": uri, "partition": role.value},
        )
        return SourceEntry(uri=uri, role=role)

    # ------------------------------------------------------------------
    # Remove / replace
    # ------------------------------------------------------------------

    def remove_collector_source(
        self, index: int, *, actor: str = "", actor_role: str = ""
    ) -> SwapRemoval:
        """Remove the collector entry at *index* by swap-with-last-then-pop.

        Ordering after *index* is not preserved: the former last entry
        takes the removed entry's slot.
        """
        artist, collector = self._state
        size = len(collector)
        if index < 0 or index >= size:
            raise SourceIndexOutOfRangeError(
                f"Collector index {index} out of range (length {size})"
            )

        entries = list(collector)
        removed = entries[index]
        moved: str | None = None
        if index != size - 1:
            moved = entries[-1]
            entries[index] = moved
        entries.pop()
        self._state = (artist, tuple(entries))

        record = SwapRemoval(removed_uri=removed, index=index, moved_uri=moved)
        logger.info("Removed collector source %s (index %d)", removed, index)
        self._emit(
            ChangeKind.SOURCE_REMOVED,
            actor=actor,
            role=actor_role or SourceRole.COLLECTOR.value,
            payload=record.model_dump(mode="json"),
        )
        return record

    def replace_artist_sources(
        self, uris: Iterable[str], *, actor: str = "", actor_role: str = ""
    ) -> None:
        """Replace the whole artist partition with *uris*, taken as-is.

        No de-duplication is applied to the new list.
        """
        new_artist = tuple(uris)
        self._state = (new_artist, self._state[1])
        logger.info("Replaced artist sources (%d entries)", len(new_artist))
        self._emit(
            ChangeKind.ARTIST_SOURCES_REPLACED,
            actor=actor,
            role=actor_role or SourceRole.ARTIST.value,
            payload={"uris": list(new_artist)},
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _emit(self, kind: ChangeKind, **fields: Any) -> None:
        if self._bus is not None:
            self._bus.publish(ChangeEvent(kind=kind, **fields))
