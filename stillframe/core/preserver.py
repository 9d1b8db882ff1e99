"""Artifact preserver: the central coordinator for one preserved image.

The ArtifactPreserver wires together the ChunkStore, codec, SourceList,
ModeController, RetrievalVerifier, EventBus, ChangeLog and StateStore
into a single object that enforces the access matrix and serializes
every mutation.

Concurrency model
-----------------
All mutating entry points run under one re-entrant lock, so no two
mutations interleave.  A mutation applies its change, saves the new state,
and only then publishes its events (and so appends to the change log).
If anything raises before the save completes, the components are
restored from the snapshot taken on entry and no event is published.
Each component swaps immutable snapshots on write, so reads take no lock
and never see a half-applied change.  ``render()``
performs its network fetches outside the lock.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from stillframe.config import StillframeConfig
from stillframe.core.access import (
    WriterCapability,
    require_artist,
    require_artist_or_holder,
)
from stillframe.core.change_log import ChangeLog
from stillframe.core.chunk_store import ChunkStore, split_into_chunks
from stillframe.core.codec import compress, decompress
from stillframe.core.event_bus import EventBus
from stillframe.core.hasher import normalize_digest
from stillframe.core.mode_controller import DisplayOutput, ModeController
from stillframe.core.source_list import SourceList
from stillframe.core.state_store import StateStore
from stillframe.core.verifier import Fetcher, RetrievalVerifier
from stillframe.models.events import ChangeEvent, ChangeKind
from stillframe.models.sources import SourceEntry, SwapRemoval
from stillframe.models.state import DisplayMode, DisplayState, PersistedState

logger = logging.getLogger(__name__)

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


class ArtifactPreserver:
    """Preserved-artifact coordinator.

    Parameters
    ----------
    capability:
        External ownership oracle consulted by every mutation.
    fetcher:
        Retrieval backend for verified-mode rendering.
    config:
        Runtime configuration.  Uses defaults if not provided.
    state:
        Initial state.  When omitted, the state store is loaded (if any),
        otherwise the preserver starts empty.
    state_store:
        Optional persistence; saved before a mutation's events are published.
    change_log:
        Optional hash-chained log subscribed to every change event.
    """

    def __init__(
        self,
        capability: WriterCapability,
        fetcher: Fetcher,
        *,
        config: StillframeConfig | None = None,
        state: PersistedState | None = None,
        state_store: StateStore | None = None,
        change_log: ChangeLog | None = None,
    ) -> None:
        self.config = config or StillframeConfig()
        self._capability = capability
        self._lock = threading.RLock()
        self._state_store = state_store
        self.change_log = change_log

        if state is None and state_store is not None:
            state = state_store.load()
        initial = state or PersistedState()

        self.bus = EventBus()
        # Source events are held here until the mutation has been saved.
        self._pending: list[ChangeEvent] = []
        self._staging = EventBus()
        self._staging.subscribe(None, self._pending.append)

        self.chunks = ChunkStore(initial.segments)
        self.sources = SourceList(
            initial.artist_sources, initial.collector_sources, bus=self._staging
        )
        self.modes = ModeController(
            DisplayState(mode=initial.mode, selected_index=initial.selected_index)
        )
        self._expected_digest = normalize_digest(initial.expected_digest)
        self.verifier = RetrievalVerifier(
            fetcher,
            timeout_seconds=self.config.fetch_timeout_seconds,
            max_workers=self.config.speculative_fetch_workers,
        )

        if change_log is not None:
            self.bus.subscribe(None, self._record)

    # ------------------------------------------------------------------
    # Thumbnail (artist only)
    # ------------------------------------------------------------------

    def write_thumbnail(self, caller: str, image: bytes) -> list[bytes]:
        """Compress *image*, split it at the chunk limit, and replace all chunks."""
        with self._mutation():
            role = require_artist(self._capability, caller, "write the thumbnail")
            compressed = compress(image)
            chunks = split_into_chunks(compressed, self.config.chunk_size_limit)
            self.chunks.replace_all(chunks)
            logger.info(
                "Thumbnail written: %d bytes -> %d compressed in %d chunk(s)",
                len(image),
                len(compressed),
                len(chunks),
            )
            self._publish(
                ChangeKind.CHUNKS_REPLACED,
                caller,
                role,
                chunk_count=len(chunks),
                total_bytes=len(compressed),
                original_bytes=len(image),
            )
            self._persist()
            return chunks

    def replace_chunks(self, caller: str, chunks: Iterable[bytes]) -> None:
        """Replace the whole segment sequence with pre-split *chunks*."""
        with self._mutation():
            role = require_artist(self._capability, caller, "replace chunks")
            new_chunks = [bytes(c) for c in chunks]
            self.chunks.replace_all(new_chunks)
            logger.info("Chunks replaced (%d chunk(s))", len(new_chunks))
            self._publish(
                ChangeKind.CHUNKS_REPLACED,
                caller,
                role,
                chunk_count=len(new_chunks),
                total_bytes=sum(len(c) for c in new_chunks),
            )
            self._persist()

    def append_chunks(self, caller: str, chunks: Iterable[bytes]) -> None:
        """Append pre-split *chunks* after the current sequence."""
        with self._mutation():
            role = require_artist(self._capability, caller, "append chunks")
            new_chunks = [bytes(c) for c in chunks]
            self.chunks.append(new_chunks)
            logger.info(
                "Chunks appended (%d new, %d total)", len(new_chunks), len(self.chunks)
            )
            self._publish(
                ChangeKind.CHUNKS_APPENDED,
                caller,
                role,
                chunk_count=len(new_chunks),
                total_bytes=sum(len(c) for c in new_chunks),
            )
            self._persist()

    # ------------------------------------------------------------------
    # Expected digest (artist only)
    # ------------------------------------------------------------------

    def set_expected_digest(self, caller: str, digest: str) -> str:
        """Set the SHA-256 digest of the authoritative artifact.

        An empty digest clears it, which makes verification fail closed.
        """
        with self._mutation():
            role = require_artist(self._capability, caller, "set the digest")
            normalized = normalize_digest(digest)
            if normalized and not _SHA256_HEX.match(normalized):
                raise ValueError(f"Not a SHA-256 hex digest: {digest!r}")
            self._expected_digest = normalized
            logger.info("Expected digest set to %s", normalized or "<empty>")
            self._publish(ChangeKind.DIGEST_SET, caller, role, digest=normalized)
            self._persist()
            return normalized

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def add_artist_source(self, caller: str, uri: str) -> SourceEntry:
        with self._mutation():
            role = require_artist(self._capability, caller, "add artist sources")
            entry = self.sources.add_artist_source(uri, actor=caller, actor_role=role)
            self._persist()
            return entry

    def replace_artist_sources(self, caller: str, uris: Iterable[str]) -> None:
        with self._mutation():
            role = require_artist(self._capability, caller, "replace artist sources")
            self.sources.replace_artist_sources(uris, actor=caller, actor_role=role)
            self._persist()

    def add_collector_source(self, caller: str, uri: str) -> SourceEntry:
        with self._mutation():
            role = require_artist_or_holder(
                self._capability, caller, "add collector sources"
            )
            entry = self.sources.add_collector_source(
                uri, actor=caller, actor_role=role
            )
            self._persist()
            return entry

    def remove_collector_source(self, caller: str, index: int) -> SwapRemoval:
        with self._mutation():
            role = require_artist_or_holder(
                self._capability, caller, "remove collector sources"
            )
            record = self.sources.remove_collector_source(
                index, actor=caller, actor_role=role
            )
            self._persist()
            return record

    # ------------------------------------------------------------------
    # Display state (artist or holder)
    # ------------------------------------------------------------------

    def set_mode(self, caller: str, mode: DisplayMode | str) -> DisplayState:
        with self._mutation():
            role = require_artist_or_holder(self._capability, caller, "set the mode")
            state = self.modes.set_mode(DisplayMode(mode))
            self._publish(ChangeKind.MODE_SET, caller, role, mode=state.mode.value)
            self._persist()
            return state

    def select(self, caller: str, index: int) -> DisplayState:
        with self._mutation():
            role = require_artist_or_holder(
                self._capability, caller, "select a source"
            )
            state = self.modes.select(index)
            self._publish(
                ChangeKind.SELECTION_SET, caller, role, selected_index=index
            )
            self._persist()
            return state

    # ------------------------------------------------------------------
    # Reads (lock-free)
    # ------------------------------------------------------------------

    @property
    def expected_digest(self) -> str:
        return self._expected_digest

    @property
    def display_state(self) -> DisplayState:
        return self.modes.state

    def has_thumbnail(self) -> bool:
        return self.chunks.exists()

    def reassemble(self) -> bytes:
        """Return the stored compressed payload (``ChunkNotFoundError`` if none)."""
        return self.chunks.reassemble()

    def thumbnail(self) -> bytes:
        """Return the decompressed thumbnail image."""
        return decompress(self.chunks.reassemble())

    def combined_ordered(self) -> list[SourceEntry]:
        return self.sources.combined_ordered()

    def render(self) -> DisplayOutput:
        """Resolve what the outside world should be shown right now."""
        return self.modes.resolve(self.sources, self._expected_digest, self.verifier)

    @classmethod
    def from_state(
        cls,
        state: PersistedState,
        capability: WriterCapability,
        fetcher: Fetcher,
        **kwargs,
    ) -> ArtifactPreserver:
        """Rebuild a preserver from a previously captured ``snapshot()``."""
        return cls(capability, fetcher, state=state, **kwargs)

    def snapshot(self) -> PersistedState:
        """Capture the full persisted-state layout."""
        with self._lock:
            state = self.modes.state
            return PersistedState(
                segments=list(self.chunks.segments),
                expected_digest=self._expected_digest,
                artist_sources=list(self.sources.artist_sources),
                collector_sources=list(self.sources.collector_sources),
                mode=state.mode,
                selected_index=state.selected_index,
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        with self._lock:
            before = self.snapshot()
            self._pending.clear()
            try:
                yield
                self._persist()
            except BaseException:
                self._restore(before)
                self._pending.clear()
                raise
            events = list(self._pending)
            self._pending.clear()
            for event in events:
                self.bus.publish(event)

    def _restore(self, state: PersistedState) -> None:
        self.chunks.replace_all(state.segments)
        self.sources.restore(state.artist_sources, state.collector_sources)
        self.modes.restore(
            DisplayState(mode=state.mode, selected_index=state.selected_index)
        )
        self._expected_digest = state.expected_digest

    def _publish(self, kind: ChangeKind, actor: str, role: str, **payload) -> None:
        self._pending.append(
            ChangeEvent(kind=kind, actor=actor, role=role, payload=payload)
        )

    def _record(self, event: ChangeEvent) -> None:
        if self.change_log is not None:
            self.change_log.append(event)

    def _persist(self) -> None:
        if self._state_store is not None:
            self._state_store.save(self.snapshot())
