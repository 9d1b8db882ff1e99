"""Shared test fixtures for Stillframe."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from stillframe.bridge.http_fetcher import MappingFetcher
from stillframe.config import StillframeConfig
from stillframe.core.access import StaticWriterCapability
from stillframe.core.change_log import ChangeLog
from stillframe.core.event_bus import EventBus
from stillframe.core.hasher import sha256_hex
from stillframe.core.preserver import ArtifactPreserver
from stillframe.core.state_store import StateStore
from stillframe.models.events import ChangeEvent

ARTIST = "0xA11CE"
HOLDER = "0xB0B"
STRANGER = "0xEVE"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases."""
    return tmp_path


@pytest.fixture
def config() -> StillframeConfig:
    """Config with explicit values so the environment cannot leak in."""
    return StillframeConfig(
        chunk_size_limit=24575,
        fetch_timeout_seconds=2.0,
        speculative_fetch_workers=1,
        artist_id=ARTIST,
        holder_id=HOLDER,
    )


@pytest.fixture
def capability() -> StaticWriterCapability:
    return StaticWriterCapability(ARTIST, HOLDER)


@pytest.fixture
def fetcher() -> MappingFetcher:
    """Empty in-memory fetcher; every URI is unreachable."""
    return MappingFetcher({})


@pytest.fixture
def preserver(
    capability: StaticWriterCapability,
    fetcher: MappingFetcher,
    config: StillframeConfig,
) -> ArtifactPreserver:
    """Provide an in-memory preserver (no persistence, no change log)."""
    return ArtifactPreserver(capability, fetcher, config=config)


@pytest.fixture
def change_log(tmp_dir: Path) -> ChangeLog:
    """Provide a fresh ChangeLog backed by a temp SQLite database."""
    return ChangeLog(tmp_dir / "changelog.db")


@pytest.fixture
def state_store(tmp_dir: Path) -> StateStore:
    """Provide a fresh StateStore backed by a temp SQLite database."""
    return StateStore(tmp_dir / "state.db")


@pytest.fixture
def recorded_events() -> tuple[EventBus, list[ChangeEvent]]:
    """An EventBus plus the list every published event is collected into."""
    bus = EventBus()
    seen: list[ChangeEvent] = []
    bus.subscribe(None, seen.append)
    return bus, seen


# ---------------------------------------------------------------------------
# Content factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_content() -> Callable[[str], tuple[bytes, str]]:
    """Factory fixture: return ``(content, sha256)`` for a label."""

    def _factory(label: str) -> tuple[bytes, str]:
        content = f"full-resolution artwork: {label}".encode()
        return content, sha256_hex(content)

    return _factory
