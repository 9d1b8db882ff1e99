"""Display state and the persisted state layout."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DisplayMode(str, Enum):
    """How the artifact is presented to the outside world."""

    DIRECT = "direct"  # show artist_sources[selected_index] as-is
    VERIFIED = "verified"  # show the first digest-verified candidate


class DisplayState(BaseModel):
    """Current display mode plus the direct-mode selection."""

    model_config = ConfigDict(frozen=True)

    mode: DisplayMode = DisplayMode.DIRECT
    selected_index: int = Field(default=0, ge=0)


class PersistedState(BaseModel):
    """Logical layout of everything the preserver keeps between runs."""

    model_config = ConfigDict(frozen=True)

    segments: list[bytes] = []
    expected_digest: str = ""
    artist_sources: list[str] = []
    collector_sources: list[str] = []
    mode: DisplayMode = DisplayMode.DIRECT
    selected_index: int = Field(default=0, ge=0)
