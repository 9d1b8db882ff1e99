"""Source list models: candidate locations and their provenance."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class SourceRole(str, Enum):
    """Which party controls a source partition."""

    ARTIST = "artist"
    COLLECTOR = "collector"


class SourceEntry(BaseModel):
    """A candidate location (URI) tagged with the partition it came from."""

    model_config = ConfigDict(frozen=True)

    uri: str
    role: SourceRole


class SwapRemoval(BaseModel):
    """Record of a swap-with-last removal from the collector partition.

    ``moved_uri`` is the former last element now sitting at ``index``,
    or ``None`` when the removed element was itself the last one.
    """

    model_config = ConfigDict(frozen=True)

    removed_uri: str
    index: int
    moved_uri: str | None = None
    strategy: Literal["swap_remove"] = "swap_remove"
