"""Change events: one per successful mutation."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChangeKind(str, Enum):
    """Every kind of state mutation the preserver can perform."""

    SOURCE_ADDED = "source_added"
    SOURCE_REMOVED = "source_removed"
    ARTIST_SOURCES_REPLACED = "artist_sources_replaced"
    CHUNKS_REPLACED = "chunks_replaced"
    CHUNKS_APPENDED = "chunks_appended"
    DIGEST_SET = "digest_set"
    MODE_SET = "mode_set"
    SELECTION_SET = "selection_set"


class ChangeEvent(BaseModel):
    """A discrete, observable record of one mutation.

    ``payload`` carries the kind-specific details (the URI and role for
    source events, chunk counts and sizes for chunk events, and so on).
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: ChangeKind
    actor: str = ""
    role: str = ""
    payload: dict[str, Any] = {}
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ChangeLogEntry(BaseModel):
    """A sealed change-log row: the event plus its hash-chain links."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    kind: ChangeKind
    actor: str = ""
    role: str = ""
    payload: dict[str, Any] = {}
    timestamp_utc: datetime
    previous_entry_hash: str = ""  # entry_hash of the preceding row
    entry_hash: str = ""  # computed on append, seals this row

    @classmethod
    def from_event(cls, event: ChangeEvent) -> ChangeLogEntry:
        return cls(**event.model_dump())
