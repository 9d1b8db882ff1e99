"""Stillframe data models: all Pydantic v2, all frozen (immutable)."""

from stillframe.models.events import ChangeEvent, ChangeKind, ChangeLogEntry
from stillframe.models.sources import SourceEntry, SourceRole, SwapRemoval
from stillframe.models.state import DisplayMode, DisplayState, PersistedState
from stillframe.models.verification import (
    AttemptOutcome,
    FailureReason,
    FetchAttempt,
    VerificationResult,
)

__all__ = [
    # sources
    "SourceRole",
    "SourceEntry",
    "SwapRemoval",
    # events
    "ChangeKind",
    "ChangeEvent",
    "ChangeLogEntry",
    # state
    "DisplayMode",
    "DisplayState",
    "PersistedState",
    # verification
    "AttemptOutcome",
    "FailureReason",
    "FetchAttempt",
    "VerificationResult",
]
