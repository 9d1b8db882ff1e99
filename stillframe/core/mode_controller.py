"""Display mode state machine.

Two states, ``DIRECT`` and ``VERIFIED``, switched only by an explicit
``set_mode()``; there are no automatic transitions.  The direct-mode
selection is a separate setting that persists in either mode and is
range-checked when it is read, not when it is set, because the artist
list can shrink after a selection is made.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from stillframe.core.source_list import SourceList
from stillframe.core.verifier import RetrievalVerifier
from stillframe.models.state import DisplayMode, DisplayState
from stillframe.models.verification import VerificationResult

logger = logging.getLogger(__name__)


class InvalidSelectionError(LookupError):
    """Raised when the direct-mode selection does not index the artist list."""


class DisplayOutput(BaseModel):
    """What the outside world is shown for the current state."""

    model_config = ConfigDict(frozen=True)

    mode: DisplayMode
    uri: str
    verification: VerificationResult | None = None


class ModeController:
    """Holds ``DisplayState`` and resolves it to a ``DisplayOutput``."""

    def __init__(self, state: DisplayState | None = None) -> None:
        self._state = state or DisplayState()

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def mode(self) -> DisplayMode:
        return self._state.mode

    @property
    def selected_index(self) -> int:
        return self._state.selected_index

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_mode(self, mode: DisplayMode) -> DisplayState:
        """Switch to *mode*, keeping the current selection."""
        mode = DisplayMode(mode)
        previous = self._state.mode
        self._state = self._state.model_copy(update={"mode": mode})
        logger.info("Display mode %s -> %s", previous.value, mode.value)
        return self._state

    def select(self, index: int) -> DisplayState:
        """Persist the direct-mode selection (valid in either mode)."""
        if index < 0:
            raise ValueError(f"Selection index must be non-negative, got {index}")
        self._state = self._state.model_copy(update={"selected_index": index})
        logger.info("Direct-mode selection set to %d", index)
        return self._state

    def restore(self, state: DisplayState) -> None:
        """Reinstall a previously captured state without logging a transition."""
        self._state = state

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        sources: SourceList,
        expected_digest: str,
        verifier: RetrievalVerifier,
    ) -> DisplayOutput:
        """Resolve the current state to a display output.

        Raises ``InvalidSelectionError`` in direct mode and
        ``NoVerifiedSourceAvailableError`` in verified mode.
        """
        state = self._state
        if state.mode == DisplayMode.DIRECT:
            uri = _pick(sources.artist_sources, state.selected_index)
            return DisplayOutput(mode=state.mode, uri=uri)

        result = verifier.verify(expected_digest, sources.combined_ordered())
        return DisplayOutput(mode=state.mode, uri=result.uri, verification=result)


def _pick(artist_sources: tuple[str, ...] | list[str], index: int) -> str:
    if not artist_sources:
        raise InvalidSelectionError("Artist source list is empty")
    if index >= len(artist_sources):
        raise InvalidSelectionError(
            f"Selected index {index} out of range "
            f"(artist list has {len(artist_sources)} entries)"
        )
    return artist_sources[index]
