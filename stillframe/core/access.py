"""Authorized-writer capability: who may mutate preserved state.

Ownership and holder tracking belong to an external component.  It is
injected as a ``WriterCapability``; the preserver only asks two yes/no
questions of it.

Permission matrix
-----------------
- artist only: chunks, expected digest, artist source list
- artist or current holder: mode, selection, collector source list
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class UnauthorizedError(PermissionError):
    """Raised when the caller lacks the capability an operation requires."""


@runtime_checkable
class WriterCapability(Protocol):
    """Protocol for the external ownership/holder oracle."""

    def is_artist(self, caller: str) -> bool:
        """Return ``True`` if *caller* is the artist."""
        ...

    def is_current_holder(self, caller: str) -> bool:
        """Return ``True`` if *caller* currently holds the artifact."""
        ...


class StaticWriterCapability:
    """Capability backed by two fixed identities.

    An empty identity matches nobody.  ``set_holder()`` stands in for an
    ownership transfer recorded elsewhere.

    Parameters
    ----------
    artist:
        Identity of the artist.
    holder:
        Identity of the current holder.
    """

    def __init__(self, artist: str, holder: str = "") -> None:
        self._artist = artist
        self._holder = holder

    @property
    def holder(self) -> str:
        return self._holder

    def set_holder(self, holder: str) -> None:
        self._holder = holder

    def is_artist(self, caller: str) -> bool:
        return bool(self._artist) and caller == self._artist

    def is_current_holder(self, caller: str) -> bool:
        return bool(self._holder) and caller == self._holder


def require_artist(capability: WriterCapability, caller: str, action: str) -> str:
    """Raise ``UnauthorizedError`` unless *caller* is the artist.

    Returns the role name used for event attribution.
    """
    if not capability.is_artist(caller):
        raise UnauthorizedError(f"{caller!r} is not the artist; cannot {action}")
    return "artist"


def require_artist_or_holder(
    capability: WriterCapability, caller: str, action: str
) -> str:
    """Raise ``UnauthorizedError`` unless *caller* is the artist or holder.

    Returns ``"artist"`` or ``"holder"`` for event attribution.
    """
    if capability.is_artist(caller):
        return "artist"
    if capability.is_current_holder(caller):
        return "holder"
    raise UnauthorizedError(
        f"{caller!r} is neither the artist nor the current holder; cannot {action}"
    )
