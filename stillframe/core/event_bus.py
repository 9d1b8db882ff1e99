"""Event bus: routes change events to subscribed handlers.

Handlers subscribe to one ``ChangeKind`` or, with ``None``, to every
kind.  Dispatch is synchronous and in subscription order; a handler
that raises propagates to the publisher.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from stillframe.models.events import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


class EventBus:
    """Dispatches ``ChangeEvent`` instances to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[ChangeKind | None, list[ChangeHandler]] = {
            kind: [] for kind in ChangeKind
        }
        self._handlers[None] = []

    def subscribe(self, kind: ChangeKind | None, handler: ChangeHandler) -> None:
        """Register *handler* for *kind* (``None`` subscribes to all kinds)."""
        self._handlers[kind].append(handler)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver *event* to kind-specific handlers, then to catch-all ones."""
        logger.debug("EventBus: publishing %s (%s)", event.kind.value, event.event_id)
        for handler in self._handlers[event.kind]:
            handler(event)
        for handler in self._handlers[None]:
            handler(event)
