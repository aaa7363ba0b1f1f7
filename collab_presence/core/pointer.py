"""Pointer-move event sources the tracker can subscribe to."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from collab_presence.domain.presence import PointerMove

logger = logging.getLogger(__name__)

PointerHandler = Callable[[PointerMove], object]
Unsubscribe = Callable[[], None]


class PointerEventSource(Protocol):
    """Anything that can deliver pointer moves to a handler until unsubscribed."""

    def subscribe(self, handler: PointerHandler) -> Unsubscribe:
        ...


class PointerEventHub:
    """Fan-out of pointer moves to every subscribed handler, in subscription order."""

    def __init__(self) -> None:
        self._handlers: list[PointerHandler] = []

    def subscribe(self, handler: PointerHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def emit(self, event: PointerMove) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as exc:
                logger.warning("Pointer handler failed: %s", exc)
