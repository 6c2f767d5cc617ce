"""Synchronous publish/subscribe surface shared by the client, transports and sessions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

LOGGER = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Named notifications delivered synchronously in registration order.

    A listener that raises is logged and does not prevent delivery to the
    listeners registered after it.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Callable[[], bool]:
        self._listeners.setdefault(event, []).append(listener)
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], bool]:
        def _wrapper(*args: Any) -> None:
            self.off(event, _wrapper)
            listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> bool:
        listeners = self._listeners.get(event)
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                LOGGER.exception("Listener for '%s' on %s failed", event, type(self).__name__)
        return bool(listeners)
