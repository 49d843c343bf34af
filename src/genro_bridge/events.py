# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Minimal synchronous event system.

Listeners subscribe to an event name and receive an ``Event`` carrying the
subject and a mutable ``data`` dict. The bridge dispatches
``Server.buildMiddleware`` with ``{"middleware": queue}`` before running each
request, which is the hook for adding middleware from outside the
application::

    def add_timing(event):
        event.data["middleware"].add(timing_middleware)

    server.on("Server.buildMiddleware", add_timing)

Listeners run by priority (lower first), then in subscription order. A
listener may call ``event.stop_propagation()`` to skip the remaining ones,
or set ``event.result`` for the dispatcher to read.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

__all__ = ["Event", "EventManager", "Listener"]

logger = logging.getLogger("genro_bridge.events")

Listener = Callable[["Event"], Any]


class Event:
    """Event passed to listeners."""

    __slots__ = ("name", "subject", "data", "result", "_stopped")

    def __init__(self, name: str, subject: Any = None, data: dict[str, Any] | None = None) -> None:
        self.name = name
        self.subject = subject
        self.data: dict[str, Any] = dict(data or {})
        self.result: Any = None
        self._stopped = False

    def stop_propagation(self) -> None:
        self._stopped = True

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def __repr__(self) -> str:
        return f"Event(name={self.name!r}, stopped={self._stopped})"


class EventManager:
    """Registry of listeners by event name."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[int, Listener]]] = {}

    def on(self, name: str, listener: Listener, priority: int = 10) -> None:
        entries = self._listeners.setdefault(name, [])
        entries.append((priority, listener))
        # sort is stable: equal priorities keep subscription order
        entries.sort(key=lambda entry: entry[0])

    def off(self, name: str, listener: Listener | None = None) -> None:
        """Remove one listener, or every listener of ``name`` when omitted."""
        if listener is None:
            self._listeners.pop(name, None)
            return
        entries = self._listeners.get(name, [])
        self._listeners[name] = [(p, fn) for p, fn in entries if fn != listener]

    def listeners(self, name: str) -> list[Listener]:
        return [fn for _, fn in self._listeners.get(name, [])]

    def dispatch(self, event: Event | str, subject: Any = None, data: dict[str, Any] | None = None) -> Event:
        if isinstance(event, str):
            event = Event(event, subject, data)
        for listener in self.listeners(event.name):
            result = listener(event)
            if result is not None:
                event.result = result
            if event.is_stopped:
                logger.debug("Event %s stopped by %r", event.name, listener)
                break
        return event
