# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Server - owns the application and its event manager.

The bridge keeps one ``Server`` per worker process. It does not listen on
sockets (the application server does); it is the subject of server-level
events such as ``Server.buildMiddleware``.

Usage:
    server = Server(application)
    server.on("Server.buildMiddleware", lambda event: event.data["middleware"].add(mw))
    server.dispatch_event("Server.buildMiddleware", {"middleware": queue})
"""

from __future__ import annotations

from typing import Any

from .events import Event, EventManager, Listener

__all__ = ["Server"]


class Server:
    """Application holder and event source."""

    __slots__ = ("application", "event_manager")

    def __init__(self, application: Any, event_manager: EventManager | None = None) -> None:
        self.application = application
        self.event_manager = event_manager or EventManager()

    def on(self, name: str, listener: Listener, priority: int = 10) -> None:
        self.event_manager.on(name, listener, priority)

    def dispatch_event(self, name: str, data: dict[str, Any] | None = None) -> Event:
        """Dispatch ``name`` with this server as subject."""
        return self.event_manager.dispatch(Event(name, self, data))
