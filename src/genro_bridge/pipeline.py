# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Middleware queue and runner.

The bridge builds one ``MiddlewareQueue`` per request: the application adds
its middleware, plugins add theirs, and listeners of the
``Server.buildMiddleware`` event may still reorder or extend it. ``Runner``
then walks the queue in order and ends in the fallback handler (the
application itself).

A queue entry is either a ``BaseMiddleware`` instance (``process(request,
handler)``) or a plain callable with the same signature::

    def timing(request, handler):
        started = time.perf_counter()
        response = handler(request)
        response.set_header("X-Elapsed", f"{time.perf_counter() - started:.4f}")
        return response

Async middleware and handlers are run through ``smartasync``, so the worker
loop stays synchronous.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from smartasync import smartasync

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response
    from .types import Handler

__all__ = ["MiddlewareQueue", "Runner", "call_handler"]


def call_handler(handler: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async callable from the synchronous pipeline."""
    target = getattr(handler, "process", handler)
    if inspect.iscoroutinefunction(target):
        return smartasync(target)(*args)
    return target(*args)


def _entry_name(entry: Any) -> str:
    return getattr(entry, "middleware_name", "") or getattr(entry, "__name__", "") or type(entry).__name__


class MiddlewareQueue:
    """Ordered list of middleware for one request."""

    __slots__ = ("_queue",)

    def __init__(self, middleware: list[Any] | None = None) -> None:
        self._queue: list[Any] = list(middleware or [])

    def add(self, middleware: Any) -> MiddlewareQueue:
        """Append middleware (or a list of them) to the end of the queue."""
        if isinstance(middleware, (list, tuple)):
            self._queue.extend(middleware)
        else:
            self._queue.append(middleware)
        return self

    def prepend(self, middleware: Any) -> MiddlewareQueue:
        if isinstance(middleware, (list, tuple)):
            self._queue[0:0] = list(middleware)
        else:
            self._queue.insert(0, middleware)
        return self

    def insert_at(self, index: int, middleware: Any) -> MiddlewareQueue:
        self._queue.insert(index, middleware)
        return self

    def index_of(self, name: str) -> int:
        """Position of the first entry named ``name``.

        Raises:
            LookupError: If no entry has that name.
        """
        for position, entry in enumerate(self._queue):
            if _entry_name(entry) == name or type(entry).__name__ == name:
                return position
        raise LookupError(f"Middleware '{name}' not found in queue")

    def insert_before(self, name: str, middleware: Any) -> MiddlewareQueue:
        return self.insert_at(self.index_of(name), middleware)

    def insert_after(self, name: str, middleware: Any) -> MiddlewareQueue:
        return self.insert_at(self.index_of(name) + 1, middleware)

    def names(self) -> list[str]:
        return [_entry_name(entry) for entry in self._queue]

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._queue))

    def __len__(self) -> int:
        return len(self._queue)

    def __getitem__(self, index: int) -> Any:
        return self._queue[index]

    def __repr__(self) -> str:
        return f"MiddlewareQueue({self.names()!r})"


class Runner:
    """Run a request through a queue, ending in a fallback handler."""

    __slots__ = ()

    def run(
        self,
        queue: MiddlewareQueue,
        request: HttpRequest,
        fallback: Handler,
    ) -> Response:
        """
        Pass ``request`` through every queue entry, then to ``fallback``.

        Each entry receives the request and a handler for the rest of the
        chain. Exceptions propagate to the caller.
        """
        entries = list(queue)

        def handler_at(position: int) -> Handler:
            def handle(current: HttpRequest) -> Response:
                if position >= len(entries):
                    return call_handler(fallback, current)
                return call_handler(entries[position], current, handler_at(position + 1))

            return handle

        return handler_at(0)(request)
