# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Request-local session handling.

A worker process serves many requests, so the session of one request must
be flushed and released before the next one starts. ``Session`` is created
lazily by ``HttpRequest.session`` the first time the pipeline touches it and
is closed by the bridge once the response is ready, on every exit path.

Lifecycle::

    request.session            → Session(started=False)
    session["user"] = "ada"    → start(): load from store or new id, dirty=True
    bridge finally block       → close(): write if dirty, release, closed=True
    close() again              → no-op

Stores
======
``SessionStore`` defines ``read``/``write``/``destroy``. ``MemorySessionStore``
keeps data in a dict owned by the application object, which outlives
requests inside one worker process. Entries not written for ``lifetime``
seconds are evicted, so abandoned sessions do not pile up in a long-lived
worker.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable, Iterator, MutableMapping
from typing import Any

__all__ = [
    "Session",
    "SessionStore",
    "MemorySessionStore",
    "DEFAULT_SESSION_COOKIE",
    "DEFAULT_SESSION_LIFETIME",
]

DEFAULT_SESSION_COOKIE = "GENROSESSID"

# seconds without a write before a stored session is evicted
DEFAULT_SESSION_LIFETIME = 1440

logger = logging.getLogger("genro_bridge.session")


class SessionStore:
    """Base class for session persistence backends."""

    def read(self, session_id: str) -> dict[str, Any] | None:
        """Return stored data, or None when the id is unknown."""
        raise NotImplementedError

    def write(self, session_id: str, data: dict[str, Any]) -> None:
        raise NotImplementedError

    def destroy(self, session_id: str) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """In-process store. Data survives across requests of one worker.

    Args:
        lifetime: Seconds after the last write before an entry is evicted.
            None keeps entries until ``destroy()``.
        clock: Monotonic time source, in seconds.
    """

    __slots__ = ("_data", "_lock", "lifetime", "_clock")

    def __init__(
        self,
        lifetime: float | None = DEFAULT_SESSION_LIFETIME,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self.lifetime = lifetime
        self._clock = clock

    def _is_expired(self, written_at: float, now: float) -> bool:
        return self.lifetime is not None and now - written_at >= self.lifetime

    def _purge(self, now: float) -> None:
        expired = [sid for sid, (written_at, _) in self._data.items() if self._is_expired(written_at, now)]
        for session_id in expired:
            del self._data[session_id]
        if expired:
            logger.debug("Evicted %d expired sessions", len(expired))

    def read(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._data.get(session_id)
            if entry is None:
                return None
            written_at, data = entry
            if self._is_expired(written_at, self._clock()):
                del self._data[session_id]
                return None
            return dict(data)

    def write(self, session_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._data[session_id] = (now, dict(data))

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._data)


class Session(MutableMapping[str, Any]):
    """
    Lazily started, request-local session.

    Attributes:
        store: Persistence backend.
        requested_id: Session id sent by the client cookie, if any.
        id: Current session id (None until started).
        is_new: True when the session was created during this request.
        dirty: True when data changed since it was loaded.
        closed: True once close() ran.
    """

    def __init__(self, store: SessionStore, requested_id: str | None = None) -> None:
        self.store = store
        self.requested_id = requested_id
        self.id: str | None = None
        self.is_new = False
        self.dirty = False
        self.closed = False
        self._data: dict[str, Any] = {}
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Load data for the requested id, or allocate a new id."""
        if self._started:
            return
        if self.closed:
            raise RuntimeError("Session already closed")
        data = self.store.read(self.requested_id) if self.requested_id else None
        if data is None:
            self.id = secrets.token_hex(16)
            self.is_new = True
            self._data = {}
        else:
            self.id = self.requested_id
            self._data = data
        self._started = True

    def regenerate(self) -> None:
        """Move the data under a fresh id (e.g. after login)."""
        self.start()
        if self.id is not None and not self.is_new:
            self.store.destroy(self.id)
        self.id = secrets.token_hex(16)
        self.is_new = True
        self.dirty = True

    def destroy(self) -> None:
        """Drop the stored data and empty the session."""
        self.start()
        if self.id is not None:
            self.store.destroy(self.id)
        self._data = {}
        self.dirty = False

    def close(self) -> None:
        """Flush changes and release the session. Idempotent."""
        if self.closed:
            return
        try:
            if self._started and self.dirty and self.id is not None:
                self.store.write(self.id, self._data)
                logger.debug("Session %s written", self.id)
        finally:
            self.closed = True
            self.dirty = False

    def __getitem__(self, key: str) -> Any:
        self.start()
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.start()
        self._data[key] = value
        self.dirty = True

    def __delitem__(self, key: str) -> None:
        self.start()
        del self._data[key]
        self.dirty = True

    def __iter__(self) -> Iterator[str]:
        self.start()
        return iter(list(self._data))

    def __len__(self) -> int:
        self.start()
        return len(self._data)

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, started={self._started}, closed={self.closed})"
