# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Request-scoped state container with attribute access.

Middleware attach per-request data here (authenticated identity, timing,
request id). Lives and dies with one ``HttpRequest``.
"""

from __future__ import annotations

from typing import Any

__all__ = ["State"]


class State:
    """
    Attribute-style bag of request data.

    Example:
        >>> state = State()
        >>> state.user = "admin"
        >>> "user" in state
        True
    """

    __slots__ = ("_state",)

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        object.__setattr__(self, "_state", dict(initial or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        self._state[name] = value

    def __getattr__(self, name: str) -> Any:
        try:
            return self._state[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __delattr__(self, name: str) -> None:
        try:
            del self._state[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._state

    def as_dict(self) -> dict[str, Any]:
        return dict(self._state)

    def __repr__(self) -> str:
        return f"State({self._state!r})"
