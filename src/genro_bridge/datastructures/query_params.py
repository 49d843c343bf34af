# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Parsed query string parameters with multi-value support.

Query parameters are case-sensitive (unlike headers). Parsing uses
``urllib.parse.parse_qsl`` with blank values kept, so ``?key=`` yields ``""``.

Example::

    params = QueryParams("name=john&tags=python&tags=web")
    params.get("name")       # "john"
    params.getlist("tags")   # ["python", "web"]
    params.to_dict()         # {"name": "john", "tags": ["python", "web"]}
"""

from __future__ import annotations

from typing import Any, Iterator
from urllib.parse import parse_qsl

__all__ = ["QueryParams", "parse_form"]


def parse_form(data: bytes | str) -> dict[str, Any]:
    """
    Decode an ``application/x-www-form-urlencoded`` payload.

    Single-valued keys map to a string, repeated keys to a list.

    Example:
        >>> parse_form(b"a=1&b=2&b=3")
        {'a': '1', 'b': ['2', '3']}
    """
    return QueryParams(data).to_dict()


class QueryParams:
    """Parsed query string with multi-value support."""

    __slots__ = ("_params",)

    def __init__(self, query_string: bytes | str = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        self._params: dict[str, list[str]] = {}
        for key, value in parse_qsl(query_string, keep_blank_values=True):
            self._params.setdefault(key, []).append(value)

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value for a parameter, or default."""
        values = self._params.get(key)
        if values:
            return values[0]
        return default

    def getlist(self, key: str) -> list[str]:
        """Every value for a parameter, empty list if missing."""
        return list(self._params.get(key, []))

    def keys(self) -> list[str]:
        return list(self._params)

    def items(self) -> list[tuple[str, str]]:
        """(name, first_value) pairs."""
        return [(k, v[0]) for k, v in self._params.items() if v]

    def multi_items(self) -> list[tuple[str, str]]:
        """All (name, value) pairs including duplicates."""
        return [(key, value) for key, values in self._params.items() for value in values]

    def to_dict(self) -> dict[str, Any]:
        """Collapse to a plain dict: scalar for one value, list for several."""
        return {k: v[0] if len(v) == 1 else list(v) for k, v in self._params.items()}

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __bool__(self) -> bool:
        return bool(self._params)

    def __repr__(self) -> str:
        return f"QueryParams({self._params!r})"
