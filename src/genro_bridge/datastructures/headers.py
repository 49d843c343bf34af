# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Case-insensitive HTTP headers with multi-value support.

Purpose
=======
HTTP header names are case-insensitive per RFC 7230 and the same header can
appear several times. Worker requests carry headers twice: once as CGI-style
transport parameters (``HTTP_X_TEST_HEADER = "123, 456"``) and once as the
explicit header list set on the request (``["123", "456"]``). This module
provides the read-only ``Headers`` collection used by ``HttpRequest`` and the
helpers that reconcile both sources without losing any value.

Processing Schema::

    server params                       explicit headers
    {"HTTP_X_TEST": "123, 456"}         {"x-test": ["123", "456"]}
                 \\                        /
                  merge_header_values()
                            ↓
              {"x-test": ["123", "456"]}
                            ↓
    headers.get("X-Test")     → "123"
    headers.getlist("X-Test") → ["123", "456"]

Definition::

    class Headers:
        def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None
        @classmethod from_mapping(cls, mapping) -> Headers
        def get(self, key, default=None) -> str | None
        def getlist(self, key) -> list[str]
        def keys / values / items / as_dict
        def __getitem__ / __contains__ / __iter__ / __len__ / __repr__

    def header_name_from_param(param: str) -> str | None
    def param_from_header_name(name: str) -> str
    def merge_header_values(transport, explicit) -> list[str]

Design Notes
============
- Names are normalised to lowercase, values preserved as-is.
- ``Headers`` is immutable. Responses keep a plain list of tuples.
- ``CONTENT_TYPE`` and ``CONTENT_LENGTH`` are headers even without the
  ``HTTP_`` prefix (CGI convention).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Iterator

__all__ = [
    "Headers",
    "header_name_from_param",
    "param_from_header_name",
    "merge_header_values",
]

UNPREFIXED_HEADER_PARAMS = {
    "CONTENT_TYPE": "content-type",
    "CONTENT_LENGTH": "content-length",
    "CONTENT_MD5": "content-md5",
}


def header_name_from_param(param: str) -> str | None:
    """
    Translate a CGI-style server parameter into a header name.

    Args:
        param: Server parameter key (e.g. ``"HTTP_X_REAL_IP"``).

    Returns:
        Lowercase header name (``"x-real-ip"``) or None when the parameter
        does not describe a header.
    """
    if param in UNPREFIXED_HEADER_PARAMS:
        return UNPREFIXED_HEADER_PARAMS[param]
    if param.startswith("HTTP_") and len(param) > 5:
        return param[5:].replace("_", "-").lower()
    return None


def param_from_header_name(name: str) -> str:
    """Inverse of header_name_from_param: ``"X-Real-IP"`` → ``"HTTP_X_REAL_IP"``."""
    key = name.upper().replace("-", "_")
    if key in UNPREFIXED_HEADER_PARAMS:
        return key
    return f"HTTP_{key}"


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def merge_header_values(transport: Any, explicit: Any) -> list[str]:
    """
    Merge transport-level and explicit values for one header name.

    Transport values come first, explicit values follow, duplicates are
    dropped keeping the first occurrence. When the transport value is the
    comma-folded form of the explicit list (``"123, 456"`` for
    ``["123", "456"]``) the folded entry is dropped so the list form wins.

    Args:
        transport: Value(s) found in the server parameters.
        explicit: Value(s) set on the request as headers.

    Returns:
        Ordered list of distinct values.

    Example:
        >>> merge_header_values("123, 456", ["123", "456"])
        ['123', '456']
        >>> merge_header_values("10.0.0.1", ["10.0.0.1"])
        ['10.0.0.1']
    """
    transport_values = _as_list(transport)
    explicit_values = _as_list(explicit)
    if len(explicit_values) > 1:
        folded = {", ".join(explicit_values), ",".join(explicit_values)}
        transport_values = [v for v in transport_values if v not in folded]

    merged: list[str] = []
    for value in transport_values + explicit_values:
        if value not in merged:
            merged.append(value)
    return merged


class Headers:
    """
    Immutable, case-insensitive HTTP headers with multi-value support.

    Example:
        >>> headers = Headers([("Accept", "text/html"), ("X-Test", "1"), ("x-test", "2")])
        >>> headers.get("ACCEPT")
        'text/html'
        >>> headers.getlist("x-test")
        ['1', '2']
    """

    __slots__ = ("_headers",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        self._headers: list[tuple[str, str]] = [
            (name.lower(), value) for name, value in items
        ]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Headers:
        """Build from ``{name: value | [values]}``, keeping value order."""
        items: list[tuple[str, str]] = []
        for name, values in mapping.items():
            for value in _as_list(values):
                items.append((name, value))
        return cls(items)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the first value for a header, or default."""
        key_lower = key.lower()
        for name, value in self._headers:
            if name == key_lower:
                return value
        return default

    def getlist(self, key: str) -> list[str]:
        """Return every value for a header, empty list if absent."""
        key_lower = key.lower()
        return [value for name, value in self._headers if name == key_lower]

    def keys(self) -> list[str]:
        """Unique header names in order of first occurrence."""
        seen: list[str] = []
        for name, _ in self._headers:
            if name not in seen:
                seen.append(name)
        return seen

    def values(self) -> list[str]:
        return [value for _, value in self._headers]

    def items(self) -> list[tuple[str, str]]:
        return list(self._headers)

    def as_dict(self) -> dict[str, list[str]]:
        """Return ``{name: [values]}`` preserving order."""
        return {name: self.getlist(name) for name in self.keys()}

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        """Total number of header entries (including duplicates)."""
        return len(self._headers)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._headers == other._headers
        return False

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"
