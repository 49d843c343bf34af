# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
HTTP response handed back to the worker loop.

The application's final handler creates a ``Response`` and fills it with
``set_result()``; middleware may add headers and cookies on the way out.
The bridge then serialises ``cookies`` into ``Set-Cookie`` entries and
returns the object, and the worker reads ``status_code``, ``headers`` and
``body``.

Main Pattern
============
::

    response = Response(request=request)
    response.set_header("X-Custom", "value")
    response.set_result({"data": 123})      # JSON, content-type detected
    response.cookies.add(Cookie("prefs", "dark"))

Headers
=======
Headers are an ordered list of ``(name, value)`` pairs so names may repeat.
``set_header`` appends, ``replace_header`` swaps every value of a name for a
new list, ``remove_header`` drops a name. ``headers`` returns the
``{name: [values]}`` view the worker protocol expects.

set_result(result)
==================
- dict/list: JSON (orjson when installed)
- bytes: application/octet-stream
- str: text/plain
- None: empty body
- other: str() as text/plain
"""

from __future__ import annotations

import json as stdlib_json
import logging
from collections.abc import Mapping
from typing import Any

from .cookies import CookieCollection
from .exceptions import HTTPException

__all__ = ["Response", "HAS_ORJSON"]

# Optional fast JSON serialization
try:
    import orjson

    HAS_ORJSON = True
except ImportError:
    orjson = None  # type: ignore[assignment]
    HAS_ORJSON = False


HeadersInput = Mapping[str, str] | list[tuple[str, str]] | None


def _normalize_headers(headers: HeadersInput) -> list[tuple[str, str]]:
    if headers is None:
        return []
    if isinstance(headers, list):
        return list(headers)
    return list(headers.items())


class Response:
    """
    Mutable HTTP response.

    Attributes:
        status_code: HTTP status code.
        body: Encoded body as bytes.
        cookies: Cookies to send, serialised by the bridge.
        request: The request being answered, if known.

    Example:
        >>> response = Response("Hello", media_type="text/plain")
        >>> response.get_header_line("content-type")
        'text/plain; charset=utf-8'
    """

    __slots__ = ("body", "status_code", "_media_type", "_headers", "cookies", "request")

    charset: str = "utf-8"

    def __init__(
        self,
        content: bytes | str | None = None,
        status_code: int = 200,
        headers: HeadersInput = None,
        media_type: str | None = None,
        request: Any = None,
    ) -> None:
        self.request = request
        self.status_code = status_code
        self._headers: list[tuple[str, str]] = _normalize_headers(headers)
        self._media_type = media_type
        self.cookies = CookieCollection()
        if content is None:
            self.body = b""
        elif isinstance(content, bytes):
            self.body = content
        else:
            self.body = content.encode(self.charset)
        if media_type is not None and not self.has_header("content-type"):
            self._headers.append(("content-type", self._content_type()))

    def _content_type(self) -> str | None:
        media_type = self._media_type
        if media_type is None:
            return None
        if media_type.startswith("text/") and "charset" not in media_type:
            return f"{media_type}; charset={self.charset}"
        return media_type

    @property
    def media_type(self) -> str | None:
        return self._media_type

    # -- headers -------------------------------------------------------------

    def set_header(self, name: str, value: str) -> None:
        """Append a header value. Existing values of the same name are kept."""
        self._headers.append((name, value))

    def replace_header(self, name: str, values: str | list[str]) -> None:
        """Replace every value of ``name`` with ``values``, in order."""
        if isinstance(values, str):
            values = [values]
        self.remove_header(name)
        self._headers.extend((name, value) for value in values)

    def remove_header(self, name: str) -> None:
        lowered = name.lower()
        self._headers = [(n, v) for n, v in self._headers if n.lower() != lowered]

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(n.lower() == lowered for n, _ in self._headers)

    def get_header(self, name: str) -> list[str]:
        lowered = name.lower()
        return [v for n, v in self._headers if n.lower() == lowered]

    def get_header_line(self, name: str) -> str:
        return ", ".join(self.get_header(name))

    @property
    def header_items(self) -> list[tuple[str, str]]:
        """Ordered ``(name, value)`` pairs, including ``content-length``."""
        items = list(self._headers)
        if not self.has_header("content-length") and self.status_code not in (204, 304):
            items.append(("content-length", str(len(self.body))))
        return items

    @property
    def headers(self) -> dict[str, list[str]]:
        """``{lower-case name: [values]}`` in first-seen order."""
        result: dict[str, list[str]] = {}
        for name, value in self.header_items:
            result.setdefault(name.lower(), []).append(value)
        return result

    # -- body ----------------------------------------------------------------

    def set_result(self, result: Any, media_type: str | None = None) -> None:
        """Set the body from a handler result, detecting the content type."""
        if isinstance(result, (dict, list)):
            if HAS_ORJSON:
                self.body = orjson.dumps(result)
            else:
                self.body = stdlib_json.dumps(result, ensure_ascii=False).encode("utf-8")
            self._media_type = media_type or "application/json"
        elif isinstance(result, bytes):
            self.body = result
            self._media_type = media_type or "application/octet-stream"
        elif isinstance(result, str):
            self.body = result.encode(self.charset)
            self._media_type = media_type or "text/plain"
        elif result is None:
            self.body = b""
            self._media_type = media_type
        else:
            self.body = str(result).encode(self.charset)
            self._media_type = media_type or "text/plain"

        self._headers = [
            (name, value)
            for name, value in self._headers
            if name.lower() not in ("content-type", "content-length")
        ]
        content_type = self._content_type()
        if content_type:
            self._headers.append(("content-type", content_type))

    # Error type to HTTP status code mapping
    ERROR_MAP: dict[str, int] = {
        "NotFound": 404,
        "NotAuthorized": 403,
        "ValueError": 400,
        "TypeError": 400,
        "PermissionError": 403,
        "FileNotFoundError": 404,
    }

    def set_error(self, error: Exception) -> None:
        """Turn an exception into an error response.

        ``HTTPException`` keeps its status code and headers. Other exception
        types map through ``ERROR_MAP``; unknown ones become 500 and are logged.
        """
        if isinstance(error, HTTPException):
            self.status_code = error.status_code
            for name, value in error.headers or []:
                self.set_header(name, value)
            self.set_result({"error": error.detail} if error.detail else None)
            return
        self.status_code = self.ERROR_MAP.get(type(error).__name__, 500)
        if self.status_code == 500:
            logging.getLogger("genro_bridge").exception("Handler error: %s", error)
            self.set_result({"error": "Internal Server Error"})
        else:
            self.set_result({"error": str(error)})

    def __repr__(self) -> str:
        return f"<Response status={self.status_code} length={len(self.body)}>"
