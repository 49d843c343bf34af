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
Generic request received by a worker process.

The application server decodes the wire protocol and hands the worker loop
one ``WorkerRequest`` per HTTP request. It is a plain value: every
``with_*`` method returns a modified copy and never touches the original,
so the same object can be inspected, logged or retried safely.

Fields
======
method          Upper-case HTTP method.
uri             ``URL`` of the request (scheme, host, port, path, query).
headers         Ordered ``{lowercase-name: [values]}`` set explicitly.
body            Raw body bytes.
parsed_body     Body already decoded upstream (mapping, list) or None.
cookies         ``{name: value}``.
uploaded_files  ``{field: UploadedFile}``.
server_params   CGI-style transport metadata (``REMOTE_ADDR``, ``HTTP_*``...).
query_params    ``{name: value | [values]}``.

Example::

    request = (
        WorkerRequest("PUT", "http://localhost/articles/1")
        .with_header("Content-Type", "application/json")
        .with_body(b'{"title": "hello"}')
    )
    request.get_header("content-type")   # ["application/json"]

    # From CGI-style parameters (what most application servers forward)
    request = WorkerRequest.from_server_params({
        "REQUEST_METHOD": "GET",
        "REQUEST_URI": "/test?parameter=1",
        "HTTP_HOST": "localhost:8080",
    })
    str(request.uri)                     # "http://localhost:8080/test?parameter=1"
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .datastructures import URL, QueryParams, UploadedFile, header_name_from_param

__all__ = ["WorkerRequest"]


class WorkerRequest:
    """Immutable-style generic HTTP request handed over by the worker loop."""

    __slots__ = (
        "method",
        "uri",
        "headers",
        "body",
        "parsed_body",
        "cookies",
        "uploaded_files",
        "server_params",
        "query_params",
    )

    def __init__(
        self,
        method: str = "GET",
        uri: URL | str = "",
        headers: Mapping[str, Any] | None = None,
        body: bytes | str = b"",
        parsed_body: Any = None,
        cookies: Mapping[str, str] | None = None,
        uploaded_files: Mapping[str, UploadedFile] | None = None,
        server_params: Mapping[str, Any] | None = None,
        query_params: Mapping[str, Any] | None = None,
    ) -> None:
        self.method = method.upper()
        self.uri = uri if isinstance(uri, URL) else URL(uri)
        self.headers: dict[str, list[str]] = {}
        for name, value in (headers or {}).items():
            values = list(value) if isinstance(value, (list, tuple)) else [value]
            self.headers[name.lower()] = [str(v) for v in values]
        self.body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self.parsed_body = parsed_body
        self.cookies = dict(cookies or {})
        self.uploaded_files = dict(uploaded_files or {})
        self.server_params = dict(server_params or {})
        if query_params is None:
            query_params = QueryParams(self.uri.query).to_dict()
        self.query_params = dict(query_params)

    @classmethod
    def from_server_params(
        cls,
        server: Mapping[str, Any],
        query: Mapping[str, Any] | None = None,
        parsed_body: Any = None,
        cookies: Mapping[str, str] | None = None,
        files: Mapping[str, UploadedFile] | None = None,
        body: bytes | str = b"",
    ) -> WorkerRequest:
        """
        Build a request from CGI-style server parameters.

        ``REQUEST_URI`` may be an absolute URL or an origin-form target.
        Scheme comes from the URI, ``REQUEST_SCHEME`` or ``HTTPS``; host and
        port from the URI, ``HTTP_HOST`` or ``SERVER_NAME``/``SERVER_PORT``.
        Every ``HTTP_*`` (plus ``CONTENT_TYPE``/``CONTENT_LENGTH``) parameter
        becomes a header.

        Raises:
            ValueError: If ``SERVER_PORT`` is not numeric.
        """
        headers: dict[str, list[str]] = {}
        for key, value in server.items():
            name = header_name_from_param(key)
            if name is not None and value is not None:
                headers.setdefault(name, []).extend(
                    [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
                )

        raw_uri = URL(str(server.get("REQUEST_URI", "/") or "/"))
        scheme = raw_uri.scheme or str(server.get("REQUEST_SCHEME", "")).lower()
        if not scheme:
            https = str(server.get("HTTPS", "")).lower()
            scheme = "https" if https and https != "off" else "http"

        host = raw_uri.host
        port = raw_uri.port
        if not host:
            host_header = headers.get("host", [""])[0]
            if host_header:
                host_url = URL(f"//{host_header}")
                host, port = host_url.host, host_url.port
            else:
                host = str(server.get("SERVER_NAME", "") or "localhost")
                server_port = server.get("SERVER_PORT")
                port = int(server_port) if server_port not in (None, "") else None

        query_string = raw_uri.query or str(server.get("QUERY_STRING", "") or "")
        uri = URL.from_parts(scheme, host, port, raw_uri.path, query_string)

        return cls(
            method=str(server.get("REQUEST_METHOD", "GET")),
            uri=uri,
            headers=headers,
            body=body,
            parsed_body=parsed_body,
            cookies=cookies,
            uploaded_files=files,
            server_params=server,
            query_params=query,
        )

    def _copy(self, **changes: Any) -> WorkerRequest:
        new = copy.copy(self)
        new.headers = {name: list(values) for name, values in self.headers.items()}
        for key, value in changes.items():
            setattr(new, key, value)
        return new

    # -- headers -------------------------------------------------------------

    def has_header(self, name: str) -> bool:
        return name.lower() in self.headers

    def get_header(self, name: str) -> list[str]:
        """All explicit values for a header, empty list if absent."""
        return list(self.headers.get(name.lower(), []))

    def get_header_line(self, name: str) -> str:
        """Comma-joined header values."""
        return ", ".join(self.get_header(name))

    def with_header(self, name: str, value: str | list[str]) -> WorkerRequest:
        """Copy with the header replaced by value(s)."""
        new = self._copy()
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        new.headers[name.lower()] = [str(v) for v in values]
        return new

    def with_added_header(self, name: str, value: str | list[str]) -> WorkerRequest:
        """Copy with value(s) appended to the header."""
        new = self._copy()
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        new.headers.setdefault(name.lower(), []).extend(str(v) for v in values)
        return new

    def without_header(self, name: str) -> WorkerRequest:
        new = self._copy()
        new.headers.pop(name.lower(), None)
        return new

    # -- other fields --------------------------------------------------------

    def with_method(self, method: str) -> WorkerRequest:
        return self._copy(method=method.upper())

    def with_uri(self, uri: URL | str) -> WorkerRequest:
        """Copy with a new URI. Query params follow the new query string."""
        url = uri if isinstance(uri, URL) else URL(uri)
        return self._copy(uri=url, query_params=QueryParams(url.query).to_dict())

    def with_body(self, body: bytes | str) -> WorkerRequest:
        return self._copy(body=body.encode("utf-8") if isinstance(body, str) else bytes(body))

    def with_parsed_body(self, parsed_body: Any) -> WorkerRequest:
        return self._copy(parsed_body=parsed_body)

    def with_cookie_params(self, cookies: Mapping[str, str]) -> WorkerRequest:
        return self._copy(cookies=dict(cookies))

    def with_query_params(self, query: Mapping[str, Any]) -> WorkerRequest:
        return self._copy(query_params=dict(query))

    def with_uploaded_files(self, files: Mapping[str, UploadedFile]) -> WorkerRequest:
        return self._copy(uploaded_files=dict(files))

    def with_server_params(self, server: Mapping[str, Any]) -> WorkerRequest:
        return self._copy(server_params=dict(server))

    def __repr__(self) -> str:
        return f"<WorkerRequest method={self.method} uri={str(self.uri)!r}>"
