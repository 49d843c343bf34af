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
Framework-side HTTP request.

``HttpRequest`` is what middleware and handlers see. It is built only from
CGI-style metadata plus the already separated query, parsed body, cookies
and uploads, through ``build_request()``; the normalizer prepares those
inputs from a ``WorkerRequest``.

Architecture::

    WorkerRequest ──normalize_request()──► build_request(environ, query,
                                                         parsed_body,
                                                         cookies, files)
                                                   │
                                                   ▼
                                              HttpRequest
                                     env()/headers/uri/parsed_body/session

Metadata access
===============
``env(name)`` reads the derived metadata. Header keys (``HTTP_*``) return a
scalar when the header has one value and the ordered list when it has more,
while ``get_header()`` always returns a list and ``header()`` the first value.

Trusted proxy
=============
Workers always see the peer as loopback. With ``trust_proxy`` enabled,
``client_ip``, ``scheme`` and ``host`` honour ``X-Forwarded-For`` (or
``X-Real-IP``), ``X-Forwarded-Proto`` and ``X-Forwarded-Host``.

Example::

    request = build_request(
        {"REQUEST_METHOD": "GET", "REQUEST_URI": "/test?parameter=1",
         "HTTP_HOST": "localhost", "REQUEST_SCHEME": "http"},
        query={"parameter": "1"},
    )
    request.request_target     # "/test?parameter=1"
    request.query              # {"parameter": "1"}
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any

from .datastructures import (
    URL,
    Address,
    Headers,
    QueryParams,
    State,
    UploadedFile,
    header_name_from_param,
)
from .session import DEFAULT_SESSION_COOKIE, MemorySessionStore, Session, SessionStore

__all__ = [
    "HttpRequest",
    "build_request",
    "get_current_request",
    "reset_current_request",
    "set_current_request",
]

# ContextVar for current request - allows any code to access the current request
_current_request: ContextVar["HttpRequest | None"] = ContextVar("current_request", default=None)


def get_current_request() -> "HttpRequest | None":
    """Get the current request from context. Returns None if not in request context."""
    return _current_request.get()


def set_current_request(request: "HttpRequest | None") -> Any:
    """Set the current request in context. Returns token for reset."""
    return _current_request.set(request)


def reset_current_request(token: Any) -> None:
    """Restore the request that was current before ``set_current_request``."""
    _current_request.reset(token)


def _scalar_or_list(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        if len(value) == 1:
            return value[0]
        return list(value)
    return value


def _build_uri(environ: Mapping[str, Any], headers: Headers) -> URL:
    """Rebuild the request URL from CGI-style metadata.

    Raises:
        ValueError: If ``SERVER_PORT`` or the host port is not numeric.
    """
    target = URL(str(environ.get("REQUEST_URI") or ""))
    scheme = target.scheme or str(environ.get("REQUEST_SCHEME") or "").lower()
    if not scheme:
        https = str(environ.get("HTTPS") or "").lower()
        scheme = "https" if https and https != "off" else "http"

    host = target.host
    port = target.port
    if not host:
        host_header = headers.get("host")
        if host_header:
            host_url = URL(f"//{host_header}")
            host, port = host_url.host, host_url.port
        else:
            host = str(environ.get("SERVER_NAME") or "localhost")
            server_port = environ.get("SERVER_PORT")
            port = int(server_port) if server_port not in (None, "") else None

    if environ.get("REQUEST_URI"):
        path = target.path
        query = target.query or str(environ.get("QUERY_STRING") or "")
    else:
        path = str(environ.get("PATH_INFO") or "/")
        query = str(environ.get("QUERY_STRING") or "")
    return URL.from_parts(scheme, host, port, path, query)


def build_request(
    server_params: Mapping[str, Any],
    query: Mapping[str, Any] | None = None,
    parsed_body: Any = None,
    cookies: Mapping[str, str] | None = None,
    files: Mapping[str, UploadedFile] | None = None,
    *,
    body: bytes = b"",
    session_store: SessionStore | None = None,
    session_cookie: str = DEFAULT_SESSION_COOKIE,
) -> HttpRequest:
    """
    Build an ``HttpRequest`` from CGI-style metadata and separated inputs.

    Args:
        server_params: Metadata mapping (``REQUEST_METHOD``, ``REQUEST_URI``,
            ``HTTP_*``...). Header values may be strings or lists.
        query: Query parameters. Defaults to the parsed URI query string.
        parsed_body: Structured body or None.
        cookies: Request cookies.
        files: Uploaded files by field name.
        body: Raw body bytes.
        session_store: Backend for ``request.session``.
        session_cookie: Cookie carrying the session id.

    Raises:
        ValueError: If the metadata describes an invalid URI (bad port).
    """
    environ = dict(server_params)
    items: list[tuple[str, str]] = []
    for key, value in environ.items():
        name = header_name_from_param(key)
        if name is None or value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        items.extend((name, str(v)) for v in values)
    headers = Headers(items)
    uri = _build_uri(environ, headers)
    if query is None:
        query = QueryParams(uri.query).to_dict()
    return HttpRequest(
        environ=environ,
        uri=uri,
        headers=headers,
        query=query,
        parsed_body=parsed_body,
        cookies=cookies or {},
        files=files or {},
        body=body,
        session_store=session_store,
        session_cookie=session_cookie,
    )


class HttpRequest:
    """HTTP request as seen by middleware and handlers.

    Attributes:
        trust_proxy: Honour ``X-Forwarded-*`` headers for client address,
            scheme and host.
    """

    __slots__ = (
        "_environ",
        "_uri",
        "_headers",
        "_query",
        "_query_obj",
        "_parsed_body",
        "_cookies",
        "_files",
        "_body",
        "_state",
        "_session",
        "_session_store",
        "_session_cookie",
        "trust_proxy",
    )

    def __init__(
        self,
        environ: Mapping[str, Any],
        uri: URL,
        headers: Headers,
        query: Mapping[str, Any],
        parsed_body: Any,
        cookies: Mapping[str, str],
        files: Mapping[str, UploadedFile],
        body: bytes = b"",
        session_store: SessionStore | None = None,
        session_cookie: str = DEFAULT_SESSION_COOKIE,
    ) -> None:
        self._environ = dict(environ)
        self._uri = uri
        self._headers = headers
        self._query = dict(query)
        self._query_obj: QueryParams | None = None
        self._parsed_body = parsed_body
        self._cookies = dict(cookies)
        self._files = dict(files)
        self._body = body
        self._state: State | None = None
        self._session: Session | None = None
        self._session_store = session_store
        self._session_cookie = session_cookie
        self.trust_proxy = False

    # -- metadata ------------------------------------------------------------

    @property
    def environ(self) -> dict[str, Any]:
        """Copy of the derived metadata."""
        return dict(self._environ)

    def env(self, name: str, default: Any = None) -> Any:
        """Read one metadata value.

        Header keys collapse to a scalar when the header has a single value.
        """
        if name not in self._environ:
            return default
        value = self._environ[name]
        if header_name_from_param(name) is not None:
            return _scalar_or_list(value)
        return value

    @property
    def method(self) -> str:
        return str(self._environ.get("REQUEST_METHOD", "GET")).upper()

    def is_method(self, *methods: str) -> bool:
        return self.method in {m.upper() for m in methods}

    @property
    def uri(self) -> URL:
        return self._uri

    @property
    def path(self) -> str:
        return self._uri.path

    @property
    def query_string(self) -> str:
        return self._uri.query

    @property
    def request_target(self) -> str:
        """Path plus query string, e.g. ``/test?parameter=1``."""
        return self._uri.request_target

    @property
    def scheme(self) -> str:
        if self.trust_proxy:
            forwarded = self._headers.get("x-forwarded-proto")
            if forwarded:
                return forwarded.split(",")[0].strip().lower()
        return self._uri.scheme

    @property
    def host(self) -> str:
        if self.trust_proxy:
            forwarded = self._headers.get("x-forwarded-host")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return self._uri.host

    @property
    def port(self) -> int | None:
        return self._uri.effective_port

    # -- headers -------------------------------------------------------------

    @property
    def headers(self) -> Headers:
        return self._headers

    def get_header(self, name: str) -> list[str]:
        """Every value of a header, in order."""
        return self._headers.getlist(name)

    def get_header_line(self, name: str) -> str:
        return ", ".join(self._headers.getlist(name))

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of a header."""
        return self._headers.get(name, default)

    def has_header(self, name: str) -> bool:
        return name in self._headers

    @property
    def content_type(self) -> str | None:
        return self._headers.get("content-type")

    # -- client --------------------------------------------------------------

    @property
    def client(self) -> Address:
        port = self._environ.get("REMOTE_PORT")
        return Address(
            str(self._environ.get("REMOTE_ADDR", "")),
            int(port) if port not in (None, "") else None,
        )

    @property
    def client_ip(self) -> str:
        """Logical client address."""
        if self.trust_proxy:
            forwarded = self._headers.get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
            real_ip = self._headers.get("x-real-ip")
            if real_ip:
                return real_ip.strip()
        return str(self._environ.get("REMOTE_ADDR", ""))

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        """``(username, password)`` decoded from Basic authorization."""
        user = self._environ.get("AUTH_USER")
        if user is None:
            return None
        return str(user), str(self._environ.get("AUTH_PASSWORD", ""))

    # -- payload -------------------------------------------------------------

    @property
    def query(self) -> dict[str, Any]:
        return self._query

    @property
    def query_params(self) -> QueryParams:
        """Multi-value view of the URI query string."""
        if self._query_obj is None:
            self._query_obj = QueryParams(self._uri.query)
        return self._query_obj

    @property
    def parsed_body(self) -> Any:
        return self._parsed_body

    @property
    def data(self) -> Any:
        """Alias of parsed_body."""
        return self._parsed_body

    @property
    def body(self) -> bytes:
        """Raw body bytes."""
        return self._body

    @property
    def cookies(self) -> dict[str, str]:
        return self._cookies

    @property
    def uploaded_files(self) -> dict[str, UploadedFile]:
        return self._files

    # -- request scoped ------------------------------------------------------

    @property
    def state(self) -> State:
        """Request-scoped state container."""
        if self._state is None:
            self._state = State()
        return self._state

    @property
    def session(self) -> Session:
        """Request-local session, created on first access."""
        if self._session is None:
            store = self._session_store
            if store is None:
                store = self._session_store = MemorySessionStore()
            self._session = Session(store, self._cookies.get(self._session_cookie))
        return self._session

    @property
    def session_cookie(self) -> str:
        return self._session_cookie

    @property
    def has_session(self) -> bool:
        """True once something accessed ``session``."""
        return self._session is not None

    def close_session(self) -> None:
        """Flush and release the session if one was opened."""
        if self._session is not None:
            self._session.close()

    def __repr__(self) -> str:
        return f"<HttpRequest method={self.method} target={self.request_target!r}>"
