# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
URL parser with component access.

Wraps ``urllib.parse.urlsplit`` and adds the pieces a worker bridge needs:
the request target (``/path?query``) and a builder from separate parts.

URL Parsing Schema::

    http://localhost:8080/test?parameter=1
    ────   ──────────────────────────────── ───────────
    scheme        netloc    path              query
           ─────────  ────
           host       port

    request_target → "/test?parameter=1"

Example::

    url = URL("http://localhost/test?parameter=1")
    url.scheme          # "http"
    url.host            # "localhost"
    url.query           # "parameter=1"
    url.request_target  # "/test?parameter=1"
"""

from __future__ import annotations

from urllib.parse import unquote, urlsplit

__all__ = ["URL", "DEFAULT_PORTS"]

DEFAULT_PORTS = {"http": 80, "https": 443}


class URL:
    """
    URL parser with component access.

    Attributes:
        scheme: URL scheme, lowercase ("http", "https"). Empty if relative.
        host: Hostname without port ("" if relative).
        port: Explicit port number or None.
        path: Raw path, "/" if empty.
        query: Query string without "?".
        fragment: Fragment without "#".

    Example:
        >>> url = URL("https://example.com:8443/a%20b?q=1#top")
        >>> url.port
        8443
        >>> url.unquoted_path
        '/a b'
        >>> str(url)
        'https://example.com:8443/a%20b?q=1#top'
    """

    __slots__ = ("_url", "_parsed")

    def __init__(self, url: str = "") -> None:
        self._url = url
        self._parsed = urlsplit(url)

    @classmethod
    def from_parts(
        cls,
        scheme: str = "",
        host: str = "",
        port: int | None = None,
        path: str = "/",
        query: str = "",
    ) -> URL:
        """Build a URL from its components, omitting default ports."""
        netloc = host
        if host and port is not None and DEFAULT_PORTS.get(scheme) != port:
            netloc = f"{host}:{port}"
        url = f"{scheme}://{netloc}" if scheme and netloc else ""
        url += path or "/"
        if query:
            url += f"?{query}"
        return cls(url)

    @property
    def scheme(self) -> str:
        return self._parsed.scheme.lower()

    @property
    def netloc(self) -> str:
        return self._parsed.netloc

    @property
    def host(self) -> str:
        """Hostname, lowercase. Empty string for relative URLs."""
        return self._parsed.hostname or ""

    @property
    def port(self) -> int | None:
        """Explicit port, None if absent.

        Raises:
            ValueError: If the port is not a valid number.
        """
        return self._parsed.port

    @property
    def effective_port(self) -> int | None:
        """Explicit port or the scheme default."""
        port = self.port
        if port is None:
            return DEFAULT_PORTS.get(self.scheme)
        return port

    @property
    def path(self) -> str:
        return self._parsed.path or "/"

    @property
    def unquoted_path(self) -> str:
        return unquote(self.path)

    @property
    def query(self) -> str:
        return self._parsed.query

    @property
    def fragment(self) -> str:
        return self._parsed.fragment

    @property
    def request_target(self) -> str:
        """Origin-form request target: path plus query string."""
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    @property
    def authority(self) -> str:
        """Host with port when the port is not the scheme default."""
        port = self.port
        if port is None or DEFAULT_PORTS.get(self.scheme) == port:
            return self.host
        return f"{self.host}:{port}"

    def replace(self, **parts: str) -> URL:
        """Return a new URL with some of scheme/netloc/path/query/fragment replaced."""
        return URL(self._parsed._replace(**parts).geturl())

    def __str__(self) -> str:
        return self._url

    def __repr__(self) -> str:
        return f"URL({self._url!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, URL):
            return self._url == other._url
        if isinstance(other, str):
            return self._url == other
        return False

    def __hash__(self) -> int:
        return hash(self._url)
