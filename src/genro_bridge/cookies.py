# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Response cookies.

Cookies are collected on ``Response.cookies`` while the middleware pipeline
runs and serialised by the bridge into one ``Set-Cookie`` header entry per
cookie. A cookie without expiry would become a browser-session cookie; the
bridge rewrites those with ``with_never_expire()`` before serialising.

Classes
=======
Cookie
    Immutable cookie value. ``with_*`` methods return modified copies.
CookieCollection
    Ordered, name-keyed collection attached to a response.

Example::

    cookie = Cookie("prefs", "dark", path="/", httponly=True)
    cookie.to_header_value()
    # 'prefs=dark; Path=/; HttpOnly; SameSite=Lax'
    cookie.with_never_expire().to_header_value()
    # 'prefs=dark; Expires=Fri, 01 Jan 2038 00:00:00 GMT; Path=/; HttpOnly; SameSite=Lax'
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from datetime import datetime, timezone
from email.utils import format_datetime
from urllib.parse import quote

__all__ = ["Cookie", "CookieCollection", "NEVER_EXPIRES"]

# Far-future expiry used for "never expires" cookies (fits 32-bit clients).
NEVER_EXPIRES = datetime(2038, 1, 1, tzinfo=timezone.utc)

SAMESITE_VALUES = ("strict", "lax", "none")


class Cookie:
    """
    Single response cookie.

    Args:
        name: Cookie name.
        value: Cookie value (URL-encoded when serialised).
        expires: Absolute expiry. Naive datetimes are taken as UTC.
        max_age: Lifetime in seconds.
        path: Cookie path (default "/").
        domain: Cookie domain. None means current host only.
        secure: Only sent over HTTPS.
        httponly: Not accessible to scripts.
        samesite: "strict", "lax", "none" or None to omit.

    Raises:
        ValueError: If name is empty or samesite is not a known policy.
    """

    __slots__ = ("name", "value", "expires", "max_age", "path", "domain", "secure", "httponly", "samesite")

    def __init__(
        self,
        name: str,
        value: str = "",
        *,
        expires: datetime | None = None,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = "lax",
    ) -> None:
        if not name:
            raise ValueError("Cookie name cannot be empty")
        if samesite is not None and samesite.lower() not in SAMESITE_VALUES:
            raise ValueError(f"Invalid SameSite value: {samesite!r}")
        if expires is not None and expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        self.name = name
        self.value = value
        self.expires = expires
        self.max_age = max_age
        self.path = path
        self.domain = domain
        self.secure = secure
        self.httponly = httponly
        self.samesite = samesite

    def _copy(self, **changes: object) -> Cookie:
        new = copy.copy(self)
        for key, val in changes.items():
            setattr(new, key, val)
        return new

    @property
    def has_expiry(self) -> bool:
        """True when the cookie carries Expires or Max-Age."""
        return self.expires is not None or self.max_age is not None

    @property
    def expires_timestamp(self) -> int | None:
        """Expiry as a Unix timestamp, None for session cookies."""
        if self.expires is None:
            return None
        return int(self.expires.timestamp())

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (now or datetime.now(timezone.utc))

    def with_value(self, value: str) -> Cookie:
        return self._copy(value=value)

    def with_expiry(self, expires: datetime) -> Cookie:
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return self._copy(expires=expires)

    def with_never_expire(self) -> Cookie:
        """Copy of the cookie that expires on ``NEVER_EXPIRES``."""
        return self._copy(expires=NEVER_EXPIRES)

    def with_expired(self) -> Cookie:
        """Copy that tells the client to drop the cookie."""
        return self._copy(expires=datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc), value="")

    def to_header_value(self) -> str:
        """Serialise as the value of one ``Set-Cookie`` header entry."""
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        if self.expires is not None:
            parts.append(f"Expires={format_datetime(self.expires.astimezone(timezone.utc), usegmt=True)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite.capitalize()}")
        return "; ".join(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cookie):
            return False
        return all(getattr(self, slot) == getattr(other, slot) for slot in self.__slots__)

    def __repr__(self) -> str:
        return f"Cookie(name={self.name!r}, value={self.value!r}, expires={self.expires!r})"


class CookieCollection:
    """
    Ordered cookie collection keyed by name.

    Adding a cookie with an existing name replaces it in place.
    """

    __slots__ = ("_cookies",)

    def __init__(self, cookies: list[Cookie] | None = None) -> None:
        self._cookies: dict[str, Cookie] = {}
        for cookie in cookies or []:
            self.add(cookie)

    def add(self, cookie: Cookie) -> None:
        self._cookies[cookie.name] = cookie

    def get(self, name: str) -> Cookie | None:
        return self._cookies.get(name)

    def has(self, name: str) -> bool:
        return name in self._cookies

    def remove(self, name: str) -> None:
        self._cookies.pop(name, None)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __repr__(self) -> str:
        return f"CookieCollection({list(self._cookies)!r})"
