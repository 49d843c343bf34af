# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Session cookie middleware.

After the inner handler returns, a session that was created during this
request gets its id sent back in a cookie. Existing sessions are left
alone; the bridge closes every session once the response is ready.

Config:
    path (str): Cookie path. Default: "/".
    httponly (bool): Default: True.
    secure (bool): Default: False.
    samesite (str): Default: "lax".
    max_age (int): Cookie lifetime in seconds. Default: None, meaning the
        bridge rewrites it to a far-future expiry.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..cookies import Cookie

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..response import Response


class SessionMiddleware(BaseMiddleware):
    """Send the session cookie for sessions started during the request."""

    middleware_name = "session"
    middleware_order = 400
    middleware_default = True

    __slots__ = ("path", "httponly", "secure", "samesite", "max_age")

    def __init__(
        self,
        path: str = "/",
        httponly: bool = True,
        secure: bool = False,
        samesite: str | None = "lax",
        max_age: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.path = path
        self.httponly = httponly
        self.secure = secure
        self.samesite = samesite
        self.max_age = max_age

    def process(
        self, request: HttpRequest, handler: Callable[[HttpRequest], Response]
    ) -> Response:
        response = handler(request)
        if not request.has_session:
            return response
        session = request.session
        if session.started and session.is_new and session.dirty and session.id:
            response.cookies.add(
                Cookie(
                    request.session_cookie,
                    session.id,
                    max_age=self.max_age,
                    path=self.path,
                    secure=self.secure,
                    httponly=self.httponly,
                    samesite=self.samesite,
                )
            )
        return response
