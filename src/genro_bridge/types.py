# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Type aliases for genro-bridge.

ServerParams : Mapping[str, Any]
    CGI-style metadata (``REQUEST_METHOD``, ``REQUEST_URI``, ``HTTP_*``...).
    Header entries may hold a string or a list of strings.

Handler : Callable[[HttpRequest], Response]
    Rest of the pipeline as seen by a middleware; also the shape of the
    application's final handler.

MiddlewareCallable : Callable[[HttpRequest, Handler], Response]
    Plain-function middleware accepted by ``MiddlewareQueue``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

ServerParams = Mapping[str, Any]
Handler = Callable[["HttpRequest"], "Response"]
MiddlewareCallable = Callable[["HttpRequest", Handler], "Response"]

__all__ = ["ServerParams", "Handler", "MiddlewareCallable"]
