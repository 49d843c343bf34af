# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Error handling middleware.

Catches exceptions raised further down the pipeline and converts them to
responses, so the worker loop receives an answer instead of an exception.

Exception handling:
    - Redirect: 3xx with Location header and empty body
    - HTTPException: status code with detail as text/plain
    - Exception: 500 Internal Server Error, logged

Config:
    debug (bool): If True, include traceback in 500 responses. Default: False.

Note:
    Enabled by default (middleware_default=True) and first in the chain
    (middleware_order=100). Applications that want errors to reach the
    worker loop disable it::

        middleware:
          errors: off
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..exceptions import HTTPException, Redirect
from ..response import Response

if TYPE_CHECKING:
    from ..request import HttpRequest

logger = logging.getLogger("genro_bridge")


class ErrorMiddleware(BaseMiddleware):
    """Turn exceptions from the rest of the pipeline into error responses.

    Attributes:
        debug: If True, include stack traces in 500 error responses.
    """

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("debug",)

    def __init__(self, debug: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.debug = debug

    def process(
        self, request: HttpRequest, handler: Callable[[HttpRequest], Response]
    ) -> Response:
        try:
            return handler(request)
        except Redirect as e:
            return Response(status_code=e.status_code, headers=[("location", e.url)], request=request)
        except HTTPException as e:
            response = Response(e.detail or "", status_code=e.status_code, media_type="text/plain", request=request)
            for name, value in e.headers or []:
                response.set_header(name, value)
            return response
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.request_target)
            if self.debug:
                body = f"Internal Server Error\n\n{traceback.format_exc()}"
            else:
                body = "Internal Server Error"
            return Response(body, status_code=500, media_type="text/plain", request=request)
