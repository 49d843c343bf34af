# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Logging Middleware - request/response access logging.

Log format:
    Request:  "<- GET /api/users from 192.168.1.1"
    Response: "-> GET /api/users 200 (12.5ms)"
    Error:    "-> GET /api/users ERROR: ... (12.5ms)"

The client address is ``request.client_ip``, so behind the application
server it reflects the forwarded client rather than loopback.

Config:
    logger_name (str): Logger name. Default: "genro_bridge.access".
    level (str): Log level (DEBUG, INFO, WARNING, ERROR). Default: "INFO".
    include_headers (bool): Include request headers in DEBUG log. Default: False.
    include_query (bool): Include query string in request log. Default: True.

Example:
    Enable in config.yaml::

        middleware:
          logging: on

        logging_middleware:
          level: DEBUG
          include_headers: true
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..response import Response


class LoggingMiddleware(BaseMiddleware):
    """Access logging middleware.

    Attributes:
        logger: Logger instance for access logs.
        level: Numeric log level.
        include_headers: Whether to log request headers (at DEBUG level).
        include_query: Whether to include the query string in the logged target.
    """

    middleware_name = "logging"
    middleware_order = 200
    middleware_default = False

    __slots__ = ("logger", "level", "include_headers", "include_query")

    def __init__(
        self,
        logger_name: str = "genro_bridge.access",
        level: str = "INFO",
        include_headers: bool = False,
        include_query: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.logger = logging.getLogger(logger_name)
        self.level = getattr(logging, level.upper(), logging.INFO)
        self.include_headers = include_headers
        self.include_query = include_query

    def process(
        self, request: HttpRequest, handler: Callable[[HttpRequest], Response]
    ) -> Response:
        start_time = time.perf_counter()
        target = request.request_target if self.include_query else request.path
        request_info = f"{request.method} {target}"

        self.logger.log(self.level, "<- %s from %s", request_info, request.client_ip or "unknown")
        if self.include_headers:
            self.logger.debug("   Headers: %s", request.headers.as_dict())

        try:
            response = handler(request)
        except Exception as e:
            duration = (time.perf_counter() - start_time) * 1000
            self.logger.error("-> %s ERROR: %s (%.1fms)", request_info, e, duration)
            raise

        duration = (time.perf_counter() - start_time) * 1000
        self.logger.log(self.level, "-> %s %s (%.1fms)", request_info, response.status_code, duration)
        return response
