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
Bridge - runs framework applications inside a persistent worker process.

The application server (RoadRunner-style) keeps worker processes alive and
feeds each one generic requests. The worker file creates one ``Bridge`` at
startup and hands it every request::

    bridge = Bridge("/srv/app")

    while (request := worker.wait_request()) is not None:
        worker.respond(bridge.handle(request))

Construction
============
``Bridge(root_dir, application=None, server=None)``:

1. ``root_dir`` without its trailing slash must exist, else
   ``ConfigurationError(ROOT_DIR_NOT_FOUND)``.
2. ``BridgeConfig`` is loaded from ``<root_dir>/config/config.yaml``.
3. The application is the given instance, or the result of calling the
   given factory with the config directory, or the class named by the
   ``application`` config entry (``module:Class``, loaded from root_dir).
   Any failure is ``ConfigurationError(APP_INSTANCE_NOT_CREATED)``.
4. A ``Server`` wraps the application unless one is given.
5. ``bootstrap()`` runs once, then ``plugin_bootstrap()`` when available.

Request flow
============
::

    WorkerRequest
        → convert_request()        normalize_request(request, app.build_request)
        → app.middleware(queue)    (+ app.plugin_middleware(queue))
        → Server.buildMiddleware   event, listeners may edit the queue
        → Runner.run(queue, request, app)
        → cookies without expiry → never expire
        → Set-Cookie: one entry per cookie
        → close session            always, even when the pipeline raised
    Response

Errors raised by the pipeline are not caught here: they reach the worker
loop unchanged (``ErrorMiddleware``, enabled by default, turns them into
responses before that).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .application import BridgeApplication
from .config import BridgeConfig
from .exceptions import ConfigurationError
from .loader import AppLoader
from .normalizer import normalize_request
from .pipeline import MiddlewareQueue, Runner
from .request import HttpRequest, build_request
from .response import Response
from .server import Server
from .worker_request import WorkerRequest

__all__ = ["Bridge", "BUILD_MIDDLEWARE_EVENT", "finalize_cookies"]

logger = logging.getLogger("genro_bridge.bridge")

BUILD_MIDDLEWARE_EVENT = "Server.buildMiddleware"


class Bridge:
    """
    Adapter between a worker loop and a framework application.

    Attributes:
        root_dir: Application root, without trailing slash.
        config: Loaded ``BridgeConfig``.
        application: The bootstrapped application.
        server: Event source wrapping the application.
    """

    __slots__ = ("root_dir", "config", "application", "server", "_runner", "_loader")

    def __init__(
        self,
        root_dir: str | Path,
        application: Any = None,
        server: Server | None = None,
    ) -> None:
        root = str(root_dir)
        if len(root) > 1 and root.endswith("/"):
            root = root[:-1]
        if not Path(root).exists():
            raise ConfigurationError(ConfigurationError.ROOT_DIR_NOT_FOUND % root)

        self.root_dir = root
        self.config = BridgeConfig(root)
        self._loader = AppLoader()
        self._runner = Runner()
        self.application = self._create_application(application)
        self.server = server if server is not None else Server(self.application)

        self.application.bootstrap()
        if hasattr(self.application, "plugin_bootstrap"):
            self.application.plugin_bootstrap()
        logger.debug("Bridge ready for %s (%s)", root, type(self.application).__name__)

    @property
    def config_dir(self) -> Path:
        return self.config.config_dir

    def _create_application(self, application: Any) -> Any:
        if application is not None and not _is_factory(application):
            return application

        factory = application
        if factory is None:
            spec = self.config.application
            if not spec:
                raise ConfigurationError(ConfigurationError.APP_INSTANCE_NOT_CREATED)
            try:
                factory = self._loader.load_class(spec, Path(self.root_dir))
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(ConfigurationError.APP_INSTANCE_NOT_CREATED) from e

        try:
            if isinstance(factory, type) and issubclass(factory, BridgeApplication):
                instance = factory(self.config_dir, config=self.config)
            else:
                instance = factory(self.config_dir)
        except Exception as e:
            raise ConfigurationError(ConfigurationError.APP_INSTANCE_NOT_CREATED) from e
        if instance is None:
            raise ConfigurationError(ConfigurationError.APP_INSTANCE_NOT_CREATED)
        return instance

    def convert_request(self, request: WorkerRequest) -> HttpRequest:
        """Normalize a worker request with the application's request factory."""
        factory = getattr(self.application, "build_request", build_request)
        return normalize_request(request, factory)

    def build_middleware(self) -> MiddlewareQueue:
        """Middleware queue for one request, after event listeners ran."""
        queue = self.application.middleware(MiddlewareQueue())
        if hasattr(self.application, "plugin_middleware"):
            queue = self.application.plugin_middleware(queue)
        self.server.dispatch_event(BUILD_MIDDLEWARE_EVENT, {"middleware": queue})
        return queue

    def handle(self, request: WorkerRequest) -> Response:
        """
        Run one worker request through the application.

        Raises:
            Exception: Anything raised while converting the request or
                running the pipeline, unchanged.
        """
        converted = self.convert_request(request)
        try:
            queue = self.build_middleware()
            response = self._runner.run(queue, converted, self.application)
            finalize_cookies(response)
            logger.debug(
                "%s %s -> %s", converted.method, converted.request_target, response.status_code
            )
            return response
        finally:
            converted.close_session()


def _is_factory(application: Any) -> bool:
    # application instances expose bootstrap(); classes and plain factories do not
    if isinstance(application, type):
        return True
    return callable(application) and not hasattr(application, "bootstrap")


def finalize_cookies(response: Response) -> None:
    """Give expiry-less cookies a far-future expiry and emit ``Set-Cookie``.

    One header entry per cookie. Leaves headers untouched when the response
    carries no cookies.
    """
    values = []
    for cookie in response.cookies:
        if not cookie.has_expiry:
            cookie = cookie.with_never_expire()
            response.cookies.add(cookie)
        values.append(cookie.to_header_value())
    if values:
        response.replace_header("Set-Cookie", values)
