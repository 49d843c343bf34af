# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
BridgeApplication - base class for applications served by a bridge.

The bridge only needs a small contract from the application:

- ``bootstrap()``: one-time setup, called once per worker process.
- ``middleware(queue)``: fill the per-request ``MiddlewareQueue``.
- ``build_request(...)``: request factory used by the normalizer.
- ``__call__(request)`` / ``handle(request)``: final handler, returns a
  ``Response``.

``BridgeApplication`` implements it with a flat route table. Routing is
exact-match (method + path); anything richer belongs to the
application.

Example::

    class Application(BridgeApplication):
        def bootstrap(self):
            self.add_route("GET", "/", self.index)
            self.add_route(["POST", "PUT", "PATCH"], "/write.json", self.write)

        def index(self, request):
            return {"hello": "world"}

        def write(self, request):
            return request.parsed_body

``PluginApplication`` adds plugins that hook into bootstrap and middleware,
either added in code with ``add_plugin()`` or declared in config.yaml::

    plugins:
      audit: "audit_plugin:AuditPlugin"
      metrics:
        module: "metrics_plugin:MetricsPlugin"
        middleware: off
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .config import BridgeConfig
from .exceptions import ConfigurationError, HTTPMethodNotAllowed, HTTPNotFound
from .middleware import middleware_chain
from .pipeline import MiddlewareQueue, call_handler
from .request import HttpRequest, build_request, reset_current_request, set_current_request
from .response import Response
from .session import MemorySessionStore, SessionStore

__all__ = ["BridgeApplication", "PluginApplication", "BasePlugin"]

logger = logging.getLogger("genro_bridge")

RouteHandler = Callable[[HttpRequest], Any]


class BridgeApplication:
    """Base application with config, session store and route table.

    Args:
        config_dir: ``<root_dir>/config`` directory of the application.
        config: Already loaded configuration. Loaded from the parent of
            ``config_dir`` when omitted.
        **kwargs: Passed to ``on_init()``.
    """

    def __init__(
        self,
        config_dir: str | Path,
        config: BridgeConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self.config_dir = Path(config_dir)
        self.config = config if config is not None else BridgeConfig(self.config_dir.parent)
        self.session_store: SessionStore = MemorySessionStore(lifetime=self.config.session["lifetime"])
        self._routes: dict[str, dict[str, RouteHandler]] = {}
        self.on_init(**kwargs)

    def on_init(self, **kwargs: Any) -> None:
        """Called after base initialization. Override for custom setup."""

    def bootstrap(self) -> None:
        """One-time setup. Override to register routes."""

    # -- routes --------------------------------------------------------------

    def add_route(self, methods: str | list[str], path: str, handler: RouteHandler) -> None:
        """Register ``handler`` for ``path`` and one or more methods.

        Handlers receive the request and may be sync or async.
        """
        if isinstance(methods, str):
            methods = [methods]
        table = self._routes.setdefault(path, {})
        for method in methods:
            table[method.upper()] = handler

    def route(self, methods: str | list[str], path: str) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator form of ``add_route``."""

        def decorator(handler: RouteHandler) -> RouteHandler:
            self.add_route(methods, path, handler)
            return handler

        return decorator

    def resolve(self, request: HttpRequest) -> RouteHandler:
        """Handler for the request.

        Raises:
            HTTPNotFound: No route for the path.
            HTTPMethodNotAllowed: The path exists but not for this method.
        """
        table = self._routes.get(request.path)
        if table is None:
            raise HTTPNotFound(f"No route for {request.path}")
        handler = table.get(request.method)
        if handler is None and request.method == "HEAD":
            handler = table.get("GET")
        if handler is None:
            raise HTTPMethodNotAllowed(sorted(table))
        return handler

    # -- bridge contract -----------------------------------------------------

    def middleware(self, queue: MiddlewareQueue) -> MiddlewareQueue:
        """Add the middleware enabled in config, in middleware_order."""
        return queue.add(middleware_chain(self.config.middleware, self.config))

    def build_request(
        self,
        server_params: dict[str, Any],
        query: dict[str, Any] | None = None,
        parsed_body: Any = None,
        cookies: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        *,
        body: bytes = b"",
    ) -> HttpRequest:
        """Request factory bound to this application's session store."""
        return build_request(
            server_params,
            query,
            parsed_body,
            cookies,
            files,
            body=body,
            session_store=self.session_store,
            session_cookie=self.config.session["cookie"],
        )

    def make_response(self, request: HttpRequest, result: Any) -> Response:
        """Wrap a handler result. ``None`` becomes 204 No Content.

        HEAD responses keep status and headers but carry no body.
        """
        if isinstance(result, Response):
            response = result
        else:
            response = Response(request=request)
            if result is None:
                response.status_code = 204
            else:
                response.set_result(result)
        if request.method == "HEAD" and response.body:
            if not response.has_header("content-length"):
                response.set_header("content-length", str(len(response.body)))
            response.body = b""
        return response

    def handle(self, request: HttpRequest) -> Response:
        token = set_current_request(request)
        try:
            handler = self.resolve(request)
            return self.make_response(request, call_handler(handler, request))
        finally:
            reset_current_request(token)

    def __call__(self, request: HttpRequest) -> Response:
        return self.handle(request)


class BasePlugin:
    """Plugin hooking into application bootstrap and middleware.

    Attributes:
        name: Plugin name (default: class name).
        options: Options from ``add_plugin()`` or config.yaml.
        bootstrap_enabled: Run ``bootstrap()`` during plugin bootstrap.
        middleware_enabled: Run ``middleware()`` while building the queue.
    """

    name: str = ""

    def __init__(self, **options: Any) -> None:
        self.bootstrap_enabled = bool(options.pop("bootstrap", True))
        self.middleware_enabled = bool(options.pop("middleware", True))
        self.options = options
        if not self.name:
            self.name = type(self).__name__

    def bootstrap(self, app: PluginApplication) -> None:
        """Called once, after the application bootstrap."""

    def middleware(self, queue: MiddlewareQueue) -> MiddlewareQueue:
        return queue

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


def _load_class(spec: str) -> type:
    module_name, sep, class_name = spec.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigurationError(ConfigurationError.APP_SPEC_INVALID % spec)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


class PluginApplication(BridgeApplication):
    """Application with plugin support."""

    def __init__(
        self,
        config_dir: str | Path,
        config: BridgeConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self.plugins: dict[str, BasePlugin] = {}
        super().__init__(config_dir, config, **kwargs)
        for name, plugin_opts in self.config.section("plugins").items():
            self._add_configured_plugin(name, plugin_opts)

    def _add_configured_plugin(self, name: str, plugin_opts: Any) -> None:
        if isinstance(plugin_opts, str):
            spec, options = plugin_opts, {}
        else:
            options = dict(plugin_opts.as_dict() if hasattr(plugin_opts, "as_dict") else plugin_opts)
            spec = options.pop("module", "")
            if not spec:
                raise ConfigurationError(f"Plugin '{name}' missing 'module' in config")
        for key in ("bootstrap", "middleware"):
            if isinstance(options.get(key), str):
                options[key] = options[key].lower() in ("on", "true", "yes", "1")
        plugin = _load_class(spec)(**options)
        plugin.name = name
        self.add_plugin(plugin)

    def add_plugin(self, plugin: BasePlugin | type[BasePlugin], **options: Any) -> PluginApplication:
        """Add a plugin instance, or a plugin class built with ``options``."""
        if isinstance(plugin, type):
            plugin = plugin(**options)
        self.plugins[plugin.name] = plugin
        logger.debug("Plugin %s added", plugin.name)
        return self

    def get_plugin(self, name: str) -> BasePlugin | None:
        return self.plugins.get(name)

    def plugin_bootstrap(self) -> None:
        for plugin in list(self.plugins.values()):
            if plugin.bootstrap_enabled:
                plugin.bootstrap(self)

    def plugin_middleware(self, queue: MiddlewareQueue) -> MiddlewareQueue:
        for plugin in self.plugins.values():
            if plugin.middleware_enabled:
                queue = plugin.middleware(queue)
        return queue
