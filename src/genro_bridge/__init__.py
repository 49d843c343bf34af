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

"""genro-bridge - run framework applications inside persistent worker processes.

Main components:
    Bridge: converts worker requests and runs them through the application
    WorkerRequest: generic request handed over by the worker loop
    normalize_request: WorkerRequest -> HttpRequest
    HttpRequest: framework request (env, headers, parsed body, session)
    Response: HTTP response with cookies and multi-value headers
    BridgeApplication / PluginApplication: application base classes

Middleware:
    ErrorMiddleware: Exception handling and error responses
    LoggingMiddleware: Access log
    SessionMiddleware: Session cookie for new sessions

Usage:
    from genro_bridge import Bridge

    bridge = Bridge("/srv/app")
    response = bridge.handle(worker_request)
"""

__version__ = "0.1.0"

from .application import BasePlugin, BridgeApplication, PluginApplication
from .bridge import BUILD_MIDDLEWARE_EVENT, Bridge, finalize_cookies
from .config import BridgeConfig
from .cookies import Cookie, CookieCollection
from .datastructures import URL, Address, Headers, QueryParams, State, UploadedFile
from .events import Event, EventManager
from .exceptions import (
    BridgeError,
    ConfigurationError,
    HTTPBadRequest,
    HTTPException,
    HTTPForbidden,
    HTTPMethodNotAllowed,
    HTTPNotFound,
    HTTPUnauthorized,
    Redirect,
)
from .loader import AppLoader
from .middleware import BaseMiddleware, ErrorMiddleware, LoggingMiddleware, SessionMiddleware
from .normalizer import normalize_request
from .pipeline import MiddlewareQueue, Runner
from .request import (
    HttpRequest,
    build_request,
    get_current_request,
    reset_current_request,
    set_current_request,
)
from .response import Response
from .server import Server
from .session import MemorySessionStore, Session, SessionStore
from .worker_request import WorkerRequest

__all__ = [
    "__version__",
    "AppLoader",
    "Address",
    "BasePlugin",
    "BaseMiddleware",
    "Bridge",
    "BridgeApplication",
    "BridgeConfig",
    "BridgeError",
    "BUILD_MIDDLEWARE_EVENT",
    "ConfigurationError",
    "Cookie",
    "CookieCollection",
    "ErrorMiddleware",
    "Event",
    "EventManager",
    "HTTPBadRequest",
    "HTTPException",
    "HTTPForbidden",
    "HTTPMethodNotAllowed",
    "HTTPNotFound",
    "HTTPUnauthorized",
    "Headers",
    "HttpRequest",
    "LoggingMiddleware",
    "MemorySessionStore",
    "MiddlewareQueue",
    "PluginApplication",
    "QueryParams",
    "Redirect",
    "Response",
    "Runner",
    "Server",
    "Session",
    "SessionMiddleware",
    "SessionStore",
    "State",
    "URL",
    "UploadedFile",
    "WorkerRequest",
    "build_request",
    "finalize_cookies",
    "get_current_request",
    "normalize_request",
    "reset_current_request",
    "set_current_request",
]
