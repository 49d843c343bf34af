# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for genro-bridge.

Two families live here:

1. Bridge errors, raised by the bridge itself:

   - ``BridgeError``: common base.
   - ``ConfigurationError``: fatal at construction time. The root directory
     does not exist, the configuration cannot be read, or no application
     instance can be created. The message embeds the offending path or spec.

2. HTTP errors, raised by application handlers and turned into responses by
   ``ErrorMiddleware`` when the application enables it:

   - ``HTTPException`` and its shortcuts (``HTTPNotFound``, ``Redirect``...).

Propagation
-----------
The bridge never catches errors raised while the middleware pipeline runs:
they reach the worker loop unchanged, which decides how to render them.

Example:
    >>> raise ConfigurationError(ConfigurationError.ROOT_DIR_NOT_FOUND % "/srv/app")
    >>> raise HTTPException(404, detail="User not found")
    >>> raise HTTPException(400, headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])
"""


class BridgeError(Exception):
    """Base class for errors raised by genro-bridge itself."""


class ConfigurationError(BridgeError):
    """
    Construction-time configuration failure.

    Message templates are class attributes so callers and tests can build
    the expected text.

    Example:
        >>> ConfigurationError(ConfigurationError.ROOT_DIR_NOT_FOUND % "/nope")
        ConfigurationError('Root directory `/nope` not found')
    """

    ROOT_DIR_NOT_FOUND = "Root directory `%s` not found"
    APP_INSTANCE_NOT_CREATED = "Unable to create an application instance"
    APP_SPEC_INVALID = "Invalid application spec `%s`, expected `module:Class`"
    CONFIG_NOT_READABLE = "Unable to read configuration `%s`"


class HTTPException(Exception):
    """
    HTTP exception with status code and detail.

    Attributes:
        status_code: HTTP status code (expected 4xx or 5xx, not validated)
        detail: Error detail message
        headers: Response headers as list of tuples (supports duplicate names)
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        # dict input is stored as a list so duplicate names stay possible
        if headers is None:
            self.headers: list[tuple[str, str]] | None = None
        elif isinstance(headers, dict):
            self.headers = list(headers.items())
        else:
            self.headers = list(headers)
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"HTTPException(status_code={self.status_code}, detail={self.detail!r})"


class Redirect(HTTPException):
    """HTTP redirect exception. Raises 302 redirect by default."""

    def __init__(self, url: str, status_code: int = 302) -> None:
        super().__init__(status_code, headers={"Location": url})
        self.url = url

    def __repr__(self) -> str:
        return f"Redirect(url={self.url!r}, status_code={self.status_code})"


class HTTPBadRequest(HTTPException):
    """HTTP 400 Bad Request exception."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(400, detail=detail)


class HTTPUnauthorized(HTTPException):
    """HTTP 401 Unauthorized exception."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(401, detail=detail)


class HTTPForbidden(HTTPException):
    """HTTP 403 Forbidden exception."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(403, detail=detail)


class HTTPNotFound(HTTPException):
    """HTTP 404 Not Found exception."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(404, detail=detail)


class HTTPMethodNotAllowed(HTTPException):
    """HTTP 405 Method Not Allowed exception."""

    def __init__(self, allowed: list[str], detail: str = "Method not allowed") -> None:
        super().__init__(405, detail=detail, headers={"Allow": ", ".join(allowed)})
        self.allowed = allowed
