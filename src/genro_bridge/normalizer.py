# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Request normalizer: ``WorkerRequest`` → ``HttpRequest``.

``normalize_request()`` is a pure function. It reads the worker request,
derives the metadata the framework expects and hands everything to a
request factory (``build_request`` by default, or the application's own
``build_request``). The worker request is never modified.

What it derives
===============
Transport metadata
    ``REQUEST_TIME``/``REQUEST_TIME_FLOAT`` are set to now and
    ``REMOTE_ADDR`` to loopback (the real client is recovered through the
    trusted-proxy headers). Method, request target, scheme, host and port
    come from the request URI. ``HTTP_HOST`` is synthesised from the URI
    when the request has no Host header.
Basic authorization
    ``Authorization: Basic <b64(user:pass)>`` becomes ``AUTH_TYPE``,
    ``AUTH_USER`` and ``AUTH_PASSWORD``. Malformed values are logged and
    left for the application to reject.
Header multiplicity
    Each header collects transport values (``HTTP_*`` parameters) first,
    explicit header values after, deduplicated. See
    ``merge_header_values``.
Parsed body
    A non-empty pre-parsed body is passed through as is. Otherwise, only
    for write methods, JSON and form-urlencoded raw bodies are decoded.
    Uploaded files are merged into a mapping body under their field names.

The resulting request has ``trust_proxy`` enabled.

Example::

    request = WorkerRequest("GET", "http://localhost/test?parameter=1")
    converted = normalize_request(request)
    converted.request_target      # "/test?parameter=1"
    converted.env("REMOTE_ADDR")  # "127.0.0.1"
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from .datastructures import (
    header_name_from_param,
    merge_header_values,
    param_from_header_name,
    parse_form,
)
from .request import HttpRequest, build_request
from .worker_request import WorkerRequest

__all__ = [
    "normalize_request",
    "decode_basic_authorization",
    "derive_parsed_body",
    "RequestFactory",
    "LOOPBACK_ADDRESS",
    "BODY_PARSING_METHODS",
]

logger = logging.getLogger("genro_bridge.normalizer")

LOOPBACK_ADDRESS = "127.0.0.1"

# Methods whose raw body is decoded when no parsed body was supplied.
BODY_PARSING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

RequestFactory = Callable[..., HttpRequest]


def decode_basic_authorization(value: str | None) -> tuple[str, str] | None:
    """
    Split a Basic ``Authorization`` header into username and password.

    Args:
        value: Header value, e.g. ``"Basic dXNlcjpwYXNz"``.

    Returns:
        ``(username, password)``, or None when the header is absent, uses
        another scheme, or is malformed (bad base64, no colon).

    Example:
        >>> decode_basic_authorization("Basic dXNlcjpwYXNz")
        ('user', 'pass')
        >>> decode_basic_authorization("Basic dXNlcjo=")
        ('user', '')
    """
    if not value:
        return None
    scheme, _, payload = value.strip().partition(" ")
    if scheme.lower() != "basic" or not payload.strip():
        return None
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
    except binascii.Error:
        logger.warning("Ignoring malformed Basic authorization payload")
        return None
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError:
        # not UTF-8: bytes taken as ISO-8859-1
        decoded = raw.decode("latin-1")
    username, colon, password = decoded.partition(":")
    if not colon:
        logger.warning("Ignoring Basic authorization without ':' separator")
        return None
    return username, password


def _media_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _decode_body(body: bytes, content_type: str | None) -> Any:
    media_type = _media_type(content_type)
    if not body:
        return None
    if media_type == "application/json" or media_type.endswith("+json"):
        try:
            return json.loads(body)
        except ValueError:
            logger.debug("Raw body is not valid JSON, leaving it unparsed")
            return None
    if media_type == FORM_CONTENT_TYPE:
        try:
            return parse_form(body.decode("utf-8"))
        except UnicodeDecodeError:
            logger.debug("Form body is not valid UTF-8, leaving it unparsed")
            return None
    return None


def derive_parsed_body(request: WorkerRequest) -> Any:
    """
    Parsed body the framework request should carry.

    A non-empty ``parsed_body`` is returned as given (a shallow copy for
    mappings). Without one, the raw body is decoded only for methods in
    ``BODY_PARSING_METHODS``. Uploaded files are merged under their field
    names; a list body becomes a mapping keyed by item position first.
    """
    parsed = request.parsed_body
    if parsed:
        parsed = dict(parsed) if isinstance(parsed, Mapping) else parsed
    elif request.method in BODY_PARSING_METHODS:
        parsed = _decode_body(request.body, request.get_header_line("content-type") or None)

    if request.uploaded_files:
        if parsed is None:
            parsed = {}
        elif isinstance(parsed, (list, tuple)):
            parsed = dict(enumerate(parsed))
        if isinstance(parsed, dict):
            for field, upload in request.uploaded_files.items():
                parsed[field] = upload
        else:
            logger.warning(
                "Uploaded files %s not merged into %s parsed body",
                sorted(request.uploaded_files),
                type(parsed).__name__,
            )
    return parsed


def _derive_environ(request: WorkerRequest) -> dict[str, Any]:
    environ: dict[str, Any] = {}
    transport_headers: dict[str, tuple[str, Any]] = {}
    for key, value in request.server_params.items():
        name = header_name_from_param(key)
        if name is None:
            environ[key] = value
        else:
            transport_headers[name] = (key, value)

    for name in list(transport_headers) + [n for n in request.headers if n not in transport_headers]:
        key, transport = transport_headers.get(name, (param_from_header_name(name), None))
        values = merge_header_values(transport, request.headers.get(name))
        if values:
            environ[key] = values[0] if len(values) == 1 else values

    uri = request.uri
    now = time.time()
    environ["REQUEST_TIME"] = int(now)
    environ["REQUEST_TIME_FLOAT"] = now
    environ["REMOTE_ADDR"] = LOOPBACK_ADDRESS
    environ["REQUEST_METHOD"] = request.method
    environ["REQUEST_URI"] = uri.request_target
    environ["PATH_INFO"] = uri.path
    environ["QUERY_STRING"] = uri.query
    if uri.scheme:
        environ["REQUEST_SCHEME"] = uri.scheme
        environ["HTTPS"] = "on" if uri.scheme == "https" else "off"
    if uri.host:
        environ["SERVER_NAME"] = uri.host
        if "HTTP_HOST" not in environ:
            environ["HTTP_HOST"] = uri.authority
    port = uri.effective_port
    if port is not None:
        environ["SERVER_PORT"] = port
    environ.setdefault("SERVER_PROTOCOL", "HTTP/1.1")

    authorization = environ.get("HTTP_AUTHORIZATION")
    if isinstance(authorization, list):
        authorization = authorization[0]
    credentials = decode_basic_authorization(authorization)
    if credentials is not None:
        environ["AUTH_TYPE"] = "Basic"
        environ["AUTH_USER"], environ["AUTH_PASSWORD"] = credentials
    return environ


def normalize_request(
    request: WorkerRequest,
    factory: RequestFactory = build_request,
) -> HttpRequest:
    """
    Convert a worker request into the framework request.

    Args:
        request: Generic request from the worker loop. Left untouched.
        factory: Callable with the ``build_request`` signature
            ``(server_params, query, parsed_body, cookies, files, *, body)``.

    Returns:
        New ``HttpRequest`` with ``trust_proxy`` enabled.

    Raises:
        Exception: Whatever the factory raises (e.g. ValueError for an
            invalid port) propagates unchanged.
    """
    converted = factory(
        _derive_environ(request),
        dict(request.query_params),
        derive_parsed_body(request),
        dict(request.cookies),
        dict(request.uploaded_files),
        body=request.body,
    )
    converted.trust_proxy = True
    return converted
