# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Data structures shared by worker requests and framework requests.

Mapping from worker data to genro-bridge classes::

    Worker / transport data                    genro-bridge classes
    ───────────────────────                    ────────────────────
    REMOTE_ADDR / REMOTE_PORT            →  Address(host, port)
    HTTP_* params + explicit headers     →  Headers (case-insensitive, multi-value)
    QUERY_STRING = "a=1&b=2"             →  QueryParams (parsed)
    "http://localhost/test?parameter=1"  →  URL (parsed)
    request attributes                   →  State (attribute access)
    multipart upload metadata            →  UploadedFile

Modules
=======
- ``address``: Client/server address wrapper
- ``headers``: Case-insensitive headers and transport/explicit merging
- ``query_params``: Parsed query strings and form payloads
- ``state``: Request-scoped state container
- ``uploaded_file``: Client upload handle
- ``url``: URL parser with request-target access
"""

from .address import Address
from .headers import Headers, header_name_from_param, merge_header_values, param_from_header_name
from .query_params import QueryParams, parse_form
from .state import State
from .uploaded_file import UPLOAD_ERR_OK, UploadedFile
from .url import URL

__all__ = [
    "Address",
    "Headers",
    "QueryParams",
    "State",
    "URL",
    "UploadedFile",
    "UPLOAD_ERR_OK",
    "header_name_from_param",
    "merge_header_values",
    "param_from_header_name",
    "parse_form",
]
