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

"""Tests for the worker request normalizer."""

from __future__ import annotations

import base64
import json
import logging
import time

import pytest

from genro_bridge.datastructures import UploadedFile
from genro_bridge.normalizer import (
    LOOPBACK_ADDRESS,
    decode_basic_authorization,
    derive_parsed_body,
    normalize_request,
)
from genro_bridge.request import HttpRequest, build_request
from genro_bridge.worker_request import WorkerRequest


def basic(credentials: str) -> str:
    return "Basic " + base64.b64encode(credentials.encode()).decode()


class TestTransportMetadata:
    """Tests for derived metadata."""

    def test_keeps_uri_parameters(self) -> None:
        request = WorkerRequest(
            uri="http://localhost/test?parameter=1",
            server_params={"REQUEST_URI": "http://localhost/test?parameter=1"},
        )
        converted = normalize_request(request)
        assert converted.uri.scheme == "http"
        assert converted.uri.host == "localhost"
        assert converted.uri.query == "parameter=1"
        assert converted.request_target == "/test?parameter=1"

    def test_adds_host_header(self) -> None:
        converted = normalize_request(WorkerRequest(uri="http://website.com/test.json"))
        assert converted.get_header_line("Host") == "website.com"

    def test_host_header_keeps_port(self) -> None:
        converted = normalize_request(WorkerRequest(uri="http://localhost:8080/write.json"))
        assert converted.get_header_line("Host") == "localhost:8080"
        assert converted.port == 8080

    def test_existing_host_header_wins(self) -> None:
        request = WorkerRequest(uri="http://internal/", headers={"Host": "public.example"})
        converted = normalize_request(request)
        assert converted.get_header("host") == ["public.example"]

    def test_forced_values(self) -> None:
        request = WorkerRequest(
            "PUT",
            "https://example.com/items/1?x=2",
            server_params={"REMOTE_ADDR": "10.1.1.1", "REQUEST_METHOD": "GET", "CUSTOM": "kept"},
        )
        before = time.time()
        converted = normalize_request(request)
        assert converted.env("REMOTE_ADDR") == LOOPBACK_ADDRESS
        assert converted.env("REQUEST_METHOD") == "PUT"
        assert converted.env("REQUEST_URI") == "/items/1?x=2"
        assert converted.env("PATH_INFO") == "/items/1"
        assert converted.env("QUERY_STRING") == "x=2"
        assert converted.env("REQUEST_SCHEME") == "https"
        assert converted.env("HTTPS") == "on"
        assert converted.env("SERVER_NAME") == "example.com"
        assert converted.env("SERVER_PORT") == 443
        assert converted.env("CUSTOM") == "kept"
        assert converted.env("REQUEST_TIME") >= int(before)
        assert converted.env("REQUEST_TIME_FLOAT") >= before
        assert isinstance(converted.env("REQUEST_TIME"), int)

    def test_trust_proxy_enabled(self) -> None:
        request = WorkerRequest(uri="http://localhost/", headers={"X-Forwarded-For": "203.0.113.9"})
        converted = normalize_request(request)
        assert converted.trust_proxy is True
        assert converted.client_ip == "203.0.113.9"

    def test_input_not_mutated(self) -> None:
        params = {"HTTP_X_TEST": "1"}
        request = WorkerRequest("POST", "http://localhost/", server_params=params, parsed_body={"a": 1})
        converted = normalize_request(request)
        converted.parsed_body["b"] = 2
        assert request.server_params == {"HTTP_X_TEST": "1"}
        assert request.parsed_body == {"a": 1}
        assert "REMOTE_ADDR" not in request.server_params


class TestHeaderMultiplicity:
    """Tests for merging transport and explicit headers."""

    def test_duplicated_headers_kept_as_list(self) -> None:
        request = (
            WorkerRequest(server_params={"HTTP_X_TEST_HEADER": "123, 456"})
            .with_header("X-Test-Header", "123")
            .with_added_header("X-Test-Header", "456")
        )
        converted = normalize_request(request)
        assert converted.get_header("X-Test-Header") == ["123", "456"]
        assert converted.env("HTTP_X_TEST_HEADER") == ["123", "456"]

    def test_single_header_kept_as_string(self) -> None:
        request = WorkerRequest(server_params={"HTTP_X_REAL_IP": "192.168.0.1"}).with_header(
            "X-Real-IP", "192.168.0.1"
        )
        converted = normalize_request(request)
        assert converted.env("HTTP_X_REAL_IP") == "192.168.0.1"

    def test_explicit_only_header(self) -> None:
        converted = normalize_request(WorkerRequest(headers={"Content-Type": "application/json"}))
        assert converted.env("CONTENT_TYPE") == "application/json"
        assert converted.content_type == "application/json"

    def test_transport_only_header(self) -> None:
        converted = normalize_request(WorkerRequest(server_params={"HTTP_ACCEPT": "*/*"}))
        assert converted.get_header("accept") == ["*/*"]


class TestBasicAuthorization:
    """Tests for Basic authorization decoding."""

    def test_decoded(self) -> None:
        request = WorkerRequest(headers={"Authorization": basic("user:secret")})
        converted = normalize_request(request)
        assert converted.env("AUTH_TYPE") == "Basic"
        assert converted.env("AUTH_USER") == "user"
        assert converted.env("AUTH_PASSWORD") == "secret"
        assert converted.basic_auth == ("user", "secret")

    def test_empty_password(self) -> None:
        assert decode_basic_authorization(basic("user:")) == ("user", "")

    def test_split_on_first_colon(self) -> None:
        assert decode_basic_authorization(basic("user:pa:ss")) == ("user", "pa:ss")

    def test_other_scheme_ignored(self) -> None:
        converted = normalize_request(WorkerRequest(headers={"Authorization": "Bearer abc"}))
        assert converted.env("AUTH_USER") is None
        assert converted.basic_auth is None

    def test_malformed_is_logged_and_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        request = WorkerRequest(headers={"Authorization": "Basic !!!not-base64!!!"})
        with caplog.at_level(logging.WARNING, logger="genro_bridge.normalizer"):
            converted = normalize_request(request)
        assert converted.env("AUTH_USER") is None
        assert "malformed" in caplog.text

    def test_missing_colon(self) -> None:
        assert decode_basic_authorization(basic("nocolon")) is None

    def test_empty(self) -> None:
        assert decode_basic_authorization(None) is None
        assert decode_basic_authorization("") is None
        assert decode_basic_authorization("Basic ") is None


class TestParsedBody:
    """Tests for the parsed-body policy."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    def test_json_body_parsed_for_write_methods(self, method: str) -> None:
        data = {"hello": method}
        request = WorkerRequest(
            method,
            "http://localhost:8080/write.json",
            headers={"Content-Type": "application/json"},
            body=json.dumps(data),
        )
        assert normalize_request(request).parsed_body == data

    def test_json_suffix_media_type(self) -> None:
        request = WorkerRequest(
            "POST", headers={"Content-Type": "application/vnd.api+json; charset=utf-8"}, body=b"[1]"
        )
        assert derive_parsed_body(request) == [1]

    def test_form_body_parsed(self) -> None:
        request = WorkerRequest(
            "DELETE",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"id=1&tag=a&tag=b",
        )
        assert derive_parsed_body(request) == {"id": "1", "tag": ["a", "b"]}

    def test_get_body_not_parsed(self) -> None:
        request = WorkerRequest("GET", headers={"Content-Type": "application/json"}, body=b'{"a": 1}')
        assert normalize_request(request).parsed_body is None

    def test_get_with_parsed_body_passes_through(self) -> None:
        request = WorkerRequest(
            "GET",
            headers={"Content-Type": "application/json"},
            body=b'{"a": 1}',
            parsed_body={"b": 2},
        )
        assert normalize_request(request).parsed_body == {"b": 2}

    def test_put_urlencoded_with_parsed_body_not_reparsed(self) -> None:
        params = {"test": 123}
        request = (
            WorkerRequest()
            .with_method("PUT")
            .with_header("Content-Type", "application/x-www-form-urlencoded; charset=UTF-8")
            .with_body(json.dumps(params))
            .with_parsed_body(params)
        )
        assert normalize_request(request).parsed_body == params

    def test_invalid_json_leaves_body_empty(self) -> None:
        request = WorkerRequest("POST", headers={"Content-Type": "application/json"}, body=b"{oops")
        assert normalize_request(request).parsed_body is None

    def test_unknown_media_type_not_parsed(self) -> None:
        request = WorkerRequest("POST", headers={"Content-Type": "text/plain"}, body=b"hello")
        converted = normalize_request(request)
        assert converted.parsed_body is None
        assert converted.body == b"hello"

    def test_uploaded_files_added_to_parsed_body(self) -> None:
        upload = UploadedFile(b"test contents", client_filename="test.txt")
        request = WorkerRequest().with_uploaded_files({"uploadedFileField": upload})
        parsed = normalize_request(request).parsed_body
        assert "uploadedFileField" in parsed
        assert isinstance(parsed["uploadedFileField"], UploadedFile)
        assert parsed["uploadedFileField"].client_filename == "test.txt"

    def test_uploaded_files_merged_with_fields(self) -> None:
        upload = UploadedFile(b"x")
        request = WorkerRequest("POST", parsed_body={"title": "doc"}, uploaded_files={"file": upload})
        converted = normalize_request(request)
        assert converted.parsed_body == {"title": "doc", "file": upload}
        assert converted.uploaded_files == {"file": upload}


class TestFactory:
    """Tests for the request factory hook."""

    def test_custom_factory_receives_inputs(self) -> None:
        calls = []

        def factory(server_params, query, parsed_body, cookies, files, *, body=b""):
            calls.append((server_params, query, parsed_body, cookies, files, body))
            return build_request(server_params, query, parsed_body, cookies, files, body=body)

        request = WorkerRequest(
            "GET", "http://localhost/?a=1", cookies={"c": "1"}, body=b"raw"
        )
        converted = normalize_request(request, factory)
        assert isinstance(converted, HttpRequest)
        server_params, query, parsed_body, cookies, files, body = calls[0]
        assert server_params["REQUEST_URI"] == "/?a=1"
        assert query == {"a": "1"}
        assert parsed_body is None
        assert cookies == {"c": "1"}
        assert files == {}
        assert body == b"raw"
        assert converted.trust_proxy is True

    def test_factory_errors_propagate(self) -> None:
        def factory(*args, **kwargs):
            raise ValueError("bad port")

        with pytest.raises(ValueError, match="bad port"):
            normalize_request(WorkerRequest(), factory)


class TestUploadsWithStructuredBody:
    """Tests for uploads combined with non-mapping parsed bodies."""

    def test_list_body_becomes_positional_mapping(self) -> None:
        upload = UploadedFile(b"x", client_filename="f.txt")
        request = WorkerRequest(
            "POST", "http://localhost/", parsed_body=["a", "b"], uploaded_files={"f": upload}
        )
        assert normalize_request(request).parsed_body == {0: "a", 1: "b", "f": upload}

    def test_tuple_body(self) -> None:
        upload = UploadedFile(b"x")
        request = WorkerRequest("POST", parsed_body=("a",), uploaded_files={"f": upload})
        assert derive_parsed_body(request) == {0: "a", "f": upload}

    def test_json_list_body(self) -> None:
        upload = UploadedFile(b"x")
        request = WorkerRequest(
            "POST",
            headers={"Content-Type": "application/json"},
            body=b'["a"]',
            uploaded_files={"f": upload},
        )
        assert derive_parsed_body(request) == {0: "a", "f": upload}

    def test_scalar_body_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        request = WorkerRequest("POST", parsed_body="text", uploaded_files={"f": UploadedFile(b"x")})
        with caplog.at_level(logging.WARNING, logger="genro_bridge.normalizer"):
            parsed = derive_parsed_body(request)
        assert parsed == "text"
        assert "Uploaded files ['f'] not merged" in caplog.text

    def test_list_body_without_uploads_untouched(self) -> None:
        request = WorkerRequest("POST", parsed_body=["a"])
        assert normalize_request(request).parsed_body == ["a"]


class TestLatin1Credentials:
    """Tests for credentials that are not UTF-8."""

    def test_latin1_fallback(self) -> None:
        value = "Basic " + base64.b64encode("josé:p".encode("latin-1")).decode()
        assert decode_basic_authorization(value) == ("josé", "p")

    def test_latin1_reaches_environ(self) -> None:
        value = "Basic " + base64.b64encode("josé:pàss".encode("latin-1")).decode()
        converted = normalize_request(WorkerRequest(headers={"Authorization": value}))
        assert converted.env("AUTH_USER") == "josé"
        assert converted.env("AUTH_PASSWORD") == "pàss"

    def test_utf8_preferred(self) -> None:
        assert decode_basic_authorization(basic("josé:p")) == ("josé", "p")
