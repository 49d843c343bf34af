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

"""Tests for Bridge construction and request handling."""

from __future__ import annotations

import json

import pytest

from genro_bridge.application import BasePlugin, BridgeApplication, PluginApplication
from genro_bridge.bridge import BUILD_MIDDLEWARE_EVENT, Bridge, finalize_cookies
from genro_bridge.cookies import NEVER_EXPIRES, Cookie
from genro_bridge.exceptions import ConfigurationError
from genro_bridge.request import HttpRequest
from genro_bridge.response import Response
from genro_bridge.server import Server
from genro_bridge.session import MemorySessionStore
from genro_bridge.worker_request import WorkerRequest

APP_MODULE = """\
from genro_bridge import BridgeApplication


class Application(BridgeApplication):
    def bootstrap(self):
        self.add_route("GET", "/", lambda request: {"loaded": "from config"})
"""


class Application(BridgeApplication):
    def on_init(self, **kwargs):
        self.bootstrap_calls = 0
        self.captured: list[HttpRequest] = []

    def bootstrap(self):
        self.bootstrap_calls += 1
        self.add_route("GET", "/", self.index)
        self.add_route(["POST", "PUT", "PATCH"], "/write.json", self.write)
        self.add_route("DELETE", "/delete.json", self.delete)
        self.add_route("GET", "/cookies", self.cookies)
        self.add_route("GET", "/login", self.login)
        self.add_route("GET", "/fail", self.fail)

    def index(self, request):
        return {"hello": "world"}

    def write(self, request):
        return request.parsed_body

    def delete(self, request):
        return None

    def cookies(self, request):
        response = Response("ok")
        response.cookies.add(Cookie("first", "1"))
        response.cookies.add(Cookie("second", "2", max_age=60))
        return response

    def login(self, request):
        request.session["user"] = "ada"
        return "welcome"

    def fail(self, request):
        self.captured.append(request)
        request.session["attempt"] = 1
        raise RuntimeError("handler failed")


@pytest.fixture
def root(tmp_path):
    (tmp_path / "config").mkdir()
    return tmp_path


def write_config(root, text: str) -> None:
    (root / "config" / "config.yaml").write_text(text)


class TestConstruction:
    """Tests for Bridge construction."""

    def test_trailing_slash_removed(self, root) -> None:
        bridge = Bridge(f"{root}/", Application)
        assert bridge.root_dir == str(root)
        assert bridge.config_dir == root / "config"

    def test_missing_root(self, tmp_path) -> None:
        missing = tmp_path / "nope"
        with pytest.raises(ConfigurationError) as exc_info:
            Bridge(missing, Application)
        assert str(exc_info.value) == ConfigurationError.ROOT_DIR_NOT_FOUND % missing

    def test_application_class_bootstrapped_once(self, root) -> None:
        bridge = Bridge(root, Application)
        assert isinstance(bridge.application, Application)
        assert bridge.application.config is bridge.config
        assert bridge.application.bootstrap_calls == 1
        assert isinstance(bridge.server, Server)
        assert bridge.server.application is bridge.application

    def test_application_instance_used_as_is(self, root) -> None:
        app = Application(root / "config")
        bridge = Bridge(root, app)
        assert bridge.application is app
        assert app.bootstrap_calls == 1

    def test_plain_factory_receives_config_dir(self, root) -> None:
        received = []

        def factory(config_dir):
            received.append(config_dir)
            return Application(config_dir)

        Bridge(root, factory)
        assert received == [root / "config"]

    def test_factory_failure(self, root) -> None:
        def factory(config_dir):
            raise RuntimeError("cannot build")

        with pytest.raises(ConfigurationError) as exc_info:
            Bridge(root, factory)
        assert str(exc_info.value) == ConfigurationError.APP_INSTANCE_NOT_CREATED
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_factory_returning_none(self, root) -> None:
        with pytest.raises(ConfigurationError, match="Unable to create"):
            Bridge(root, lambda config_dir: None)

    def test_no_application_configured(self, root) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            Bridge(root)
        assert str(exc_info.value) == ConfigurationError.APP_INSTANCE_NOT_CREATED

    def test_application_from_config(self, root) -> None:
        write_config(root, 'application: "app:Application"\n')
        (root / "app.py").write_text(APP_MODULE)
        bridge = Bridge(root)
        response = bridge.handle(WorkerRequest("GET", "http://localhost/"))
        assert json.loads(response.body) == {"loaded": "from config"}

    def test_configured_module_missing(self, root) -> None:
        write_config(root, 'application: "absent:Application"\n')
        with pytest.raises(ConfigurationError, match="Invalid application spec"):
            Bridge(root)

    def test_configured_module_broken(self, root) -> None:
        write_config(root, 'application: "brokenapp:Application"\n')
        (root / "brokenapp.py").write_text("raise ImportError('broken')\n")
        with pytest.raises(ConfigurationError) as exc_info:
            Bridge(root)
        assert str(exc_info.value) == ConfigurationError.APP_INSTANCE_NOT_CREATED

    def test_custom_server(self, root) -> None:
        server = Server(application=None)
        assert Bridge(root, Application, server=server).server is server


class TestHandle:
    """Tests for handling worker requests."""

    def test_get(self, root) -> None:
        response = Bridge(root, Application).handle(WorkerRequest("GET", "http://localhost/"))
        assert response.status_code == 200
        assert json.loads(response.body) == {"hello": "world"}

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    def test_write_methods_echo_parsed_body(self, root, method) -> None:
        request = WorkerRequest(
            method,
            "http://localhost:8080/write.json",
            headers={"Content-Type": "application/json"},
            body=json.dumps({"hello": "world"}),
        )
        response = Bridge(root, Application).handle(request)
        assert response.status_code == 200
        assert json.loads(response.body) == {"hello": "world"}

    def test_delete_no_content(self, root) -> None:
        response = Bridge(root, Application).handle(
            WorkerRequest("DELETE", "http://localhost:8080/delete.json")
        )
        assert response.status_code == 204
        assert response.body == b""

    def test_unknown_route_handled_by_error_middleware(self, root) -> None:
        response = Bridge(root, Application).handle(WorkerRequest("GET", "http://localhost/missing"))
        assert response.status_code == 404

    def test_cookies_never_expire(self, root) -> None:
        response = Bridge(root, Application).handle(WorkerRequest("GET", "http://localhost/cookies"))
        values = response.get_header("Set-Cookie")
        assert len(values) == 2
        assert values[0].startswith("first=1")
        assert "Expires=Fri, 01 Jan 2038 00:00:00 GMT" in values[0]
        assert "Max-Age=60" in values[1]
        assert "Expires" not in values[1]
        assert response.cookies.get("first").expires == NEVER_EXPIRES

    def test_no_cookies_no_header(self, root) -> None:
        response = Bridge(root, Application).handle(WorkerRequest("GET", "http://localhost/"))
        assert not response.has_header("Set-Cookie")

    def test_new_session_cookie(self, root) -> None:
        bridge = Bridge(root, Application)
        response = bridge.handle(WorkerRequest("GET", "http://localhost/login"))
        cookie = response.cookies.get("GENROSESSID")
        assert cookie is not None
        assert cookie.expires == NEVER_EXPIRES
        assert bridge.application.session_store.read(cookie.value) == {"user": "ada"}

    def test_abandoned_sessions_evicted(self, root) -> None:
        bridge = Bridge(root, Application)
        clock = [0.0]
        store = MemorySessionStore(lifetime=60, clock=lambda: clock[0])
        bridge.application.session_store = store
        for _ in range(50):
            bridge.handle(WorkerRequest("GET", "http://localhost/login"))
        assert len(store) == 50
        clock[0] = 61.0
        bridge.handle(WorkerRequest("GET", "http://localhost/login"))
        assert len(store) == 1

    def test_session_closed_when_pipeline_raises(self, root) -> None:
        write_config(root, "middleware:\n  errors: off\n")
        bridge = Bridge(root, Application)
        with pytest.raises(RuntimeError, match="handler failed"):
            bridge.handle(WorkerRequest("GET", "http://localhost/fail"))
        session = bridge.application.captured[0].session
        assert session.closed
        assert bridge.application.session_store.read(session.id) == {"attempt": 1}

    def test_build_middleware_event(self, root) -> None:
        bridge = Bridge(root, Application)
        seen = []

        def stamp(request, handler):
            response = handler(request)
            response.set_header("X-Listener", "yes")
            return response

        def listener(event):
            seen.append(event.subject)
            event.data["middleware"].add(stamp)

        bridge.server.on(BUILD_MIDDLEWARE_EVENT, listener)
        response = bridge.handle(WorkerRequest("GET", "http://localhost/"))
        assert seen == [bridge.server]
        assert response.get_header_line("X-Listener") == "yes"

    def test_convert_request_uses_application_factory(self, root) -> None:
        write_config(root, "session:\n  cookie: APPSESSID\n")
        bridge = Bridge(root, Application)
        converted = bridge.convert_request(
            WorkerRequest("GET", "http://localhost/", cookies={"APPSESSID": "abc"})
        )
        assert converted.session_cookie == "APPSESSID"
        assert converted.session.store is bridge.application.session_store
        assert converted.trust_proxy is True


class StampPlugin(BasePlugin):
    def bootstrap(self, app):
        app.plugin_booted = True

    def middleware(self, queue):
        def stamp(request, handler):
            response = handler(request)
            response.set_header("X-Plugin", self.name)
            return response

        return queue.add(stamp)


class PluggedApplication(PluginApplication):
    def on_init(self, **kwargs):
        self.add_plugin(StampPlugin)

    def bootstrap(self):
        self.add_route("GET", "/", lambda request: "plugged")


class MinimalApplication:
    """Application that only implements the bridge contract."""

    def __init__(self):
        self.booted = False

    def bootstrap(self):
        self.booted = True

    def middleware(self, queue):
        return queue

    def __call__(self, request):
        return Response(f"{request.method} {request.path}")


class TestApplications:
    """Tests for plugin hooks and duck-typed applications."""

    def test_plugin_hooks(self, root) -> None:
        bridge = Bridge(root, PluggedApplication)
        assert bridge.application.plugin_booted is True
        response = bridge.handle(WorkerRequest("GET", "http://localhost/"))
        assert response.get_header_line("X-Plugin") == "StampPlugin"

    def test_minimal_application(self, root) -> None:
        app = MinimalApplication()
        bridge = Bridge(root, app)
        assert app.booted
        response = bridge.handle(WorkerRequest("PUT", "http://localhost/thing"))
        assert response.body == b"PUT /thing"


class TestFinalizeCookies:
    """Tests for finalize_cookies."""

    def test_explicit_expiry_kept(self) -> None:
        response = Response()
        cookie = Cookie("a", "1", max_age=10)
        response.cookies.add(cookie)
        finalize_cookies(response)
        assert response.cookies.get("a") == cookie

    def test_replaces_existing_set_cookie(self) -> None:
        response = Response(headers=[("Set-Cookie", "stale=1")])
        response.cookies.add(Cookie("fresh", "1"))
        finalize_cookies(response)
        values = response.get_header("Set-Cookie")
        assert len(values) == 1
        assert values[0].startswith("fresh=1")
