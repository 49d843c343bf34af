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

"""Tests for the event manager and server."""

from __future__ import annotations

from genro_bridge.events import Event, EventManager
from genro_bridge.pipeline import MiddlewareQueue
from genro_bridge.server import Server


class TestEventManager:
    """Tests for EventManager."""

    def test_dispatch_by_name(self) -> None:
        manager = EventManager()
        seen = []
        manager.on("ping", lambda event: seen.append((event.subject, event.data)))
        event = manager.dispatch("ping", "subject", {"a": 1})
        assert seen == [("subject", {"a": 1})]
        assert isinstance(event, Event)

    def test_priority_then_subscription_order(self) -> None:
        manager = EventManager()
        order = []
        manager.on("ping", lambda e: order.append("late"), priority=20)
        manager.on("ping", lambda e: order.append("first"))
        manager.on("ping", lambda e: order.append("second"))
        manager.on("ping", lambda e: order.append("early"), priority=1)
        manager.dispatch("ping")
        assert order == ["early", "first", "second", "late"]

    def test_stop_propagation(self) -> None:
        manager = EventManager()
        order = []

        def stopper(event):
            order.append("stopper")
            event.stop_propagation()

        manager.on("ping", stopper)
        manager.on("ping", lambda e: order.append("never"))
        event = manager.dispatch("ping")
        assert order == ["stopper"]
        assert event.is_stopped

    def test_result(self) -> None:
        manager = EventManager()
        manager.on("ping", lambda e: "pong")
        manager.on("ping", lambda e: None)
        assert manager.dispatch("ping").result == "pong"

    def test_off(self) -> None:
        manager = EventManager()

        def listener(event):
            return None

        def other(event):
            return None

        manager.on("ping", listener)
        manager.on("ping", other)
        manager.off("ping", listener)
        assert manager.listeners("ping") == [other]
        manager.off("ping")
        assert manager.listeners("ping") == []

    def test_no_listeners(self) -> None:
        event = EventManager().dispatch(Event("nothing"))
        assert event.result is None
        assert not event.is_stopped

    def test_data_is_copied(self) -> None:
        data = {"a": 1}
        event = Event("ping", data=data)
        event.data["b"] = 2
        assert data == {"a": 1}


class TestServer:
    """Tests for Server events."""

    def test_dispatch_event_subject(self) -> None:
        server = Server(application=object())
        subjects = []
        server.on("Server.buildMiddleware", lambda e: subjects.append(e.subject))
        server.dispatch_event("Server.buildMiddleware", {"middleware": MiddlewareQueue()})
        assert subjects == [server]

    def test_listener_edits_queue(self) -> None:
        server = Server(application=object())
        queue = MiddlewareQueue()

        def timing(request, handler):
            return handler(request)

        server.on("Server.buildMiddleware", lambda e: e.data["middleware"].add(timing))
        server.dispatch_event("Server.buildMiddleware", {"middleware": queue})
        assert list(queue) == [timing]

    def test_shared_event_manager(self) -> None:
        manager = EventManager()
        server = Server(application=None, event_manager=manager)
        assert server.event_manager is manager
