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

"""Tests for response cookies."""

from datetime import datetime, timezone

import pytest

from genro_bridge.cookies import NEVER_EXPIRES, Cookie, CookieCollection


class TestCookie:
    """Tests for Cookie."""

    def test_defaults(self) -> None:
        cookie = Cookie("prefs", "dark")
        assert cookie.path == "/"
        assert cookie.samesite == "lax"
        assert not cookie.has_expiry
        assert cookie.expires_timestamp is None

    def test_header_value_without_expiry(self) -> None:
        cookie = Cookie("prefs", "dark", httponly=True)
        assert cookie.to_header_value() == "prefs=dark; Path=/; HttpOnly; SameSite=Lax"

    def test_header_value_with_all_attributes(self) -> None:
        cookie = Cookie(
            "sid",
            "a b",
            expires=datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc),
            max_age=60,
            domain="example.com",
            secure=True,
            samesite="strict",
        )
        assert cookie.to_header_value() == (
            "sid=a%20b; Expires=Wed, 01 May 2030 12:00:00 GMT; Max-Age=60; "
            "Path=/; Domain=example.com; Secure; SameSite=Strict"
        )

    def test_with_never_expire(self) -> None:
        cookie = Cookie("prefs", "dark")
        persistent = cookie.with_never_expire()
        assert persistent.expires == NEVER_EXPIRES
        assert persistent.has_expiry
        assert persistent.expires_timestamp == int(NEVER_EXPIRES.timestamp())
        assert "Expires=Fri, 01 Jan 2038 00:00:00 GMT" in persistent.to_header_value()
        assert cookie.expires is None

    def test_max_age_counts_as_expiry(self) -> None:
        assert Cookie("a", max_age=10).has_expiry

    def test_naive_expiry_is_utc(self) -> None:
        cookie = Cookie("a").with_expiry(datetime(2030, 1, 1))
        assert cookie.expires.tzinfo is timezone.utc

    def test_is_expired(self) -> None:
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert Cookie("a").with_expired().is_expired(now)
        assert not Cookie("a").with_never_expire().is_expired(now)
        assert not Cookie("a").is_expired(now)

    def test_with_value(self) -> None:
        assert Cookie("a", "1").with_value("2").value == "2"

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            Cookie("")
        with pytest.raises(ValueError):
            Cookie("a", samesite="sometimes")


class TestCookieCollection:
    """Tests for CookieCollection."""

    def test_add_and_get(self) -> None:
        cookies = CookieCollection()
        cookies.add(Cookie("a", "1"))
        cookies.add(Cookie("b", "2"))
        assert len(cookies) == 2
        assert cookies.get("a").value == "1"
        assert cookies.has("b")
        assert "b" in cookies
        assert [c.name for c in cookies] == ["a", "b"]

    def test_add_replaces_by_name(self) -> None:
        cookies = CookieCollection([Cookie("a", "1"), Cookie("b", "2")])
        cookies.add(Cookie("a", "3"))
        assert [(c.name, c.value) for c in cookies] == [("a", "3"), ("b", "2")]

    def test_remove(self) -> None:
        cookies = CookieCollection([Cookie("a", "1")])
        cookies.remove("a")
        cookies.remove("missing")
        assert len(cookies) == 0
        assert cookies.get("a") is None
