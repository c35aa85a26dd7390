"""Tests for wayfinder.helpers: route name segment tests."""

import pytest

from wayfinder.helpers import ends_with_segment, includes_segment, starts_with_segment
from wayfinder.state import State


class TestStartsWithSegment:
    @pytest.mark.parametrize(
        ("route", "segment", "expected"),
        [
            ("users.view", "users", True),
            ("users.view", "users.view", True),
            ("users_admin.view", "users", False),
            ("users", "users.view", False),
            ("users.view", "view", False),
            ("users.view", "", False),
        ],
    )
    def test_names(self, route: str, segment: str, expected: bool) -> None:
        assert starts_with_segment(route, segment) is expected

    def test_state(self) -> None:
        assert starts_with_segment(State("admin.users", {}, "/"), "admin")

    def test_curried(self) -> None:
        in_route = starts_with_segment("admin.users.view")
        assert in_route("admin")
        assert in_route("admin.users")
        assert not in_route("users")


class TestEndsWithSegment:
    def test_names(self) -> None:
        assert ends_with_segment("users.view", "view")
        assert ends_with_segment("admin.users.view", "users.view")
        assert not ends_with_segment("users.preview", "view")

    def test_curried(self) -> None:
        assert ends_with_segment(State("users.view", {}, "/"))("view")


class TestIncludesSegment:
    def test_names(self) -> None:
        assert includes_segment("admin.users.view", "users")
        assert includes_segment("admin.users.view", "users.view")
        assert not includes_segment("admin.users.view", "admin.view")
        assert not includes_segment("admin.superusers", "users")

    def test_empty_route(self) -> None:
        assert not includes_segment("", "users")
