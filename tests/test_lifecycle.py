"""Tests for wayfinder.lifecycle: the can_activate / can_deactivate registry."""

from typing import Any

import pytest

from wayfinder.errors import InvalidArgument
from wayfinder.lifecycle import LifecycleRegistry, to_factory


def _registry(calls: list[Any] | None = None) -> LifecycleRegistry:
    def execute_factory(factory: Any) -> Any:
        if calls is not None:
            calls.append(factory)
        return factory("router", {"dep": 1})

    return LifecycleRegistry(execute_factory)


class TestToFactory:
    def test_boolean_shorthand(self) -> None:
        guard = to_factory(False)(None, {})
        assert guard(None, None, None) is False

    def test_callable_passes_through(self) -> None:
        def factory(router: Any, dependencies: Any) -> Any:
            return lambda to_state, from_state, done: True

        assert to_factory(factory) is factory

    def test_rejects_other_values(self) -> None:
        with pytest.raises(InvalidArgument):
            to_factory("yes")  # type: ignore[arg-type]


class TestRegistry:
    def test_factory_invoked_once_on_registration(self) -> None:
        calls: list[Any] = []
        registry = _registry(calls)
        seen: list[Any] = []

        def factory(router: Any, dependencies: Any) -> Any:
            seen.append((router, dependencies))
            return lambda to_state, from_state, done: True

        registry.can_activate("users", factory)
        assert calls == [factory]
        assert seen == [("router", {"dep": 1})]
        _, activate = registry.get_lifecycle_functions()
        assert activate["users"](None, None, None) is True

    def test_factories_and_functions_tracked_separately(self) -> None:
        registry = _registry()
        registry.can_activate("a", True)
        registry.can_deactivate("b", False)
        deactivate_factories, activate_factories = registry.get_lifecycle_factories()
        deactivate, activate = registry.get_lifecycle_functions()
        assert set(activate_factories) == {"a"}
        assert set(deactivate_factories) == {"b"}
        assert activate["a"](None, None, None) is True
        assert deactivate["b"](None, None, None) is False

    def test_re_registration_replaces(self) -> None:
        registry = _registry()
        registry.can_activate("a", True)
        registry.can_activate("a", False)
        _, activate = registry.get_lifecycle_functions()
        assert activate["a"](None, None, None) is False

    def test_clear(self) -> None:
        registry = _registry()
        registry.can_activate("a", True)
        registry.can_deactivate("a", True)
        registry.clear_can_activate("a")
        registry.clear_can_deactivate("a")
        assert registry.get_lifecycle_functions() == ({}, {})
        assert registry.get_lifecycle_factories() == ({}, {})

    def test_clear_unknown_is_silent(self) -> None:
        _registry().clear_can_activate("missing")

    def test_factory_must_return_callable(self) -> None:
        with pytest.raises(InvalidArgument, match="must return a callable"):
            _registry().can_activate("a", lambda router, deps: "nope")

    def test_invalid_name(self) -> None:
        with pytest.raises(InvalidArgument):
            _registry().can_activate("", True)

    def test_clean_up_keeps_active_segments(self) -> None:
        registry = _registry()
        for name in ("users", "users.view", "admin"):
            registry.can_deactivate(name, True)
        removed = registry.clean_up("users.view")
        assert removed == ["admin"]
        deactivate, _ = registry.get_lifecycle_functions()
        assert set(deactivate) == {"users", "users.view"}

    def test_clean_up_leaves_activation_guards(self) -> None:
        registry = _registry()
        registry.can_activate("admin", True)
        registry.clean_up("home")
        _, activate = registry.get_lifecycle_functions()
        assert "admin" in activate

    def test_copy_into(self) -> None:
        source = _registry()
        source.can_activate("a", True)
        source.can_deactivate("b", False)
        target = _registry()
        source.copy_into(target)
        assert target.get_lifecycle_factories() == source.get_lifecycle_factories()
