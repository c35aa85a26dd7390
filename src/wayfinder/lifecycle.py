"""Route lifecycle guards: the canActivate / canDeactivate registry.

A guard is registered per route segment either as a factory::

    def can_leave_editor(router, dependencies):
        def guard(to_state, from_state, done):
            return not dependencies["editor"].dirty
        return guard

    router.can_deactivate("editor", can_leave_editor)

or as a boolean shorthand (``router.can_activate("admin", False)``). Each
factory is invoked once, when registered, to produce the live guard.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

from wayfinder.errors import InvalidArgument
from wayfinder.transition.path import name_to_ids

GuardFn: TypeAlias = Callable[..., Any]
GuardFactory: TypeAlias = Callable[..., GuardFn]


def to_factory(handler: GuardFactory | bool) -> GuardFactory:
    """Wrap a boolean into a factory of a guard that always returns it."""
    if isinstance(handler, bool):
        value = handler

        def constant_factory(router: Any, dependencies: Any) -> GuardFn:
            def constant_guard(to_state: Any, from_state: Any, done: Any) -> bool:
                return value

            return constant_guard

        return constant_factory
    if callable(handler):
        return handler
    msg = f"Guard must be a factory function or a boolean, got {type(handler).__name__}"
    raise InvalidArgument(msg)


class LifecycleRegistry:
    """Live activation / deactivation guards keyed by segment name."""

    __slots__ = (
        "_can_activate_factories",
        "_can_activate_functions",
        "_can_deactivate_factories",
        "_can_deactivate_functions",
        "_execute_factory",
    )

    def __init__(self, execute_factory: Callable[[GuardFactory], GuardFn]) -> None:
        self._execute_factory = execute_factory
        self._can_deactivate_factories: dict[str, GuardFactory] = {}
        self._can_activate_factories: dict[str, GuardFactory] = {}
        self._can_deactivate_functions: dict[str, GuardFn] = {}
        self._can_activate_functions: dict[str, GuardFn] = {}

    @staticmethod
    def _check_name(name: str) -> None:
        if not isinstance(name, str) or not name:
            msg = f"Invalid route name {name!r}: expected a non-empty string"
            raise InvalidArgument(msg)

    def _instantiate(self, factory: GuardFactory) -> GuardFn:
        guard = self._execute_factory(factory)
        if not callable(guard):
            msg = f"Guard factory {factory!r} must return a callable, got {type(guard).__name__}"
            raise InvalidArgument(msg)
        return guard

    def can_activate(self, name: str, handler: GuardFactory | bool) -> None:
        self._check_name(name)
        factory = to_factory(handler)
        self._can_activate_functions[name] = self._instantiate(factory)
        self._can_activate_factories[name] = factory

    def can_deactivate(self, name: str, handler: GuardFactory | bool) -> None:
        self._check_name(name)
        factory = to_factory(handler)
        self._can_deactivate_functions[name] = self._instantiate(factory)
        self._can_deactivate_factories[name] = factory

    def clear_can_activate(self, name: str) -> None:
        self._can_activate_factories.pop(name, None)
        self._can_activate_functions.pop(name, None)

    def clear_can_deactivate(self, name: str) -> None:
        self._can_deactivate_factories.pop(name, None)
        self._can_deactivate_functions.pop(name, None)

    def get_lifecycle_factories(self) -> tuple[dict[str, GuardFactory], dict[str, GuardFactory]]:
        """Return ``(can_deactivate_factories, can_activate_factories)``."""
        return self._can_deactivate_factories, self._can_activate_factories

    def get_lifecycle_functions(self) -> tuple[dict[str, GuardFn], dict[str, GuardFn]]:
        """Return ``(can_deactivate_functions, can_activate_functions)``."""
        return self._can_deactivate_functions, self._can_activate_functions

    def clean_up(self, active_name: str) -> list[str]:
        """Drop canDeactivate guards of segments outside *active_name*.

        Returns the removed segment names.
        """
        active = set(name_to_ids(active_name))
        stale = [name for name in self._can_deactivate_functions if name not in active]
        for name in stale:
            self.clear_can_deactivate(name)
        return stale

    def copy_into(self, other: LifecycleRegistry) -> None:
        """Register this registry's factories on *other* (used by ``Router.clone``)."""
        for name, factory in self._can_deactivate_factories.items():
            other.can_deactivate(name, factory)
        for name, factory in self._can_activate_factories.items():
            other.can_activate(name, factory)
