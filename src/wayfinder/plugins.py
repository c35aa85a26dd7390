"""Plugin and middleware registries.

A plugin factory is called as ``factory(router, dependencies)`` and returns
an object (or mapping) with any of these hooks::

    class Analytics:
        def on_transition_success(self, to_state, from_state, options): ...
        def teardown(self): ...

    router.use_plugin(lambda router, deps: Analytics())

No base class required. Each hook present is attached to its event;
``teardown`` is called when the plugin is removed.

A middleware factory is called the same way and returns a guard-shaped
function ``middleware(to_state, from_state, done)`` that runs after the
activation guards of every transition.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeAlias

from wayfinder.constants import PLUGIN_HOOKS
from wayfinder.errors import InvalidArgument
from wayfinder.events import EventBus, Unsubscribe

PluginFactory: TypeAlias = Callable[..., Any]
MiddlewareFn: TypeAlias = Callable[..., Any]
MiddlewareFactory: TypeAlias = Callable[..., MiddlewareFn]


class Plugin(Protocol):
    """Shape of what a plugin factory returns. Every hook is optional."""

    def on_start(self) -> None: ...

    def on_stop(self) -> None: ...

    def on_transition_start(self, to_state: Any, from_state: Any) -> None: ...

    def on_transition_cancel(self, to_state: Any, from_state: Any) -> None: ...

    def on_transition_success(self, to_state: Any, from_state: Any, options: Any) -> None: ...

    def on_transition_error(self, to_state: Any, from_state: Any, error: Any) -> None: ...

    def teardown(self) -> None: ...


def _hook(plugin: Any, name: str) -> Callable[..., Any] | None:
    if isinstance(plugin, Mapping):
        hook = plugin.get(name)
    else:
        hook = getattr(plugin, name, None)
    if hook is not None and not callable(hook):
        msg = f"Plugin hook {name!r} must be callable, got {type(hook).__name__}"
        raise InvalidArgument(msg)
    return hook


class PluginRegistry:
    """Applied plugin factories and the listeners they attached."""

    __slots__ = ("_bus", "_entries", "_execute_factory")

    def __init__(self, bus: EventBus, execute_factory: Callable[[PluginFactory], Any]) -> None:
        self._bus = bus
        self._execute_factory = execute_factory
        self._entries: list[tuple[PluginFactory, Unsubscribe]] = []

    @property
    def factories(self) -> list[PluginFactory]:
        return [factory for factory, _ in self._entries]

    def use(self, *factories: PluginFactory) -> Unsubscribe:
        """Apply *factories* and return a function that removes all of them."""
        for factory in factories:
            if not callable(factory):
                msg = f"Plugin factory must be callable, got {type(factory).__name__}"
                raise InvalidArgument(msg)
        entries = [(factory, self._start(factory)) for factory in factories]
        self._entries.extend(entries)

        def remove() -> None:
            for entry in entries:
                self._remove(entry)

        return remove

    def _remove(self, entry: tuple[PluginFactory, Unsubscribe]) -> None:
        for index, existing in enumerate(self._entries):
            if existing is entry:
                del self._entries[index]
                entry[1]()
                return

    def remove_all(self) -> None:
        """Detach every plugin, calling each one's ``teardown``."""
        for entry in list(self._entries):
            self._remove(entry)

    def _start(self, factory: PluginFactory) -> Unsubscribe:
        plugin = self._execute_factory(factory)
        if plugin is None:
            msg = f"Plugin factory {factory!r} returned None"
            raise InvalidArgument(msg)

        hooks = {name: _hook(plugin, name) for name in (*PLUGIN_HOOKS, "teardown")}
        unsubscribers = [
            self._bus.add_event_listener(event, hooks[name])
            for name, event in PLUGIN_HOOKS.items()
            if hooks[name] is not None
        ]
        teardown = hooks["teardown"]

        def remove() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()
            if teardown is not None:
                teardown()

        return remove


class MiddlewareRegistry:
    """Middleware factories and the live functions they produced, in order."""

    __slots__ = ("_entries", "_execute_factory")

    def __init__(self, execute_factory: Callable[[MiddlewareFactory], MiddlewareFn]) -> None:
        self._execute_factory = execute_factory
        self._entries: list[tuple[MiddlewareFactory, MiddlewareFn]] = []

    @property
    def factories(self) -> list[MiddlewareFactory]:
        return [factory for factory, _ in self._entries]

    @property
    def functions(self) -> list[MiddlewareFn]:
        return [function for _, function in self._entries]

    def use(self, *factories: MiddlewareFactory) -> Unsubscribe:
        """Instantiate *factories* and append them; return a remover."""
        entries: list[tuple[MiddlewareFactory, MiddlewareFn]] = []
        for factory in factories:
            if not callable(factory):
                msg = f"Middleware factory must be callable, got {type(factory).__name__}"
                raise InvalidArgument(msg)
            function = self._execute_factory(factory)
            if not callable(function):
                msg = f"Middleware factory {factory!r} must return a callable, got {type(function).__name__}"
                raise InvalidArgument(msg)
            entries.append((factory, function))
        self._entries.extend(entries)

        def remove() -> None:
            self._entries = [entry for entry in self._entries if not any(entry is e for e in entries)]

        return remove

    def clear(self) -> None:
        self._entries = []
