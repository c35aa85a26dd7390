"""State value types and the factory that builds, validates, and freezes them.

A ``State`` handed out by the router is immutable all the way down: its
attributes raise ``FrozenInstanceError`` on assignment and its params are
``FrozenParams`` / ``FrozenList`` views that reject item assignment.
"""

from __future__ import annotations

import itertools
import weakref
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from wayfinder.constants import UNKNOWN_ROUTE
from wayfinder.errors import InvalidArgument
from wayfinder.freeze import FrozenParams, deep_equal, deep_freeze, is_params
from wayfinder.routing.route import ParamsCodec, RouteMatch
from wayfinder.routing.tree import RouteTree

_MISSING = object()


@dataclass(frozen=True, slots=True)
class StateMeta:
    """Bookkeeping attached to a navigated state.

    ``id`` is unique per router and never reused. ``params`` maps each active
    segment to the kinds of its params (``{"users.view": {"id": "url"}}``).
    ``options`` are the navigation options used to reach the state.
    """

    id: int
    params: Mapping[str, Any] = field(default_factory=FrozenParams)
    options: Mapping[str, Any] = field(default_factory=FrozenParams)
    redirected: bool = False
    source: str | None = None


@dataclass(frozen=True, slots=True, weakref_slot=True)
class State:
    """A route name, its params, and its path."""

    name: str
    params: Mapping[str, Any] = field(default_factory=FrozenParams)
    path: str = ""
    meta: StateMeta | None = None


@dataclass(slots=True)
class RouteConfig:
    """Per-route settings collected from route definitions."""

    default_params: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    forward_map: dict[str, str] = field(default_factory=dict)
    encoders: dict[str, ParamsCodec] = field(default_factory=dict)
    decoders: dict[str, ParamsCodec] = field(default_factory=dict)


# Roots already frozen, keyed by id; entries vanish with their state
_frozen_roots: weakref.WeakValueDictionary[int, State] = weakref.WeakValueDictionary()


def freeze_state(state: State) -> State:
    """Deep-freeze *state* in place and return it.

    Params and meta become immutable views. A state that was already frozen
    is returned immediately without walking its params again.
    """
    if _frozen_roots.get(id(state)) is state:
        return state
    object.__setattr__(state, "params", deep_freeze(state.params))
    meta = state.meta
    if meta is not None:
        object.__setattr__(meta, "params", deep_freeze(meta.params))
        object.__setattr__(meta, "options", deep_freeze(meta.options))
    _frozen_roots[id(state)] = state
    return state


def is_state_frozen(state: State) -> bool:
    return _frozen_roots.get(id(state)) is state


def is_state(value: Any) -> bool:
    """Structural check for a usable state value."""
    return (
        isinstance(value, State)
        and isinstance(value.name, str)
        and bool(value.name)
        and isinstance(value.path, str)
        and is_params(value.params)
    )


class StateFactory:
    """Builds states for one router.

    Owns the router's state id counter and the per-route cache of URL param
    names used by ``are_states_equal``.
    """

    __slots__ = ("_build_path", "_config", "_ids", "_tree", "_url_params_cache")

    def __init__(
        self,
        tree: RouteTree,
        config: RouteConfig,
        build_path: Callable[[str, Mapping[str, Any]], str],
    ) -> None:
        self._tree = tree
        self._config = config
        self._build_path = build_path
        self._ids = itertools.count(1)
        self._url_params_cache: dict[str, list[str]] = {}

    def make_state(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        path: str | None = None,
        meta: StateMeta | Mapping[str, Any] | None = None,
        force_id: int | None = None,
    ) -> State:
        """Build a frozen state.

        Route default params are merged under *params*. When *meta* is given
        the state gets the next id from the counter, unless *force_id* is set.

        Raises ``InvalidArgument`` for a non-string or empty name, params
        outside the allowed value types, a non-string path, or a non-int
        force_id.
        """
        if not isinstance(name, str) or not name:
            msg = f"Invalid name {name!r}: expected a non-empty string"
            raise InvalidArgument(msg)
        if params is None:
            params = {}
        elif not is_params(params):
            msg = f"Invalid params {params!r}: expected a mapping of str to params values"
            raise InvalidArgument(msg)
        if path is not None and not isinstance(path, str):
            msg = f"Invalid path {path!r}: expected a string"
            raise InvalidArgument(msg)
        if force_id is not None and (not isinstance(force_id, int) or isinstance(force_id, bool)):
            msg = f"Invalid forceId {force_id!r}: expected an int"
            raise InvalidArgument(msg)

        defaults = self._config.default_params.get(name)
        merged = {**defaults, **params} if defaults else params
        if path is None:
            path = self._build_path(name, params)

        state_meta = None
        if meta is not None:
            state_meta = self._make_meta(meta, force_id)
        return freeze_state(State(name=name, params=merged, path=path, meta=state_meta))

    def _make_meta(self, meta: StateMeta | Mapping[str, Any], force_id: int | None) -> StateMeta:
        state_id = force_id if force_id is not None else next(self._ids)
        if isinstance(meta, StateMeta):
            return StateMeta(
                id=state_id,
                params=meta.params,
                options=meta.options,
                redirected=meta.redirected,
                source=meta.source,
            )
        if not isinstance(meta, Mapping):
            msg = f"Invalid meta {meta!r}: expected a mapping"
            raise InvalidArgument(msg)
        return StateMeta(
            id=state_id,
            params=meta.get("params") or {},
            options=meta.get("options") or {},
            redirected=bool(meta.get("redirected", False)),
            source=meta.get("source"),
        )

    def make_not_found_state(self, path: str, options: Mapping[str, Any] | None = None) -> State:
        """Build the state used when no route matches *path*."""
        meta = {"options": options} if options else None
        return self.make_state(UNKNOWN_ROUTE, {"path": path}, path, meta)

    # -- Comparison --

    def _url_params(self, name: str) -> list[str]:
        cached = self._url_params_cache.get(name)
        if cached is not None:
            return cached
        if not self._tree.has_route(name):
            return []
        params = self._tree.url_params(name)
        self._url_params_cache[name] = params
        return params

    def are_states_equal(
        self,
        state1: State | None,
        state2: State | None,
        ignore_query_params: bool = True,
    ) -> bool:
        """Compare two states by name and params.

        With *ignore_query_params* only the route's URL params are compared.
        Values are compared by deep equality, so equal lists match and cyclic
        params of the same shape compare equal. A key present on only one
        side never matches, even when its value is ``None``.
        """
        if state1 is None or state2 is None:
            return state1 is None and state2 is None
        if state1.name != state2.name:
            return False
        if ignore_query_params:
            keys = self._url_params(state1.name)
        else:
            if state1.params.keys() != state2.params.keys():
                return False
            keys = list(state1.params)
        return all(
            deep_equal(state1.params.get(key, _MISSING), state2.params.get(key, _MISSING))
            for key in keys
        )

    @staticmethod
    def are_states_descendants(parent: State, child: State) -> bool:
        """True if *child* is below *parent* and shares all of its params."""
        if not child.name.startswith(parent.name + "."):
            return False
        return all(
            deep_equal(child.params.get(key, _MISSING), value)
            for key, value in parent.params.items()
        )

    # -- Forwarding --

    def forward_state(self, name: str, params: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        """Apply the forward map and merge both routes' default params."""
        target = self._config.forward_map.get(name, name)
        merged = {
            **self._config.default_params.get(name, {}),
            **self._config.default_params.get(target, {}),
            **params,
        }
        return target, merged

    def build_state(self, name: str, params: Mapping[str, Any]) -> RouteMatch | None:
        target, merged = self.forward_state(name, params)
        return self._tree.build_state(target, merged)
