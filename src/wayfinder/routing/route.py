"""Route definitions and compiled path pieces as frozen dataclasses."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from wayfinder.errors import ConfigurationError

# Guard factory or boolean shorthand
ActivationHandler: TypeAlias = Callable[..., Any] | bool
ParamsCodec: TypeAlias = Callable[[dict[str, Any]], dict[str, Any]]

_ROUTE_KEYS = frozenset(
    {
        "name",
        "path",
        "children",
        "can_activate",
        "forward_to",
        "encode_params",
        "decode_params",
        "default_params",
    }
)


@dataclass(frozen=True, slots=True)
class Route:
    """A declarative route definition.

    ``name`` is one dotted-name segment (``"view"`` under ``"users"``), or a
    full dotted name when the route is added below an existing parent.
    ``path`` uses the pattern language of ``wayfinder.routing.path``::

        Route("users", "/users", children=(Route("view", "/:id<\\d+>?tab"),))
    """

    name: str
    path: str
    children: tuple[Route, ...] = ()
    can_activate: ActivationHandler | None = None
    forward_to: str | None = None
    encode_params: ParamsCodec | None = None
    decode_params: ParamsCodec | None = None
    default_params: Mapping[str, Any] | None = None

    @classmethod
    def from_definition(cls, definition: Route | Mapping[str, Any]) -> Route:
        """Accept a ``Route`` or a plain mapping with the same keys."""
        if isinstance(definition, Route):
            return definition
        if not isinstance(definition, Mapping):
            msg = f"Route definition must be a Route or a mapping, got {type(definition).__name__}"
            raise ConfigurationError(msg)
        unknown = set(definition) - _ROUTE_KEYS
        if unknown:
            msg = f"Unknown route definition keys: {', '.join(sorted(unknown))}"
            raise ConfigurationError(msg)
        if "name" not in definition or "path" not in definition:
            msg = f"Route definition needs 'name' and 'path': {dict(definition)!r}"
            raise ConfigurationError(msg)
        children = tuple(cls.from_definition(c) for c in definition.get("children") or ())
        return cls(
            name=definition["name"],
            path=definition["path"],
            children=children,
            can_activate=definition.get("can_activate"),
            forward_to=definition.get("forward_to"),
            encode_params=definition.get("encode_params"),
            decode_params=definition.get("decode_params"),
            default_params=definition.get("default_params"),
        )


def as_routes(routes: Route | Mapping[str, Any] | Iterable[Route | Mapping[str, Any]]) -> list[Route]:
    """Normalize one definition or an iterable of them into ``Route`` objects."""
    if isinstance(routes, (Route, Mapping)):
        return [Route.from_definition(routes)]
    return [Route.from_definition(r) for r in routes]


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:      ``/users``          (kind="static")
    Param:       ``/:id``            (kind="param", name="id")
    Constrained: ``/:id<\\d+>``      (kind="param", name="id", constraint="\\d+")
    Splat:       ``/*rest``          (kind="splat", name="rest")
    """

    value: str
    kind: str = "static"
    name: str | None = None
    constraint: str | None = None
    regex: re.Pattern[str] | None = field(default=None, compare=False)

    @property
    def is_param(self) -> bool:
        return self.kind != "static"


@dataclass(frozen=True, slots=True)
class ParsedPath:
    """One route node's compiled path pattern."""

    source: str
    segments: tuple[PathSegment, ...]
    query_params: tuple[str, ...] = ()
    trailing_slash: bool = False

    @property
    def url_params(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.segments if s.is_param and s.name)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match or name lookup.

    ``meta`` maps every segment of the route to the kind of each of its
    params: ``{"users": {}, "users.view": {"id": "url", "tab": "query"}}``.
    """

    name: str
    params: dict[str, Any]
    meta: dict[str, dict[str, str]]
