"""Route tree with trie-based path matching and name-based path building.

Routes are added as a tree of named nodes (``users`` > ``users.view``). Each
node's full URL pattern is also compiled into a segment trie, so matching a
URL costs O(path depth) rather than a scan over every route.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from wayfinder.config import RouterOptions
from wayfinder.errors import ConfigurationError, InvalidParamFormat, MissingParams, UnknownRoute
from wayfinder.routing.params import build_query, decode_url_param, encode_url_param, format_value, parse_query
from wayfinder.routing.path import parse_path
from wayfinder.routing.route import ParsedPath, PathSegment, Route, RouteMatch, as_routes

_DEFAULT_OPTIONS = RouterOptions()


@dataclass(slots=True, eq=False)
class RouteNode:
    """A named node of the route tree. Mutable while routes are added."""

    name: str
    full_name: str
    pattern: ParsedPath
    route: Route | None = None
    parent: RouteNode | None = None
    children: dict[str, RouteNode] = field(default_factory=dict)


class _TrieNode:
    """A node in the segment trie."""

    __slots__ = ("children", "folded", "param_edges", "routes", "splat_edge")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Same children keyed by lowercased segment, for case-insensitive matching
        self.folded: dict[str, list[_TrieNode]] = {}
        # Param edges, constrained ones ahead of plain ones
        self.param_edges: list[_ParamEdge] = []
        # Splat edge (consumes the rest of the path)
        self.splat_edge: _ParamEdge | None = None
        # Full names of routes ending here, most specific first
        self.routes: list[str] = []


@dataclass(slots=True)
class _ParamEdge:
    """A param or splat edge in the trie."""

    segment: PathSegment
    node: _TrieNode


class RouteTree:
    """Compiled route tree.

    Usage::

        tree = RouteTree([
            Route("home", "/"),
            Route("users", "/users", children=(Route("view", "/:id"),)),
        ])
        tree.match_path("/users/42")  # RouteMatch(name="users.view", params={"id": "42"}, ...)
        tree.build_path("users.view", {"id": "42"})  # "/users/42"
    """

    __slots__ = ("_names", "_root", "_trie")

    def __init__(
        self,
        routes: Iterable[Route | Mapping[str, Any]] = (),
        on_add: Callable[[str, Route], None] | None = None,
    ) -> None:
        self._root = RouteNode(name="", full_name="", pattern=parse_path(""))
        self._names: dict[str, RouteNode] = {}
        self._trie = _TrieNode()
        self.add(routes, on_add)

    # -- Building the tree --

    def add(
        self,
        routes: Route | Mapping[str, Any] | Iterable[Route | Mapping[str, Any]],
        on_add: Callable[[str, Route], None] | None = None,
    ) -> None:
        """Add route definitions. ``on_add`` receives each route's full name."""
        for route in as_routes(routes):
            self._add_route(route, self._root, on_add)

    def add_node(self, name: str, path: str) -> RouteNode:
        """Add a single route by full dotted name below an existing parent."""
        return self._add_route(Route(name=name, path=path), self._root, None)

    def _add_route(
        self,
        route: Route,
        parent: RouteNode,
        on_add: Callable[[str, Route], None] | None,
    ) -> RouteNode:
        if not isinstance(route.name, str) or not route.name:
            msg = f"Route name must be a non-empty string, got {route.name!r}"
            raise ConfigurationError(msg)

        *ancestors, short_name = route.name.split(".")
        for ancestor in ancestors:
            if ancestor not in parent.children:
                prefix = f"{parent.full_name}." if parent.full_name else ""
                msg = f"Cannot add route {route.name!r}: parent {prefix}{ancestor!r} is not defined"
                raise ConfigurationError(msg)
            parent = parent.children[ancestor]

        full_name = f"{parent.full_name}.{short_name}" if parent.full_name else short_name
        if full_name in self._names:
            msg = f"Route {full_name!r} is already defined"
            raise ConfigurationError(msg)

        node = RouteNode(
            name=short_name,
            full_name=full_name,
            pattern=parse_path(route.path),
            route=route,
            parent=parent,
        )
        chain = self._chain(parent) + [node]
        self._check_param_names(full_name, chain)
        self._insert(full_name, chain)

        parent.children[short_name] = node
        self._names[full_name] = node
        if on_add is not None:
            on_add(full_name, route)

        for child in route.children:
            self._add_route(child, node, on_add)
        return node

    @staticmethod
    def _chain(node: RouteNode) -> list[RouteNode]:
        chain: list[RouteNode] = []
        current: RouteNode | None = node
        while current is not None and current.full_name:
            chain.append(current)
            current = current.parent
        chain.reverse()
        return chain

    @staticmethod
    def _check_param_names(full_name: str, chain: list[RouteNode]) -> None:
        seen: set[str] = set()
        for node in chain:
            for param in (*node.pattern.url_params, *node.pattern.query_params):
                if param in seen:
                    msg = f"Route {full_name!r} declares param {param!r} more than once"
                    raise ConfigurationError(msg)
                seen.add(param)

    def _insert(self, full_name: str, chain: list[RouteNode]) -> None:
        trie = self._trie
        for node in chain:
            for segment in node.pattern.segments:
                trie = self._descend(trie, segment)

        for existing in trie.routes:
            if full_name.startswith(existing + "."):
                # Descendants sharing the same URL win over their ancestors
                trie.routes.insert(trie.routes.index(existing), full_name)
                return
            if not existing.startswith(full_name + "."):
                msg = f"Route {full_name!r} has the same path as route {existing!r}"
                raise ConfigurationError(msg)
        trie.routes.append(full_name)

    @staticmethod
    def _descend(trie: _TrieNode, segment: PathSegment) -> _TrieNode:
        if segment.kind == "static":
            child = trie.children.get(segment.value)
            if child is None:
                child = _TrieNode()
                trie.children[segment.value] = child
                trie.folded.setdefault(segment.value.lower(), []).append(child)
            return child

        if segment.kind == "splat":
            if trie.splat_edge is None:
                trie.splat_edge = _ParamEdge(segment=segment, node=_TrieNode())
            elif trie.splat_edge.segment.name != segment.name:
                msg = (
                    f"Conflicting splat names {trie.splat_edge.segment.name!r} "
                    f"and {segment.name!r} at the same position"
                )
                raise ConfigurationError(msg)
            return trie.splat_edge.node

        for edge in trie.param_edges:
            if edge.segment.name == segment.name and edge.segment.constraint == segment.constraint:
                return edge.node
        edge = _ParamEdge(segment=segment, node=_TrieNode())
        if segment.constraint is not None:
            # Constrained edges are tried before plain ones
            position = sum(1 for e in trie.param_edges if e.segment.constraint is not None)
            trie.param_edges.insert(position, edge)
        else:
            trie.param_edges.append(edge)
        return edge.node

    # -- Lookups --

    def has_route(self, name: str) -> bool:
        return name in self._names

    @property
    def names(self) -> list[str]:
        """Full names of every route, in insertion order."""
        return list(self._names)

    def get_node(self, name: str) -> RouteNode:
        node = self._names.get(name)
        if node is None:
            raise UnknownRoute(name)
        return node

    def segments_by_name(self, name: str) -> list[RouteNode]:
        """Return the chain of nodes from the outermost segment to *name*."""
        return self._chain(self.get_node(name))

    def url_params(self, name: str) -> list[str]:
        return [p for node in self.segments_by_name(name) for p in node.pattern.url_params]

    def query_params(self, name: str) -> list[str]:
        return [p for node in self.segments_by_name(name) for p in node.pattern.query_params]

    def _meta(self, chain: list[RouteNode]) -> dict[str, dict[str, str]]:
        meta: dict[str, dict[str, str]] = {}
        for node in chain:
            kinds = {p: "url" for p in node.pattern.url_params}
            kinds.update({p: "query" for p in node.pattern.query_params})
            meta[node.full_name] = kinds
        return meta

    def build_state(self, name: str, params: Mapping[str, Any]) -> RouteMatch | None:
        """Return the name, params, and segment meta for *name*, or None if unknown."""
        if name not in self._names:
            return None
        return RouteMatch(name=name, params=dict(params), meta=self._meta(self.segments_by_name(name)))

    # -- Building paths --

    def build_path(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        options: RouterOptions = _DEFAULT_OPTIONS,
    ) -> str:
        """Build the URL of route *name*.

        Raises ``UnknownRoute`` for an unregistered name, ``MissingParams``
        listing every absent required param, and ``InvalidParamFormat`` when
        a value violates its segment constraint.
        """
        params = params or {}
        chain = self.segments_by_name(name)

        missing = [
            p for node in chain for p in node.pattern.url_params if params.get(p) is None
        ]
        if missing:
            raise MissingParams(name, missing)

        parts: list[str] = []
        for node in chain:
            for segment in node.pattern.segments:
                parts.append(self._build_segment(name, segment, params, options))

        path = "/" + "/".join(parts)
        leaf_slash = chain[-1].pattern.trailing_slash and bool(parts)
        if options.trailing_slash_mode == "always" or (
            options.trailing_slash_mode == "default" and leaf_slash
        ):
            if not path.endswith("/"):
                path += "/"

        declared = [p for node in chain for p in node.pattern.query_params]
        keys = [p for p in declared if p in params]
        if options.query_params_mode == "loose":
            url_params = {p for node in chain for p in node.pattern.url_params}
            keys += [k for k in params if k not in url_params and k not in declared]
        query = build_query(((k, params[k]) for k in keys), options.query_params)
        return f"{path}?{query}" if query else path

    @staticmethod
    def _build_segment(
        name: str,
        segment: PathSegment,
        params: Mapping[str, Any],
        options: RouterOptions,
    ) -> str:
        if segment.kind == "static":
            return segment.value
        assert segment.name is not None
        value = params[segment.name]
        if segment.kind == "splat":
            return encode_url_param(value, options.url_params_encoding, splat=True)
        if segment.regex is not None:
            text = format_value(value)
            if not segment.regex.fullmatch(text):
                raise InvalidParamFormat(name, segment.name, text, segment.constraint or "")
        return encode_url_param(value, options.url_params_encoding)

    # -- Matching --

    def match_path(self, url: str, options: RouterOptions = _DEFAULT_OPTIONS) -> RouteMatch | None:
        """Match a URL (path plus optional query string) against the tree.

        Returns ``None`` when nothing matches: no route for the path, a
        constraint failure, a trailing-slash mismatch in strict mode, or an
        undeclared query param in ``strict`` query mode.
        """
        path, _, query_string = url.partition("?")
        path = path.split("#", 1)[0]
        parts = [p for p in path.split("/") if p]
        has_slash = len(path) > 1 and path.endswith("/")
        query = parse_query(query_string, options.query_params) if query_string else {}

        def accept(full_name: str) -> bool:
            chain = self.segments_by_name(full_name)
            if options.strict_trailing_slash and bool(parts):
                if chain[-1].pattern.trailing_slash != has_slash:
                    return False
            if options.query_params_mode == "strict":
                declared = {p for node in chain for p in node.pattern.query_params}
                return all(key in declared for key in query)
            return True

        result = self._match_node(self._trie, parts, 0, {}, accept, options)
        if result is None:
            return None

        full_name, url_values = result
        chain = self.segments_by_name(full_name)
        params: dict[str, Any] = {
            key: decode_url_param(value, options.url_params_encoding)
            for key, value in url_values.items()
        }
        declared = [p for node in chain for p in node.pattern.query_params]
        for key, value in query.items():
            if key in params:
                continue
            if key in declared or options.query_params_mode == "loose":
                params[key] = value
        return RouteMatch(name=full_name, params=params, meta=self._meta(chain))

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
        accept: Callable[[str], bool],
        options: RouterOptions,
    ) -> tuple[str, dict[str, str]] | None:
        """Recursively match path parts against the trie."""
        # All parts consumed: pick the first acceptable route ending here
        if index == len(parts):
            for full_name in node.routes:
                if accept(full_name):
                    return full_name, params
            return None

        part = parts[index]

        # 1. Static children first (exact match)
        if options.case_sensitive:
            candidates = [node.children[part]] if part in node.children else []
        else:
            candidates = node.folded.get(part.lower(), [])
        for child in candidates:
            result = self._match_node(child, parts, index + 1, params, accept, options)
            if result is not None:
                return result

        # 2. Param edges; a constraint must match the whole segment
        for edge in node.param_edges:
            regex = edge.segment.regex
            if regex is not None and not regex.fullmatch(decode_url_param(part, options.url_params_encoding)):
                continue
            new_params = {**params, edge.segment.name or "": part}
            result = self._match_node(edge.node, parts, index + 1, new_params, accept, options)
            if result is not None:
                return result

        # 3. Splat consumes the remaining parts
        if node.splat_edge is not None:
            remaining = "/".join(parts[index:])
            new_params = {**params, node.splat_edge.segment.name or "": remaining}
            result = self._match_node(node.splat_edge.node, parts, len(parts), new_params, accept, options)
            if result is not None:
                return result

        return None
