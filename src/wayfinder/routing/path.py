"""Path pattern parsing.

The pattern language of a route node::

    "/users"                  static segments
    "/users/:id"              required param
    "/users/:id<\\d+>"        constrained param (regex must match the whole segment)
    "/files/*rest"            splat, consumes the rest of the URL
    "/search?q&page"          declared query params
    "?tab"                    query params only (no segments)

A child's pattern is appended to its parent's.
"""

import re

from wayfinder.errors import ConfigurationError
from wayfinder.routing.route import ParsedPath, PathSegment

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _split_outside_constraints(text: str, separator: str) -> list[str]:
    """Split *text* on *separator*, ignoring separators inside ``<...>``."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char == "<":
            depth += 1
        elif char == ">" and depth:
            depth -= 1
        if char == separator and not depth:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _parse_segment(part: str, source: str) -> PathSegment:
    if part.startswith("{") and part.endswith("}"):
        msg = (
            f"Route path {source!r} uses {{param}} syntax. "
            f"Use :param instead, e.g. ':{part[1:-1]}'."
        )
        raise ConfigurationError(msg)

    if part.startswith("*"):
        name = part[1:]
        if not _PARAM_NAME.match(name):
            msg = f"Invalid splat name {name!r} in route path {source!r}"
            raise ConfigurationError(msg)
        return PathSegment(value=part, kind="splat", name=name)

    if not part.startswith(":"):
        return PathSegment(value=part)

    inner = part[1:]
    constraint: str | None = None
    if "<" in inner:
        if not inner.endswith(">"):
            msg = f"Unterminated constraint in segment {part!r} of route path {source!r}"
            raise ConfigurationError(msg)
        inner, constraint = inner[:-1].split("<", 1)
    if not _PARAM_NAME.match(inner):
        msg = f"Invalid param name {inner!r} in route path {source!r}"
        raise ConfigurationError(msg)

    regex = None
    if constraint is not None:
        try:
            regex = re.compile(constraint)
        except re.error as exc:
            msg = f"Invalid constraint <{constraint}> in route path {source!r}: {exc}"
            raise ConfigurationError(msg) from exc
    return PathSegment(value=part, kind="param", name=inner, constraint=constraint, regex=regex)


def parse_path(path: str) -> ParsedPath:
    """Parse a route node's path pattern.

    Examples::

        "/users"            -> segments=(users,)
        "/users/:id?tab"    -> segments=(users, :id), query_params=("tab",)
        "/"                 -> segments=(), trailing_slash=True
    """
    if not isinstance(path, str):
        msg = f"Route path must be a string, got {type(path).__name__}"
        raise ConfigurationError(msg)

    pieces = _split_outside_constraints(path, "?")
    url_part = pieces[0]
    query_part = "?".join(pieces[1:]) if len(pieces) > 1 else ""

    segments: list[PathSegment] = []
    names: set[str] = set()
    for part in _split_outside_constraints(url_part, "/"):
        if not part:
            continue
        if segments and segments[-1].kind == "splat":
            msg = f"Splat must be the last segment of route path {path!r}"
            raise ConfigurationError(msg)
        segment = _parse_segment(part, path)
        if segment.name is not None:
            if segment.name in names:
                msg = f"Duplicate param {segment.name!r} in route path {path!r}"
                raise ConfigurationError(msg)
            names.add(segment.name)
        segments.append(segment)

    query_params: list[str] = []
    for key in query_part.split("&"):
        if not key:
            continue
        if not _PARAM_NAME.match(key):
            msg = f"Invalid query param {key!r} in route path {path!r}"
            raise ConfigurationError(msg)
        if key in names or key in query_params:
            msg = f"Duplicate param {key!r} in route path {path!r}"
            raise ConfigurationError(msg)
        query_params.append(key)

    return ParsedPath(
        source=path,
        segments=tuple(segments),
        query_params=tuple(query_params),
        trailing_slash=url_part.endswith("/"),
    )
