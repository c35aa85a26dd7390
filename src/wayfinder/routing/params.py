"""Param encoding for URL segments and query strings.

URL segment values are percent-encoded according to the router's
``url_params_encoding``; query strings follow ``QueryParamsOptions``.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from urllib.parse import quote, unquote

from wayfinder.config import QueryParamsOptions
from wayfinder.errors import InvalidArgument

# Characters left untouched by each encoding
SAFE_CHARACTERS: dict[str, str] = {
    "default": "-_.!~*'()@:$&+,;=",
    "uri": "-_.!~*'();/?:@&=+$,#",
    "uriComponent": "-_.!~*'()",
}


def format_value(value: Any) -> str:
    """Render a scalar param value as URL text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_url_param(value: Any, encoding: str = "default", *, splat: bool = False) -> str:
    """Encode a URL segment value. Splat values keep their ``/`` separators."""
    text = format_value(value)
    if encoding == "none":
        return text
    safe = SAFE_CHARACTERS[encoding]
    if splat:
        safe += "/"
    return quote(text, safe=safe)


def decode_url_param(value: str, encoding: str = "default") -> str:
    if encoding == "none":
        return value
    return unquote(value)


def build_query(items: Iterable[tuple[str, Any]], options: QueryParamsOptions) -> str:
    """Serialize ``(key, value)`` pairs into a query string (no leading ``?``)."""
    parts: list[str] = []
    for key, value in items:
        name = quote(key, safe=SAFE_CHARACTERS["uriComponent"])
        if value is None:
            if options.null_format != "hidden":
                parts.append(name)
            continue
        if isinstance(value, Sequence) and not isinstance(value, str):
            for index, item in enumerate(value):
                if options.array_format == "brackets":
                    item_name = f"{name}[]"
                elif options.array_format == "index":
                    item_name = f"{name}[{index}]"
                else:
                    item_name = name
                parts.append(_query_pair(item_name, item, options))
            continue
        parts.append(_query_pair(name, value, options))
    return "&".join(parts)


def _query_pair(name: str, value: Any, options: QueryParamsOptions) -> str:
    if value is None:
        return name
    if value is True and options.boolean_format == "empty-true":
        return name
    if isinstance(value, Mapping):
        msg = f"Query param {name!r} cannot hold a mapping"
        raise InvalidArgument(msg)
    return f"{name}={quote(format_value(value), safe=SAFE_CHARACTERS['uriComponent'])}"


def parse_query(query_string: str, options: QueryParamsOptions) -> dict[str, Any]:
    """Parse a query string (without ``?``) into a dict.

    Repeated keys and ``key[]`` / ``key[0]`` forms become lists. A bare key is
    ``None``, or ``True`` with ``boolean_format="empty-true"``.
    """
    result: dict[str, Any] = {}
    for pair in query_string.split("&"):
        if not pair:
            continue
        raw_key, has_value, raw_value = pair.partition("=")
        key = unquote(raw_key)
        value: Any
        if not has_value:
            value = True if options.boolean_format == "empty-true" else None
        else:
            value = unquote(raw_value)
            if options.boolean_format in ("string", "empty-true") and value in ("true", "false"):
                value = value == "true"

        is_array = False
        if key.endswith("[]"):
            key, is_array = key[:-2], True
        elif key.endswith("]") and "[" in key:
            base, _, index = key[:-1].partition("[")
            if index.isdigit():
                key, is_array = base, True

        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = [value] if is_array else value
    return result
