"""Router configuration.

RouterOptions is a frozen dataclass: immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from wayfinder.errors import ConfigurationError
from wayfinder.freeze import FrozenParams, deep_freeze

TRAILING_SLASH_MODES = ("default", "always", "never")
QUERY_PARAMS_MODES = ("default", "strict", "loose")
URL_PARAMS_ENCODINGS = ("default", "uri", "uriComponent", "none")
ARRAY_FORMATS = ("none", "brackets", "index")
BOOLEAN_FORMATS = ("none", "string", "empty-true")
NULL_FORMATS = ("default", "hidden")


def _check_choice(option: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        allowed = ", ".join(repr(c) for c in choices)
        msg = f"Invalid {option} {value!r}. Expected one of: {allowed}"
        raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class QueryParamsOptions:
    """How query strings are written and read.

    ``array_format``: ``none`` (``a=1&a=2``), ``brackets`` (``a[]=1``),
    ``index`` (``a[0]=1``).
    ``boolean_format``: ``none`` (``true``/``false`` stay strings on match),
    ``string`` (parsed back to ``bool``), ``empty-true`` (bare key is ``True``).
    ``null_format``: ``default`` (bare key), ``hidden`` (omitted).
    """

    array_format: str = "none"
    boolean_format: str = "none"
    null_format: str = "default"

    def __post_init__(self) -> None:
        _check_choice("array_format", self.array_format, ARRAY_FORMATS)
        _check_choice("boolean_format", self.boolean_format, BOOLEAN_FORMATS)
        _check_choice("null_format", self.null_format, NULL_FORMATS)


@dataclass(frozen=True, slots=True)
class RouterOptions:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        options = RouterOptions(default_route="home", query_params_mode="loose")
    """

    # Start / fallback target
    default_route: str | None = None
    default_params: Mapping[str, Any] = field(default_factory=FrozenParams)

    # Path building and matching
    trailing_slash_mode: str = "default"  # "always" / "never" rewrite built paths
    strict_trailing_slash: bool = False  # False: "/users/" matches "/users"
    query_params_mode: str = "default"
    query_params: QueryParamsOptions = field(default_factory=QueryParamsOptions)
    case_sensitive: bool = False
    url_params_encoding: str = "default"
    rewrite_path_on_match: bool = True  # Matched states carry the canonical built path

    # Navigation
    allow_not_found: bool = False
    auto_clean_up: bool = True  # Drop canDeactivate guards of unmounted segments
    ignore_query_params: bool = False  # SAME_STATES check compares url params only
    max_redirects: int = 16

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_params", deep_freeze(self.default_params))
        _check_choice("trailing_slash_mode", self.trailing_slash_mode, TRAILING_SLASH_MODES)
        _check_choice("query_params_mode", self.query_params_mode, QUERY_PARAMS_MODES)
        _check_choice("url_params_encoding", self.url_params_encoding, URL_PARAMS_ENCODINGS)
        if self.max_redirects < 0:
            msg = f"max_redirects must be >= 0, got {self.max_redirects}"
            raise ConfigurationError(msg)
