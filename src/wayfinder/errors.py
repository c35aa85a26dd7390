"""Wayfinder exception hierarchy.

Two channels share the same root:

- Argument and configuration problems are raised synchronously at the API
  boundary (``InvalidArgument``, ``ConfigurationError``, ``MissingParams``...).
- Navigation failures are ``RouterError`` instances delivered through the
  ``done`` callback and the transition-error event. The router never raises
  them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from wayfinder.constants import ERROR_CODES

if TYPE_CHECKING:
    from wayfinder.state import State


class WayfinderError(Exception):
    """Base for all wayfinder-specific errors."""


class ConfigurationError(WayfinderError):
    """Raised when route definitions or router options are invalid.

    Typically raised while routes are added, before the router starts.
    """


class InvalidArgument(WayfinderError, TypeError):
    """A public method received a malformed argument (name, params, state...)."""


class UnknownRoute(WayfinderError, LookupError):
    """No route is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Route {name!r} is not defined")
        self.name = name


class MissingParams(WayfinderError, ValueError):
    """Building a path failed because required params are absent.

    ``missing`` lists every absent key, in pattern order.
    """

    def __init__(self, name: str, missing: Iterable[str]) -> None:
        self.name = name
        self.missing: tuple[str, ...] = tuple(missing)
        keys = ", ".join(repr(key) for key in self.missing)
        super().__init__(f"Cannot build path for route {name!r}: missing params {keys}")


class InvalidParamFormat(WayfinderError, ValueError):
    """A param value does not satisfy the constraint declared in the path."""

    def __init__(self, name: str, param: str, value: str, pattern: str) -> None:
        self.name = name
        self.param = param
        super().__init__(
            f"Param {param!r} of route {name!r} must match <{pattern}>, got {value!r}"
        )


class RouterError(WayfinderError):
    """A navigation failure.

    ``code`` is one of ``ErrorCodes``; ``segment`` names the route segment
    whose guard denied; ``redirect`` (a ``State`` or a mapping with ``name``
    and ``params``) asks the router to navigate elsewhere instead. Any other
    keyword is kept in ``extra`` and readable as an attribute::

        err = RouterError(ErrorCodes.CANNOT_ACTIVATE, segment="admin", error=exc)
        err.error is exc
    """

    def __init__(
        self,
        code: str,
        *,
        message: str | None = None,
        segment: str | None = None,
        redirect: State | Mapping[str, Any] | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.segment = segment
        self.redirect = redirect
        self.extra: dict[str, Any] = extra

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not set in __init__
        extra = self.__dict__.get("extra", {})
        if name in extra:
            return extra[name]
        msg = f"{type(self).__name__!r} object has no attribute {name!r}"
        raise AttributeError(msg)

    def set_code(self, code: str) -> None:
        """Replace the code, keeping a custom message but not a default one."""
        if self.message in ERROR_CODES:
            self.message = code
            self.args = (code,)
        self.code = code

    def set_additional_fields(self, fields: Mapping[str, Any]) -> None:
        self.extra.update(fields)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.segment is not None:
            data["segment"] = self.segment
        if self.redirect is not None:
            data["redirect"] = self.redirect
        data.update(self.extra)
        return data

    def __str__(self) -> str:
        if self.message != self.code:
            return f"{self.code}: {self.message}"
        return self.code

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in self.to_dict().items())
        return f"RouterError({fields})"
