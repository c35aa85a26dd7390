"""Route name segment tests, for highlighting active links and the like.

Each test takes a route (a ``State`` or a dotted name) and a segment, which
may itself be dotted. Whole segments are compared, so ``"users"`` is not a
prefix of ``"users_admin"``::

    starts_with_segment("users.view", "users")       # True
    ends_with_segment(router.get_state(), "view")    # True
    includes_segment("admin.users.view", "users.view")  # True

Called without a segment, each returns a predicate over segments::

    in_users = starts_with_segment(state)
    in_users("users")
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from wayfinder.state import State

SegmentTest: TypeAlias = Callable[[str], bool]


def _parts(route: State | str) -> list[str]:
    name = route if isinstance(route, str) else getattr(route, "name", "") or ""
    return name.split(".") if name else []


def _segment_test(
    matches: Callable[[list[str], list[str]], bool],
) -> Callable[..., Any]:
    def test(route: State | str, segment: str | None = None) -> bool | SegmentTest:
        parts = _parts(route)

        def check(segment: str) -> bool:
            wanted = segment.split(".") if segment else []
            return bool(wanted) and len(wanted) <= len(parts) and matches(parts, wanted)

        if segment is None:
            return check
        return check(segment)

    return test


def _starts_with(parts: list[str], wanted: list[str]) -> bool:
    return parts[: len(wanted)] == wanted


def _ends_with(parts: list[str], wanted: list[str]) -> bool:
    return parts[-len(wanted) :] == wanted


def _includes(parts: list[str], wanted: list[str]) -> bool:
    size = len(wanted)
    return any(parts[i : i + size] == wanted for i in range(len(parts) - size + 1))


starts_with_segment = _segment_test(_starts_with)
starts_with_segment.__doc__ = "True if the route name begins with *segment*."

ends_with_segment = _segment_test(_ends_with)
ends_with_segment.__doc__ = "True if the route name ends with *segment*."

includes_segment = _segment_test(_includes)
includes_segment.__doc__ = "True if *segment* appears anywhere in the route name."
