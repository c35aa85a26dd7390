"""Segment diff between two states.

``transition_path`` finds the longest common prefix of two dotted route
names and returns the segments to exit (inner to outer) and to enter (outer
to inner)::

    transition_path(State("users.view", {"id": "2"}, ...), State("users.list", ...))
    # TransitionPath(intersection="users",
    #                to_deactivate=["users.list"], to_activate=["users.view"])

A shared segment whose own params changed is exited and re-entered.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wayfinder.state import State


def name_to_ids(name: str) -> list[str]:
    """Return the cumulative segment names of *name*.

    ``"a.b.c"`` -> ``["a", "a.b", "a.b.c"]``
    """
    ids: list[str] = []
    for part in name.split("."):
        ids.append(f"{ids[-1]}.{part}" if ids else part)
    return ids


@dataclass(frozen=True, slots=True)
class TransitionPath:
    intersection: str
    to_deactivate: list[str]
    to_activate: list[str]


def _segment_params(segment: str, state: "State") -> dict[str, Any]:
    meta = state.meta
    if meta is None or not meta.params:
        return {}
    declared = meta.params.get(segment)
    if not isinstance(declared, Mapping):
        return {}
    return {param: state.params.get(param) for param in declared}


def _has_meta_params(state: "State") -> bool:
    return state.meta is not None and bool(state.meta.params)


def transition_path(to_state: "State", from_state: "State | None" = None) -> TransitionPath:
    """Compute the segments to deactivate and activate."""
    to_ids = name_to_ids(to_state.name)
    from_ids = name_to_ids(from_state.name) if from_state is not None else []
    options = to_state.meta.options if to_state.meta is not None else {}

    if from_state is None or options.get("reload"):
        point = 0
    elif not _has_meta_params(from_state) and not _has_meta_params(to_state):
        point = 0
    else:
        point = 0
        for left, right in zip(from_ids, to_ids, strict=False):
            if left != right:
                break
            if _segment_params(left, from_state) != _segment_params(right, to_state):
                break
            point += 1

    return TransitionPath(
        intersection=from_ids[point - 1] if from_state is not None and point > 0 else "",
        to_deactivate=list(reversed(from_ids[point:])),
        to_activate=to_ids[point:],
    )
