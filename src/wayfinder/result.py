"""Navigation result: the settled outcome of an awaited navigation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wayfinder.errors import RouterError
    from wayfinder.state import State


@dataclass(frozen=True, slots=True)
class NavigationResult:
    """What ``navigate_async`` and ``start_async`` return.

    The result is falsy when the navigation failed, so you can write::

        result = await router.navigate_async("users.view", {"id": "42"})
        if not result:
            log.warning("navigation refused: %s", result.error.code)

    ``state`` is the committed (or, with ``skip_transition``, target) state
    on success and ``None`` otherwise.
    """

    state: State | None = None
    error: RouterError | None = None

    @property
    def ok(self) -> bool:
        """True if the navigation succeeded."""
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok
