"""One in-flight transition: deactivation guards, activation guards, middleware.

A ``Transition`` runs its steps in order and reports exactly once through
its callback: success with the final state, rejection with a
``RouterError``, or cancellation. Late guard answers after cancellation are
dropped.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

from wayfinder.constants import UNKNOWN_ROUTE, ErrorCodes
from wayfinder.errors import RouterError
from wayfinder.transition.path import transition_path
from wayfinder.transition.resolve import GuardFn, resolve

if TYPE_CHECKING:
    from wayfinder.lifecycle import LifecycleRegistry
    from wayfinder.state import State

logger = logging.getLogger("wayfinder.transition")

TransitionCallback: TypeAlias = Callable[[RouterError | None, "State | None"], None]


class TransitionStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class _Step:
    __slots__ = ("error_code", "guards", "redirect_allowed")

    def __init__(
        self,
        guards: Callable[[], Mapping[str, GuardFn] | Sequence[GuardFn]],
        error_code: str,
        redirect_allowed: bool = False,
    ) -> None:
        self.guards = guards
        self.error_code = error_code
        self.redirect_allowed = redirect_allowed


class Transition:
    """A cancellable run of the guard pipeline from *from_state* to *to_state*.

    Usage::

        transition = Transition(to_state, from_state, lifecycle=registry,
                                middleware=[...], callback=on_done)
        transition.run()
        ...
        transition.cancel()  # on_done(RouterError(CANCELLED), None), once
    """

    __slots__ = (
        "_auto_clean_up",
        "_callback",
        "_lifecycle",
        "_middleware",
        "_options",
        "from_state",
        "status",
        "to_state",
    )

    def __init__(
        self,
        to_state: State,
        from_state: State | None,
        *,
        lifecycle: LifecycleRegistry,
        middleware: Sequence[GuardFn] = (),
        options: Mapping[str, Any] | None = None,
        auto_clean_up: bool = True,
        callback: TransitionCallback,
    ) -> None:
        self.to_state = to_state
        self.from_state = from_state
        self.status = TransitionStatus.PENDING
        self._lifecycle = lifecycle
        self._middleware = list(middleware)
        self._options = options or {}
        self._auto_clean_up = auto_clean_up
        self._callback = callback

    @property
    def running(self) -> bool:
        return self.status is TransitionStatus.RUNNING

    def is_cancelled(self) -> bool:
        return self.status is TransitionStatus.CANCELLED

    def cancel(self) -> None:
        """Cancel a running transition. No effect once it has finished."""
        if not self.running:
            return
        self.status = TransitionStatus.CANCELLED
        logger.debug("Transition to %r cancelled", self.to_state.name)
        self._callback(RouterError(ErrorCodes.TRANSITION_CANCELLED), None)

    def run(self) -> None:
        if self.status is not TransitionStatus.PENDING:
            msg = f"Transition to {self.to_state.name!r} has already been run"
            raise RuntimeError(msg)
        self.status = TransitionStatus.RUNNING
        self._run_step(self._steps(), 0, self.to_state)

    def _steps(self) -> list[_Step]:
        path = transition_path(self.to_state, self.from_state)
        steps: list[_Step] = []

        if self.from_state is not None and not self._options.get("force_deactivate"):

            def deactivate_guards() -> dict[str, GuardFn]:
                functions, _ = self._lifecycle.get_lifecycle_functions()
                return {name: functions[name] for name in path.to_deactivate if name in functions}

            steps.append(_Step(deactivate_guards, ErrorCodes.CANNOT_DEACTIVATE))

        if self.to_state.name != UNKNOWN_ROUTE:

            def activate_guards() -> dict[str, GuardFn]:
                _, functions = self._lifecycle.get_lifecycle_functions()
                return {name: functions[name] for name in path.to_activate if name in functions}

            steps.append(_Step(activate_guards, ErrorCodes.CANNOT_ACTIVATE))

        if self._middleware:
            middleware = self._middleware
            steps.append(_Step(lambda: middleware, ErrorCodes.TRANSITION_ERR, redirect_allowed=True))

        return steps

    def _run_step(self, steps: list[_Step], index: int, state: State) -> None:
        if not self.running:
            return
        if index == len(steps):
            self._finish(None, state)
            return
        step = steps[index]

        def on_step_done(error: RouterError | None, new_state: State | None) -> None:
            if error is not None:
                self._finish(error, None)
            else:
                self._run_step(steps, index + 1, new_state or state)

        resolve(
            step.guards(),
            state,
            self.from_state,
            error_code=step.error_code,
            is_cancelled=self.is_cancelled,
            callback=on_step_done,
            redirect_allowed=step.redirect_allowed,
        )

    def _finish(self, error: RouterError | None, state: State | None) -> None:
        if not self.running:
            return
        if error is not None:
            self.status = TransitionStatus.REJECTED
            self._callback(error, None)
            return
        self.status = TransitionStatus.SUCCEEDED
        if self._auto_clean_up:
            removed = self._lifecycle.clean_up(self.to_state.name)
            if removed:
                logger.debug("Cleared deactivation guards of %s", ", ".join(removed))
        self._callback(None, state)
