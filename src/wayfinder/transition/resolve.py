"""Sequential guard resolution.

A guard (or middleware) is called as ``guard(to_state, from_state, done)``
and may answer in several ways:

- return ``True`` / ``False``
- return ``None`` and call ``done(error=None, state=None)`` now or later
- return a ``State`` (an override; a different route name is a redirect,
  which only middleware may ask for)
- return an awaitable, scheduled on the running event loop, that settles to
  ``True``, ``False``, ``None`` (deny), an exception instance (deny with it
  attached), or a ``State``
- return an exception instance (deny with it attached)

Each answer is decoded once into ``Allow``, ``Deny`` or ``Override``. The
first answer wins; later calls to ``done`` are ignored.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from wayfinder.errors import RouterError
from wayfinder.freeze import deep_equal
from wayfinder.state import State, StateMeta, freeze_state, is_state

logger = logging.getLogger("wayfinder.transition")

# Strong references to in-flight guard futures
_pending: set[asyncio.Future[Any]] = set()

GuardFn: TypeAlias = Callable[..., Any]
ResolveCallback: TypeAlias = Callable[[RouterError | None, State | None], None]


@dataclass(frozen=True, slots=True)
class Allow:
    """Let the transition continue unchanged."""


@dataclass(frozen=True, slots=True)
class Deny:
    """Stop the transition. ``error`` is whatever the guard supplied."""

    error: Any = None


@dataclass(frozen=True, slots=True)
class Override:
    """Continue with ``state`` instead of the current candidate."""

    state: State


GuardResult: TypeAlias = Allow | Deny | Override


def decode_done(error: Any = None, state: Any = None) -> GuardResult:
    """Decode the arguments a guard passed to ``done``."""
    if error is not None and error is not False:
        return Deny(error)
    if error is False:
        return Deny()
    if isinstance(state, State):
        return Override(state)
    return Allow()


def decode_settled(value: Any) -> GuardResult:
    """Decode the value an awaitable guard result settled to."""
    if value is True:
        return Allow()
    if isinstance(value, State):
        return Override(value)
    if value is None or value is False:
        return Deny()
    return Deny(value)


def make_error(code: str, error: Any = None, segment: str | None = None) -> RouterError:
    """Normalize a guard's error value into a ``RouterError`` carrying *code*.

    Mappings contribute ``message``, ``segment``, ``redirect`` and extra
    fields; a ``RouterError`` is re-coded in place; any other value is kept
    as ``error``.
    """
    if isinstance(error, RouterError):
        error.set_code(code)
        if error.segment is None:
            error.segment = segment
        return error
    if isinstance(error, Mapping):
        fields = {k: v for k, v in error.items() if k not in ("code", "message", "segment", "redirect")}
        return RouterError(
            code,
            message=error.get("message"),
            segment=error.get("segment", segment),
            redirect=error.get("redirect"),
            **fields,
        )
    if error is None:
        return RouterError(code, segment=segment)
    return RouterError(code, segment=segment, error=error)


def has_state_changed(new_state: State, old_state: State) -> bool:
    return (
        new_state.name != old_state.name
        or new_state.path != old_state.path
        or not deep_equal(new_state.params, old_state.params)
    )


def merge_states(new_state: State, old_state: State) -> State:
    """Take name, params and path from *new_state*; keep *old_state*'s meta."""
    meta = new_state.meta
    if old_state.meta is not None:
        source = new_state.meta.source if new_state.meta is not None else None
        meta = StateMeta(
            id=new_state.meta.id if new_state.meta is not None else old_state.meta.id,
            params=old_state.meta.params,
            options=old_state.meta.options,
            redirected=old_state.meta.redirected,
            source=source if source is not None else old_state.meta.source,
        )
    return freeze_state(
        State(name=new_state.name, params=new_state.params, path=new_state.path, meta=meta)
    )


def resolve(
    guards: Mapping[str, GuardFn] | Sequence[GuardFn],
    to_state: State,
    from_state: State | None,
    *,
    error_code: str,
    is_cancelled: Callable[[], bool],
    callback: ResolveCallback,
    redirect_allowed: bool = False,
) -> None:
    """Run *guards* one after another, stopping at the first denial.

    A mapping of segment name to guard tags denials with the segment. When
    the transition is cancelled, resolution stops without calling
    *callback*; the transition reports the cancellation itself.
    """
    if isinstance(guards, Mapping):
        items: list[tuple[str | None, GuardFn]] = list(guards.items())
    else:
        items = [(None, guard) for guard in guards]

    def step(index: int, state: State) -> None:
        if is_cancelled():
            return
        if index == len(items):
            callback(None, state)
            return
        segment, guard = items[index]
        _run_guard(segment, guard, state, index)

    def handle(segment: str | None, outcome: GuardResult, state: State, index: int) -> None:
        if isinstance(outcome, Allow):
            step(index + 1, state)
            return
        if isinstance(outcome, Deny):
            callback(make_error(error_code, outcome.error, segment), None)
            return

        new_state = outcome.state
        if new_state is state or not is_state(new_state):
            step(index + 1, state)
            return
        if new_state.name != state.name:
            if not redirect_allowed:
                message = (
                    f"Guards cannot redirect: {segment or 'guard'!s} returned state "
                    f"{new_state.name!r} while activating {state.name!r}"
                )
                callback(RouterError(error_code, message=message, segment=segment), None)
                return
            callback(RouterError(error_code, redirect=freeze_state(new_state)), None)
            return
        if has_state_changed(new_state, state):
            logger.warning(
                "State mutated during transition: %r -> %r (name, params, or path changed)",
                state,
                new_state,
            )
        step(index + 1, merge_states(new_state, state))

    def _run_guard(segment: str | None, guard: GuardFn, state: State, index: int) -> None:
        settled = False

        def settle(outcome: GuardResult) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            if is_cancelled():
                return
            handle(segment, outcome, state, index)

        def done(error: Any = None, new_state: Any = None) -> None:
            settle(decode_done(error, new_state))

        try:
            result = guard(state, from_state, done)
        except Exception as exc:
            logger.exception("Guard for %r raised", segment or state.name)
            settle(Deny(exc))
            return

        if settled or result is None:
            # Answered through done, or waiting for it
            return
        if is_cancelled():
            settled = True
            _discard(result)
            return
        if isinstance(result, bool):
            settle(Allow() if result else Deny())
        elif isinstance(result, State):
            settle(Override(result))
        elif isinstance(result, BaseException):
            settle(Deny(result))
        elif inspect.isawaitable(result):
            _schedule(segment or state.name, result, settle)
        else:
            logger.warning(
                "Guard for %r returned unsupported value %r; treating as denial",
                segment or state.name,
                result,
            )
            settle(Deny(TypeError(f"Unsupported guard result: {result!r}")))

    step(0, to_state)


def _discard(result: Any) -> None:
    if inspect.iscoroutine(result):
        result.close()


def _schedule(label: str, awaitable: Any, settle: Callable[[GuardResult], None]) -> None:
    """Await *awaitable* on the running loop and settle with its outcome."""
    try:
        future = asyncio.ensure_future(awaitable, loop=asyncio.get_running_loop())
    except RuntimeError as exc:
        _discard(awaitable)
        logger.error("Guard for %r returned an awaitable but no event loop is running", label)
        settle(Deny(exc))
        return

    def on_settled(fut: asyncio.Future[Any]) -> None:
        if fut.cancelled():
            settle(Deny(asyncio.CancelledError()))
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("Guard for %r failed", label, exc_info=exc)
            settle(Deny(exc))
            return
        settle(decode_settled(fut.result()))

    _pending.add(future)
    future.add_done_callback(_pending.discard)
    future.add_done_callback(on_settled)
