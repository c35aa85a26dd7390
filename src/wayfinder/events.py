"""Event bus for router lifecycle and transition events.

Listener arguments depend on the event:

========================  ===========================================
``start`` / ``stop``      ``()``
``teardown``              ``()``
``transition_start``      ``(to_state, from_state)``
``transition_cancel``     ``(to_state, from_state)``
``transition_success``    ``(to_state, from_state, options)``
``transition_error``      ``(to_state, from_state, error)``
========================  ===========================================

``to_state`` of ``transition_error`` is ``None`` when no target state could
be built (unknown route, router not started). A listener that raises is
logged; the remaining listeners still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from wayfinder._internal.invoke import invoke_safely
from wayfinder.constants import EVENT_NAMES, Events
from wayfinder.errors import InvalidArgument

if TYPE_CHECKING:
    from wayfinder.state import State

logger = logging.getLogger("wayfinder.events")

Listener: TypeAlias = Callable[..., Any]
Unsubscribe: TypeAlias = Callable[[], None]


@dataclass(frozen=True, slots=True)
class RouteChange:
    """What subscribers receive after each successful transition."""

    route: State
    previous_route: State | None


class Subscription:
    """Handle returned when subscribing an observer object (one with ``next``)."""

    __slots__ = ("_unsubscribe", "closed")

    def __init__(self, unsubscribe: Unsubscribe) -> None:
        self._unsubscribe = unsubscribe
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self.closed = True
            self._unsubscribe()


class EventBus:
    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENT_NAMES}

    @staticmethod
    def _check_event(event: str) -> None:
        if event not in EVENT_NAMES:
            allowed = ", ".join(repr(name) for name in EVENT_NAMES)
            msg = f"Unknown event {event!r}. Expected one of: {allowed}"
            raise InvalidArgument(msg)

    def add_event_listener(self, event: str, listener: Listener) -> Unsubscribe:
        """Register *listener* for *event* and return a function removing it."""
        self._check_event(event)
        if not callable(listener):
            msg = f"Event listener must be callable, got {type(listener).__name__}"
            raise InvalidArgument(msg)
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            self.remove_event_listener(event, listener)

        return unsubscribe

    def remove_event_listener(self, event: str, listener: Listener) -> None:
        self._check_event(event)
        listeners = self._listeners[event]
        for index, registered in enumerate(listeners):
            if registered is listener:
                del listeners[index]
                return

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def invoke(self, event: str, *args: Any) -> None:
        """Call every listener of *event* with *args*, in registration order.

        Listeners added or removed while dispatching take effect from the
        next event.
        """
        self._check_event(event)
        for listener in list(self._listeners[event]):
            invoke_safely(logger, f"{event!r} listener", listener, *args)

    def subscribe(self, subscriber: Any) -> Unsubscribe | Subscription:
        """Call *subscriber* with a ``RouteChange`` after every successful transition.

        A plain callable gets back an unsubscribe function; an observer
        object exposing ``next`` gets back a ``Subscription``.
        """
        if callable(subscriber):
            notify = subscriber
        elif callable(getattr(subscriber, "next", None)):
            notify = subscriber.next
        else:
            msg = "Subscriber must be a callable or an object with a 'next' method"
            raise InvalidArgument(msg)

        def on_success(to_state: State, from_state: State | None, options: Any = None) -> None:
            notify(RouteChange(route=to_state, previous_route=from_state))

        unsubscribe = self.add_event_listener(Events.TRANSITION_SUCCESS, on_success)
        if notify is subscriber:
            return unsubscribe
        return Subscription(unsubscribe)
