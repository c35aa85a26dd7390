"""Tests for wayfinder.events: EventBus, subscriptions, and router events."""

import logging
from typing import Any

import pytest

from wayfinder.config import RouterOptions
from wayfinder.constants import ErrorCodes, Events
from wayfinder.errors import InvalidArgument
from wayfinder.events import EventBus, RouteChange, Subscription
from wayfinder.routing.route import Route
from wayfinder.router import Router


def _router() -> Router:
    return Router([Route("home", "/"), Route("admin", "/admin")], RouterOptions(default_route="home"))


class TestEventBus:
    def test_listeners_called_in_order(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.add_event_listener(Events.ROUTER_START, lambda: calls.append("a"))
        bus.add_event_listener(Events.ROUTER_START, lambda: calls.append("b"))
        bus.invoke(Events.ROUTER_START)
        assert calls == ["a", "b"]

    def test_arguments_passed_through(self) -> None:
        bus = EventBus()
        seen: list[Any] = []
        bus.add_event_listener(Events.TRANSITION_ERROR, lambda *args: seen.append(args))
        bus.invoke(Events.TRANSITION_ERROR, "to", "from", "err")
        assert seen == [("to", "from", "err")]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        unsubscribe = bus.add_event_listener(Events.ROUTER_STOP, lambda: calls.append("x"))
        unsubscribe()
        unsubscribe()
        bus.invoke(Events.ROUTER_STOP)
        assert calls == []
        assert not bus.has_listeners(Events.ROUTER_STOP)

    def test_remove_by_identity(self) -> None:
        bus = EventBus()

        def listener() -> None:
            pass

        bus.add_event_listener(Events.ROUTER_START, listener)
        bus.add_event_listener(Events.ROUTER_START, listener)
        bus.remove_event_listener(Events.ROUTER_START, listener)
        assert bus.has_listeners(Events.ROUTER_START)

    def test_unknown_event(self) -> None:
        bus = EventBus()
        with pytest.raises(InvalidArgument, match="Unknown event"):
            bus.add_event_listener("navigate", lambda: None)
        with pytest.raises(InvalidArgument):
            bus.invoke("navigate")

    def test_non_callable_listener(self) -> None:
        with pytest.raises(InvalidArgument):
            EventBus().add_event_listener(Events.ROUTER_START, "listener")

    def test_raising_listener_logged_others_run(self, caplog: pytest.LogCaptureFixture) -> None:
        bus = EventBus()
        calls: list[str] = []

        def broken() -> None:
            raise RuntimeError("listener failed")

        bus.add_event_listener(Events.ROUTER_START, broken)
        bus.add_event_listener(Events.ROUTER_START, lambda: calls.append("ok"))
        with caplog.at_level(logging.ERROR, logger="wayfinder.events"):
            bus.invoke(Events.ROUTER_START)
        assert calls == ["ok"]
        assert any(r.exc_info for r in caplog.records)

    def test_listener_added_during_dispatch_waits(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def first() -> None:
            calls.append("first")
            bus.add_event_listener(Events.ROUTER_START, lambda: calls.append("late"))

        bus.add_event_listener(Events.ROUTER_START, first)
        bus.invoke(Events.ROUTER_START)
        assert calls == ["first"]


class TestSubscribe:
    def test_callable_subscriber(self) -> None:
        router = _router()
        changes: list[RouteChange] = []
        unsubscribe = router.subscribe(changes.append)
        router.start()
        router.navigate("admin")
        assert [c.route.name for c in changes] == ["home", "admin"]
        assert changes[1].previous_route.name == "home"
        unsubscribe()
        router.navigate("home")
        assert len(changes) == 2

    def test_observer_subscriber(self) -> None:
        class Observer:
            def __init__(self) -> None:
                self.seen: list[str] = []

            def next(self, change: RouteChange) -> None:
                self.seen.append(change.route.name)

        router = _router()
        observer = Observer()
        subscription = router.subscribe(observer)
        assert isinstance(subscription, Subscription)
        router.start()
        subscription.unsubscribe()
        assert subscription.closed
        router.navigate("admin")
        assert observer.seen == ["home"]

    def test_invalid_subscriber(self) -> None:
        with pytest.raises(InvalidArgument):
            _router().subscribe(object())


class TestRouterEvents:
    def test_navigation_event_sequence(self) -> None:
        router = _router()
        events: list[str] = []
        for name in (Events.ROUTER_START, Events.TRANSITION_START, Events.TRANSITION_SUCCESS):
            router.add_event_listener(name, lambda *args, name=name: events.append(name))
        router.start()
        assert events == [Events.ROUTER_START, Events.TRANSITION_START, Events.TRANSITION_SUCCESS]

    def test_error_event_carries_states(self) -> None:
        router = _router()
        router.start()
        router.can_activate("admin", False)
        errors: list[Any] = []
        router.add_event_listener(Events.TRANSITION_ERROR, lambda *args: errors.append(args))
        router.navigate("admin")
        to_state, from_state, error = errors[0]
        assert to_state.name == "admin"
        assert from_state.name == "home"
        assert error.code == ErrorCodes.CANNOT_ACTIVATE

    def test_raising_listener_does_not_break_navigation(self) -> None:
        router = _router()

        def broken(*args: Any) -> None:
            raise ValueError("analytics down")

        router.add_event_listener(Events.TRANSITION_SUCCESS, broken)
        router.start()
        router.navigate("admin")
        assert router.get_state().name == "admin"

    def test_remove_event_listener(self) -> None:
        router = _router()
        calls: list[Any] = []

        def listener(*args: Any) -> None:
            calls.append(args)

        router.add_event_listener(Events.TRANSITION_START, listener)
        router.remove_event_listener(Events.TRANSITION_START, listener)
        router.start()
        assert calls == []
