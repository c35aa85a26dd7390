"""Router: the public navigation API.

Ties together the route tree, the state factory, the lifecycle registry, the
transition engine and the event bus.

Basic usage::

    from wayfinder import Route, Router, RouterOptions

    router = Router(
        [
            Route("home", "/"),
            Route("users", "/users", children=(Route("view", "/:id"),)),
        ],
        RouterOptions(default_route="home"),
    )
    router.start()
    router.navigate("users.view", {"id": "42"}, lambda err, state: ...)

Navigation failures never raise: they reach the ``done(error, state)``
callback and the ``transition_error`` event as ``RouterError`` values.
Malformed arguments raise ``InvalidArgument`` at the call.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

import anyio

from wayfinder._internal.invoke import invoke_safely
from wayfinder.config import QueryParamsOptions, RouterOptions
from wayfinder.constants import UNKNOWN_ROUTE, ErrorCodes, Events
from wayfinder.errors import InvalidArgument, RouterError, WayfinderError
from wayfinder.events import EventBus, Listener, Subscription, Unsubscribe
from wayfinder.freeze import thaw
from wayfinder.lifecycle import GuardFactory, LifecycleRegistry
from wayfinder.plugins import MiddlewareFactory, MiddlewareRegistry, PluginFactory, PluginRegistry
from wayfinder.result import NavigationResult
from wayfinder.routing.route import Route, as_routes
from wayfinder.routing.tree import RouteTree
from wayfinder.state import RouteConfig, State, StateFactory, freeze_state, is_state
from wayfinder.transition.engine import Transition

logger = logging.getLogger("wayfinder.router")

DoneFn: TypeAlias = Callable[[RouterError | None, State | None], Any]
CancelFn: TypeAlias = Callable[[], None]


def _no_op() -> None:
    return None


def _navigation_arguments(
    args: tuple[Any, ...],
) -> tuple[Mapping[str, Any], Mapping[str, Any], DoneFn | None]:
    """Split ``(params?, options?, done?)``; ``done`` is recognised by being callable."""
    if len(args) > 3:
        msg = f"navigate() takes at most 4 arguments ({len(args) + 1} given)"
        raise InvalidArgument(msg)
    rest = list(args)
    done = rest.pop() if rest and callable(rest[-1]) else None
    if len(rest) > 2:
        msg = "navigate() expects (name, params, options, done): the 4th argument must be callable"
        raise InvalidArgument(msg)
    params = rest[0] if len(rest) > 0 else None
    options = rest[1] if len(rest) > 1 else None
    if params is not None and not isinstance(params, Mapping):
        msg = f"Invalid params {params!r}: expected a mapping"
        raise InvalidArgument(msg)
    if options is not None and not isinstance(options, Mapping):
        msg = f"Invalid navigation options {options!r}: expected a mapping"
        raise InvalidArgument(msg)
    return params or {}, options or {}, done


def _redirect_target(redirect: Any) -> tuple[str, Mapping[str, Any]] | None:
    if isinstance(redirect, State):
        return redirect.name, redirect.params
    if isinstance(redirect, Mapping) and isinstance(redirect.get("name"), str):
        params = redirect.get("params") or {}
        if isinstance(params, Mapping):
            return redirect["name"], params
    return None


class Router:
    """A client-side router over one route tree.

    ``options`` may be a ``RouterOptions`` or left out for the defaults.
    ``dependencies`` are handed to every guard, middleware and plugin
    factory as their second argument.
    """

    def __init__(
        self,
        routes: Route | Mapping[str, Any] | Iterable[Route | Mapping[str, Any]] = (),
        options: RouterOptions | None = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> None:
        if options is not None and not isinstance(options, RouterOptions):
            msg = f"options must be a RouterOptions instance, got {type(options).__name__}"
            raise InvalidArgument(msg)
        self._options = options or RouterOptions()
        self._dependencies: dict[str, Any] = dict(dependencies or {})
        self._definitions: list[Route] = []
        self._config = RouteConfig()
        self._tree = RouteTree()
        self._states = StateFactory(self._tree, self._config, self.build_path)
        self._bus = EventBus()
        self._lifecycle = LifecycleRegistry(self.execute_factory)
        self._plugins = PluginRegistry(self._bus, self.execute_factory)
        self._middleware = MiddlewareRegistry(self.execute_factory)

        self._started = False
        self._state: State | None = None
        self._previous_state: State | None = None
        self._transition: Transition | None = None

        self.add(routes)

    def __repr__(self) -> str:
        current = self._state.name if self._state is not None else None
        return f"Router(routes={len(self._tree.names)}, started={self._started}, state={current!r})"

    # -- Routes --

    def add(self, routes: Route | Mapping[str, Any] | Iterable[Route | Mapping[str, Any]]) -> None:
        """Add route definitions (a ``Route``, a mapping, or an iterable of them)."""
        definitions = as_routes(routes)
        for route in definitions:
            self._tree.add(route, self._on_route_added)
            self._definitions.append(route)

    def add_node(self, name: str, path: str, can_activate: GuardFactory | bool | None = None) -> None:
        """Add one route by full dotted name, e.g. ``add_node("users.edit", "/:id/edit")``."""
        route = Route(name=name, path=path, can_activate=can_activate)
        self._tree.add(route, self._on_route_added)
        self._definitions.append(route)

    def _on_route_added(self, full_name: str, route: Route) -> None:
        if route.can_activate is not None:
            self._lifecycle.can_activate(full_name, route.can_activate)
        if route.forward_to is not None:
            self.forward(full_name, route.forward_to)
        if route.encode_params is not None:
            self._config.encoders[full_name] = route.encode_params
        if route.decode_params is not None:
            self._config.decoders[full_name] = route.decode_params
        if route.default_params is not None:
            self._config.default_params[full_name] = route.default_params

    def forward(self, from_name: str, to_name: str) -> None:
        """Send navigations to *from_name* to *to_name* instead."""
        for name in (from_name, to_name):
            if not isinstance(name, str) or not name:
                msg = f"Invalid route name {name!r}: expected a non-empty string"
                raise InvalidArgument(msg)
        self._config.forward_map[from_name] = to_name

    def has_route(self, name: str) -> bool:
        return self._tree.has_route(name)

    # -- Paths --

    def build_path(self, name: str, params: Mapping[str, Any] | None = None) -> str:
        """Build the URL for route *name*.

        Route default params are merged under *params* and the route's
        ``encode_params`` is applied to a private copy. The not-found state's
        name returns ``params["path"]``.
        """
        if name == UNKNOWN_ROUTE:
            path = params.get("path") if params else None
            return path if isinstance(path, str) else ""

        defaults = self._config.default_params.get(name)
        merged: Mapping[str, Any] = {**defaults, **(params or {})} if defaults else (params or {})
        encoder = self._config.encoders.get(name)
        if encoder is not None:
            merged = encoder(thaw(merged))
            if not isinstance(merged, Mapping):
                msg = f"encode_params of route {name!r} must return a mapping, got {type(merged).__name__}"
                raise InvalidArgument(msg)
        return self._tree.build_path(name, merged, self._options)

    def match_path(self, path: str, source: str | None = None) -> State | None:
        """Match *path* to a frozen state, or ``None`` if no route matches."""
        if not isinstance(path, str):
            msg = f"Invalid path {path!r}: expected a string"
            raise InvalidArgument(msg)
        match = self._tree.match_path(path, self._options)
        if match is None:
            return None

        params: Mapping[str, Any] = match.params
        decoder = self._config.decoders.get(match.name)
        if decoder is not None:
            params = decoder(params)
        name, params = self._states.forward_state(match.name, params)
        meta = match.meta
        if name != match.name:
            forwarded = self._tree.build_state(name, params)
            if forwarded is None:
                return None
            meta = forwarded.meta
        built = self.build_path(name, params) if self._options.rewrite_path_on_match else path
        return self._states.make_state(name, params, built, {"params": meta, "source": source})

    def build_state(self, name: str, params: Mapping[str, Any] | None = None) -> State | None:
        """Resolve *name* (following forwards) to an unnavigated state, or ``None``."""
        match = self._states.build_state(name, params or {})
        if match is None:
            return None
        return self._states.make_state(match.name, match.params, None, {"params": match.meta})

    def make_state(self, *args: Any, **kwargs: Any) -> State:
        return self._states.make_state(*args, **kwargs)

    def make_not_found_state(self, path: str, options: Mapping[str, Any] | None = None) -> State:
        return self._states.make_not_found_state(path, options)

    def are_states_equal(
        self,
        state1: State | None,
        state2: State | None,
        ignore_query_params: bool = True,
    ) -> bool:
        return self._states.are_states_equal(state1, state2, ignore_query_params)

    def are_states_descendants(self, parent: State, child: State) -> bool:
        return self._states.are_states_descendants(parent, child)

    # -- State --

    def get_state(self) -> State | None:
        return self._state

    def get_previous_state(self) -> State | None:
        return self._previous_state

    def set_state(self, state: State | None) -> None:
        """Replace the current state without a transition."""
        if state is not None and not is_state(state):
            msg = f"Invalid state {state!r}: expected a State with a name, params and path"
            raise InvalidArgument(msg)
        self._state = freeze_state(state) if state is not None else None

    def _commit(self, state: State) -> None:
        self._previous_state = self._state
        self._state = freeze_state(state)

    def is_active(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        strict_equality: bool = False,
        ignore_query_params: bool = True,
    ) -> bool:
        """True if *name* with *params* is the active route or one of its ancestors."""
        active = self._state
        if active is None:
            return False
        candidate = self._states.make_state(name, params or {}, "")
        if strict_equality or active.name == name:
            return self._states.are_states_equal(candidate, active, ignore_query_params)
        return self._states.are_states_descendants(candidate, active)

    # -- Options and dependencies --

    def get_options(self) -> RouterOptions:
        return self._options

    def set_option(self, name: str, value: Any) -> None:
        """Replace one option. ``ConfigurationError`` if the value is invalid."""
        if name == "query_params" and isinstance(value, Mapping):
            value = QueryParamsOptions(**value)
        if name not in {f.name for f in dataclasses.fields(RouterOptions)}:
            msg = f"Unknown router option {name!r}"
            raise InvalidArgument(msg)
        self._options = dataclasses.replace(self._options, **{name: value})

    def set_dependency(self, name: str, value: Any) -> None:
        self._dependencies[name] = value

    def set_dependencies(self, dependencies: Mapping[str, Any]) -> None:
        for name, value in dependencies.items():
            self.set_dependency(name, value)

    def get_dependencies(self) -> dict[str, Any]:
        return dict(self._dependencies)

    def execute_factory(self, factory: Callable[..., Any]) -> Any:
        """Call ``factory(router, dependencies)``."""
        return factory(self, self._dependencies)

    # -- Lifecycle guards, middleware, plugins --

    def can_activate(self, name: str, handler: GuardFactory | bool) -> None:
        self._lifecycle.can_activate(name, handler)

    def can_deactivate(self, name: str, handler: GuardFactory | bool) -> None:
        self._lifecycle.can_deactivate(name, handler)

    def clear_can_activate(self, name: str) -> None:
        self._lifecycle.clear_can_activate(name)

    def clear_can_deactivate(self, name: str) -> None:
        self._lifecycle.clear_can_deactivate(name)

    def get_lifecycle_factories(self) -> tuple[dict[str, GuardFactory], dict[str, GuardFactory]]:
        return self._lifecycle.get_lifecycle_factories()

    def get_lifecycle_functions(self) -> tuple[dict[str, Any], dict[str, Any]]:
        return self._lifecycle.get_lifecycle_functions()

    def use_middleware(self, *factories: MiddlewareFactory) -> Unsubscribe:
        return self._middleware.use(*factories)

    def clear_middleware(self) -> None:
        self._middleware.clear()

    def get_middleware_factories(self) -> list[MiddlewareFactory]:
        return self._middleware.factories

    def use_plugin(self, *factories: PluginFactory) -> Unsubscribe:
        return self._plugins.use(*factories)

    def get_plugins(self) -> list[PluginFactory]:
        return self._plugins.factories

    # -- Events --

    def add_event_listener(self, event: str, listener: Listener) -> Unsubscribe:
        return self._bus.add_event_listener(event, listener)

    def remove_event_listener(self, event: str, listener: Listener) -> None:
        self._bus.remove_event_listener(event, listener)

    def subscribe(self, subscriber: Any) -> Unsubscribe | Subscription:
        """Call *subscriber* with a ``RouteChange`` after each successful transition."""
        return self._bus.subscribe(subscriber)

    # -- Starting and stopping --

    def is_started(self) -> bool:
        return self._started

    def start(self, *args: Any) -> None:
        """Start the router: ``start()``, ``start(path_or_state)``, with an optional ``done``.

        Without a start value the default route is used. A ``State`` is
        committed as-is; a path is matched, falling back to the default route,
        then to the not-found state when ``allow_not_found`` is set.
        """
        if len(args) > 2:
            msg = f"start() takes at most 2 arguments ({len(args)} given)"
            raise InvalidArgument(msg)
        rest = list(args)
        done = rest.pop() if rest and callable(rest[-1]) else None
        if len(rest) > 1:
            msg = "start() expects (path_or_state, done): the 2nd argument must be callable"
            raise InvalidArgument(msg)
        start_value = rest[0] if rest else None
        if start_value is not None and not isinstance(start_value, (str, State)):
            msg = f"Invalid start value {start_value!r}: expected a path or a State"
            raise InvalidArgument(msg)
        if isinstance(start_value, State) and not is_state(start_value):
            msg = f"Invalid start state {start_value!r}"
            raise InvalidArgument(msg)
        self._start(start_value, self._safe_done(done))

    def _start(self, start_value: str | State | None, done: DoneFn) -> None:
        options = self._options

        if self._started:
            done(RouterError(ErrorCodes.ROUTER_ALREADY_STARTED), None)
            return

        if start_value is None and not options.default_route:
            err = RouterError(
                ErrorCodes.NO_START_PATH_OR_STATE,
                message="No start path or state given and no default route configured",
            )
            self._bus.invoke(Events.TRANSITION_ERROR, None, None, err)
            done(err, None)
            return

        self._started = True
        logger.debug("Router started")
        self._bus.invoke(Events.ROUTER_START)

        def succeed(state: State) -> None:
            self._bus.invoke(Events.TRANSITION_SUCCESS, state, None, {"replace": True})
            done(None, state)

        if isinstance(start_value, State):
            self._commit(start_value)
            succeed(self._state)
            return

        def navigate_to_default() -> None:
            self.navigate_to_default({"replace": True}, done)

        def on_transition_done(err: RouterError | None, state: State | None) -> None:
            if err is None:
                succeed(state)
            elif err.code == ErrorCodes.TRANSITION_CANCELLED:
                done(err, None)
            elif err.redirect is not None:
                self._redirect(err.redirect, {"replace": True, "reload": True}, done, 0)
            elif options.default_route:
                navigate_to_default()
            else:
                done(err, None)

        start_path = start_value
        start_state = self.match_path(start_path) if start_path is not None else None
        if start_state is not None:
            self.transition_to_state(start_state, self._state, {"replace": True}, on_transition_done)
        elif options.default_route:
            navigate_to_default()
        elif options.allow_not_found and start_path is not None:
            not_found = self._states.make_not_found_state(start_path, {"replace": True})
            self.transition_to_state(not_found, self._state, {"replace": True}, on_transition_done)
        else:
            err = RouterError(
                ErrorCodes.ROUTE_NOT_FOUND,
                message=f"No route matches start path {start_path!r}",
                path=start_path,
            )
            self._bus.invoke(Events.TRANSITION_ERROR, None, None, err)
            done(err, None)

    def stop(self) -> None:
        """Cancel any running transition, clear the state, and emit ``stop``."""
        if not self._started:
            return
        self.cancel()
        self._state = None
        self._previous_state = None
        self._started = False
        logger.debug("Router stopped")
        self._bus.invoke(Events.ROUTER_STOP)

    def teardown(self) -> None:
        """Stop the router and detach every plugin."""
        self.stop()
        self._plugins.remove_all()
        self._bus.invoke(Events.TEARDOWN)

    # -- Navigation --

    def navigate(self, name: str, *args: Any) -> CancelFn:
        """Navigate to route *name*.

        Accepts ``navigate(name, params?, options?, done?)``; ``done`` may be
        the 2nd, 3rd or 4th argument. Returns a function cancelling the
        transition started by this call.
        """
        if not isinstance(name, str) or not name:
            msg = f"Invalid route name {name!r}: expected a non-empty string"
            raise InvalidArgument(msg)
        params, options, done = _navigation_arguments(args)
        return self._navigate(name, params, options, self._safe_done(done), 0)

    def _navigate(
        self,
        name: str,
        params: Mapping[str, Any],
        options: Mapping[str, Any],
        done: DoneFn,
        redirects: int,
    ) -> CancelFn:
        if not self._started:
            done(RouterError(ErrorCodes.ROUTER_NOT_STARTED), None)
            return _no_op

        route = self._states.build_state(name, params)
        if route is None:
            err = RouterError(ErrorCodes.ROUTE_NOT_FOUND, message=f"Route {name!r} is not defined")
            done(err, None)
            self._bus.invoke(Events.TRANSITION_ERROR, None, self._state, err)
            return _no_op

        to_state = self._states.make_state(
            route.name,
            route.params,
            self.build_path(route.name, route.params),
            {
                "params": route.meta,
                "options": options,
                "redirected": bool(options.get("redirected")),
            },
        )
        from_state = self._state

        same_states = from_state is not None and self._states.are_states_equal(
            from_state, to_state, self._options.ignore_query_params
        )
        if same_states and not options.get("reload") and not options.get("force"):
            err = RouterError(ErrorCodes.SAME_STATES)
            done(err, None)
            self._bus.invoke(Events.TRANSITION_ERROR, to_state, from_state, err)
            return _no_op

        if options.get("skip_transition"):
            self.cancel()
            self._commit(to_state)
            self._bus.invoke(Events.TRANSITION_SUCCESS, to_state, from_state, options)
            done(None, to_state)
            return _no_op

        def on_transition_done(err: RouterError | None, state: State | None) -> None:
            if err is not None:
                if err.redirect is not None and err.code != ErrorCodes.TRANSITION_CANCELLED:
                    self._redirect(err.redirect, options, done, redirects)
                else:
                    done(err, None)
                return
            self._bus.invoke(Events.TRANSITION_SUCCESS, state, from_state, options)
            done(None, state)

        return self.transition_to_state(to_state, from_state, options, on_transition_done)

    def _redirect(self, redirect: Any, options: Mapping[str, Any], done: DoneFn, redirects: int) -> None:
        target = _redirect_target(redirect)
        if target is None:
            err = RouterError(ErrorCodes.TRANSITION_ERR, message=f"Invalid redirect target {redirect!r}")
            self._bus.invoke(Events.TRANSITION_ERROR, None, self._state, err)
            done(err, None)
            return
        if redirects >= self._options.max_redirects:
            logger.warning(
                "Redirect to %r dropped after %d redirects", target[0], redirects
            )
            err = RouterError(
                ErrorCodes.TRANSITION_ERR,
                message=f"Too many redirects (max_redirects={self._options.max_redirects})",
            )
            self._bus.invoke(Events.TRANSITION_ERROR, None, self._state, err)
            done(err, None)
            return
        name, params = target
        try:
            self._navigate(
                name,
                params,
                {**options, "force": True, "redirected": True},
                done,
                redirects + 1,
            )
        except WayfinderError as exc:
            logger.warning("Redirect to %r failed: %s", name, exc)
            err = RouterError(ErrorCodes.TRANSITION_ERR, message=f"Redirect to {name!r} failed", error=exc)
            self._bus.invoke(Events.TRANSITION_ERROR, None, self._state, err)
            done(err, None)

    def navigate_to_default(self, *args: Any) -> CancelFn:
        """Navigate to the configured default route: ``(options?, done?)``."""
        if len(args) > 2:
            msg = f"navigate_to_default() takes at most 2 arguments ({len(args)} given)"
            raise InvalidArgument(msg)
        rest = list(args)
        done = rest.pop() if rest and callable(rest[-1]) else None
        options = rest[0] if rest else None
        if not self._options.default_route:
            return _no_op
        return self.navigate(
            self._options.default_route,
            self._options.default_params,
            options or {},
            self._safe_done(done),
        )

    def transition_to_state(
        self,
        to_state: State,
        from_state: State | None = None,
        options: Mapping[str, Any] | None = None,
        done: DoneFn | None = None,
    ) -> CancelFn:
        """Run the guard pipeline from *from_state* to *to_state* and commit on success.

        Any running transition is cancelled first.
        """
        done = done or (lambda err, state: None)
        self.cancel()
        self._bus.invoke(Events.TRANSITION_START, to_state, from_state)

        def callback(err: RouterError | None, state: State | None) -> None:
            if self._transition is transition:
                self._transition = None
            if err is not None:
                if err.code == ErrorCodes.TRANSITION_CANCELLED:
                    self._bus.invoke(Events.TRANSITION_CANCEL, to_state, from_state)
                else:
                    self._bus.invoke(Events.TRANSITION_ERROR, to_state, from_state, err)
                done(err, None)
                return
            self._commit(state or to_state)
            done(None, self._state)

        transition = Transition(
            to_state,
            from_state,
            lifecycle=self._lifecycle,
            middleware=self._middleware.functions,
            options=options,
            auto_clean_up=self._options.auto_clean_up,
            callback=callback,
        )
        self._transition = transition
        transition.run()
        return transition.cancel

    def cancel(self) -> None:
        """Cancel the running transition, if any."""
        transition = self._transition
        if transition is not None:
            self._transition = None
            transition.cancel()

    def _safe_done(self, done: DoneFn | None) -> DoneFn:
        def call(err: RouterError | None, state: State | None) -> None:
            invoke_safely(logger, "done callback", done, err, state)

        return call

    # -- Awaitable wrappers --

    async def navigate_async(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> NavigationResult:
        """Navigate and wait for the outcome.

        Cancelling the awaiting task cancels the transition.
        """
        finished = anyio.Event()
        results: list[NavigationResult] = []

        def done(err: RouterError | None, state: State | None) -> None:
            if not results:
                results.append(NavigationResult(state=state, error=err))
                finished.set()

        cancel = self.navigate(name, params or {}, options or {}, done)
        return await self._wait(finished, results, cancel)

    async def start_async(self, path_or_state: str | State | None = None) -> NavigationResult:
        """Start the router and wait for the initial transition."""
        finished = anyio.Event()
        results: list[NavigationResult] = []

        def done(err: RouterError | None, state: State | None) -> None:
            if not results:
                results.append(NavigationResult(state=state, error=err))
                finished.set()

        if path_or_state is None:
            self.start(done)
        else:
            self.start(path_or_state, done)
        return await self._wait(finished, results, self.cancel)

    async def _wait(
        self,
        finished: anyio.Event,
        results: list[NavigationResult],
        cancel: CancelFn,
    ) -> NavigationResult:
        try:
            await finished.wait()
        except anyio.get_cancelled_exc_class():
            cancel()
            if not results:
                # A redirect replaced the transition this call started
                self.cancel()
            raise
        return results[0]

    # -- Cloning --

    def clone(self, dependencies: Mapping[str, Any] | None = None) -> Router:
        """Return an unstarted router with the same routes, guards, middleware and plugins."""
        clone = Router(
            list(self._definitions),
            self._options,
            {**self._dependencies, **(dependencies or {})},
        )
        clone._config.forward_map.update(self._config.forward_map)
        clone._config.encoders.update(self._config.encoders)
        clone._config.decoders.update(self._config.decoders)
        clone._config.default_params.update(self._config.default_params)
        self._lifecycle.copy_into(clone._lifecycle)
        clone.use_middleware(*self._middleware.factories)
        clone.use_plugin(*self._plugins.factories)
        return clone
