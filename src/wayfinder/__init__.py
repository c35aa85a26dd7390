"""Wayfinder: a framework-agnostic client-side router.

Matches URLs to named states, builds URLs back from states, and moves
between states through a cancellable pipeline of guards and middleware that
may answer synchronously or with awaitables.

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
    router.navigate("users.view", {"id": "42"})
    router.get_state().path  # "/users/42"

Awaiting a navigation::

    result = await router.navigate_async("users.view", {"id": "7"})
    if not result:
        print(result.error.code)
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ConfigurationError",
    "ErrorCodes",
    "Events",
    "InvalidArgument",
    "NavigationResult",
    "QueryParamsOptions",
    "Route",
    "RouteChange",
    "Router",
    "RouterError",
    "RouterOptions",
    "State",
    "StateMeta",
    "UNKNOWN_ROUTE",
    "WayfinderError",
    "ends_with_segment",
    "includes_segment",
    "starts_with_segment",
    "transition_path",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wayfinder`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from wayfinder.router import Router

        return Router

    if name in ("RouterOptions", "QueryParamsOptions"):
        from wayfinder import config as _config

        return getattr(_config, name)

    if name == "Route":
        from wayfinder.routing.route import Route

        return Route

    if name in ("State", "StateMeta"):
        from wayfinder import state as _state

        return getattr(_state, name)

    if name in ("ErrorCodes", "Events", "UNKNOWN_ROUTE"):
        from wayfinder import constants as _constants

        return getattr(_constants, name)

    if name in ("WayfinderError", "ConfigurationError", "InvalidArgument", "RouterError"):
        from wayfinder import errors as _errors

        return getattr(_errors, name)

    if name == "NavigationResult":
        from wayfinder.result import NavigationResult

        return NavigationResult

    if name == "RouteChange":
        from wayfinder.events import RouteChange

        return RouteChange

    if name == "transition_path":
        from wayfinder.transition.path import transition_path

        return transition_path

    if name in ("starts_with_segment", "ends_with_segment", "includes_segment"):
        from wayfinder import helpers as _helpers

        return getattr(_helpers, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
