"""Tests for wayfinder.router: routes, paths, state, start/stop, cloning."""

from typing import Any

import pytest

from wayfinder.config import RouterOptions
from wayfinder.constants import UNKNOWN_ROUTE, ErrorCodes, Events
from wayfinder.errors import ConfigurationError, InvalidArgument, RouterError
from wayfinder.routing.route import Route
from wayfinder.router import Router
from wayfinder.state import State, is_state_frozen


def _routes() -> list[Route]:
    return [
        Route("home", "/"),
        Route(
            "users",
            "/users",
            children=(
                Route("view", "/:id?tab"),
                Route("list", "/list?page", default_params={"page": 1}),
            ),
        ),
        Route("admin", "/admin"),
        Route("legacy", "/old", forward_to="home"),
    ]


class _Done:
    def __init__(self) -> None:
        self.calls: list[tuple[RouterError | None, State | None]] = []

    def __call__(self, error: RouterError | None, state: State | None) -> None:
        self.calls.append((error, state))

    @property
    def error(self) -> RouterError | None:
        assert len(self.calls) == 1, self.calls
        return self.calls[0][0]

    @property
    def state(self) -> State | None:
        assert len(self.calls) == 1, self.calls
        return self.calls[0][1]


class TestRoutes:
    def test_has_route(self) -> None:
        router = Router(_routes())
        assert router.has_route("users.view")
        assert not router.has_route("users.edit")

    def test_mapping_definitions(self) -> None:
        router = Router([{"name": "home", "path": "/"}, {"name": "about", "path": "/about"}])
        assert router.build_path("about") == "/about"

    def test_add_node_below_parent(self) -> None:
        router = Router(_routes())
        router.add_node("users.edit", "/:id/edit")
        assert router.build_path("users.edit", {"id": "3"}) == "/users/3/edit"

    def test_duplicate_route(self) -> None:
        router = Router(_routes())
        with pytest.raises(ConfigurationError):
            router.add(Route("home", "/home"))

    def test_repr(self) -> None:
        assert repr(Router(_routes())).startswith("Router(routes=")


class TestPaths:
    def test_build_path(self) -> None:
        router = Router(_routes())
        assert router.build_path("users.view", {"id": "1", "tab": "info"}) == "/users/1?tab=info"

    def test_default_params_merged(self) -> None:
        router = Router(_routes())
        assert router.build_path("users.list") == "/users/list?page=1"
        assert router.build_path("users.list", {"page": 3}) == "/users/list?page=3"

    def test_not_found_path(self) -> None:
        router = Router(_routes())
        assert router.build_path(UNKNOWN_ROUTE, {"path": "/gone"}) == "/gone"
        assert router.build_path(UNKNOWN_ROUTE) == ""

    def test_match_path(self) -> None:
        router = Router(_routes())
        state = router.match_path("/users/1?tab=info")
        assert state is not None
        assert state.name == "users.view"
        assert state.params == {"id": "1", "tab": "info"}
        assert state.path == "/users/1?tab=info"
        assert state.meta is not None
        assert state.meta.params["users.view"] == {"id": "url", "tab": "query"}
        assert is_state_frozen(state)

    def test_match_path_source(self) -> None:
        state = Router(_routes()).match_path("/admin", source="popstate")
        assert state is not None
        assert state.meta.source == "popstate"

    def test_no_match(self) -> None:
        assert Router(_routes()).match_path("/nowhere") is None

    def test_match_path_invalid_argument(self) -> None:
        with pytest.raises(InvalidArgument):
            Router(_routes()).match_path(None)  # type: ignore[arg-type]

    def test_match_follows_forward(self) -> None:
        state = Router(_routes()).match_path("/old")
        assert state is not None
        assert state.name == "home"
        assert state.path == "/"
        assert "legacy" not in state.meta.params

    def test_rewrite_path_on_match_disabled(self) -> None:
        router = Router(_routes(), RouterOptions(rewrite_path_on_match=False))
        state = router.match_path("/old")
        assert state is not None
        assert state.path == "/old"

    def test_encoders_and_decoders(self) -> None:
        router = Router(
            [
                Route(
                    "user",
                    "/user/:id",
                    encode_params=lambda params: {"id": params["user_id"]},
                    decode_params=lambda params: {"user_id": params["id"]},
                )
            ]
        )
        assert router.build_path("user", {"user_id": "7"}) == "/user/7"
        state = router.match_path("/user/7")
        assert state is not None
        assert state.params == {"user_id": "7"}
        assert state.path == "/user/7"

    def test_encoder_gets_private_copy(self) -> None:
        seen: list[dict[str, Any]] = []

        def encode(params: dict[str, Any]) -> dict[str, Any]:
            seen.append(params)
            params["id"] = "changed"
            return params

        router = Router([Route("user", "/user/:id", encode_params=encode)])
        params = {"id": "1"}
        assert router.build_path("user", params) == "/user/changed"
        assert params == {"id": "1"}

    def test_encoder_must_return_mapping(self) -> None:
        router = Router([Route("user", "/user/:id", encode_params=lambda params: None)])
        with pytest.raises(InvalidArgument, match="must return a mapping"):
            router.build_path("user", {"id": "1"})

    def test_build_state(self) -> None:
        router = Router(_routes())
        state = router.build_state("legacy")
        assert state is not None
        assert state.name == "home"
        assert router.build_state("nope") is None

    def test_states_equal_and_descendants(self) -> None:
        router = Router(_routes())
        parent = router.make_state("users", {})
        child = router.make_state("users.view", {"id": "1"})
        assert router.are_states_descendants(parent, child)
        assert router.are_states_equal(child, router.make_state("users.view", {"id": "1"}))


class TestState:
    def test_set_state_freezes(self) -> None:
        router = Router(_routes())
        state = State("admin", {"tags": ["a"]}, "/admin")
        router.set_state(state)
        assert router.get_state() is state
        assert is_state_frozen(state)
        router.set_state(None)
        assert router.get_state() is None

    def test_set_state_invalid(self) -> None:
        with pytest.raises(InvalidArgument):
            Router(_routes()).set_state({"name": "admin"})  # type: ignore[arg-type]

    def test_committed_state_immutable(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        router.start()
        params = {"id": "1", "tags": ["x"]}
        router.navigate("users.view", params)
        params["tags"].append("y")
        state = router.get_state()
        assert state.params["tags"] == ["x"]
        with pytest.raises(TypeError):
            state.params["id"] = "2"  # type: ignore[index]


class TestStart:
    def test_start_with_path(self) -> None:
        router = Router(_routes())
        done = _Done()
        router.start("/users/5", done)
        assert done.error is None
        assert done.state.name == "users.view"
        assert router.is_started()

    def test_start_with_state(self) -> None:
        router = Router(_routes())
        success: list[Any] = []
        router.add_event_listener(Events.TRANSITION_SUCCESS, lambda *args: success.append(args))
        done = _Done()
        router.start(State("admin", {}, "/admin"), done)
        assert done.state.name == "admin"
        assert router.get_state() is done.state
        assert success[0][2] == {"replace": True}

    def test_start_without_value_uses_default_route(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        done = _Done()
        router.start(done)
        assert done.state.name == "home"
        assert done.state.meta.options == {"replace": True}

    def test_no_start_path_or_state(self) -> None:
        router = Router(_routes())
        errors: list[Any] = []
        router.add_event_listener(Events.TRANSITION_ERROR, lambda *args: errors.append(args))
        done = _Done()
        router.start(done)
        assert done.error.code == ErrorCodes.NO_START_PATH_OR_STATE
        assert errors[0][:2] == (None, None)
        assert not router.is_started()

    def test_already_started(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        router.start()
        done = _Done()
        router.start("/admin", done)
        assert done.error.code == ErrorCodes.ROUTER_ALREADY_STARTED
        assert router.get_state().name == "home"

    def test_unmatched_path_falls_back_to_default(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        done = _Done()
        router.start("/nowhere", done)
        assert done.state.name == "home"

    def test_unmatched_path_not_found_state(self) -> None:
        router = Router(_routes(), RouterOptions(allow_not_found=True))
        done = _Done()
        router.start("/nowhere", done)
        assert done.state.name == UNKNOWN_ROUTE
        assert done.state.params == {"path": "/nowhere"}

    def test_unmatched_path_without_fallback(self) -> None:
        router = Router(_routes())
        done = _Done()
        router.start("/nowhere", done)
        assert done.error.code == ErrorCodes.ROUTE_NOT_FOUND
        assert done.error.path == "/nowhere"
        assert router.get_state() is None

    def test_denied_start_falls_back_to_default(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        router.can_activate("admin", False)
        done = _Done()
        router.start("/admin", done)
        assert done.state.name == "home"

    def test_denied_start_without_default(self) -> None:
        router = Router(_routes())
        router.can_activate("admin", False)
        done = _Done()
        router.start("/admin", done)
        assert done.error.code == ErrorCodes.CANNOT_ACTIVATE

    def test_redirect_on_start(self) -> None:
        router = Router(_routes())
        router.can_activate("admin", lambda r, d: lambda t, f, done: done({"redirect": {"name": "home"}}))
        done = _Done()
        router.start("/admin", done)
        assert done.state.name == "home"
        assert done.state.meta.options["replace"] is True

    @pytest.mark.parametrize("args", [(42,), ("/", "/admin"), ("/", {}, lambda *a: None)])
    def test_invalid_arguments(self, args: tuple) -> None:
        with pytest.raises(InvalidArgument):
            Router(_routes()).start(*args)

    def test_raising_done_is_logged(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))

        def done(error: Any, state: Any) -> None:
            raise RuntimeError("callback failed")

        router.start(done)
        assert router.get_state().name == "home"


class TestStop:
    def test_stop_clears_state(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        stops: list[str] = []
        router.add_event_listener(Events.ROUTER_STOP, lambda: stops.append("stop"))
        router.start()
        router.navigate("admin")
        router.stop()
        assert router.get_state() is None
        assert router.get_previous_state() is None
        assert not router.is_started()
        assert stops == ["stop"]

    def test_stop_when_stopped_is_silent(self) -> None:
        router = Router(_routes())
        stops: list[str] = []
        router.add_event_listener(Events.ROUTER_STOP, lambda: stops.append("stop"))
        router.stop()
        assert stops == []

    def test_restart(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        router.start()
        router.stop()
        done = _Done()
        router.start("/admin", done)
        assert done.state.name == "admin"


class TestDependencies:
    def test_get_dependencies_is_a_copy(self) -> None:
        router = Router(_routes(), dependencies={"api": "v1"})
        deps = router.get_dependencies()
        deps["api"] = "v2"
        assert router.get_dependencies() == {"api": "v1"}

    def test_set_dependencies(self) -> None:
        router = Router(_routes())
        router.set_dependencies({"a": 1, "b": 2})
        router.set_dependency("a", 3)
        assert router.get_dependencies() == {"a": 3, "b": 2}

    def test_execute_factory(self) -> None:
        router = Router(_routes(), dependencies={"x": 1})
        assert router.execute_factory(lambda r, deps: (r, deps["x"])) == (router, 1)


class TestClone:
    def test_clone_is_independent_and_unstarted(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"), {"api": "v1"})
        router.start()
        router.can_activate("admin", False)
        router.use_middleware(lambda r, d: lambda t, f, done: True)

        clone = router.clone({"user": "ada"})
        assert not clone.is_started()
        assert clone.get_dependencies() == {"api": "v1", "user": "ada"}
        assert clone.has_route("users.view")
        assert len(clone.get_middleware_factories()) == 1
        assert set(clone.get_lifecycle_factories()[1]) == {"admin"}

        clone.start()
        done = _Done()
        clone.navigate("admin", done)
        assert done.error.code == ErrorCodes.CANNOT_ACTIVATE
        assert router.get_state().name == "home"

    def test_clone_keeps_forwards_and_defaults(self) -> None:
        clone = Router(_routes()).clone()
        assert clone.build_path("users.list") == "/users/list?page=1"
        state = clone.match_path("/old")
        assert state is not None
        assert state.name == "home"

    def test_clone_reapplies_plugins(self) -> None:
        router = Router(_routes(), RouterOptions(default_route="home"))
        starts: list[Router] = []

        def plugin(router: Router, deps: Any) -> dict[str, Any]:
            return {"on_start": lambda: starts.append(router)}

        router.use_plugin(plugin)
        clone = router.clone()
        clone.start()
        assert starts == [clone]
