"""Tests for wayfinder.transition.path: segment diff between states."""

from wayfinder.state import State, StateMeta
from wayfinder.transition.path import name_to_ids, transition_path


def _state(name: str, params: dict | None = None, meta_params: dict | None = None, **options: object) -> State:
    meta = StateMeta(id=1, params=meta_params or {}, options=options)
    return State(name, params or {}, "", meta)


class TestNameToIds:
    def test_cumulative(self) -> None:
        assert name_to_ids("a.b.c") == ["a", "a.b", "a.b.c"]

    def test_single(self) -> None:
        assert name_to_ids("home") == ["home"]


class TestTransitionPath:
    def test_no_from_state(self) -> None:
        path = transition_path(_state("users.view"))
        assert path.intersection == ""
        assert path.to_deactivate == []
        assert path.to_activate == ["users", "users.view"]

    def test_sibling(self) -> None:
        meta = {"users": {}, "users.view": {}, "users.list": {}}
        path = transition_path(_state("users.view", meta_params=meta), _state("users.list", meta_params=meta))
        assert path.intersection == "users"
        assert path.to_deactivate == ["users.list"]
        assert path.to_activate == ["users.view"]

    def test_deactivate_inner_to_outer(self) -> None:
        meta = {"a": {}, "a.b": {}, "a.b.c": {}, "x": {}}
        path = transition_path(_state("x", meta_params=meta), _state("a.b.c", meta_params=meta))
        assert path.intersection == ""
        assert path.to_deactivate == ["a.b.c", "a.b", "a"]
        assert path.to_activate == ["x"]

    def test_changed_segment_params_split_prefix(self) -> None:
        meta = {"users": {}, "users.view": {"id": "url"}}
        path = transition_path(
            _state("users.view", {"id": "2"}, meta),
            _state("users.view", {"id": "1"}, meta),
        )
        assert path.intersection == "users"
        assert path.to_deactivate == ["users.view"]
        assert path.to_activate == ["users.view"]

    def test_unchanged_params_share_everything(self) -> None:
        meta = {"users": {}, "users.view": {"id": "url"}}
        path = transition_path(
            _state("users.view", {"id": "1", "tab": "a"}, meta),
            _state("users.view", {"id": "1", "tab": "b"}, meta),
        )
        assert path.intersection == "users.view"
        assert path.to_deactivate == []
        assert path.to_activate == []

    def test_reload_activates_everything(self) -> None:
        meta = {"users": {}, "users.view": {}}
        path = transition_path(
            _state("users.view", meta_params=meta, reload=True),
            _state("users.view", meta_params=meta),
        )
        assert path.to_deactivate == ["users.view", "users"]
        assert path.to_activate == ["users", "users.view"]

    def test_states_without_meta_params_fully_replaced(self) -> None:
        path = transition_path(State("users.view"), State("users.list"))
        assert path.to_deactivate == ["users.list", "users"]
        assert path.to_activate == ["users", "users.view"]
