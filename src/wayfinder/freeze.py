"""Immutable parameter graphs.

``deep_freeze`` turns nested dicts and lists into ``FrozenParams`` and
``FrozenList`` views. The traversal is keyed by object identity, so a value
reachable through several paths (or through itself) is frozen exactly once
and the shared or cyclic shape survives::

    params = {"id": "1"}
    params["self"] = params
    frozen = deep_freeze(params)
    frozen["self"] is frozen  # True

``thaw`` is the inverse, producing private mutable copies with the same
identity guarantees. ``deep_equal`` compares two such graphs structurally
and terminates on cycles.
"""

import reprlib
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

_SCALARS = (str, int, float, bool, type(None))


class FrozenParams(Mapping[str, Any]):
    """Read-only mapping of route params.

    Compares equal to any mapping with the same items. Item assignment,
    deletion, and attribute assignment raise.
    """

    __slots__ = ("_data",)

    _data: dict[str, Any]

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, "_data", dict(data or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return deep_equal(self, other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @reprlib.recursive_repr()
    def __repr__(self) -> str:
        return f"FrozenParams({self._data!r})"


class FrozenList(Sequence[Any]):
    """Read-only list of param values. Compares equal to lists and tuples."""

    __slots__ = ("_items",)

    _items: list[Any]

    def __init__(self, items: Sequence[Any] = ()) -> None:
        object.__setattr__(self, "_items", list(items))

    def __setattr__(self, name: str, value: Any) -> None:
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return FrozenList(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (list, tuple, FrozenList)):
            return deep_equal(self, other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @reprlib.recursive_repr()
    def __repr__(self) -> str:
        return f"FrozenList({self._items!r})"


def is_frozen(value: Any) -> bool:
    """True for scalars and already frozen containers."""
    return isinstance(value, (*_SCALARS, FrozenParams, FrozenList))


def deep_freeze(value: Any) -> Any:
    """Return an immutable version of *value*, preserving shared structure.

    Already frozen containers are returned as-is (and shared, not copied).
    """
    return _freeze(value, {})


def _freeze(value: Any, seen: dict[int, Any]) -> Any:
    if isinstance(value, (FrozenParams, FrozenList)):
        return value
    if isinstance(value, Mapping):
        frozen = seen.get(id(value))
        if frozen is None:
            frozen = FrozenParams()
            # Register before descending so cycles resolve to this object
            seen[id(value)] = frozen
            frozen._data.update({key: _freeze(item, seen) for key, item in value.items()})
        return frozen
    if isinstance(value, (list, tuple)):
        frozen = seen.get(id(value))
        if frozen is None:
            frozen = FrozenList()
            seen[id(value)] = frozen
            frozen._items.extend(_freeze(item, seen) for item in value)
        return frozen
    return value


def thaw(value: Any) -> Any:
    """Return a mutable deep copy of *value* (dicts and lists)."""
    return _thaw(value, {})


def _thaw(value: Any, seen: dict[int, Any]) -> Any:
    if isinstance(value, Mapping):
        copy = seen.get(id(value))
        if copy is None:
            copy = {}
            seen[id(value)] = copy
            copy.update({key: _thaw(item, seen) for key, item in value.items()})
        return copy
    if isinstance(value, (list, tuple, FrozenList)):
        copy = seen.get(id(value))
        if copy is None:
            copy = []
            seen[id(value)] = copy
            copy.extend(_thaw(item, seen) for item in value)
        return copy
    return value


def is_params(value: Any) -> bool:
    """Structural check: a mapping of str keys to allowed param values.

    Allowed values are str, int, float, bool, None, nested mappings with str
    keys, and lists or tuples of allowed values. Cycles are allowed.
    """
    return isinstance(value, Mapping) and _is_param_value(value, set())


def _is_param_value(value: Any, seen: set[int]) -> bool:
    if isinstance(value, _SCALARS):
        return True
    if not isinstance(value, (Mapping, list, tuple, FrozenList)):
        return False
    if id(value) in seen:
        return True
    seen.add(id(value))
    if isinstance(value, Mapping):
        return all(
            isinstance(key, str) and _is_param_value(item, seen) for key, item in value.items()
        )
    return all(_is_param_value(item, seen) for item in value)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality for param graphs.

    Mappings match on key sets and values, lists and tuples element-wise.
    A pair of containers already under comparison is assumed equal, so two
    cyclic graphs of the same shape compare equal instead of recursing
    forever.
    """
    return _equal(a, b, set())


def _equal(a: Any, b: Any, seen: set[tuple[int, int]]) -> bool:
    if a is b:
        return True
    if isinstance(a, Mapping) or isinstance(b, Mapping):
        if not (isinstance(a, Mapping) and isinstance(b, Mapping)):
            return False
        if (id(a), id(b)) in seen:
            return True
        seen.add((id(a), id(b)))
        if len(a) != len(b) or any(key not in b for key in a):
            return False
        return all(_equal(a[key], b[key], seen) for key in a)
    sequences = (list, tuple, FrozenList)
    if isinstance(a, sequences) or isinstance(b, sequences):
        if not (isinstance(a, sequences) and isinstance(b, sequences)):
            return False
        if (id(a), id(b)) in seen:
            return True
        seen.add((id(a), id(b)))
        if len(a) != len(b):
            return False
        return all(_equal(left, right, seen) for left, right in zip(a, b, strict=True))
    return a == b
