"""Data anchor — the dependency store that holds all subscriber bookkeeping.

Tracked objects own no reactivity state. Everything lives here, keyed by
object identity: target -> {key -> Dep}. A Dep is the set of effects that
read one (target, key) pair.

Targets that support weak references are held weakly and forgotten when
collected. Builtins that don't (dict, list) are pinned only while something
subscribes to them. Empty Deps and empty property maps are pruned.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Hashable

if TYPE_CHECKING:
    from refract.effect import ReactiveEffect


class _Sentinel:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return f"<{self._name}>"


# Shape of a container: len, iteration, membership of new keys.
ITERATE_KEY = _Sentinel("iterate")
# The .value slot of refs and computeds.
VALUE_KEY = _Sentinel("value")

# id(target) -> (weakref-or-target, {key -> Dep})
_targets: dict[int, tuple[object, dict[Hashable, Dep]]] = {}


class Dep:
    """Subscriber set for one (target, key) pair."""

    __slots__ = ("key", "subscribers", "_target_id", "_property_map")

    def __init__(self, target_id: int, property_map: dict, key: Hashable) -> None:
        self.key = key
        self.subscribers: set[ReactiveEffect] = set()
        self._target_id = target_id
        self._property_map = property_map

    def discard(self, effect: ReactiveEffect) -> None:
        """Drop a subscriber. Prunes this Dep (and its map) once empty."""
        self.subscribers.discard(effect)
        if self.subscribers or self._property_map.get(self.key) is not self:
            return
        del self._property_map[self.key]
        if not self._property_map:
            entry = _targets.get(self._target_id)
            if entry is not None and entry[1] is self._property_map:
                del _targets[self._target_id]

    def __repr__(self) -> str:
        return f"Dep({self.key!r}, {len(self.subscribers)} subscribers)"


def _forget(target_id: int, property_map: dict) -> None:
    entry = _targets.get(target_id)
    if entry is not None and entry[1] is property_map:
        del _targets[target_id]


def _property_map(target: object, create: bool) -> dict[Hashable, Dep] | None:
    target_id = id(target)
    entry = _targets.get(target_id)
    if entry is not None:
        return entry[1]
    if not create:
        return None
    property_map: dict[Hashable, Dep] = {}
    try:
        anchor = weakref.ref(target, lambda _ref: _forget(target_id, property_map))
    except TypeError:
        # dict/list can't be weakly referenced; pin while subscribed.
        anchor = target
    _targets[target_id] = (anchor, property_map)
    return property_map


def get_dep(target: object, key: Hashable, create: bool = False) -> Dep | None:
    """Look up the Dep for (target, key), optionally creating it."""
    property_map = _property_map(target, create)
    if property_map is None:
        return None
    dep = property_map.get(key)
    if dep is None and create:
        dep = property_map[key] = Dep(id(target), property_map, key)
    return dep


def deps_of(target: object) -> list[Dep]:
    """Every Dep currently recorded for target."""
    property_map = _property_map(target, create=False)
    return list(property_map.values()) if property_map else []


def tracked_count() -> int:
    """Number of targets with live subscriptions. Useful for testing."""
    return len(_targets)
