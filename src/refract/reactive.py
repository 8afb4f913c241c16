"""Reactive proxies — plain data that tracks its readers.

reactive(obj) wraps a dict, list or plain instance in a proxy. Reading
through the proxy subscribes the running effect to the exact key that was
read; writing through it notifies the subscribers of that key. Nested
containers come back wrapped too, so `state["user"]["name"]` tracks both
levels.

The proxy owns no state: the raw object stays the single source of truth
and never contains proxies, and all subscriber bookkeeping lives in _anchor.
Proxies are cached per raw object for as long as they are alive, so two
reads of the same nested object yield the same wrapper.
"""

from __future__ import annotations

import types
import weakref
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Hashable, Iterator, TypeVar

from refract._anchor import ITERATE_KEY
from refract._tracking import track, trigger, trigger_all
from refract._utils import has_changed, is_proxy, is_wrappable

T = TypeVar("T")

_MISSING = object()

# id(raw) -> proxy. The proxy holds raw strongly, so the id stays valid.
_proxies: weakref.WeakValueDictionary[int, ReactiveProxy] = weakref.WeakValueDictionary()


class ReactiveProxy:
    """Base class for all proxies. Holds the raw target and nothing else."""

    __slots__ = ("_target", "__weakref__")

    __is_proxy__ = True

    def __init__(self, target: Any) -> None:
        object.__setattr__(self, "_target", target)


class ReactiveDict(ReactiveProxy, MutableMapping):
    """A dict proxy that tracks reads per key and notifies on mutation.

    Looking up a key subscribes to that key. Iteration, len and keys()
    subscribe to the dict's shape. values() and items() subscribe to both.
    """

    __slots__ = ()

    # --- Read operations (track) ---

    def __getitem__(self, key: Hashable) -> Any:
        track(self._target, key)
        return reactive(self._target[key])

    def __contains__(self, key: object) -> bool:
        track(self._target, key)
        return key in self._target

    def __len__(self) -> int:
        track(self._target, ITERATE_KEY)
        return len(self._target)

    def __iter__(self) -> Iterator[Hashable]:
        track(self._target, ITERATE_KEY)
        return iter(list(self._target))

    def __eq__(self, other: object) -> bool:
        track(self._target, ITERATE_KEY)
        return self._target == to_raw(other)

    __hash__ = None  # type: ignore[assignment]

    # --- Write operations (notify) ---

    def __setitem__(self, key: Hashable, value: Any) -> None:
        target = self._target
        raw = to_raw(value)
        old = target.get(key, _MISSING)
        target[key] = raw
        if old is _MISSING:
            trigger(target, key, ITERATE_KEY)
        elif has_changed(raw, old):
            trigger(target, key)

    def __delitem__(self, key: Hashable) -> None:
        del self._target[key]
        trigger(self._target, key, ITERATE_KEY)

    def pop(self, key: Hashable, *default: Any) -> Any:
        if key not in self._target:
            if default:
                return default[0]
            raise KeyError(key)
        value = self._target.pop(key)
        trigger(self._target, key, ITERATE_KEY)
        return reactive(value)

    def popitem(self) -> tuple[Hashable, Any]:
        key, value = self._target.popitem()
        trigger(self._target, key, ITERATE_KEY)
        return key, reactive(value)

    def setdefault(self, key: Hashable, default: Any = None) -> Any:
        if key not in self._target:
            self[key] = default
        return reactive(self._target[key])

    def clear(self) -> None:
        if not self._target:
            return
        keys = list(self._target)
        self._target.clear()
        trigger(self._target, *keys, ITERATE_KEY)

    def __repr__(self) -> str:
        return f"ReactiveDict({self._target!r})"


class ReactiveList(ReactiveProxy, MutableSequence):
    """A list proxy that tracks reads and notifies on mutation.

    Indexing subscribes to that index. Iteration, len, slicing and searches
    subscribe to the list's shape. Item assignment notifies the index and
    shape readers; anything that moves items notifies every reader.
    """

    __slots__ = ()

    def _index(self, index: int) -> int:
        return index + len(self._target) if index < 0 else index

    # --- Read operations (track) ---

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            track(self._target, ITERATE_KEY)
            return [reactive(item) for item in self._target[index]]
        track(self._target, self._index(index))
        return reactive(self._target[index])

    def __len__(self) -> int:
        track(self._target, ITERATE_KEY)
        return len(self._target)

    def __iter__(self) -> Iterator[Any]:
        track(self._target, ITERATE_KEY)
        return iter([reactive(item) for item in self._target])

    def __contains__(self, item: object) -> bool:
        track(self._target, ITERATE_KEY)
        return to_raw(item) in self._target

    def __bool__(self) -> bool:
        track(self._target, ITERATE_KEY)
        return bool(self._target)

    def index(self, item: Any, *args: int) -> int:
        track(self._target, ITERATE_KEY)
        return self._target.index(to_raw(item), *args)

    def count(self, item: Any) -> int:
        track(self._target, ITERATE_KEY)
        return self._target.count(to_raw(item))

    def __eq__(self, other: object) -> bool:
        track(self._target, ITERATE_KEY)
        return self._target == to_raw(other)

    __hash__ = None  # type: ignore[assignment]

    # --- Write operations (notify) ---

    def __setitem__(self, index: int | slice, value: Any) -> None:
        target = self._target
        if isinstance(index, slice):
            target[index] = [to_raw(item) for item in value]
            trigger_all(target)
            return
        raw = to_raw(value)
        old = target[index]
        target[index] = raw
        if has_changed(raw, old):
            trigger(target, self._index(index), ITERATE_KEY)

    def __delitem__(self, index: int | slice) -> None:
        del self._target[index]
        trigger_all(self._target)

    def insert(self, index: int, item: Any) -> None:
        self._target.insert(index, to_raw(item))
        trigger_all(self._target)

    def append(self, item: Any) -> None:
        self._target.append(to_raw(item))
        trigger_all(self._target)

    def extend(self, items) -> None:
        self._target.extend([to_raw(item) for item in items])
        trigger_all(self._target)

    def pop(self, index: int = -1) -> Any:
        result = self._target.pop(index)
        trigger_all(self._target)
        return reactive(result)

    def remove(self, item: Any) -> None:
        self._target.remove(to_raw(item))
        trigger_all(self._target)

    def clear(self) -> None:
        self._target.clear()
        trigger_all(self._target)

    def reverse(self) -> None:
        self._target.reverse()
        trigger_all(self._target)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._target.sort(key=key, reverse=reverse)
        trigger_all(self._target)

    def __repr__(self) -> str:
        return f"ReactiveList({self._target!r})"


class ReactiveObject(ReactiveProxy):
    """An attribute proxy for plain class instances.

    Attribute reads track the attribute name. Methods and properties run
    with the proxy as `self`, so the reads and writes they make are tracked
    too.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        # Protocol lookups (copy, pickle, __dict__) never reach the target.
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        target = self._target
        descriptor = getattr(type(target), name, None)
        if isinstance(descriptor, property) and descriptor.fget is not None:
            return reactive(descriptor.fget(self))
        track(target, name)
        value = getattr(target, name)
        if isinstance(value, types.MethodType) and value.__self__ is target:
            return types.MethodType(value.__func__, self)
        return reactive(value)

    def __setattr__(self, name: str, value: Any) -> None:
        target = self._target
        descriptor = getattr(type(target), name, None)
        if isinstance(descriptor, property) and descriptor.fset is not None:
            descriptor.fset(self, value)
            return
        raw = to_raw(value)
        old = getattr(target, name, _MISSING)
        setattr(target, name, raw)
        if old is _MISSING:
            trigger(target, name, ITERATE_KEY)
        elif has_changed(raw, old):
            trigger(target, name)

    def __delattr__(self, name: str) -> None:
        delattr(self._target, name)
        trigger(self._target, name, ITERATE_KEY)

    def __dir__(self) -> list[str]:
        return dir(self._target)

    def __repr__(self) -> str:
        return f"ReactiveObject({self._target!r})"


def attribute_names(proxy: ReactiveObject) -> list[str]:
    """Instance attribute names of a proxied object, tracked as its shape."""
    target = proxy._target
    track(target, ITERATE_KEY)
    return list(vars(target))


def reactive(obj: T) -> T:
    """Return the reactive proxy for obj.

    Values that can't be proxied (numbers, strings, tuples, functions, refs,
    existing proxies) are returned unchanged.
    """
    if isinstance(obj, ReactiveProxy) or not is_wrappable(obj):
        return obj
    proxy = _proxies.get(id(obj))
    if proxy is not None and proxy._target is obj:
        return proxy  # type: ignore[return-value]
    if isinstance(obj, dict):
        proxy = ReactiveDict(obj)
    elif isinstance(obj, list):
        proxy = ReactiveList(obj)
    else:
        proxy = ReactiveObject(obj)
    _proxies[id(obj)] = proxy
    return proxy  # type: ignore[return-value]


def is_reactive(obj: object) -> bool:
    return is_proxy(obj)


def to_raw(obj: T) -> T:
    """The raw object behind a proxy, or obj itself."""
    if isinstance(obj, ReactiveProxy):
        return obj._target
    return obj
