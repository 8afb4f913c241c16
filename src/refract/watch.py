"""watch() — call a function with (new, old) whenever a reactive source changes.

The source is read inside an effect. When anything it read changes, the
watcher re-reads the source and hands the new and previous values to the
callback. With flush="post" the re-read is queued instead, so a burst of
synchronous writes produces a single callback on the next loop iteration.

Watching a reactive object (or any value that is not a function) is a
deep watch: every reachable key, item and attribute is read once per run,
so a write anywhere inside the tree re-fires the watcher.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from refract._tracking import untracked
from refract._utils import has_changed, is_ref
from refract.effect import ReactiveEffect
from refract.reactive import (
    ReactiveDict,
    ReactiveList,
    ReactiveObject,
    attribute_names,
    is_reactive,
    to_raw,
)
from refract.scheduler import queue_job

logger = logging.getLogger("refract.watch")

FLUSH_MODES = ("sync", "post")


class WatchHandle:
    """Disposable handle for a watcher."""

    __slots__ = ("_effect",)

    def __init__(self, effect: ReactiveEffect) -> None:
        self._effect = effect

    @property
    def stopped(self) -> bool:
        return not self._effect.active

    def stop(self) -> None:
        """Stop watching. Pending queued callbacks are dropped."""
        self._effect.stop()

    dispose = stop

    def __repr__(self) -> str:
        state = "stopped" if self.stopped else "active"
        return f"WatchHandle({state})"


def traverse(value: Any, seen: set[int] | None = None) -> Any:
    """Read everything reachable from value so the running effect tracks it all.

    Returns value unchanged; only the reads matter.
    """
    if seen is None:
        seen = set()
    if is_ref(value):
        traverse(value.value, seen)
        return value
    if not is_reactive(value) or id(to_raw(value)) in seen:
        return value
    seen.add(id(to_raw(value)))
    if isinstance(value, ReactiveDict):
        for key in value:
            traverse(value[key], seen)
    elif isinstance(value, ReactiveList):
        for item in value:
            traverse(item, seen)
    elif isinstance(value, ReactiveObject):
        for name in attribute_names(value):
            traverse(getattr(value, name), seen)
    return value


def _source_getter(source: Any, deep: bool) -> tuple[Callable[[], Any], bool]:
    """Build the getter for one source. Returns (getter, forces_deep)."""
    if is_ref(source):
        if deep:
            return (lambda: traverse(source.value)), True
        return (lambda: source.value), False
    if callable(source) and not is_reactive(source):
        if deep:
            return (lambda: traverse(source())), True
        return source, False
    return (lambda: traverse(source)), True


def watch(
    source: Any,
    callback: Callable[[Any, Any], object],
    *,
    immediate: bool = False,
    deep: bool = False,
    flush: str = "sync",
) -> WatchHandle:
    """Watch a source; call callback(new, old) when it changes.

    source may be a function, a ref or computed, a reactive object, or a
    list/tuple of those (the values are then lists, one entry per source).

    Usage:
        count = ref(0)
        handle = watch(lambda: count.value, lambda new, old: print(old, "->", new))

        count.value = 1   # prints "0 -> 1"
        handle.stop()
        count.value = 2   # nothing
    """
    if flush not in FLUSH_MODES:
        raise ValueError(f"flush must be one of {FLUSH_MODES}, got {flush!r}")

    if isinstance(source, (list, tuple)):
        parts = [_source_getter(item, deep) for item in source]
        getters = [getter for getter, _ in parts]
        force = deep or any(forces for _, forces in parts)
        multi = True

        def getter() -> list[Any]:
            return [get() for get in getters]
    else:
        getter, force = _source_getter(source, deep)
        multi = False

    def changed(new: Any, old: Any) -> bool:
        if force:
            return True
        if multi:
            return old is None or any(has_changed(n, o) for n, o in zip(new, old))
        return has_changed(new, old)

    old_value: Any = None

    def job(first: bool = False) -> None:
        nonlocal old_value
        if not runner.active:
            return
        new_value = runner.run()
        if first or changed(new_value, old_value):
            with untracked():
                callback(new_value, old_value)
            old_value = new_value

    if flush == "post":

        def scheduler() -> None:
            queue_job(job)
    else:
        scheduler = job

    runner: ReactiveEffect = ReactiveEffect(getter, scheduler=scheduler)
    logger.debug("watch created: %r (flush=%s, deep=%s)", source, flush, force)

    if immediate:
        job(first=True)
    else:
        old_value = runner.run()
    return WatchHandle(runner)
