"""Dependency tracking engine — the heart of refract.

Uses a contextvar to hold the effect currently running. Any tracked read
made while it is set subscribes that effect to the (target, key) pair that
was read; any tracked write notifies the subscribers of that pair.

Batching: mutations inside an @action or `with transaction()` accumulate
notifications and flush them once at the end, ensuring glitch-free updates.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Hashable, Iterator

from refract import _anchor

if TYPE_CHECKING:
    from refract.effect import ReactiveEffect

# The effect currently running. Reads register it as a subscriber.
active_effect: contextvars.ContextVar[ReactiveEffect | None] = contextvars.ContextVar(
    "active_effect", default=None
)

# Batch depth counter. When > 0, effect re-runs are deferred.
_batch_depth: int = 0

# Effects notified during a batch, awaiting flush. Ordered, deduplicated.
_pending: dict[ReactiveEffect, None] = {}


def track(target: object, key: Hashable) -> None:
    """Subscribe the active effect to (target, key). No-op outside an effect."""
    effect = active_effect.get()
    if effect is None or not effect.active:
        return
    dep = _anchor.get_dep(target, key, create=True)
    if effect not in dep.subscribers:
        dep.subscribers.add(effect)
        effect._deps.add(dep)


def trigger(target: object, *keys: Hashable) -> None:
    """Notify every effect subscribed to any of the given keys of target."""
    effects: dict[ReactiveEffect, None] = {}
    for key in keys:
        dep = _anchor.get_dep(target, key)
        if dep is not None:
            effects.update(dict.fromkeys(dep.subscribers))
    _notify_all(effects)


def trigger_all(target: object) -> None:
    """Notify every effect subscribed to any key of target."""
    effects: dict[ReactiveEffect, None] = {}
    for dep in _anchor.deps_of(target):
        effects.update(dict.fromkeys(dep.subscribers))
    _notify_all(effects)


def _notify_all(effects: dict[ReactiveEffect, None]) -> None:
    # Snapshot taken by the caller: effects re-subscribe while running.
    # Computeds are invalidated first, so no plain effect reads one that is
    # still marked clean. An invalidated computed re-runs its own readers;
    # a reader that already re-ran after the write is not run again.
    runs = {effect: effect.runs for effect in effects if effect.computed is None}
    for effect in effects:
        if effect.computed is not None and effect.active:
            schedule(effect)
    for effect, count in runs.items():
        # An earlier effect may have stopped this one.
        if effect.active and effect.runs == count:
            schedule(effect)


def schedule(effect: ReactiveEffect) -> None:
    """Notify one effect.

    Computed invalidation always happens immediately so reads stay fresh.
    Other effects are deferred while a batch is open. Outside a batch the
    scheduler runs if there is one, otherwise the effect re-runs inline.
    """
    if effect.computed is not None:
        effect.scheduler()
    elif _batch_depth > 0:
        _pending[effect] = None
    elif effect.scheduler is not None:
        effect.scheduler()
    else:
        effect.run()


@contextmanager
def untracked() -> Iterator[None]:
    """Run the body with no active effect, so its reads subscribe nothing."""
    token = active_effect.set(None)
    try:
        yield
    finally:
        active_effect.reset(token)


@contextmanager
def batch() -> Iterator[None]:
    """Park plain effects until the outermost batch exits, then run each once.

    Being a contextmanager, the result also decorates functions:
    each call of the decorated function opens a fresh batch.
    """
    global _batch_depth
    _batch_depth += 1
    try:
        yield
    finally:
        _batch_depth -= 1
        if not _batch_depth:
            _flush_pending()


def _flush_pending() -> None:
    """Run every parked effect, including ones parked while flushing.

    A failing effect does not stop the others. The first error is raised
    once the pending set is empty.
    """
    first_error: Exception | None = None
    while _pending:
        effect = next(iter(_pending))
        del _pending[effect]
        if not effect.active:
            continue
        try:
            schedule(effect)
        except Exception as exc:
            if first_error is None:
                first_error = exc
    if first_error is not None:
        raise first_error


def get_pending_count() -> int:
    """Number of effects waiting to run. Useful for testing."""
    return len(_pending)
