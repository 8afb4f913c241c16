"""Effects — the unit of re-computation.

An effect wraps a function. Running it records every tracked read made by
the function; a later write to any of those reads notifies the effect. With
no scheduler a notified effect re-runs synchronously in the writer's call
stack. With a scheduler, the scheduler is called instead; Computed and watch
use that seam to redirect invalidation into their own logic.

Each run starts from a clean slate: dependencies of the previous run are
dropped, so an effect only ever subscribes to what it read last time.

An effect whose body writes something it also reads, with no scheduler in
between, re-triggers itself until Python raises RecursionError. Nothing
guards against that.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from refract._tracking import active_effect

if TYPE_CHECKING:
    from refract._anchor import Dep
    from refract.computed import Computed

T = TypeVar("T")


class ReactiveEffect(Generic[T]):
    """A tracked, re-runnable unit of computation."""

    __slots__ = (
        "fn",
        "scheduler",
        "active",
        "on_stop",
        "computed",
        "runs",
        "_deps",
        "__weakref__",
    )

    def __init__(
        self,
        fn: Callable[[], T],
        scheduler: Callable[[], object] | None = None,
        on_stop: Callable[[], object] | None = None,
    ) -> None:
        self.fn = fn
        self.scheduler = scheduler
        self.active = True
        self.on_stop = on_stop
        # Set by Computed for its internal effect.
        self.computed: Computed | None = None
        # Tracked runs so far.
        self.runs = 0
        self._deps: set[Dep] = set()

    def run(self) -> T:
        """Run the body under tracking and return its result.

        A stopped effect still runs its body, but untracked.
        """
        if not self.active:
            return self.fn()

        self._cleanup()
        self.runs += 1
        token = active_effect.set(self)
        try:
            return self.fn()
        finally:
            active_effect.reset(token)

    def stop(self) -> None:
        """Unsubscribe from everything. The effect will never be notified again."""
        if not self.active:
            return
        self._cleanup()
        self.active = False
        if self.on_stop is not None:
            self.on_stop()

    def _cleanup(self) -> None:
        for dep in self._deps:
            dep.discard(self)
        self._deps.clear()

    @property
    def dep_count(self) -> int:
        """Number of (target, key) pairs this effect is subscribed to."""
        return len(self._deps)

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        name = getattr(self.fn, "__name__", repr(self.fn))
        return f"ReactiveEffect({name}, {state})"


def effect(
    fn: Callable[[], T],
    *,
    scheduler: Callable[[], object] | None = None,
    lazy: bool = False,
    on_stop: Callable[[], object] | None = None,
) -> Callable[[], T]:
    """Run fn immediately, then re-run it whenever anything it read changes.

    Returns a runner: calling it re-runs the effect by hand, and
    ``runner.effect`` is the underlying ReactiveEffect.

    Usage:
        count = ref(0)
        log = []

        runner = effect(lambda: log.append(count.value))
        # log == [0] — ran immediately

        count.value = 1
        # log == [0, 1] — re-ran because count changed

        stop(runner)
        count.value = 2
        # log == [0, 1] — stopped
    """
    _effect = ReactiveEffect(fn, scheduler=scheduler, on_stop=on_stop)

    def runner() -> T:
        return _effect.run()

    runner.effect = _effect  # type: ignore[attr-defined]
    if not lazy:
        _effect.run()  # Initial run to establish dependencies
    return runner


def stop(runner: Callable[[], object]) -> None:
    """Stop the effect behind a runner returned by effect()."""
    runner.effect.stop()  # type: ignore[attr-defined]
