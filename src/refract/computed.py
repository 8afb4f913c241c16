"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a getter. When read, it runs the getter under its own
effect, records which reactive values the getter read, and caches the
result. When any of those changes, the cache is marked dirty and the
computed's own readers are notified. The getter itself only re-runs on
the next read.

Computed values are lazy: a computed nobody reads never recomputes.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from refract._anchor import VALUE_KEY
from refract._tracking import track, trigger
from refract.effect import ReactiveEffect
from refract.errors import ReadonlyComputedError

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_getter", "_setter", "_value", "_dirty", "effect", "__weakref__")

    __is_ref__ = True

    def __init__(
        self,
        getter: Callable[[], T],
        setter: Callable[[T], None] | None = None,
    ) -> None:
        self._getter = getter
        self._setter = setter
        self._value = _UNSET
        self._dirty = True
        self.effect: ReactiveEffect[T] = ReactiveEffect(getter, scheduler=self._invalidate)
        self.effect.computed = self

    @property
    def value(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        track(self, VALUE_KEY)

        if not self.effect.active:
            return self._getter()
        if self._dirty:
            self._value = self.effect.run()
            self._dirty = False

        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if self._setter is None:
            raise ReadonlyComputedError(f"computed {self._name} has no setter")
        self._setter(new_value)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def _invalidate(self) -> None:
        """Called when a dependency changed.

        Mark dirty and notify our own readers. We don't recompute
        eagerly; that happens on next read.
        """
        if not self._dirty:
            self._dirty = True
            trigger(self, VALUE_KEY)

    def stop(self) -> None:
        """Disconnect from all dependencies. Later reads re-evaluate untracked."""
        self.effect.stop()
        self._dirty = True
        self._value = _UNSET

    @property
    def _name(self) -> str:
        return getattr(self._getter, "__name__", repr(self._getter))

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        return f"Computed({self._name}, {state})"


def computed(
    getter: Callable[[], T],
    setter: Callable[[T], None] | None = None,
) -> Computed[T]:
    """Decorator/factory to create a Computed from a getter.

    Usage:
        count = ref(0)

        @computed
        def doubled():
            return count.value * 2

        doubled.value  # 0
        count.value = 5
        doubled.value  # 10
    """
    return Computed(getter, setter)
