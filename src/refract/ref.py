"""Refs — a single reactive value.

A Ref is a cell with one tracked slot, `.value`. Use it for numbers,
strings and other values that can't be proxied, or to hold an object
whose identity you want to swap out wholesale. Object values are
wrapped by reactive() on assignment.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from refract._anchor import VALUE_KEY
from refract._tracking import track, trigger
from refract._utils import has_changed, is_ref
from refract.reactive import reactive, to_raw

T = TypeVar("T")


class Ref(Generic[T]):
    """A single reactive value with automatic dependency tracking."""

    __slots__ = ("_raw_value", "_value", "__weakref__")

    __is_ref__ = True

    def __init__(self, value: T) -> None:
        self._raw_value = to_raw(value)
        self._value = reactive(value)

    @property
    def value(self) -> T:
        """Read the value. Inside an effect, registers the dependency."""
        track(self, VALUE_KEY)
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        """Write a new value. Same-value writes notify nobody."""
        raw = to_raw(new_value)
        if has_changed(raw, self._raw_value):
            self._raw_value = raw
            self._value = reactive(new_value)
            trigger(self, VALUE_KEY)

    def __repr__(self) -> str:
        return f"Ref({self._raw_value!r})"


def ref(value: T) -> Ref[T]:
    """Create a Ref holding value. An existing ref is returned as is.

    Usage:
        count = ref(0)
        effect(lambda: print(count.value))  # prints 0
        count.value = 1                     # prints 1
        count.value = 1                     # same value, nothing printed
    """
    if is_ref(value):
        return value  # type: ignore[return-value]
    return Ref(value)


def unref(value):
    """The value of a ref (tracked), or value itself."""
    return value.value if is_ref(value) else value
