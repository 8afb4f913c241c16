"""refract error hierarchy.

All refract-specific errors inherit from ReactivityError for easy catching.
Errors raised by effect bodies, schedulers and watch callbacks are never
wrapped; they reach the writer as they were raised.
"""


class ReactivityError(Exception):
    """Base error for all refract operations."""


class ReadonlyComputedError(ReactivityError, AttributeError):
    """Assignment to a computed that has no setter."""


class NoEventLoopError(ReactivityError, RuntimeError):
    """A job was queued with no running or registered event loop."""
