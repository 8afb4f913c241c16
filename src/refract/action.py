"""Batched writes — collapse a burst of mutations into one re-run per effect.

Inside an @action or `with transaction()` block, effects notified by a write
are parked instead of re-running. When the outermost block exits, each
parked effect runs once and sees the final state, never an intermediate one.
If some of them raise, the rest still run and the first error surfaces at
the end of the block.

Computeds are still invalidated immediately, so reading a computed inside
the block returns a fresh value.
"""

from __future__ import annotations

from typing import Callable, ParamSpec, TypeVar

from refract._tracking import batch

P = ParamSpec("P")
R = TypeVar("R")

# with transaction(): ...
transaction = batch


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: every call of fn runs inside its own transaction.

    Usage:
        first = ref("Ada")
        last = ref("Byron")

        @action
        def rename(new_first, new_last):
            first.value = new_first
            last.value = new_last
            # an effect reading both runs once, after rename() returns
    """
    return transaction()(fn)
