"""refract: fine-grained reactivity for Python."""

from importlib.metadata import version as _version

__version__ = _version("refract")

from refract._tracking import get_pending_count, untracked
from refract.reactive import ReactiveDict, ReactiveList, ReactiveObject, reactive, is_reactive, to_raw
from refract.ref import Ref, ref, unref
from refract._utils import is_ref
from refract.computed import Computed, computed
from refract.effect import ReactiveEffect, effect, stop
from refract.watch import watch, WatchHandle
from refract.scheduler import next_tick, queue_job, set_event_loop
from refract.action import action, transaction
from refract.errors import NoEventLoopError, ReactivityError, ReadonlyComputedError

__all__ = [
    "ReactiveDict",
    "ReactiveList",
    "ReactiveObject",
    "reactive",
    "is_reactive",
    "to_raw",
    "Ref",
    "ref",
    "unref",
    "is_ref",
    "Computed",
    "computed",
    "ReactiveEffect",
    "effect",
    "stop",
    "watch",
    "WatchHandle",
    "next_tick",
    "queue_job",
    "set_event_loop",
    "action",
    "transaction",
    "untracked",
    "get_pending_count",
    "ReactivityError",
    "ReadonlyComputedError",
    "NoEventLoopError",
]
