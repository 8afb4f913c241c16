"""Job queue — batches deferred work onto the next event loop iteration.

queue_job() collects callables (each at most once per flush) and schedules
a single flush on the asyncio event loop. The flush drains the queue in
FIFO order, including jobs queued while it runs. A job that raises is
logged and the flush moves on to the next one.

next_tick() returns a future that resolves once the pending flush (if any)
has finished, which makes it the way to wait for queued watchers to fire:

    count.value = 1
    count.value = 2
    await next_tick()   # post-flush watchers have now seen 2, once

All of this is single-threaded. Queue jobs from the loop's thread.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from refract._tracking import untracked
from refract.errors import NoEventLoopError

logger = logging.getLogger("refract.scheduler")

# Pending jobs, in enqueue order. A job already queued is not added again.
_queue: dict[Callable[[], object], None] = {}

# Resolved when the scheduled flush completes. None when no flush is pending.
_flush_future: asyncio.Future | None = None

# Loop used when queue_job/next_tick run outside a running loop.
_event_loop: asyncio.AbstractEventLoop | None = None


def set_event_loop(loop: asyncio.AbstractEventLoop | None) -> None:
    """Register the loop used when no event loop is running.

    Call once at startup if writes happen from synchronous code:
        refract.set_event_loop(loop)

    Pass None to clear it.
    """
    global _event_loop
    _event_loop = loop


def _get_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        if _event_loop is not None and not _event_loop.is_closed():
            return _event_loop
        raise NoEventLoopError(
            "no running event loop; call refract.set_event_loop() first"
        ) from None


def _drop_stale_flush() -> None:
    """Forget a flush scheduled on a loop that closed before running it."""
    global _flush_future
    if _flush_future is not None and _flush_future.get_loop().is_closed():
        _queue.clear()
        _flush_future = None


def queue_job(job: Callable[[], object]) -> None:
    """Queue job for the next flush. A job already pending is not added twice."""
    global _flush_future
    loop = _get_loop()
    _drop_stale_flush()
    if job not in _queue:
        _queue[job] = None
    if _flush_future is None:
        _flush_future = loop.create_future()
        loop.call_soon(_flush_jobs)
        logger.debug("flush scheduled")


def _flush_jobs() -> None:
    """Drain the queue. Jobs queued during the flush run in the same pass."""
    global _flush_future
    count = 0
    try:
        with untracked():
            while _queue:
                job = next(iter(_queue))
                del _queue[job]
                count += 1
                try:
                    job()
                except Exception:
                    logger.exception("Queued job %r failed", job)
    finally:
        future, _flush_future = _flush_future, None
        if future is not None and not future.done():
            future.set_result(None)
    logger.debug("flushed %d jobs", count)


def next_tick(fn: Callable[[], Any] | None = None) -> asyncio.Future:
    """Return a future resolved after the pending flush, or on the next iteration.

    If fn is given it is called at that point, and the future carries its
    result. A coroutine returned by fn is awaited first.
    """
    loop = _get_loop()
    result: asyncio.Future = loop.create_future()
    _drop_stale_flush()

    def _resolve(_done: object = None) -> None:
        if result.done():
            return
        if fn is None:
            result.set_result(None)
            return
        try:
            with untracked():
                value = fn()
        except Exception as exc:
            result.set_exception(exc)
            return
        if inspect.isawaitable(value):
            inner = asyncio.ensure_future(value, loop=loop)
            inner.add_done_callback(lambda done: _copy_outcome(done, result))
        else:
            result.set_result(value)

    if _flush_future is not None:
        _flush_future.add_done_callback(_resolve)
    else:
        loop.call_soon(_resolve)
    return result


def _copy_outcome(source: asyncio.Future, target: asyncio.Future) -> None:
    if target.done():
        return
    if source.cancelled():
        target.cancel()
    elif source.exception() is not None:
        target.set_exception(source.exception())
    else:
        target.set_result(source.result())


def get_queued_count() -> int:
    """Number of jobs waiting for the next flush. Useful for testing."""
    return len(_queue)
