"""Shared fixtures for refract tests."""

from __future__ import annotations

import pytest

from refract import _tracking, scheduler


@pytest.fixture(autouse=True)
def _reset_engine_state():
    """Keep module-level queues from leaking between tests."""
    yield
    scheduler._queue.clear()
    scheduler._flush_future = None
    scheduler._event_loop = None
    _tracking._pending.clear()
    _tracking._batch_depth = 0
