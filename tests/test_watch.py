"""Tests for watch() — sync and post-flush watchers."""

import pytest

from refract import WatchHandle, computed, next_tick, reactive, ref, watch


class Settings:
    def __init__(self):
        self.theme = "dark"
        self.fonts = ["mono"]


class TestWatch:
    def test_not_called_on_construction(self):
        count = ref(0)
        calls = []
        watch(lambda: count.value, lambda new, old: calls.append((new, old)))
        assert calls == []

    def test_called_with_new_and_old(self):
        count = ref(0)
        calls = []
        watch(lambda: count.value, lambda new, old: calls.append((new, old)))
        count.value = 1
        assert calls == [(1, 0)]
        count.value = 5
        assert calls == [(1, 0), (5, 1)]

    def test_immediate(self):
        count = ref(0)
        calls = []
        watch(lambda: count.value, lambda new, old: calls.append((new, old)), immediate=True)
        assert calls == [(0, None)]
        count.value = 1
        assert calls == [(0, None), (1, 0)]

    def test_ref_source(self):
        count = ref(0)
        calls = []
        watch(count, lambda new, old: calls.append((new, old)))
        count.value = 3
        assert calls == [(3, 0)]

    def test_computed_source(self):
        count = ref(1)
        doubled = computed(lambda: count.value * 2)
        calls = []
        watch(doubled, lambda new, old: calls.append((new, old)))
        count.value = 2
        assert calls == [(4, 2)]

    def test_unchanged_result_skips_callback(self):
        count = ref(1)
        calls = []
        watch(lambda: count.value % 2, lambda new, old: calls.append((new, old)))
        count.value = 3  # still odd
        assert calls == []
        count.value = 4
        assert calls == [(0, 1)]

    def test_deep_reactive_source(self):
        state = reactive({"user": {"name": "Ada"}, "tags": ["a"]})
        calls = []
        watch(state, lambda new, old: calls.append(new))
        state["user"]["name"] = "Grace"
        assert len(calls) == 1
        assert calls[0] is state
        state["tags"].append("b")
        assert len(calls) == 2

    def test_deep_watch_handles_cycles(self):
        raw = {"name": "loop"}
        raw["self"] = raw
        state = reactive(raw)
        calls = []
        watch(state, lambda new, old: calls.append(new["name"]))
        state["name"] = "x"
        assert calls == ["x"]

    def test_deep_object_source(self):
        settings = reactive(Settings())
        calls = []
        watch(settings, lambda new, old: calls.append(new.theme))
        settings.fonts.append("serif")
        settings.theme = "light"
        assert calls == ["dark", "light"]

    def test_getter_is_shallow_without_deep(self):
        state = reactive({"user": {"name": "Ada"}})
        calls = []
        watch(lambda: state["user"], lambda new, old: calls.append(new))
        state["user"]["name"] = "Grace"
        assert calls == []

    def test_deep_option(self):
        state = reactive({"user": {"name": "Ada"}})
        calls = []
        watch(lambda: state["user"], lambda new, old: calls.append(new["name"]), deep=True)
        state["user"]["name"] = "Grace"
        assert calls == ["Grace"]

    def test_multiple_sources(self):
        a = ref(1)
        b = ref(2)
        calls = []
        watch([a, lambda: b.value], lambda new, old: calls.append((new, old)))
        b.value = 3
        assert calls == [([1, 3], [1, 2])]

    def test_callback_reads_are_not_tracked(self):
        count = ref(0)
        other = ref(0)
        calls = []
        watch(lambda: count.value, lambda new, old: calls.append(other.value))
        other.value = 1
        assert calls == []
        count.value = 1
        assert calls == [1]

    def test_callback_error_propagates_to_writer(self):
        count = ref(0)

        def fail(new, old):
            raise RuntimeError("callback failed")

        watch(count, fail)
        with pytest.raises(RuntimeError, match="callback failed"):
            count.value = 1

    def test_invalid_flush(self):
        with pytest.raises(ValueError):
            watch(ref(0), lambda new, old: None, flush="pre")


class TestWatchHandle:
    def test_returns_handle(self):
        handle = watch(ref(0), lambda new, old: None)
        assert isinstance(handle, WatchHandle)
        assert not handle.stopped

    def test_stop(self):
        count = ref(0)
        calls = []
        handle = watch(count, lambda new, old: calls.append(new))
        handle.stop()
        count.value = 1
        assert calls == []
        assert handle.stopped

    def test_dispose_alias(self):
        handle = watch(ref(0), lambda new, old: None)
        handle.dispose()
        assert handle.stopped


class TestPostFlush:
    @pytest.mark.asyncio
    async def test_collapses_synchronous_writes(self):
        count = ref(0)
        calls = []
        watch(count, lambda new, old: calls.append((new, old)), flush="post")
        count.value = 1
        count.value = 2
        assert calls == []
        await next_tick()
        assert calls == [(2, 0)]

    @pytest.mark.asyncio
    async def test_one_callback_per_flush(self):
        count = ref(0)
        calls = []
        watch(count, lambda new, old: calls.append((new, old)), flush="post")
        count.value = 1
        await next_tick()
        count.value = 2
        await next_tick()
        assert calls == [(1, 0), (2, 1)]

    @pytest.mark.asyncio
    async def test_stop_drops_queued_callback(self):
        count = ref(0)
        calls = []
        handle = watch(count, lambda new, old: calls.append(new), flush="post")
        count.value = 1
        handle.stop()
        await next_tick()
        assert calls == []

    @pytest.mark.asyncio
    async def test_immediate_runs_at_construction(self):
        count = ref(0)
        calls = []
        watch(count, lambda new, old: calls.append((new, old)), immediate=True, flush="post")
        assert calls == [(0, None)]
