"""Tests for Computed values."""

import pytest

from refract import Computed, ReadonlyComputedError, computed, effect, ref


class TestComputed:
    def test_lazy_eval(self):
        call_count = 0
        o = ref(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return o.value * 2

        c = Computed(fn)
        assert call_count == 0  # not yet evaluated
        assert c.value == 10
        assert call_count == 1

    def test_caches_until_dirty(self):
        call_count = 0
        o = ref(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return o.value * 2

        c = Computed(fn)
        c.value
        c.value
        assert call_count == 1  # cached, no re-eval

    def test_recomputes_on_read_not_on_write(self):
        call_count = 0
        o = ref(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return o.value * 2

        c = Computed(fn)
        assert c.value == 10
        o.value = 6
        assert call_count == 1
        assert c.dirty
        assert c.value == 12
        assert call_count == 2

    def test_unread_computed_never_recomputes(self):
        call_count = 0
        o = ref(0)

        def fn():
            nonlocal call_count
            call_count += 1
            return o.value

        c = Computed(fn)
        c.value
        for i in range(1, 5):
            o.value = i
        assert call_count == 1

    def test_dependency_tracking(self):
        """Computed tracks dependencies dynamically."""
        flag = ref(True)
        a = ref(1)
        b = ref(2)

        c = Computed(lambda: a.value if flag.value else b.value)
        assert c.value == 1

        flag.value = False
        assert c.value == 2  # now depends on b, not a

    def test_chained_computed(self):
        o = ref(3)
        doubled = Computed(lambda: o.value * 2)
        quadrupled = Computed(lambda: doubled.value * 2)
        assert quadrupled.value == 12
        o.value = 5
        assert quadrupled.value == 20

    def test_stop(self):
        o = ref(5)
        c = Computed(lambda: o.value * 2)
        c.value
        c.stop()
        assert not c.effect.active
        o.value = 10
        # a stopped computed re-evaluates on every read
        assert c.value == 20

    def test_propagates_to_effects(self):
        """Computed invalidation propagates to downstream effects."""
        o = ref(5)
        c = Computed(lambda: o.value * 2)
        log = []
        effect(lambda: log.append(c.value))
        assert log == [10]
        o.value = 10
        assert log == [10, 20]
        o.value = 11
        assert log == [10, 20, 22]

    def test_effect_reading_source_and_computed_sees_fresh_pair(self):
        """An effect reading both a ref and a computed of it never sees a stale mix."""

        def run_once():
            a = ref(1)
            doubled = computed(lambda: a.value * 2)
            log = []
            effect(lambda: log.append((a.value, doubled.value)))
            a.value = 2
            return log

        # Subscriber order follows hashing, so repeat to cover both orders.
        for _ in range(30):
            assert run_once() == [(1, 2), (2, 4)]

    def test_readonly(self):
        c = Computed(lambda: 1)
        with pytest.raises(ReadonlyComputedError):
            c.value = 2
        with pytest.raises(AttributeError):
            c.value = 2

    def test_setter(self):
        o = ref(1)
        c = Computed(lambda: o.value * 2, lambda v: setattr(o, "value", v // 2))
        c.value = 10
        assert o.value == 5
        assert c.value == 10

    def test_getter_error_leaves_dirty(self):
        o = ref(0)
        c = Computed(lambda: 1 / o.value)
        with pytest.raises(ZeroDivisionError):
            c.value
        assert c.dirty
        o.value = 2
        assert c.value == 0.5

    def test_repr(self):
        def doubled():
            return 2

        c = Computed(doubled)
        assert repr(c) == "Computed(doubled, dirty)"
        c.value
        assert repr(c) == "Computed(doubled, cached=2)"


class TestComputedDecorator:
    def test_decorator_factory(self):
        o = ref(7)

        @computed
        def doubled():
            return o.value * 2

        assert doubled.value == 14
        o.value = 3
        assert doubled.value == 6
