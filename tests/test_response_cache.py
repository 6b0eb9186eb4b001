from __future__ import annotations

from civil_registry.infrastructure.cache.response_cache import ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Loader:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return {"version": self.calls}


def _cache(clock, scheduled=None, **kwargs):
    runner = scheduled.append if scheduled is not None else (lambda fn: fn())
    return ResponseCache(ttl_seconds=10, clock=clock, runner=runner, **kwargs)


def test_key_is_namespaced_and_order_independent():
    a = ResponseCache.key("stats:citizen", citizen_id="c1", page=2)
    b = ResponseCache.key("stats:citizen", page=2, citizen_id="c1")

    assert a == b
    assert a.startswith("stats:citizen:")
    assert a != ResponseCache.key("stats:citizen", citizen_id="c2", page=2)


def test_fresh_entry_is_served_from_memory():
    clock, loader = FakeClock(), Loader()
    cache = _cache(clock)

    cache.get_or_compute("k", loader)
    clock.now += 9
    value = cache.get_or_compute("k", loader)

    assert value == {"version": 1}
    assert loader.calls == 1


def test_stale_entry_is_served_while_one_refresh_is_scheduled():
    clock, loader, scheduled = FakeClock(), Loader(), []
    cache = _cache(clock, scheduled)
    cache.get_or_compute("k", loader)
    clock.now += 15

    first = cache.get_or_compute("k", loader)
    second = cache.get_or_compute("k", loader)

    assert first == second == {"version": 1}
    assert len(scheduled) == 1
    scheduled[0]()
    assert cache.get_or_compute("k", loader) == {"version": 2}


def test_entry_past_twice_the_ttl_is_recomputed_inline():
    clock, loader, scheduled = FakeClock(), Loader(), []
    cache = _cache(clock, scheduled)
    cache.get_or_compute("k", loader)
    clock.now += 25

    assert cache.get_or_compute("k", loader) == {"version": 2}
    assert scheduled == []


def test_without_stale_while_revalidate_expired_entries_are_recomputed():
    clock, loader = FakeClock(), Loader()
    cache = _cache(clock, stale_while_revalidate=False)
    cache.get_or_compute("k", loader)
    clock.now += 11

    assert cache.get_or_compute("k", loader) == {"version": 2}


def test_none_is_a_cacheable_value():
    clock = FakeClock()
    cache = _cache(clock)
    calls = []

    for _ in range(2):
        cache.get_or_compute("k", lambda: calls.append(1))

    assert len(calls) == 1


def test_invalidate_by_prefix():
    cache = _cache(FakeClock())
    cache.get_or_compute("stats:citizen:a", Loader())
    cache.get_or_compute("stats:admin:b", Loader())
    cache.get_or_compute("other:c", Loader())

    assert cache.invalidate("stats:") == 2
    assert len(cache) == 1


def test_refresh_started_before_invalidation_does_not_resurrect_entry():
    clock, loader, scheduled = FakeClock(), Loader(), []
    cache = _cache(clock, scheduled)
    cache.get_or_compute("stats:x", loader)
    clock.now += 15
    cache.get_or_compute("stats:x", loader)

    cache.invalidate("stats:")
    scheduled[0]()

    assert len(cache) == 0


def test_failed_refresh_keeps_stale_value():
    clock, scheduled = FakeClock(), []
    cache = _cache(clock, scheduled)
    cache.get_or_compute("k", lambda: "old")
    clock.now += 15

    def boom():
        raise RuntimeError("database down")

    assert cache.get_or_compute("k", boom) == "old"
    scheduled[0]()
    assert cache.get_or_compute("k", boom) == "old"
