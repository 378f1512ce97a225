"""
Tests for the group overview cache.
"""
import threading
from planner.core.cache import GroupCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = GroupCache(ttl_seconds=60, clock=clock)
    cache.set(1, {"name": "Iceland"})

    clock.now = 59
    assert cache.get(1) == {"name": "Iceland"}
    clock.now = 60
    assert cache.get(1) is None
    assert len(cache) == 0


def test_invalidate_drops_only_that_group():
    cache = GroupCache(ttl_seconds=60)
    cache.set(1, "overview", key=("overview", 10))
    cache.set(1, "overview", key=("overview", 11))
    cache.set(2, "other")

    assert cache.invalidate(1) == 2
    assert cache.get(1, ("overview", 10)) is None
    assert cache.get(2) == "other"
    assert cache.invalidate(1) == 0


def test_clear():
    cache = GroupCache()
    cache.set(1, "a")
    cache.set(2, "b")
    cache.clear()
    assert len(cache) == 0


def test_concurrent_writers_and_len():
    cache = GroupCache(ttl_seconds=60)

    def write(group_id):
        for member_id in range(200):
            cache.set(group_id, member_id, key=("overview", member_id))
            len(cache)

    threads = [threading.Thread(target=write, args=(group_id,)) for group_id in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 800
    cache.invalidate(0)
    assert len(cache) == 600
