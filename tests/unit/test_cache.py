"""Unit tests for the injected query cache and the batch deadline"""

import pytest
from billflow.domain.exceptions import DeadlineExceededError, StorageError
from billflow.infrastructure.cache import InMemoryQueryCache
from billflow.utils.deadline import Deadline


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_cache_entry_expires_after_ttl():
    clock = FakeClock()
    cache = InMemoryQueryCache(default_ttl_seconds=10, clock=clock)
    cache.set("balance", 850)

    clock.now = 9.9
    assert cache.get("balance") == 850

    clock.now = 10.0
    assert cache.get("balance") is None
    assert len(cache) == 0


def test_concurrent_reads_of_expired_entry():
    """A second reader expiring the same key first does not break the first"""
    cache = InMemoryQueryCache(default_ttl_seconds=10, clock=lambda: 0.0)
    cache.set("balance", 850)

    class InterleavingClock:
        entered = False

        def __call__(self):
            # Runs between the first reader's lookup and its expiry
            if not self.entered:
                self.entered = True
                assert cache.get("balance") is None
            return 100.0

    cache._clock = InterleavingClock()

    assert cache.get("balance") is None
    assert len(cache) == 0


def test_cache_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = InMemoryQueryCache(default_ttl_seconds=10, clock=clock)
    cache.set("short", 1, ttl_seconds=1)
    cache.set("long", 2)

    clock.now = 5
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_cache_invalidate_one_or_all():
    cache = InMemoryQueryCache()
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.invalidate("missing")
    cache.invalidate()
    assert len(cache) == 0


def test_caches_are_independent():
    first, second = InMemoryQueryCache(), InMemoryQueryCache()
    first.set("key", "value")

    assert second.get("key") is None


def test_deadline_expires_on_the_clock():
    clock = FakeClock()
    deadline = Deadline(5, clock=clock)

    assert deadline.remaining() == 5
    deadline.check("insert_transaction")

    clock.now = 5
    assert deadline.expired()
    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceededError, match="insert_transaction"):
        deadline.check("insert_transaction")


def test_deadline_error_is_a_storage_error():
    assert issubclass(DeadlineExceededError, StorageError)


@pytest.mark.parametrize("seconds", [None, 0, -1])
def test_no_budget_means_no_deadline(seconds):
    assert Deadline.from_seconds(seconds) is None


def test_positive_budget_builds_deadline():
    assert isinstance(Deadline.from_seconds(30), Deadline)
