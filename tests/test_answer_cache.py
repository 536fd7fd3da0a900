"""Tests for the in-memory answer cache."""

import threading

import pytest

from passage_sync.answer_cache import (
    DEFAULT_MODEL_CACHE_KEY,
    NO_SYNC_COMMIT,
    AnswerCacheKey,
    InMemoryAnswerCache,
    to_cache_key,
    to_model_cache_key,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return InMemoryAnswerCache(default_ttl=180, clock=clock)


def key(question="Where is main?", commit="abc123", model=DEFAULT_MODEL_CACHE_KEY):
    return AnswerCacheKey(
        agent_id="agent-1",
        question=question,
        model_key=model,
        last_sync_commit=commit,
    )


class TestCacheKeys:
    """Tests for key construction."""

    def test_model_cache_key(self):
        assert to_model_cache_key(None) == DEFAULT_MODEL_CACHE_KEY
        assert to_model_cache_key("  ") == DEFAULT_MODEL_CACHE_KEY
        assert to_model_cache_key(" mini ") == "mini"

    def test_missing_commit_uses_placeholder(self):
        assert to_cache_key(key(commit=None))[2] == NO_SYNC_COMMIT

    def test_question_is_normalized(self):
        assert to_cache_key(key("Where is  MAIN?")) == to_cache_key(key("where is main?"))


class TestInMemoryAnswerCache:
    """Tests for InMemoryAnswerCache."""

    def test_set_then_get(self, cache):
        cache.set(key(), "In app.py")

        assert cache.get(key()) == "In app.py"

    def test_miss_returns_none(self, cache):
        assert cache.get(key()) is None

    def test_entry_expires_after_ttl(self, cache, clock):
        """Test that an entry is gone once its TTL has passed."""
        cache.set(key(), "A", ttl=10)

        clock.advance(9.9)
        assert cache.get(key()) == "A"

        clock.advance(0.2)
        assert cache.get(key()) is None
        assert len(cache) == 0

    def test_default_ttl(self, cache, clock):
        cache.set(key(), "A")

        clock.advance(179)
        assert cache.get(key()) == "A"
        clock.advance(1)
        assert cache.get(key()) is None

    def test_ttl_has_a_floor(self, cache, clock):
        """Test that a zero TTL still keeps the entry for one second."""
        cache.set(key(), "A", ttl=0)

        assert cache.get(key()) == "A"
        clock.advance(1)
        assert cache.get(key()) is None

    def test_commit_is_part_of_the_key(self, cache):
        """Test that answers for different sync commits never collide."""
        cache.set(key(commit="abc123"), "old")
        cache.set(key(commit="def456"), "new")

        assert cache.get(key(commit="abc123")) == "old"
        assert cache.get(key(commit="def456")) == "new"
        assert cache.get(key(commit=None)) is None

    def test_model_is_part_of_the_key(self, cache):
        cache.set(key(model="mini"), "fast answer")

        assert cache.get(key(model="mini")) == "fast answer"
        assert cache.get(key()) is None

    def test_lru_eviction(self, clock):
        """Test that the least recently used entry is evicted first."""
        cache = InMemoryAnswerCache(default_ttl=60, clock=clock, max_entries=2)
        cache.set(key("q1"), "a1")
        cache.set(key("q2"), "a2")

        # Touch q1 so q2 becomes the oldest
        assert cache.get(key("q1")) == "a1"
        cache.set(key("q3"), "a3")

        assert len(cache) == 2
        assert cache.get(key("q2")) is None
        assert cache.get(key("q1")) == "a1"
        assert cache.get(key("q3")) == "a3"

    def test_unbounded(self, clock):
        cache = InMemoryAnswerCache(clock=clock, max_entries=None)
        for i in range(1500):
            cache.set(key(f"q{i}"), "a")

        assert len(cache) == 1500

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            InMemoryAnswerCache(max_entries=0)

    def test_purge_expired(self, cache, clock):
        cache.set(key("q1"), "a", ttl=5)
        cache.set(key("q2"), "a", ttl=50)
        clock.advance(10)

        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_clear(self, cache):
        cache.set(key(), "A")
        cache.clear()

        assert len(cache) == 0

    def test_concurrent_writers(self):
        """Test that concurrent sets from several threads are all kept."""
        cache = InMemoryAnswerCache(max_entries=None)

        def writer(start):
            for i in range(start, start + 200):
                cache.set(key(f"q{i}"), str(i))

        threads = [threading.Thread(target=writer, args=(n * 200,)) for n in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 1000
        assert cache.get(key("q999")) == "999"
