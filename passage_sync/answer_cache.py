"""In-memory cache of agent answers.

An answer is only valid for the repository content it was produced from, so
the last sync commit is part of every key. Once a sync moves the commit
forward, older entries can no longer be looked up and age out through expiry
or LRU eviction; there is no separate invalidation pass.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from passage_sync.core.ask_routing import ASK_DEFAULT_CACHE_TTL, normalize_question

logger = logging.getLogger(__name__)

DEFAULT_MODEL_CACHE_KEY = "__agent_default__"
NO_SYNC_COMMIT = "no-sync-commit"
DEFAULT_MAX_ENTRIES = 1000
MIN_TTL = 1.0

CacheKey = tuple[str, str, str, str]


@dataclass(frozen=True)
class AnswerCacheKey:
    """Everything an answer depends on."""

    agent_id: str
    question: str
    model_key: str = DEFAULT_MODEL_CACHE_KEY
    last_sync_commit: str | None = None


@dataclass
class CacheEntry:
    answer: str
    expires_at: float


def to_model_cache_key(model: str | None) -> str:
    """Return the cache key component for an optional model override."""
    trimmed = (model or "").strip()
    return trimmed or DEFAULT_MODEL_CACHE_KEY


def to_cache_key(parts: AnswerCacheKey) -> CacheKey:
    """Build the structured store key for ``parts``.

    A tuple is used instead of a joined string so that no choice of agent ID,
    model or question can collide with another combination.
    """
    return (
        parts.agent_id,
        to_model_cache_key(parts.model_key),
        parts.last_sync_commit or NO_SYNC_COMMIT,
        normalize_question(parts.question),
    )


class InMemoryAnswerCache:
    """TTL cache for answers, safe to share between threads.

    Entries expire lazily: an expired entry is dropped when it is next read.
    The store is bounded by ``max_entries`` with least-recently-used eviction.
    """

    def __init__(
        self,
        default_ttl: float = ASK_DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int | None = DEFAULT_MAX_ENTRIES,
    ):
        """Initialize the cache.

        Args:
            default_ttl: Lifetime in seconds used when ``set`` gets no ttl
            clock: Source of the current time in seconds
            max_entries: Maximum number of entries kept, or None for no limit
        """
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive or None")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, parts: AnswerCacheKey) -> str | None:
        """Return the cached answer, or None if absent or expired."""
        key = to_cache_key(parts)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return entry.answer

    def set(self, parts: AnswerCacheKey, answer: str, ttl: float | None = None) -> None:
        """Store an answer.

        Args:
            parts: Cache key components
            answer: Answer text
            ttl: Lifetime in seconds. Values below one second are raised to one
                second so an entry never expires the moment it is written.
        """
        key = to_cache_key(parts)
        lifetime = max(MIN_TTL, self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._store[key] = CacheEntry(
                answer=answer, expires_at=self._clock() + lifetime
            )
            self._store.move_to_end(key)
            if self.max_entries is not None:
                while len(self._store) > self.max_entries:
                    evicted, _ = self._store.popitem(last=False)
                    logger.debug(f"Evicted answer cache entry for agent {evicted[0]}")

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._store.items() if entry.expires_at <= now]
            for key in expired:
                del self._store[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
