"""Model cache.

Bounded LRU store of generated block models keyed by request fingerprint.
The cache is an explicitly owned object: each BlockModelGenerator holds
one, and tests create a fresh one per case.

Reads and writes are serialized per fingerprint. Different fingerprints
only share a short critical section around the LRU bookkeeping.
"""

import logging
import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Optional

from blocksmith.objects.blockmodel import BlockModel
from blocksmith.utils.errors import CacheUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache counters."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    rejected: int = 0
    entries: int = 0
    bytes: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "rejected": self.rejected,
            "entries": self.entries,
            "bytes": self.bytes,
            "hit_rate": self.hit_rate,
        }


@dataclass
class _Entry:
    model: BlockModel
    size: int


@dataclass
class _KeyLock:
    lock: threading.Lock
    holders: int = 0


def model_nbytes(model: BlockModel) -> int:
    """Approximate memory held by a model's block table."""
    return int(model.table.memory_usage(index=True, deep=True).sum())


class ModelCache:
    """Least-recently-used cache of BlockModels.

    Args:
        capacity: Maximum number of entries. 0 disables caching.
        max_bytes: Memory budget over all entries. Models larger than the
            whole budget are not cached.

    Example:
        >>> cache = ModelCache(capacity=4)
        >>> cache.put(request.fingerprint(), model)
        True
        >>> cache.get(request.fingerprint()).from_cache
        True
    """

    def __init__(self, capacity: int = 8, max_bytes: int = 512 * 1024 * 1024):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if max_bytes < 0:
            raise ValueError(f"max_bytes must be >= 0, got {max_bytes}")
        self.capacity = capacity
        self.max_bytes = max_bytes
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._guard = threading.Lock()
        self._key_locks: dict[str, _KeyLock] = {}
        self._stats = CacheStats()
        self._bytes = 0

    @contextmanager
    def _locked(self, fingerprint: str):
        """Hold the lock of one fingerprint.

        A key's lock lives only while some caller holds or waits for it.
        """
        with self._guard:
            key_lock = self._key_locks.get(fingerprint)
            if key_lock is None:
                key_lock = _KeyLock(threading.Lock())
                self._key_locks[fingerprint] = key_lock
            key_lock.holders += 1
        try:
            with key_lock.lock:
                yield
        finally:
            with self._guard:
                key_lock.holders -= 1
                if key_lock.holders == 0:
                    del self._key_locks[fingerprint]

    def get(self, fingerprint: str) -> Optional[BlockModel]:
        """Cached model for a fingerprint, or None.

        The returned model is marked ``from_cache=True`` and becomes the most
        recently used entry.
        """
        with self._locked(fingerprint):
            with self._guard:
                entry = self._entries.get(fingerprint)
                if entry is None:
                    self._stats.misses += 1
                    return None
                self._entries.move_to_end(fingerprint)
                self._stats.hits += 1
            logger.debug(f"Cache hit for {fingerprint[:12]}")
            return replace(entry.model, from_cache=True)

    def put(self, fingerprint: str, model: BlockModel) -> bool:
        """Store a model, evicting least recently used entries as needed.

        Returns:
            True if the model was stored, False if it does not fit.

        Raises:
            CacheUnavailableError: If the model's size cannot be measured.
        """
        if model.request.fingerprint() != fingerprint:
            raise ValueError("fingerprint does not match the model's request")
        try:
            size = model_nbytes(model)
        except (MemoryError, ValueError, TypeError) as e:
            raise CacheUnavailableError(
                f"Could not size model for caching: {e}",
                details={"fingerprint": fingerprint},
            ) from e

        with self._locked(fingerprint):
            with self._guard:
                if self.capacity == 0 or size > self.max_bytes:
                    self._stats.rejected += 1
                    logger.debug(
                        f"Not caching {fingerprint[:12]}: {size:,} bytes, "
                        f"budget {self.max_bytes:,}, capacity {self.capacity}"
                    )
                    return False

                stored = replace(model, from_cache=False)
                previous = self._entries.pop(fingerprint, None)
                if previous is not None:
                    self._bytes -= previous.size
                self._entries[fingerprint] = _Entry(stored, size)
                self._bytes += size

                while len(self._entries) > self.capacity or self._bytes > self.max_bytes:
                    evicted_key, evicted = self._entries.popitem(last=False)
                    self._bytes -= evicted.size
                    self._stats.evictions += 1
                    logger.debug(f"Evicted {evicted_key[:12]} from model cache")
        return True

    def invalidate(self, fingerprint: str) -> bool:
        """Drop one entry. Returns True if it was present."""
        with self._locked(fingerprint):
            with self._guard:
                entry = self._entries.pop(fingerprint, None)
                if entry is None:
                    return False
                self._bytes -= entry.size
                return True

    def clear(self) -> None:
        """Drop every entry. Counters are kept."""
        with self._guard:
            self._entries.clear()
            self._bytes = 0

    def __contains__(self, fingerprint: str) -> bool:
        with self._guard:
            return fingerprint in self._entries

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def keys(self) -> list[str]:
        """Fingerprints from least to most recently used."""
        with self._guard:
            return list(self._entries)

    @property
    def stats(self) -> CacheStats:
        """Snapshot of the cache counters."""
        with self._guard:
            return replace(self._stats, entries=len(self._entries), bytes=self._bytes)

    def __repr__(self) -> str:
        return f"ModelCache(entries={len(self)}, capacity={self.capacity})"
