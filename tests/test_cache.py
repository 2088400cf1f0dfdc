"""Tests for the model cache."""

import threading

import pytest

from blocksmith.objects import GenerationRequest
from blocksmith.workflows.cache import CacheStats, ModelCache, model_nbytes
from blocksmith.workflows.generation import generate_block_model


@pytest.fixture
def models(small_grid):
    """Five small random models with distinct seeds."""
    return [generate_block_model(small_grid, "random", seed=seed) for seed in range(5)]


def _key(model):
    return model.request.fingerprint()


class TestModelCache:
    """Tests for ModelCache."""

    def test_miss_then_hit(self, cache, models):
        """Test a stored model is returned marked as cached."""
        model = models[0]
        assert cache.get(_key(model)) is None
        assert cache.put(_key(model), model)
        cached = cache.get(_key(model))
        assert cached.from_cache
        assert not model.from_cache
        assert cached.identical_to(model)

    def test_lru_eviction(self, cache, models):
        """Test the least recently used entry is evicted first."""
        for model in models[:4]:
            cache.put(_key(model), model)
        cache.get(_key(models[0]))
        cache.put(_key(models[4]), models[4])
        assert len(cache) == 4
        assert _key(models[1]) not in cache
        assert _key(models[0]) in cache
        assert cache.keys()[-1] == _key(models[4])
        assert cache.stats.evictions == 1

    def test_byte_budget(self, models):
        """Test that the memory budget bounds the cache."""
        size = model_nbytes(models[0])
        cache = ModelCache(capacity=10, max_bytes=int(size * 2.5))
        for model in models[:3]:
            assert cache.put(_key(model), model)
        assert len(cache) == 2
        assert cache.stats.bytes <= cache.max_bytes

    def test_model_larger_than_budget(self, models):
        """Test that a model bigger than the whole budget is rejected."""
        cache = ModelCache(capacity=4, max_bytes=10)
        assert not cache.put(_key(models[0]), models[0])
        assert len(cache) == 0
        assert cache.stats.rejected == 1

    def test_zero_capacity(self, models):
        """Test that capacity 0 disables caching."""
        cache = ModelCache(capacity=0)
        assert not cache.put(_key(models[0]), models[0])
        assert cache.get(_key(models[0])) is None

    def test_seeds_are_distinct_keys(self, cache, small_grid):
        """Test that requests differing only by seed never share an entry."""
        a = generate_block_model(small_grid, "random", seed=1)
        b = generate_block_model(small_grid, "random", seed=2)
        cache.put(_key(a), a)
        assert cache.get(_key(b)) is None

    def test_fingerprint_mismatch(self, cache, models):
        """Test that a model cannot be stored under another request's key."""
        with pytest.raises(ValueError):
            cache.put(_key(models[1]), models[0])

    def test_replace_same_key(self, cache, models):
        """Test that storing the same key twice keeps one entry."""
        cache.put(_key(models[0]), models[0])
        cache.put(_key(models[0]), models[0])
        assert len(cache) == 1
        assert cache.stats.bytes == model_nbytes(models[0])

    def test_invalidate_and_clear(self, cache, models):
        """Test dropping entries."""
        for model in models[:2]:
            cache.put(_key(model), model)
        assert cache.invalidate(_key(models[0]))
        assert not cache.invalidate(_key(models[0]))
        cache.clear()
        assert len(cache) == 0
        assert cache.stats.bytes == 0

    def test_stats(self, cache, models):
        """Test hit and miss counters."""
        cache.get(_key(models[0]))
        cache.put(_key(models[0]), models[0])
        cache.get(_key(models[0]))
        stats = cache.stats
        assert isinstance(stats, CacheStats)
        assert (stats.hits, stats.misses, stats.entries) == (1, 1, 1)
        assert stats.hit_rate == 0.5
        assert stats.to_dict()["hit_rate"] == 0.5

    def test_invalid_bounds(self):
        """Test negative capacity and budget."""
        with pytest.raises(ValueError):
            ModelCache(capacity=-1)
        with pytest.raises(ValueError):
            ModelCache(max_bytes=-1)

    def test_concurrent_access(self, small_grid):
        """Test that concurrent puts and gets keep the cache consistent."""
        cache = ModelCache(capacity=3)
        models = [generate_block_model(small_grid, "random", seed=seed) for seed in range(6)]
        errors = []

        def worker(model):
            try:
                for _ in range(20):
                    cache.put(_key(model), model)
                    cached = cache.get(_key(model))
                    if cached is not None:
                        assert cached.request == model.request
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(m,)) for m in models]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert len(cache) <= 3

    def test_key_locks_released(self, models):
        """Test that misses and invalidations leave no per-key locks behind."""
        cache = ModelCache(capacity=2)
        for n in range(1000):
            assert cache.get(f"missing-{n}") is None
            assert not cache.invalidate(f"missing-{n}")
        for model in models:
            cache.put(_key(model), model)
            cache.get(_key(model))
        assert len(cache) == 2
        assert len(cache._key_locks) == 0

    def test_eviction_keeps_held_key_lock(self, models):
        """Test that evicting a key does not break exclusion for its holder."""
        cache = ModelCache(capacity=2)
        first = _key(models[0])
        cache.put(first, models[0])
        finished = threading.Event()

        def reader():
            cache.get(first)
            finished.set()

        with cache._locked(first):
            for model in models[1:3]:
                cache.put(_key(model), model)
            assert first not in cache
            thread = threading.Thread(target=reader)
            thread.start()
            assert not finished.wait(0.1)
        assert finished.wait(5)
        thread.join()
        assert len(cache._key_locks) == 0

    def test_request_fingerprint_key(self, cache, small_grid):
        """Test keys are request fingerprints."""
        request = GenerationRequest(small_grid, "uniform")
        model = generate_block_model(small_grid, "uniform")
        cache.put(request.fingerprint(), model)
        assert request.fingerprint() in cache
