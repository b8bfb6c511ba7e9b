"""Tests for the bounded TTL geocoding cache."""

import threading

import pytest

from weathersync.ingest.geocoding_cache import GeocodingCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestGeocodingCache:
    def test_miss_returns_none(self):
        assert GeocodingCache().get("harare") is None

    def test_keys_normalized(self):
        cache = GeocodingCache()
        cache.put("  Victoria Falls ", ("hit",))
        assert cache.get("victoria falls") == ("hit",)
        assert cache.get("VICTORIA FALLS") == ("hit",)
        assert len(cache) == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache = GeocodingCache(ttl_seconds=60, clock=clock)
        cache.put("tokyo", ("a",))

        clock.now += 59
        assert cache.get("tokyo") == ("a",)
        clock.now += 1
        assert cache.get("tokyo") is None
        assert len(cache) == 0

    def test_evicts_oldest_when_full(self):
        cache = GeocodingCache(max_entries=2)
        cache.put("london", 1)
        cache.put("harare", 2)
        cache.put("tokyo", 3)

        assert cache.get("london") is None
        assert cache.get("harare") == 2
        assert cache.get("tokyo") == 3
        assert len(cache) == 2

    def test_put_refreshes_position(self):
        cache = GeocodingCache(max_entries=2)
        cache.put("london", 1)
        cache.put("harare", 2)
        cache.put("london", 10)
        cache.put("tokyo", 3)

        assert cache.get("london") == 10
        assert cache.get("harare") is None

    def test_clear(self):
        cache = GeocodingCache()
        cache.put("london", 1)
        cache.clear()
        assert len(cache) == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            GeocodingCache(max_entries=0)

    def test_concurrent_writers_stay_bounded(self):
        cache = GeocodingCache(max_entries=50)

        def writer(prefix: str) -> None:
            for i in range(200):
                cache.put(f"{prefix}-{i}", i)
                cache.get(f"{prefix}-{i // 2}")

        threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 50
