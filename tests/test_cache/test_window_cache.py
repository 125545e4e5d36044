"""Tests for src/context_window/cache/window_cache.py."""
from __future__ import annotations

import threading

import pytest

from context_window.cache.window_cache import WindowCache
from context_window.models.context import ContextResult
from context_window.models.message import CandidateMessage


def _result(tokens: int = 100, quality: float = 0.5, content: str = "abcd") -> ContextResult:
    return ContextResult(
        messages=[CandidateMessage(content=content)],
        estimated_tokens=tokens,
        strategy="optimized_relevance_filtering",
        quality_score=quality,
    )


@pytest.fixture
def cache(clock):
    return WindowCache(clock=clock)


class TestPutGet:
    def test_roundtrip(self, cache):
        result = _result()
        cache.put("s1", result, 200)
        record = cache.get("s1")
        assert record is not None
        assert record.result == result
        assert record.utilization == pytest.approx(50.0)

    def test_missing_session(self, cache):
        assert cache.get("nope") is None

    def test_overwrite(self, cache):
        cache.put("s1", _result(tokens=10), 100)
        cache.put("s1", _result(tokens=90), 100)
        assert cache.get("s1").result.estimated_tokens == 90

    def test_zero_target_utilization(self, cache):
        assert cache.put("s1", _result(), 0).utilization == float("inf")

    def test_zero_target_empty_result(self, cache):
        assert cache.put("s1", _result(tokens=0), 0).utilization == 100.0

    def test_expires_at(self, cache, clock):
        record = cache.put("s1", _result(), 100)
        assert record.expires_at == clock.now + cache.ttl


class TestExpiry:
    def test_available_before_ttl(self, cache, clock):
        cache.put("s1", _result(), 100)
        clock.advance(minutes=29)
        assert cache.get("s1") is not None

    def test_absent_after_ttl(self, cache, clock):
        cache.put("s1", _result(), 100)
        clock.advance(minutes=31)
        assert cache.get("s1") is None
        assert "s1" not in cache._records

    def test_custom_expiration(self, clock):
        cache = WindowCache(expiration_minutes=5, clock=clock)
        cache.put("s1", _result(), 100)
        clock.advance(minutes=6)
        assert cache.get("s1") is None

    def test_clean_expired(self, cache, clock):
        cache.put("old", _result(), 100)
        clock.advance(minutes=20)
        cache.put("new", _result(), 100)
        clock.advance(minutes=15)
        assert cache.clean_expired() == 1
        assert "new" in cache
        assert "old" not in cache

    def test_clean_expired_nothing(self, cache):
        cache.put("s1", _result(), 100)
        assert cache.clean_expired() == 0


class TestClear:
    def test_clear(self, cache):
        cache.put("s1", _result(), 100)
        assert cache.clear("s1") is True
        assert cache.get("s1") is None

    def test_clear_unknown(self, cache):
        assert cache.clear("nope") is False


class TestStats:
    def test_empty(self, cache):
        assert cache.stats() == {
            "active_count": 0,
            "average_utilization": 0.0,
            "average_quality": 0.0,
            "approximate_memory_bytes": 0,
        }

    def test_aggregates(self, cache):
        cache.put("a", _result(tokens=50, quality=0.4, content="x" * 10), 100)
        cache.put("b", _result(tokens=100, quality=0.8, content="y" * 30), 100)
        stats = cache.stats()
        assert stats["active_count"] == 2
        assert stats["average_utilization"] == pytest.approx(75.0)
        assert stats["average_quality"] == pytest.approx(0.6)
        assert stats["approximate_memory_bytes"] == 40

    def test_ignores_expired(self, cache, clock):
        cache.put("old", _result(), 100)
        clock.advance(minutes=31)
        cache.put("new", _result(), 100)
        assert cache.stats()["active_count"] == 1
        assert len(cache) == 1

    def test_memory_usage(self, cache, clock):
        first = cache.put("a", _result(content="x" * 10), 100)
        clock.advance(minutes=1)
        cache.put("b", _result(content="y" * 5), 100)
        usage = cache.memory_usage()
        assert usage["total_sessions"] == 2
        assert usage["total_messages"] == 2
        assert usage["total_bytes"] == 15
        assert usage["oldest_expiry"] == first.expires_at

    def test_memory_usage_empty(self, cache):
        assert cache.memory_usage()["oldest_expiry"] is None


class TestConcurrency:
    def test_parallel_sessions(self, cache):
        misses: list[str] = []

        def worker(n: int) -> None:
            for i in range(50):
                sid = f"s{n}-{i}"
                cache.put(sid, _result(), 100)
                if cache.get(sid) is None:
                    misses.append(sid)
                if i % 2:
                    cache.clear(sid)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert misses == []
        assert len(cache) == 8 * 25
