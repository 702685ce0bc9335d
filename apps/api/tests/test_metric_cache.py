"""
Tests for the last-known-good metrics cache.
"""
import json
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from services.metric_cache import CacheState, MetricCache, _cache_key
from tasks.metric_tasks import _refresh_cooldown_key, enqueue_metrics_refresh


NOW = datetime(2026, 5, 4, 9, 30, tzinfo=timezone.utc)
PAYLOAD = {"readiness": 61.2, "sharpness": 48.0}


class TestMetricCache:

    def test_missing_without_entry(self, fake_redis):
        assert MetricCache().read(uuid4(), now=NOW) == (None, CacheState.MISSING)

    def test_fresh_then_stale_then_missing(self, fake_redis):
        cache = MetricCache(fresh_seconds=60, stale_seconds=3600)
        user_id = uuid4()
        cache.write(user_id, PAYLOAD, now=NOW)

        assert cache.read(user_id, now=NOW + timedelta(seconds=30)) == (PAYLOAD, CacheState.FRESH)
        assert cache.read(user_id, now=NOW + timedelta(minutes=10)) == (PAYLOAD, CacheState.STALE)
        assert cache.read(user_id, now=NOW + timedelta(hours=2)) == (None, CacheState.MISSING)

    def test_ttl_is_stale_window(self, fake_redis):
        cache = MetricCache(fresh_seconds=60, stale_seconds=900)
        user_id = uuid4()
        cache.write(user_id, PAYLOAD, now=NOW)

        assert fake_redis._ttls[_cache_key(user_id)] == 900

    def test_invalidate(self, fake_redis):
        cache = MetricCache()
        user_id = uuid4()
        cache.write(user_id, PAYLOAD, now=NOW)
        cache.invalidate(user_id)

        assert cache.read(user_id, now=NOW)[1] == CacheState.MISSING

    def test_malformed_entry_discarded(self, fake_redis):
        user_id = uuid4()
        fake_redis.setex(_cache_key(user_id), 60, json.dumps({"payload": PAYLOAD, "computed_at": "yesterday"}))

        assert MetricCache().read(user_id, now=NOW) == (None, CacheState.MISSING)

    def test_redis_down_reads_missing(self):
        cache = MetricCache()
        assert cache.write(uuid4(), PAYLOAD, now=NOW) is False
        assert cache.read(uuid4(), now=NOW)[1] == CacheState.MISSING


class TestEnqueueMetricsRefresh:

    def test_cooldown_deduplicates(self, fake_redis, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "tasks.metric_tasks.refresh_cognitive_metrics_task.delay",
            lambda user_id: calls.append(user_id),
        )
        user_id = str(uuid4())

        assert enqueue_metrics_refresh(user_id) is True
        assert enqueue_metrics_refresh(user_id) is False
        assert calls == [user_id]
        assert fake_redis.exists(_refresh_cooldown_key(user_id))

    def test_fails_open_without_redis(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "tasks.metric_tasks.refresh_cognitive_metrics_task.delay",
            lambda user_id: calls.append(user_id),
        )

        assert enqueue_metrics_refresh("abc") is True
        assert enqueue_metrics_refresh("abc") is True
        assert calls == ["abc", "abc"]

    def test_broker_down_is_not_raised(self):
        assert enqueue_metrics_refresh(str(uuid4())) is False
