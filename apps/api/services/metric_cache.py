"""
Last-Known-Good Metrics Cache

Holds the most recent metrics payload per user in Redis with an explicit
freshness flag:

    FRESH    younger than METRICS_CACHE_FRESH_S  -> serve as-is
    STALE    younger than METRICS_CACHE_STALE_S  -> serve, recompute behind it
    MISSING  nothing cached / expired / Redis down
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

import logging

from core.cache import get_cache, set_cache, delete_cache
from core.config import settings

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISSING = "missing"


def _cache_key(user_id: UUID) -> str:
    return f"cognitive_metrics:{user_id}"


class MetricCache:

    def __init__(self, fresh_seconds: Optional[int] = None, stale_seconds: Optional[int] = None):
        self.fresh_seconds = settings.METRICS_CACHE_FRESH_S if fresh_seconds is None else fresh_seconds
        self.stale_seconds = settings.METRICS_CACHE_STALE_S if stale_seconds is None else stale_seconds

    def read(self, user_id: UUID, now: Optional[datetime] = None) -> Tuple[Optional[Dict[str, Any]], CacheState]:
        entry = get_cache(_cache_key(user_id))
        if not entry or "payload" not in entry:
            return None, CacheState.MISSING

        try:
            computed_at = datetime.fromisoformat(entry["computed_at"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Discarding malformed metrics cache entry for user {user_id}")
            return None, CacheState.MISSING
        if computed_at.tzinfo is None:
            computed_at = computed_at.replace(tzinfo=timezone.utc)

        age = ((now or datetime.now(timezone.utc)) - computed_at).total_seconds()
        if age < self.fresh_seconds:
            return entry["payload"], CacheState.FRESH
        if age < self.stale_seconds:
            return entry["payload"], CacheState.STALE
        return None, CacheState.MISSING

    def write(self, user_id: UUID, payload: Dict[str, Any], now: Optional[datetime] = None) -> bool:
        entry = {
            "computed_at": (now or datetime.now(timezone.utc)).isoformat(),
            "payload": payload,
        }
        return set_cache(_cache_key(user_id), entry, ttl=max(1, self.stale_seconds))

    def invalidate(self, user_id: UUID) -> bool:
        return delete_cache(_cache_key(user_id))


metric_cache = MetricCache()
