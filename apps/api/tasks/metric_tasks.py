"""
Cognitive Metrics Celery Tasks

- record_intraday_event: fire-and-forget intraday event write
- refresh_cognitive_metrics: recompute metrics behind a stale cache entry
- purge_intraday_outliers: nightly removal of out-of-range events (beat)

Refreshes are deduplicated with a short Redis cooldown per user. If Redis is
down the cooldown fails open and the refresh is enqueued anyway.
"""

import logging
from datetime import date, datetime
from typing import Dict, Optional
from uuid import UUID

from celery import Task
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from tasks import celery_app
from core.cache import get_redis_client
from core.database import get_db_sync

logger = logging.getLogger(__name__)

REFRESH_COOLDOWN_S = 30


@celery_app.task(
    name="tasks.record_intraday_event",
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=30,
    max_retries=3,
)
def record_intraday_event_task(
    self: Task,
    user_id: str,
    event_type: str,
    metrics: Dict,
    details: Dict,
    timestamp: str,
    local_date: str,
) -> Dict:
    """Write one intraday event. Called via .delay() from dispatch_intraday_event."""
    from services.intraday_events import record_intraday_event

    db: Optional[Session] = None
    try:
        db = get_db_sync()
        result = record_intraday_event(
            db,
            UUID(user_id),
            event_type,
            metrics,
            details or None,
            now=datetime.fromisoformat(timestamp),
            local_date=date.fromisoformat(local_date),
        )
        if not result.recorded:
            return {"status": "skipped", "reason": result.reason}
        return {"status": "success", "event_id": str(result.event_id)}
    except Exception as e:
        logger.error(f"Intraday event task failed for {user_id}: {e}")
        raise
    finally:
        if db:
            db.close()


@celery_app.task(
    name="tasks.refresh_cognitive_metrics",
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=60,
    max_retries=3,
)
def refresh_cognitive_metrics_task(self: Task, user_id: str) -> Dict:
    """Run a metrics pass for one user and refresh the cached payload."""
    from models import User
    from services.cognitive_metrics import refresh_metrics

    db: Optional[Session] = None
    try:
        db = get_db_sync()
        user = db.query(User).filter(User.id == UUID(user_id)).first()
        if user is None:
            return {"status": "skipped", "reason": "user_not_found"}
        result = refresh_metrics(db, user)
        return {
            "status": "success",
            "local_date": result.local_date.isoformat(),
            "snapshot": result.snapshot.outcome.value,
        }
    except Exception as e:
        logger.error(f"Metrics refresh failed for {user_id}: {e}")
        raise
    finally:
        if db:
            db.close()


@celery_app.task(name="tasks.purge_intraday_outliers", bind=True)
def purge_intraday_outliers_task(self: Task) -> Dict:
    """Celery beat task: delete intraday events with metrics outside [0, 100]."""
    from sqlalchemy import or_
    from models import IntradayEvent
    from services.intraday_events import METRIC_FIELDS, purge_outlier_events

    db: Optional[Session] = None
    try:
        db = get_db_sync()
        conditions = []
        for name in METRIC_FIELDS:
            column = getattr(IntradayEvent, name)
            conditions.extend([column < 0, column > 100])
        user_ids = db.query(IntradayEvent.user_id).filter(or_(*conditions)).distinct().all()

        removed = 0
        for (user_id,) in user_ids:
            removed += purge_outlier_events(db, user_id)

        logger.info(f"Intraday outlier purge: {removed} events across {len(user_ids)} users")
        return {"status": "success", "removed": removed, "users": len(user_ids)}
    except Exception as e:
        logger.error(f"Intraday outlier purge failed: {e}")
        return {"status": "error", "error": str(e)}
    finally:
        if db:
            db.close()


def _refresh_cooldown_key(user_id: str) -> str:
    return f"cognitive_metrics_refresh_cooldown:{user_id}"


def enqueue_metrics_refresh(user_id: str) -> bool:
    """
    Fire-and-forget metrics refresh, at most once per cooldown window.

    Returns True when a task was enqueued.
    """
    r = get_redis_client()
    if r is not None:
        try:
            if not r.set(_refresh_cooldown_key(user_id), "1", nx=True, ex=REFRESH_COOLDOWN_S):
                return False
        except RedisError as e:
            logger.warning(f"Refresh cooldown check failed (fail open): {e}")

    try:
        refresh_cognitive_metrics_task.delay(user_id)
    except Exception as e:
        logger.warning(f"Could not enqueue metrics refresh for {user_id}: {e}")
        return False
    logger.info(f"Metrics refresh enqueued for {user_id}")
    return True
