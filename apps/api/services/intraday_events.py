"""
Intraday Metric Event Recorder

Append-only log of the derived metrics at action boundaries (training,
detox / walking, content, automatic decay, app foreground) so the client
can rebuild intraday charts.

Debounce: the same event type for the same user within
INTRADAY_DEBOUNCE_S seconds is suppressed.
    - Redis available:   atomic SET NX EX claim on intraday_debounce:{user}:{type}
    - Redis unavailable: look up the latest same-type event in the window

Callers fire events through ``dispatch_intraday_event``, which enqueues a
Celery task and records inline when the broker cannot be reached.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

import logging

from redis.exceptions import RedisError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.cache import get_redis_client
from core.config import settings
from models import IntradayEvent
from services.local_time import ensure_utc

logger = logging.getLogger(__name__)


class IntradayEventType(str, Enum):
    DECAY = "decay"
    TASK = "task"
    GAME = "game"
    DETOX = "detox"
    WALKING = "walking"
    APP_OPEN = "app_open"


METRIC_FIELDS = ("readiness", "sharpness", "recovery", "reasoning_quality")
METRIC_MIN = 0.0
METRIC_MAX = 100.0


@dataclass
class IntradayRecordResult:
    recorded: bool
    event_id: Optional[UUID] = None
    reason: str = "recorded"


def _debounce_key(user_id: UUID, event_type: IntradayEventType) -> str:
    return f"intraday_debounce:{user_id}:{event_type.value}"


def _claim_debounce_slot(db: Session, user_id: UUID, event_type: IntradayEventType, now: datetime) -> bool:
    """True when this event may be written; False when it falls in the window."""
    window = settings.INTRADAY_DEBOUNCE_S
    if window <= 0:
        return True

    r = get_redis_client()
    if r is not None:
        try:
            return bool(r.set(_debounce_key(user_id, event_type), "1", nx=True, ex=window))
        except RedisError as e:
            logger.warning(f"Debounce claim failed, using database fallback: {e}")

    recent = (
        db.query(IntradayEvent.id)
        .filter(
            IntradayEvent.user_id == user_id,
            IntradayEvent.event_type == event_type.value,
            IntradayEvent.event_timestamp > now - timedelta(seconds=window),
            IntradayEvent.event_timestamp <= now,
        )
        .first()
    )
    return recent is None


def _release_debounce_slot(user_id: UUID, event_type: IntradayEventType) -> None:
    r = get_redis_client()
    if r is None:
        return
    try:
        r.delete(_debounce_key(user_id, event_type))
    except RedisError as e:
        logger.warning(f"Could not release debounce key: {e}")


def record_intraday_event(
    db: Session,
    user_id: UUID,
    event_type,
    metrics: Optional[Mapping[str, Optional[float]]] = None,
    details: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
    local_date: Optional[date] = None,
) -> IntradayRecordResult:
    """Append one event unless an identical type was recorded within the window."""
    event_type = IntradayEventType(event_type)
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    local_date = local_date or now.date()
    metrics = metrics or {}

    if not _claim_debounce_slot(db, user_id, event_type, now):
        logger.debug(f"Debounced {event_type.value} event for user {user_id}")
        return IntradayRecordResult(recorded=False, reason="debounced")

    event = IntradayEvent(
        user_id=user_id,
        event_date=local_date,
        event_timestamp=now,
        event_type=event_type.value,
        event_details=details or None,
        **{name: metrics.get(name) for name in METRIC_FIELDS},
    )
    try:
        db.add(event)
        db.commit()
    except Exception:
        db.rollback()
        _release_debounce_slot(user_id, event_type)
        raise

    return IntradayRecordResult(recorded=True, event_id=event.id)


def dispatch_intraday_event(
    db: Session,
    user_id: UUID,
    event_type,
    metrics: Optional[Mapping[str, Optional[float]]] = None,
    details: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
    local_date: Optional[date] = None,
) -> None:
    """
    Fire-and-forget event write.

    Enqueues the Celery task; if the broker is unreachable the event is
    recorded inline with ``db``. Failures are logged, never raised.
    """
    from tasks.metric_tasks import record_intraday_event_task

    event_type = IntradayEventType(event_type)
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    local_date = local_date or now.date()
    payload = {name: metrics.get(name) for name in METRIC_FIELDS} if metrics else {}

    try:
        record_intraday_event_task.delay(
            str(user_id),
            event_type.value,
            payload,
            details or {},
            now.isoformat(),
            local_date.isoformat(),
        )
        return
    except Exception as e:
        logger.warning(f"Could not enqueue {event_type.value} event, recording inline: {e}")

    try:
        record_intraday_event(db, user_id, event_type, payload, details, now=now, local_date=local_date)
    except Exception as e:
        logger.error(f"Intraday event write failed for user {user_id}: {e}", exc_info=True)


def list_intraday_events(db: Session, user_id: UUID, local_date: date) -> List[IntradayEvent]:
    return (
        db.query(IntradayEvent)
        .filter(IntradayEvent.user_id == user_id, IntradayEvent.event_date == local_date)
        .order_by(IntradayEvent.event_timestamp.asc())
        .all()
    )


def purge_outlier_events(db: Session, user_id: UUID, local_date: Optional[date] = None) -> int:
    """Delete events carrying a metric outside [0, 100]. Returns the count removed."""
    out_of_range = []
    for name in METRIC_FIELDS:
        column = getattr(IntradayEvent, name)
        out_of_range.append(column < METRIC_MIN)
        out_of_range.append(column > METRIC_MAX)

    query = db.query(IntradayEvent).filter(IntradayEvent.user_id == user_id, or_(*out_of_range))
    if local_date is not None:
        query = query.filter(IntradayEvent.event_date == local_date)
    removed = query.delete(synchronize_session=False)
    db.commit()
    if removed:
        logger.info(f"Purged {removed} outlier intraday events for user {user_id}")
    return removed
