"""
Cognitive Metrics API Router

Read endpoints for the metrics engine:
- Today's metrics (served from the last-known-good cache when possible)
- Forced refresh
- SCI breakdown with bottleneck
- Daily metric history
- Intraday events of a local day

The optional X-Timezone header overrides the user's stored timezone for
local-day boundaries.
"""

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ValidationError
from models import User
from schemas import (
    CognitiveMetricsResponse,
    DailyMetricSnapshotResponse,
    IntradayEventList,
    SCIResponse,
)
from services.cognitive_metrics import get_metric_history, refresh_metrics
from services.intraday_events import list_intraday_events
from services.local_time import local_date, user_timezone, utc_now
from services.metric_cache import CacheState, metric_cache
from tasks.metric_tasks import enqueue_metrics_refresh

router = APIRouter(prefix="/v1/cognitive", tags=["Cognitive Metrics"])

MAX_HISTORY_DAYS = 366


def _current_metrics(db: Session, user: User, tz_header: Optional[str]) -> CognitiveMetricsResponse:
    tz = user_timezone(user, tz_header)
    payload, state = metric_cache.read(user.id)
    # an entry computed for another local day (midnight passed, or a different zone) is never served
    if payload is not None and payload.get("local_date") != local_date(utc_now(), tz).isoformat():
        payload, state = None, CacheState.MISSING
    if state == CacheState.STALE:
        enqueue_metrics_refresh(str(user.id))
    if payload is None:
        payload = refresh_metrics(db, user, tz=tz).to_payload()
        state = CacheState.FRESH
    return CognitiveMetricsResponse(**payload, cache_state=state.value)


@router.get("/metrics/today", response_model=CognitiveMetricsResponse)
def get_today_metrics(
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Current metrics for the authenticated user.

    Fresh cache entries are returned as-is. Stale entries are returned while
    a background refresh is enqueued. Otherwise a computation pass runs.
    """
    return _current_metrics(db, current_user, x_timezone)


@router.post("/metrics/refresh", response_model=CognitiveMetricsResponse)
def refresh_today_metrics(
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Force a computation pass and replace the cached metrics."""
    result = refresh_metrics(db, current_user, tz=user_timezone(current_user, x_timezone))
    return CognitiveMetricsResponse(**result.to_payload(), cache_state=CacheState.FRESH.value)


@router.get("/metrics/sci", response_model=SCIResponse)
def get_sci(
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Synthesized Cognitive Index with its components and bottleneck."""
    return _current_metrics(db, current_user, x_timezone).sci


@router.get("/metrics/history", response_model=List[DailyMetricSnapshotResponse])
def get_history(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Daily metric history between two local dates (inclusive)."""
    if start > end:
        raise ValidationError("start must not be after end", field="start")
    if (end - start) > timedelta(days=MAX_HISTORY_DAYS):
        raise ValidationError(f"range may span at most {MAX_HISTORY_DAYS} days", field="end")
    return get_metric_history(db, current_user.id, start, end)


@router.get("/intraday", response_model=IntradayEventList)
def get_intraday_events(
    date_: Optional[date] = Query(None, alias="date"),
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Intraday events of one local day (default: today), oldest first."""
    day = date_ or local_date(utc_now(), user_timezone(current_user, x_timezone))
    return IntradayEventList(
        local_date=day,
        events=list_intraday_events(db, current_user.id, day),
    )
