"""
Local clock helpers.

Snapshot day boundaries follow the user's local calendar, not UTC.
Timestamps are stored and compared in UTC.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.config import settings

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise a timestamp to aware UTC. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """IANA zone for ``name``; unknown or missing names fall back to DEFAULT_TIMEZONE."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {name!r}, falling back to {settings.DEFAULT_TIMEZONE}")
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def user_timezone(user, override: Optional[str] = None) -> ZoneInfo:
    """Zone for a user. An explicit override (X-Timezone header) wins."""
    return resolve_timezone(override or getattr(user, "timezone", None))


def local_date(now: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(now).astimezone(tz).date()
