"""
Recovery Decay / Gain Calculator

Recovery is a 0-100 restorative-capacity metric. It decays continuously
with a fixed half-life and is replenished by detox and walking minutes.

    decayed = value * 2 ** (-hours / HALF_LIFE_HOURS)
    gained  = min(100, decayed + GAIN_COEFFICIENT * (detox + 0.5 * walk))

Decay is always applied up to ``now`` before any gain is added, and the
returned timestamp is that same ``now``.

The first value for a user is a baseline derived from onboarding answers
(sleep, detox habits, mental state), clamped to [BASELINE_MIN, BASELINE_MAX].

Optional night weighting: hours between 23:00 and 07:00 local time can be
counted at a reduced rate (RECOVERY_NIGHT_DECAY_MULTIPLIER). The default
multiplier of 1.0 leaves the plain half-life formula in place.

All functions are pure; callers persist the results.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

import logging

from services.local_time import ensure_utc

logger = logging.getLogger(__name__)


HALF_LIFE_HOURS = 72.0
GAIN_COEFFICIENT = 0.12
WALK_WEIGHT = 0.5

RECOVERY_MIN = 0.0
RECOVERY_MAX = 100.0

BASELINE_DEFAULT = 45.0
BASELINE_MIN = 35.0
BASELINE_MAX = 55.0

# Onboarding answer -> points added to BASELINE_DEFAULT
BASELINE_SLEEP_POINTS = {"7-8": 5.0, "6-7": 3.0, "8+": 2.0}
BASELINE_DETOX_POINTS = {"2+": 5.0, "1-2": 3.0}
BASELINE_MENTAL_STATE_POINTS = {"good": 5.0, "okay": 2.0, "stressed": -2.0}

NIGHT_START_HOUR = 23
NIGHT_END_HOUR = 7


@dataclass
class RecoveryUpdate:
    value: float
    timestamp: datetime


def clamp_recovery(value: float) -> float:
    return max(RECOVERY_MIN, min(RECOVERY_MAX, value))


# ------------------------------------------------------------------
# Decay
# ------------------------------------------------------------------

def _next_night_boundary(local_dt: datetime) -> datetime:
    """Next 07:00 or 23:00 wall-clock boundary strictly after ``local_dt``."""
    day_start = local_dt.replace(hour=0, minute=0, second=0, microsecond=0)
    if local_dt.hour < NIGHT_END_HOUR:
        return day_start.replace(hour=NIGHT_END_HOUR)
    if local_dt.hour < NIGHT_START_HOUR:
        return day_start.replace(hour=NIGHT_START_HOUR)
    return (day_start + timedelta(days=1)).replace(hour=NIGHT_END_HOUR)


def effective_decay_hours(
    last_timestamp: datetime,
    now: datetime,
    night_multiplier: float = 1.0,
    tz: Optional[tzinfo] = None,
) -> float:
    """
    Hours of decay between two instants.

    Returns the plain elapsed hours (negative when ``now`` precedes
    ``last_timestamp``) unless a night multiplier below 1.0 is given, in
    which case night hours in ``tz`` count at that rate.
    """
    elapsed = (now - last_timestamp).total_seconds() / 3600.0
    if elapsed <= 0 or night_multiplier >= 1.0:
        return elapsed

    tz = tz or timezone.utc
    cursor = last_timestamp.astimezone(tz)
    end = now.astimezone(tz)
    hours = 0.0
    while cursor < end:
        is_night = cursor.hour >= NIGHT_START_HOUR or cursor.hour < NIGHT_END_HOUR
        segment_end = min(_next_night_boundary(cursor), end)
        # subtract in UTC so DST transitions count real hours
        segment = (
            segment_end.astimezone(timezone.utc) - cursor.astimezone(timezone.utc)
        ).total_seconds() / 3600.0
        hours += segment * (night_multiplier if is_night else 1.0)
        cursor = segment_end
    return hours


def decay(
    current_value: float,
    last_timestamp: Optional[datetime],
    now: datetime,
    night_multiplier: float = 1.0,
    tz: Optional[tzinfo] = None,
) -> float:
    """
    Decay ``current_value`` from ``last_timestamp`` to ``now``.

    No decay when the elapsed time is zero or negative (the input is returned
    unchanged). The result is floored at 0, rounded to 0.1 and never exceeds
    the input.
    """
    if last_timestamp is None:
        return current_value
    hours = effective_decay_hours(ensure_utc(last_timestamp), ensure_utc(now), night_multiplier, tz)
    if hours <= 0:
        return current_value
    decayed = current_value * 2 ** (-hours / HALF_LIFE_HOURS)
    return max(RECOVERY_MIN, min(current_value, round(decayed, 1)))


# ------------------------------------------------------------------
# Gain
# ------------------------------------------------------------------

def apply_gain(
    current_value: float,
    last_timestamp: Optional[datetime],
    detox_minutes: float,
    walk_minutes: float = 0,
    now: Optional[datetime] = None,
    night_multiplier: float = 1.0,
    tz: Optional[tzinfo] = None,
) -> RecoveryUpdate:
    """Decay to ``now``, then add restorative minutes. Capped at 100."""
    if detox_minutes < 0 or walk_minutes < 0:
        raise ValueError("restorative minutes must be non-negative")
    now = now or datetime.now(timezone.utc)

    decayed = decay(current_value, last_timestamp, now, night_multiplier, tz)
    gain = GAIN_COEFFICIENT * (detox_minutes + WALK_WEIGHT * walk_minutes)
    value = min(RECOVERY_MAX, round(decayed + gain, 1))

    logger.debug(
        f"Recovery gain: decayed={decayed} detox={detox_minutes} "
        f"walk={walk_minutes} -> {value}"
    )
    return RecoveryUpdate(value=value, timestamp=now)


# ------------------------------------------------------------------
# Baseline
# ------------------------------------------------------------------

def calculate_baseline(
    sleep_hours: Optional[str] = None,
    detox_hours: Optional[str] = None,
    mental_state: Optional[str] = None,
) -> float:
    """Additive onboarding rule. Unanswered or unrecognised answers add nothing."""
    score = BASELINE_DEFAULT
    score += BASELINE_SLEEP_POINTS.get(sleep_hours or "", 0.0)
    score += BASELINE_DETOX_POINTS.get(detox_hours or "", 0.0)
    score += BASELINE_MENTAL_STATE_POINTS.get((mental_state or "").lower(), 0.0)
    return max(BASELINE_MIN, min(BASELINE_MAX, score))


def initialize_baseline(
    baseline_value: Optional[float] = None,
    now: Optional[datetime] = None,
) -> RecoveryUpdate:
    """First Recovery value for a user, clamped into the baseline band."""
    value = BASELINE_DEFAULT if baseline_value is None else baseline_value
    return RecoveryUpdate(
        value=max(BASELINE_MIN, min(BASELINE_MAX, value)),
        timestamp=now or datetime.now(timezone.utc),
    )


def current_recovery(
    state,
    now: datetime,
    night_multiplier: float = 1.0,
    tz: Optional[tzinfo] = None,
) -> Optional[float]:
    """
    Decayed Recovery for a RecoveryState row at ``now`` (not persisted).

    None until a baseline has been initialised.
    """
    if state is None or not state.has_baseline or state.value is None:
        return None
    return decay(state.value, ensure_utc(state.last_update_at), now, night_multiplier, tz)


def weekly_recovery_percent(
    detox_minutes: float,
    walk_minutes: float,
    target_minutes: float,
) -> float:
    """Share of the weekly restorative target reached, 0-100."""
    if target_minutes <= 0:
        return 0.0
    effective = max(0.0, detox_minutes) + WALK_WEIGHT * max(0.0, walk_minutes)
    return min(100.0, 100.0 * effective / target_minutes)
