"""
Skill Inactivity Decay

A skill left untrained for INACTIVITY_THRESHOLD_DAYS starts losing points:

    - BASE_DECAY_POINTS when the threshold is crossed
    - + INTERVAL_DECAY_POINTS per further completed DECAY_INTERVAL_DAYS
    - at most MAX_DECAY_PER_WINDOW points per WINDOW_DAYS window
      (windows start at the threshold and roll forward)
    - never below the skill's calibrated baseline

The decay owed is a pure function of time since last activity. The points
already deducted for the current idle stretch are stored alongside the
skill, so re-evaluating the same interval deducts nothing more. Training
the skill resets both the activity clock and the applied counter.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from services.local_time import ensure_utc
from services.skill_mapping import Skill, DEFAULT_SKILL_VALUE, skill_attr


INACTIVITY_THRESHOLD_DAYS = 30
DECAY_INTERVAL_DAYS = 15
BASE_DECAY_POINTS = 1.0
INTERVAL_DECAY_POINTS = 1.0
MAX_DECAY_PER_WINDOW = 3.0
WINDOW_DAYS = 90


@dataclass
class SkillDecayResult:
    value: float
    decay_applied: float   # total points deducted for the current idle stretch
    delta: float           # change made by this evaluation (<= 0)


def _points_in_window(days_into_window: float) -> float:
    intervals = int(days_into_window // DECAY_INTERVAL_DAYS)
    return min(MAX_DECAY_PER_WINDOW, BASE_DECAY_POINTS + intervals * INTERVAL_DECAY_POINTS)


def inactivity_decay_points(last_activity_at: Optional[datetime], now: datetime) -> float:
    """Total decay owed for the idle stretch ending at ``now``."""
    if last_activity_at is None:
        return 0.0
    idle_days = (ensure_utc(now) - ensure_utc(last_activity_at)).total_seconds() / 86400.0
    if idle_days < INACTIVITY_THRESHOLD_DAYS:
        return 0.0

    overdue = idle_days - INACTIVITY_THRESHOLD_DAYS
    full_windows = int(overdue // WINDOW_DAYS)
    remainder = overdue - full_windows * WINDOW_DAYS
    return full_windows * MAX_DECAY_PER_WINDOW + _points_in_window(remainder)


def apply_skill_decay(
    value: Optional[float],
    last_activity_at: Optional[datetime],
    already_applied: Optional[float],
    now: datetime,
    floor: Optional[float] = 0.0,
) -> SkillDecayResult:
    """Deduct only the decay not yet applied. Never drops below ``floor``."""
    current = DEFAULT_SKILL_VALUE if value is None else value
    applied = already_applied or 0.0
    floor = max(0.0, floor or 0.0)

    owed = inactivity_decay_points(last_activity_at, now)
    pending = max(0.0, owed - applied)
    if pending == 0 or current <= floor:
        return SkillDecayResult(value=current, decay_applied=max(applied, owed), delta=0.0)

    new_value = max(floor, current - pending)
    return SkillDecayResult(
        value=new_value,
        decay_applied=applied + pending,
        delta=new_value - current,
    )


def decay_all_skills(state, now: datetime) -> Dict[Skill, SkillDecayResult]:
    """Evaluate decay for all four skills of a SkillState row (no mutation)."""
    results = {}
    for skill in Skill:
        results[skill] = apply_skill_decay(
            getattr(state, skill_attr(skill)),
            getattr(state, skill_attr(skill, "last_activity_at")),
            getattr(state, skill_attr(skill, "decay_applied")),
            now,
            floor=getattr(state, skill_attr(skill, "baseline")),
        )
    return results
