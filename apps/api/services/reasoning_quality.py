"""
Reasoning Quality (RQ) Calculator

Blend of three signals, each 0-100:

    a) S2 core          - persistent slow-system skill aggregate
    b) Recent scores    - recency-weighted average of the last 10 slow-system
                          exercise scores (newest weight 1, each older entry
                          x 0.85); falls back to S2 when there are none
    c) Task priming     - reading / listening completions in the last 7 days

    RQ = 0.50*a + 0.30*b + 0.20*c

Task priming:
    podcast 12, article 15, book 20 base points
    x recency weight max(0.3, 1 - 0.1 * days_ago)
    newest five tasks count in full, further tasks at 50%
    capped at 100

Inactivity decay: once 14 days pass with neither a slow-system exercise nor
a task (measured from the latest of last exercise, last task and the account
baseline), RQ loses 2 points per started week, never below max(0, S2 - 10).

Weights are tuning constants; what must hold is that RQ stays in [0, 100]
and that more recent high-quality activity never lowers it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

import logging
import math

from services.local_time import ensure_utc

logger = logging.getLogger(__name__)


RQ_WEIGHTS = {
    "s2": 0.50,
    "scores": 0.30,
    "tasks": 0.20,
}

SCORE_WINDOW = 10
SCORE_RECENCY_DISCOUNT = 0.85

TASK_WEIGHTS = {
    "podcast": 12.0,
    "article": 15.0,
    "book": 20.0,
}
TASK_WINDOW_DAYS = 7
TASK_RECENCY_STEP = 0.1
TASK_MIN_RECENCY = 0.3
FULL_WEIGHT_TASKS = 5
EXTRA_TASK_FACTOR = 0.5

DECAY_GRACE_DAYS = 14
DECAY_POINTS_PER_WEEK = 2.0
DECAY_FLOOR_BELOW_S2 = 10.0

RQ_MULTIPLIER_BASE = 0.85
RQ_MULTIPLIER_SPAN = 0.15


@dataclass
class ReasoningQualityResult:
    rq: float
    s2_component: float
    score_component: float
    task_component: float
    contributions: Dict[str, float] = field(default_factory=dict)
    decay_points: float = 0.0
    is_decaying: bool = False
    days_inactive: Optional[float] = None


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _days_between(earlier: datetime, later: datetime) -> float:
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 86400.0


def recency_weighted_score(scores: Sequence[float], fallback: float) -> float:
    """Weighted mean of chronological ``scores``; the newest weighs most."""
    window = [s for s in scores if s is not None][-SCORE_WINDOW:]
    if not window:
        return fallback
    total = 0.0
    weight_sum = 0.0
    weight = 1.0
    for score in reversed(window):
        total += _clamp(score) * weight
        weight_sum += weight
        weight *= SCORE_RECENCY_DISCOUNT
    return total / weight_sum


def task_priming_score(tasks: Iterable[Tuple[str, datetime]], now: datetime) -> float:
    """Points from (content_type, completed_at) pairs inside the trailing week."""
    recent = []
    for content_type, completed_at in tasks:
        base = TASK_WEIGHTS.get((content_type or "").lower())
        if base is None or completed_at is None:
            continue
        days_ago = max(0.0, _days_between(completed_at, now))
        if days_ago >= TASK_WINDOW_DAYS:
            continue
        recency = max(TASK_MIN_RECENCY, 1.0 - TASK_RECENCY_STEP * math.floor(days_ago))
        recent.append((ensure_utc(completed_at), base * recency))

    recent.sort(key=lambda item: item[0], reverse=True)
    points = 0.0
    for index, (_, value) in enumerate(recent):
        points += value if index < FULL_WEIGHT_TASKS else value * EXTRA_TASK_FACTOR
    return min(100.0, points)


def inactivity_decay(
    last_game_at: Optional[datetime],
    last_task_at: Optional[datetime],
    baseline_at: Optional[datetime],
    now: datetime,
) -> Tuple[float, Optional[float]]:
    """(decay points, days since the latest activity or baseline)."""
    anchors = [ensure_utc(t) for t in (last_game_at, last_task_at, baseline_at) if t is not None]
    if not anchors:
        return 0.0, None
    days_inactive = max(0.0, _days_between(max(anchors), now))
    if days_inactive <= DECAY_GRACE_DAYS:
        return 0.0, days_inactive
    weeks = math.floor((days_inactive - DECAY_GRACE_DAYS) / 7) + 1
    return weeks * DECAY_POINTS_PER_WEEK, days_inactive


class ReasoningQualityCalculator:
    """Computes RQ. ``weights`` overrides RQ_WEIGHTS (normalised to sum 1)."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        weights = dict(weights or RQ_WEIGHTS)
        missing = set(RQ_WEIGHTS) - set(weights)
        if missing:
            raise ValueError(f"RQ weights missing: {sorted(missing)}")
        if any(w < 0 for w in weights.values()):
            raise ValueError("RQ weights must be non-negative")
        total = sum(weights[k] for k in RQ_WEIGHTS)
        if total <= 0:
            raise ValueError("RQ weights must not all be zero")
        self.weights = {k: weights[k] / total for k in RQ_WEIGHTS}

    def compute(
        self,
        s2: Optional[float],
        recent_scores: Sequence[float] = (),
        tasks: Iterable[Tuple[str, datetime]] = (),
        last_game_at: Optional[datetime] = None,
        last_task_at: Optional[datetime] = None,
        baseline_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> ReasoningQualityResult:
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        s2_value = _clamp(50.0 if s2 is None else s2)

        score_component = recency_weighted_score(recent_scores, fallback=s2_value)
        task_component = task_priming_score(tasks, now)

        contributions = {
            "s2": self.weights["s2"] * s2_value,
            "scores": self.weights["scores"] * score_component,
            "tasks": self.weights["tasks"] * task_component,
        }
        raw = sum(contributions.values())

        decay_points, days_inactive = inactivity_decay(last_game_at, last_task_at, baseline_at, now)
        rq = raw
        if decay_points > 0:
            floor = max(0.0, s2_value - DECAY_FLOOR_BELOW_S2)
            rq = max(raw - decay_points, min(raw, floor))
            logger.debug(f"RQ decay {decay_points} after {days_inactive:.1f} idle days")

        return ReasoningQualityResult(
            rq=round(_clamp(rq), 1),
            s2_component=round(s2_value, 1),
            score_component=round(score_component, 1),
            task_component=round(task_component, 1),
            contributions={k: round(v, 2) for k, v in contributions.items()},
            decay_points=decay_points,
            is_decaying=decay_points > 0,
            days_inactive=round(days_inactive, 1) if days_inactive is not None else None,
        )


def rq_multiplier(rq: Optional[float]) -> float:
    """0.85-1.00 scaling factor derived from RQ (0.85 when unknown)."""
    if rq is None:
        return RQ_MULTIPLIER_BASE
    return round(RQ_MULTIPLIER_BASE + RQ_MULTIPLIER_SPAN * _clamp(rq) / 100.0, 4)
