"""
Synthesized Cognitive Index (SCI)

Weighted roll-up of three 0-100 components:

    performance  weighted skill average (AE 0.2, RA 0.2, CT 0.3, IN 0.3,
                 i.e. (AE + RA + CT + IN + S2) / 5)
    engagement   min(100, 100 * weekly training XP / plan XP target)
    recovery     min(100, 100 * (detox + 0.5 * walk) / plan recovery target)

    total = 0.50 * performance + 0.30 * engagement + 0.20 * recovery

Level buckets: elite >= 85, high >= 70, moderate >= 55, developing >= 40,
otherwise early.

The bottleneck is the lowest component (each is already normalised to its
own target); ties go to performance, then engagement, then recovery. It is
advisory only.

A separate weekly decay penalty (low recovery, no training for a week) is
reported next to the total as ``adjusted_total``; ``total`` itself is always
the plain weighted sum.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from services.recovery_engine import weekly_recovery_percent
from services.skill_mapping import Skill, DEFAULT_SKILL_VALUE


SCI_WEIGHTS = {
    "performance": 0.50,
    "engagement": 0.30,
    "recovery": 0.20,
}

PERFORMANCE_WEIGHTS = {
    Skill.AE: 0.20,
    Skill.RA: 0.20,
    Skill.CT: 0.30,
    Skill.IN: 0.30,
}

SCI_LEVELS = [
    (85.0, "elite"),
    (70.0, "high"),
    (55.0, "moderate"),
    (40.0, "developing"),
]
SCI_LEVEL_FLOOR = "early"

# Tie-break order for the bottleneck
COMPONENT_PRIORITY = ("performance", "engagement", "recovery")

SCI_LOW_RECOVERY_THRESHOLD = 40.0
SCI_LOW_RECOVERY_PENALTY = 5.0
SCI_NO_TRAINING_DAYS = 7
SCI_NO_TRAINING_PENALTY = 5.0
SCI_MAX_WEEKLY_PENALTY = 10.0


@dataclass
class EngagementInputs:
    weekly_training_xp: float
    weekly_target_xp: float
    days_since_training: Optional[float] = None


@dataclass
class RecoveryInputs:
    weekly_detox_minutes: float
    weekly_walk_minutes: float
    weekly_target_minutes: float
    current_recovery: Optional[float] = None


@dataclass
class SCIResult:
    total: float
    performance: float
    engagement: float
    recovery: float
    level: str
    bottleneck: str
    decay_penalty: float = 0.0
    adjusted_total: Optional[float] = None


def performance_component(skills: Mapping[Skill, Optional[float]]) -> float:
    score = 0.0
    for skill, weight in PERFORMANCE_WEIGHTS.items():
        value = skills.get(skill)
        score += weight * (DEFAULT_SKILL_VALUE if value is None else value)
    return max(0.0, min(100.0, score))


def engagement_component(weekly_training_xp: float, weekly_target_xp: float) -> float:
    if weekly_target_xp <= 0:
        return 0.0
    return min(100.0, 100.0 * max(0.0, weekly_training_xp) / weekly_target_xp)


def sci_level(total: float) -> str:
    for threshold, level in SCI_LEVELS:
        if total >= threshold:
            return level
    return SCI_LEVEL_FLOOR


def identify_bottleneck(result: SCIResult) -> str:
    """Lowest component; earlier entries of COMPONENT_PRIORITY win ties."""
    bottleneck = COMPONENT_PRIORITY[0]
    for name in COMPONENT_PRIORITY[1:]:
        if getattr(result, name) < getattr(result, bottleneck):
            bottleneck = name
    return bottleneck


def sci_decay_penalty(
    current_recovery: Optional[float],
    days_since_training: Optional[float],
) -> float:
    """
    Weekly SCI penalty.

    5 points while Recovery is below 40, 5 more once a week passes without
    training, at most 10. A user with no training history yet is not
    penalised for inactivity.
    """
    penalty = 0.0
    if current_recovery is not None and current_recovery < SCI_LOW_RECOVERY_THRESHOLD:
        penalty += SCI_LOW_RECOVERY_PENALTY
    if days_since_training is not None and days_since_training >= SCI_NO_TRAINING_DAYS:
        penalty += SCI_NO_TRAINING_PENALTY
    return min(SCI_MAX_WEEKLY_PENALTY, penalty)


def calculate_sci(
    cognitive: Mapping[Skill, Optional[float]],
    engagement: EngagementInputs,
    recovery: RecoveryInputs,
) -> SCIResult:
    performance_score = round(performance_component(cognitive), 1)
    engagement_score = round(
        engagement_component(engagement.weekly_training_xp, engagement.weekly_target_xp), 1
    )
    recovery_score = round(
        weekly_recovery_percent(
            recovery.weekly_detox_minutes,
            recovery.weekly_walk_minutes,
            recovery.weekly_target_minutes,
        ),
        1,
    )

    total = round(
        SCI_WEIGHTS["performance"] * performance_score
        + SCI_WEIGHTS["engagement"] * engagement_score
        + SCI_WEIGHTS["recovery"] * recovery_score,
        1,
    )
    penalty = sci_decay_penalty(recovery.current_recovery, engagement.days_since_training)

    result = SCIResult(
        total=total,
        performance=performance_score,
        engagement=engagement_score,
        recovery=recovery_score,
        level=sci_level(total),
        bottleneck="",
        decay_penalty=penalty,
        adjusted_total=round(max(0.0, total - penalty), 1),
    )
    result.bottleneck = identify_bottleneck(result)
    return result
