"""
Derived Score Calculator

Turns the four skill values and the current Recovery into the headline
metrics:

    S1         = avg(AE, RA)                       fast system
    S2         = avg(CT, IN)                       slow system
    Sharpness  = (0.6*S1 + 0.4*S2) * (0.75 + 0.25*Recovery/100)
    Readiness  = 0.35*Recovery + 0.35*S2 + 0.30*AE - penalty

When a physiological component (wearable HRV / resting HR / sleep) is
available, Readiness weights are redistributed:

    Readiness  = 0.5*physio + 0.5*(0.30*CT + 0.25*AE + 0.20*IN + 0.15*S2 + 0.10*S1) - penalty

Readiness decay penalty (consecutive completed low-recovery days):
    < 3 days   -> 0
    3 days     -> 5
    each extra -> +2
    capped at 15 for the accounting week

The penalty is a pure function of the streak, so recomputing metrics any
number of times within a day never applies it twice, and it drops to 0 as
soon as the streak breaks.

Dual-process decay: -5 when one system's weekly training XP is at least
twice the other's (training only one side counts), at most 10 per week.

Missing inputs are "not yet initialised": skills default to 50 and an
unknown Recovery is scored as a neutral 50.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import logging

from services.skill_mapping import Skill, DEFAULT_SKILL_VALUE

logger = logging.getLogger(__name__)


NEUTRAL_RECOVERY = 50.0

SHARPNESS_WEIGHTS = {"s1": 0.6, "s2": 0.4}
SHARPNESS_RECOVERY_FLOOR = 0.75
SHARPNESS_RECOVERY_SPAN = 0.25

READINESS_WEIGHTS = {
    "recovery": 0.35,
    "s2": 0.35,
    "ae": 0.30,
}

# Used when a physiological component is present
READINESS_PHYSIO_SHARE = 0.5
READINESS_COGNITIVE_WEIGHTS = {
    "ct": 0.30,
    "ae": 0.25,
    "in": 0.20,
    "s2": 0.15,
    "s1": 0.10,
}

PHYSIO_WEIGHTS = {"hrv": 0.4, "resting_hr": 0.2, "sleep": 0.4}
HRV_RANGE_MS = (20.0, 120.0)
RESTING_HR_RANGE_BPM = (45.0, 90.0)          # inverted: lower is better
SLEEP_DURATION_RANGE_MIN = (300.0, 540.0)     # 5h - 9h
SLEEP_EFFICIENCY_RANGE = (0.70, 0.98)
SLEEP_SCORE_WEIGHTS = {"duration": 0.6, "efficiency": 0.4}

PENALTY_TRIGGER_DAYS = 3
PENALTY_INITIAL_POINTS = 5.0
PENALTY_DAILY_INCREMENT = 2.0
PENALTY_MAX_POINTS = 15.0

BALANCE_ELITE = 85.0
BALANCE_GOOD = 70.0

DUAL_PROCESS_IMBALANCE_RATIO = 2.0
DUAL_PROCESS_IMBALANCE_POINTS = 5.0
DUAL_PROCESS_DECAY_MAX_WEEKLY = 10.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _scale(value: float, low: float, high: float) -> float:
    """Linear map of [low, high] onto [0, 100], clamped."""
    return _clamp(100.0 * (value - low) / (high - low))


def _skill(skills: Mapping[Skill, Optional[float]], skill: Skill) -> float:
    value = skills.get(skill)
    return DEFAULT_SKILL_VALUE if value is None else float(value)


def _recovery(recovery: Optional[float]) -> float:
    return NEUTRAL_RECOVERY if recovery is None else float(recovery)


# ------------------------------------------------------------------
# Component formulas
# ------------------------------------------------------------------

def system_scores(skills: Mapping[Skill, Optional[float]]) -> Tuple[float, float]:
    """(S1, S2) from the four skills."""
    s1 = (_skill(skills, Skill.AE) + _skill(skills, Skill.RA)) / 2.0
    s2 = (_skill(skills, Skill.CT) + _skill(skills, Skill.IN)) / 2.0
    return s1, s2


def sharpness(skills: Mapping[Skill, Optional[float]], recovery: Optional[float]) -> float:
    s1, s2 = system_scores(skills)
    base = SHARPNESS_WEIGHTS["s1"] * s1 + SHARPNESS_WEIGHTS["s2"] * s2
    modifier = SHARPNESS_RECOVERY_FLOOR + SHARPNESS_RECOVERY_SPAN * _recovery(recovery) / 100.0
    return round(_clamp(base * modifier), 1)


def readiness(
    skills: Mapping[Skill, Optional[float]],
    recovery: Optional[float],
    physio: Optional[float] = None,
    penalty: float = 0.0,
) -> float:
    s1, s2 = system_scores(skills)
    ae = _skill(skills, Skill.AE)

    if physio is None:
        score = (
            READINESS_WEIGHTS["recovery"] * _recovery(recovery)
            + READINESS_WEIGHTS["s2"] * s2
            + READINESS_WEIGHTS["ae"] * ae
        )
    else:
        cognitive = (
            READINESS_COGNITIVE_WEIGHTS["ct"] * _skill(skills, Skill.CT)
            + READINESS_COGNITIVE_WEIGHTS["ae"] * ae
            + READINESS_COGNITIVE_WEIGHTS["in"] * _skill(skills, Skill.IN)
            + READINESS_COGNITIVE_WEIGHTS["s2"] * s2
            + READINESS_COGNITIVE_WEIGHTS["s1"] * s1
        )
        score = READINESS_PHYSIO_SHARE * physio + (1.0 - READINESS_PHYSIO_SHARE) * cognitive

    return round(_clamp(score - max(0.0, penalty)), 1)


def physio_component(reading) -> Optional[float]:
    """
    0-100 physiological score from a wearable reading.

    Needs HRV, resting HR, sleep duration and sleep efficiency; returns None
    if the reading is absent or any field is missing. Efficiency may be a
    fraction (0.91) or a percentage (91).
    """
    if reading is None:
        return None
    hrv = getattr(reading, "hrv_ms", None)
    resting_hr = getattr(reading, "resting_hr", None)
    duration = getattr(reading, "sleep_duration_min", None)
    efficiency = getattr(reading, "sleep_efficiency", None)
    if hrv is None or resting_hr is None or duration is None or efficiency is None:
        return None

    if efficiency > 1.0:
        efficiency = efficiency / 100.0

    hrv_score = _scale(hrv, *HRV_RANGE_MS)
    hr_score = 100.0 - _scale(resting_hr, *RESTING_HR_RANGE_BPM)
    sleep_score = (
        SLEEP_SCORE_WEIGHTS["duration"] * _scale(duration, *SLEEP_DURATION_RANGE_MIN)
        + SLEEP_SCORE_WEIGHTS["efficiency"] * _scale(efficiency, *SLEEP_EFFICIENCY_RANGE)
    )
    score = (
        PHYSIO_WEIGHTS["hrv"] * hrv_score
        + PHYSIO_WEIGHTS["resting_hr"] * hr_score
        + PHYSIO_WEIGHTS["sleep"] * sleep_score
    )
    return round(_clamp(score), 1)


def readiness_decay_penalty(consecutive_low_recovery_days: int) -> float:
    if consecutive_low_recovery_days < PENALTY_TRIGGER_DAYS:
        return 0.0
    extra_days = consecutive_low_recovery_days - PENALTY_TRIGGER_DAYS
    return min(PENALTY_MAX_POINTS, PENALTY_INITIAL_POINTS + extra_days * PENALTY_DAILY_INCREMENT)


def dual_process_balance(s1: float, s2: float) -> Tuple[float, str]:
    """100 - |S1 - S2| and its level (elite / good / unbalanced)."""
    balance = round(_clamp(100.0 - abs(s1 - s2)), 1)
    if balance >= BALANCE_ELITE:
        return balance, "elite"
    if balance >= BALANCE_GOOD:
        return balance, "good"
    return balance, "unbalanced"


def dual_process_decay(weekly_s1_xp: float, weekly_s2_xp: float, already_applied: float = 0.0) -> float:
    """
    Points to deduct when one system is trained at least twice as much as the
    other over the trailing week. Training only one side counts as imbalanced;
    no training at all does not. Never more than 10 points per week.
    """
    remaining = DUAL_PROCESS_DECAY_MAX_WEEKLY - already_applied
    if remaining <= 0:
        return 0.0
    if weekly_s1_xp <= 0 and weekly_s2_xp <= 0:
        return 0.0
    low, high = sorted((max(0.0, weekly_s1_xp), max(0.0, weekly_s2_xp)))
    if low == 0 or high / low >= DUAL_PROCESS_IMBALANCE_RATIO:
        return min(DUAL_PROCESS_IMBALANCE_POINTS, remaining)
    return 0.0


# ------------------------------------------------------------------
# Calculator
# ------------------------------------------------------------------

@dataclass
class DerivedScores:
    s1: float
    s2: float
    sharpness: float
    readiness: float
    readiness_penalty: float
    physio: Optional[float]
    balance: float
    balance_level: str
    balance_decay: float
    recovery_input: Optional[float]
    skills: Dict[str, float] = field(default_factory=dict)


class DerivedScoreCalculator:
    """Bundles the derived-score formulas for one computation pass."""

    def compute(
        self,
        skills: Mapping[Skill, Optional[float]],
        recovery: Optional[float],
        reading=None,
        low_recovery_days: int = 0,
        weekly_s1_xp: float = 0,
        weekly_s2_xp: float = 0,
    ) -> DerivedScores:
        s1, s2 = system_scores(skills)
        physio = physio_component(reading)
        penalty = readiness_decay_penalty(low_recovery_days)
        balance, level = dual_process_balance(s1, s2)
        balance_decay = dual_process_decay(weekly_s1_xp, weekly_s2_xp)

        result = DerivedScores(
            s1=round(s1, 1),
            s2=round(s2, 1),
            sharpness=sharpness(skills, recovery),
            readiness=readiness(skills, recovery, physio=physio, penalty=penalty),
            readiness_penalty=penalty,
            physio=physio,
            balance=balance,
            balance_level=level,
            balance_decay=balance_decay,
            recovery_input=recovery,
            skills={skill.value: round(_skill(skills, skill), 1) for skill in Skill},
        )
        if penalty:
            logger.info(
                f"Readiness decay penalty {penalty} after {low_recovery_days} low-recovery days"
            )
        return result
