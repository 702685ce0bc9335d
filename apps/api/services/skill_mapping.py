"""
Cognitive Skill Mapping

One typed vocabulary for the four trained skills, shared by every
subsystem (scoring, decay, persistence, API).

    AE  Attention / focus stability     fast system (S1)
    RA  Rapid association               fast system (S1)
    CT  Critical thinking               slow system (S2)
    IN  Insight                         slow system (S2)

Training XP is routed to a skill by the exercise's system and focus:
    fast + focus      -> AE
    fast + creativity -> RA
    fast (other)      -> AE
    slow + reasoning  -> CT
    slow + creativity -> IN
    slow + insight    -> IN
    slow (other)      -> CT

Each awarded XP point moves the routed skill by XP_TO_SKILL_FACTOR points.
"""

from enum import Enum
from typing import Dict, Optional


class Skill(str, Enum):
    AE = "AE"
    RA = "RA"
    CT = "CT"
    IN = "IN"


class CognitiveSystem(str, Enum):
    FAST = "S1"
    SLOW = "S2"


class TrainingFocus(str, Enum):
    FOCUS = "focus"
    CREATIVITY = "creativity"
    REASONING = "reasoning"
    INSIGHT = "insight"


# Column prefix on cognitive_skill_state for each skill.
# ("in" is a Python keyword, so IN is stored as in_score.)
SKILL_COLUMNS: Dict[Skill, str] = {
    Skill.AE: "ae",
    Skill.RA: "ra",
    Skill.CT: "ct",
    Skill.IN: "in_score",
}

SKILL_SYSTEM: Dict[Skill, CognitiveSystem] = {
    Skill.AE: CognitiveSystem.FAST,
    Skill.RA: CognitiveSystem.FAST,
    Skill.CT: CognitiveSystem.SLOW,
    Skill.IN: CognitiveSystem.SLOW,
}

# Names used by older clients for the same skills
LEGACY_SKILL_NAMES: Dict[str, Skill] = {
    "focus_stability": Skill.AE,
    "fast_thinking": Skill.RA,
    "reasoning_accuracy": Skill.CT,
    "slow_thinking": Skill.IN,
}

XP_ROUTING: Dict[CognitiveSystem, Dict[Optional[TrainingFocus], Skill]] = {
    CognitiveSystem.FAST: {
        TrainingFocus.FOCUS: Skill.AE,
        TrainingFocus.CREATIVITY: Skill.RA,
        None: Skill.AE,
    },
    CognitiveSystem.SLOW: {
        TrainingFocus.REASONING: Skill.CT,
        TrainingFocus.CREATIVITY: Skill.IN,
        TrainingFocus.INSIGHT: Skill.IN,
        None: Skill.CT,
    },
}

XP_TO_SKILL_FACTOR = 0.5
DEFAULT_SKILL_VALUE = 50.0
SKILL_MIN = 0.0
SKILL_MAX = 100.0


def parse_skill(name: str) -> Skill:
    """Resolve a skill code ("CT") or legacy name ("reasoning_accuracy")."""
    if isinstance(name, Skill):
        return name
    key = (name or "").strip()
    if key.upper() in Skill.__members__:
        return Skill[key.upper()]
    if key.lower() in LEGACY_SKILL_NAMES:
        return LEGACY_SKILL_NAMES[key.lower()]
    raise ValueError(f"Unknown skill: {name!r}")


def route_xp(system: CognitiveSystem, focus: Optional[TrainingFocus] = None) -> Skill:
    """Pick the skill that receives XP for an exercise."""
    routes = XP_ROUTING[CognitiveSystem(system)]
    focus = TrainingFocus(focus) if focus is not None else None
    return routes.get(focus, routes[None])


def skill_gain(xp: float) -> float:
    """Skill points earned for ``xp`` awarded XP."""
    if xp < 0:
        raise ValueError("xp must be non-negative")
    return xp * XP_TO_SKILL_FACTOR


def skill_attr(skill: Skill, suffix: str = "") -> str:
    """Attribute name on SkillState, e.g. skill_attr(Skill.IN, "last_activity_at")."""
    column = SKILL_COLUMNS[Skill(skill)]
    return f"{column}_{suffix}" if suffix else column
