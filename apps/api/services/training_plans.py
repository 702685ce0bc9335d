"""
Training Plan Configuration

Weekly targets per subscription plan. The engagement and recovery
components of the composite index are normalised against these.

Plan selection is the only place an unknown plan id is detected; the
scoring math always receives a resolved TrainingPlan.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from core.exceptions import UnknownPlanError


@dataclass(frozen=True)
class TrainingPlan:
    plan_id: str
    label: str
    weekly_xp_target: int
    weekly_recovery_minutes: int


TRAINING_PLANS: Dict[str, TrainingPlan] = {
    "light": TrainingPlan("light", "Light", weekly_xp_target=120, weekly_recovery_minutes=480),
    "expert": TrainingPlan("expert", "Expert", weekly_xp_target=200, weekly_recovery_minutes=840),
    "superhuman": TrainingPlan("superhuman", "Superhuman", weekly_xp_target=300, weekly_recovery_minutes=1680),
}

DEFAULT_PLAN_ID = "expert"


def get_training_plan(plan_id: Optional[str]) -> TrainingPlan:
    """Resolve a plan id. Raises UnknownPlanError for anything not configured."""
    plan = TRAINING_PLANS.get((plan_id or "").strip().lower())
    if plan is None:
        raise UnknownPlanError(plan_id)
    return plan


def list_training_plans() -> List[TrainingPlan]:
    return list(TRAINING_PLANS.values())
