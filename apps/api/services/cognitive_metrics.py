"""
Cognitive Metrics Service

Runs the metrics computation pass and the user actions that feed it.

Computation pass (compute_metrics_pass):
    1. resolve the training plan (unknown plan fails loudly)
    2. load skill state, apply lazy inactivity decay, persist the delta
    3. current Recovery (decayed to now, not persisted)
    4. Readiness penalty from completed low-recovery days
    5. physiological component from today's wearable reading
    6. Sharpness, Readiness, S1 / S2, dual-process balance and decay
    7. Reasoning Quality from training and content history
    8. SCI from rolling 7-day aggregates and plan targets
    9. commit the daily snapshot, upsert the daily metric history

Actions (training, calibration, recovery sessions, content, baseline, wearables) persist
their input, run the pass, refresh the metrics cache and fire the matching
intraday event.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

import logging

from sqlalchemy import case, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from core.database import dialect_insert
from models import (
    User,
    SkillState,
    RecoveryState,
    DailyMetricSnapshot,
    TrainingCompletion,
    RecoverySession,
    ContentCompletion,
    WearableReading,
)
from services.composite_index import EngagementInputs, RecoveryInputs, SCIResult, calculate_sci
from services.derived_scores import DerivedScoreCalculator, DerivedScores
from services.intraday_events import IntradayEventType, dispatch_intraday_event
from services.local_time import ensure_utc, local_date, user_timezone, utc_now
from services.metric_cache import metric_cache
from services.reasoning_quality import (
    ReasoningQualityCalculator,
    ReasoningQualityResult,
    SCORE_WINDOW,
    TASK_WEIGHTS,
    TASK_WINDOW_DAYS,
    rq_multiplier,
)
from services.recovery_engine import (
    apply_gain,
    calculate_baseline,
    current_recovery,
    initialize_baseline,
)
from services.recovery_snapshot import (
    SnapshotCommitResult,
    commit_daily_snapshot,
    completed_low_recovery_days,
    get_snapshot,
)
from services.skill_decay import decay_all_skills
from services.skill_mapping import (
    SKILL_SYSTEM,
    CognitiveSystem,
    Skill,
    SKILL_MAX,
    SKILL_MIN,
    parse_skill,
    route_xp,
    skill_attr,
    skill_gain,
)
from services.training_plans import TrainingPlan, get_training_plan

logger = logging.getLogger(__name__)


WEEKLY_WINDOW_DAYS = 7
HISTORY_CHANGE_THRESHOLD = 0.5
HISTORY_FIELDS = (
    "readiness", "sharpness", "recovery", "reasoning_quality",
    "s1", "s2", "ae", "ra", "ct", "in_score", "sci",
)


@dataclass
class WeeklyActivity:
    training_xp: int
    s1_xp: int
    s2_xp: int
    detox_minutes: int
    walk_minutes: int
    last_training_at: Optional[datetime]


@dataclass
class MetricsPassResult:
    user_id: UUID
    local_date: date
    computed_at: datetime
    plan: TrainingPlan
    recovery: Optional[float]
    derived: DerivedScores
    reasoning: ReasoningQualityResult
    sci: SCIResult
    snapshot: SnapshotCommitResult
    low_recovery_days: int
    skill_decay_points: float = 0.0

    @property
    def metrics(self) -> Dict[str, Optional[float]]:
        """The four headline metrics, as recorded on intraday events."""
        return {
            "readiness": self.derived.readiness,
            "sharpness": self.derived.sharpness,
            "recovery": self.recovery,
            "reasoning_quality": self.reasoning.rq,
        }

    def history_values(self) -> Dict[str, Optional[float]]:
        skills = self.derived.skills
        return {
            **self.metrics,
            "s1": self.derived.s1,
            "s2": self.derived.s2,
            "ae": skills.get(Skill.AE.value),
            "ra": skills.get(Skill.RA.value),
            "ct": skills.get(Skill.CT.value),
            "in_score": skills.get(Skill.IN.value),
            "sci": self.sci.total,
        }

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe representation (cached and returned by the API)."""
        return {
            "user_id": str(self.user_id),
            "local_date": self.local_date.isoformat(),
            "computed_at": self.computed_at.isoformat(),
            "plan": self.plan.plan_id,
            "recovery": self.recovery,
            "sharpness": self.derived.sharpness,
            "readiness": self.derived.readiness,
            "readiness_penalty": self.derived.readiness_penalty,
            "low_recovery_days": self.low_recovery_days,
            "physio": self.derived.physio,
            "s1": self.derived.s1,
            "s2": self.derived.s2,
            "skills": dict(self.derived.skills),
            "dual_process_balance": self.derived.balance,
            "dual_process_level": self.derived.balance_level,
            "dual_process_decay": self.derived.balance_decay,
            "reasoning_quality": self.reasoning.rq,
            "reasoning_quality_detail": {
                "s2_component": self.reasoning.s2_component,
                "score_component": self.reasoning.score_component,
                "task_component": self.reasoning.task_component,
                "decay_points": self.reasoning.decay_points,
                "is_decaying": self.reasoning.is_decaying,
                "multiplier": rq_multiplier(self.reasoning.rq),
            },
            "sci": {
                "total": self.sci.total,
                "performance": self.sci.performance,
                "engagement": self.sci.engagement,
                "recovery": self.sci.recovery,
                "level": self.sci.level,
                "bottleneck": self.sci.bottleneck,
                "decay_penalty": self.sci.decay_penalty,
                "adjusted_total": self.sci.adjusted_total,
            },
            "snapshot": {
                "outcome": self.snapshot.outcome.value,
                "streak_days": self.snapshot.streak_days,
            },
            "skill_decay_points": self.skill_decay_points,
        }


# ------------------------------------------------------------------
# State loading
# ------------------------------------------------------------------

def get_or_create_skill_state(db: Session, user_id: UUID) -> SkillState:
    state = db.query(SkillState).filter(SkillState.user_id == user_id).first()
    if state is None:
        state = SkillState(user_id=user_id, ae=50.0, ra=50.0, ct=50.0, in_score=50.0)
        db.add(state)
        db.flush()
    return state


def get_or_create_recovery_state(db: Session, user_id: UUID) -> RecoveryState:
    state = db.query(RecoveryState).filter(RecoveryState.user_id == user_id).first()
    if state is None:
        state = RecoveryState(user_id=user_id, value=None, has_baseline=False)
        db.add(state)
        db.flush()
    return state


def skills_from_state(state: SkillState) -> Dict[Skill, float]:
    return {skill: getattr(state, skill_attr(skill)) for skill in Skill}


def apply_lazy_skill_decay(db: Session, state: SkillState, now: datetime) -> float:
    """
    Persist pending inactivity decay. Returns points removed.

    Each skill is written with an UPDATE guarded on the value, the applied
    counter and the activity clock that were read. If a training completion
    changed the skill in between, the guard fails and the decay is left for
    the next pass to re-evaluate.
    """
    removed = 0.0
    for skill, result in decay_all_skills(state, now).items():
        column = skill_attr(skill)
        applied_column = skill_attr(skill, "decay_applied")
        activity_column = skill_attr(skill, "last_activity_at")
        read_applied = getattr(state, applied_column)
        if result.delta == 0 and result.decay_applied == read_applied:
            continue

        stmt = (
            update(SkillState)
            .where(
                SkillState.id == state.id,
                getattr(SkillState, column) == getattr(state, column),
                getattr(SkillState, applied_column) == read_applied,
                getattr(SkillState, activity_column).is_not_distinct_from(getattr(state, activity_column)),
            )
            .values({column: result.value, applied_column: result.decay_applied, "updated_at": now})
            .execution_options(synchronize_session=False)
        )
        if db.execute(stmt).rowcount == 0:
            logger.warning(f"Skill {skill.value} for user {state.user_id} changed concurrently; decay deferred")
            continue
        removed += -result.delta

    db.expire(state)
    if removed:
        logger.info(f"Skill inactivity decay removed {removed:.1f} points for user {state.user_id}")
    return removed


def weekly_activity(db: Session, user_id: UUID, now: datetime) -> WeeklyActivity:
    since = now - timedelta(days=WEEKLY_WINDOW_DAYS)

    xp_by_system = dict(
        db.query(TrainingCompletion.system, func.coalesce(func.sum(TrainingCompletion.xp_awarded), 0))
        .filter(
            TrainingCompletion.user_id == user_id,
            TrainingCompletion.completed_at > since,
            TrainingCompletion.completed_at <= now,
        )
        .group_by(TrainingCompletion.system)
        .all()
    )
    minutes_by_kind = dict(
        db.query(RecoverySession.kind, func.coalesce(func.sum(RecoverySession.minutes), 0))
        .filter(
            RecoverySession.user_id == user_id,
            RecoverySession.completed_at > since,
            RecoverySession.completed_at <= now,
        )
        .group_by(RecoverySession.kind)
        .all()
    )
    last_training_at = (
        db.query(func.max(TrainingCompletion.completed_at))
        .filter(TrainingCompletion.user_id == user_id)
        .scalar()
    )
    return WeeklyActivity(
        training_xp=int(sum(xp_by_system.values())),
        s1_xp=int(xp_by_system.get(CognitiveSystem.FAST.value, 0)),
        s2_xp=int(xp_by_system.get(CognitiveSystem.SLOW.value, 0)),
        detox_minutes=int(minutes_by_kind.get("detox", 0)),
        walk_minutes=int(minutes_by_kind.get("walking", 0)),
        last_training_at=ensure_utc(last_training_at),
    )


def _reasoning_quality(db: Session, user: User, s2: float, now: datetime) -> ReasoningQualityResult:
    slow_rows = (
        db.query(TrainingCompletion.score, TrainingCompletion.completed_at)
        .filter(
            TrainingCompletion.user_id == user.id,
            TrainingCompletion.system == CognitiveSystem.SLOW.value,
            TrainingCompletion.completed_at <= now,
        )
        .order_by(TrainingCompletion.completed_at.desc())
        .limit(SCORE_WINDOW)
        .all()
    )
    recent_scores = [row.score for row in reversed(slow_rows) if row.score is not None]
    last_game_at = ensure_utc(slow_rows[0].completed_at) if slow_rows else None

    task_rows = (
        db.query(ContentCompletion.content_type, ContentCompletion.completed_at)
        .filter(
            ContentCompletion.user_id == user.id,
            ContentCompletion.completed_at > now - timedelta(days=TASK_WINDOW_DAYS),
            ContentCompletion.completed_at <= now,
        )
        .all()
    )
    last_task_at = (
        db.query(func.max(ContentCompletion.completed_at))
        .filter(ContentCompletion.user_id == user.id, ContentCompletion.completed_at <= now)
        .scalar()
    )

    return ReasoningQualityCalculator().compute(
        s2=s2,
        recent_scores=recent_scores,
        tasks=[(row.content_type, ensure_utc(row.completed_at)) for row in task_rows],
        last_game_at=last_game_at,
        last_task_at=ensure_utc(last_task_at),
        baseline_at=ensure_utc(user.created_at),
        now=now,
    )


# ------------------------------------------------------------------
# Daily metric history
# ------------------------------------------------------------------

def _history_changed(existing: Optional[DailyMetricSnapshot], values: Dict[str, Optional[float]]) -> bool:
    if existing is None:
        return True
    for name, new in values.items():
        old = getattr(existing, name)
        if old is None and new is None:
            continue
        if old is None or new is None:
            return True
        if abs(new - old) > HISTORY_CHANGE_THRESHOLD:
            return True
    return False


def upsert_metric_history(
    db: Session,
    user_id: UUID,
    snapshot_date: date,
    values: Dict[str, Optional[float]],
    now: datetime,
) -> bool:
    """
    Record the day's metrics when any value moved more than 0.5 points.

    Returns True when a row was written. Failures are logged and swallowed;
    history never breaks a metrics response.
    """
    existing = (
        db.query(DailyMetricSnapshot)
        .filter(DailyMetricSnapshot.user_id == user_id, DailyMetricSnapshot.snapshot_date == snapshot_date)
        .first()
    )
    if not _history_changed(existing, values):
        return False

    table = DailyMetricSnapshot.__table__
    insert = dialect_insert(db)
    stmt = insert(table).values(
        id=uuid4(), user_id=user_id, snapshot_date=snapshot_date, updated_at=now, **values
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.snapshot_date],
        set_={key: stmt.excluded[key] for key in (*values.keys(), "updated_at")},
    )
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Metric history upsert failed for user {user_id} on {snapshot_date}: {e}")
        return False

    if existing is not None:
        db.expire(existing)
    return True


def get_metric_history(db: Session, user_id: UUID, start: date, end: date) -> List[DailyMetricSnapshot]:
    if start > end:
        raise ValueError("start must not be after end")
    return (
        db.query(DailyMetricSnapshot)
        .filter(
            DailyMetricSnapshot.user_id == user_id,
            DailyMetricSnapshot.snapshot_date >= start,
            DailyMetricSnapshot.snapshot_date <= end,
        )
        .order_by(DailyMetricSnapshot.snapshot_date.asc())
        .all()
    )


# ------------------------------------------------------------------
# Computation pass
# ------------------------------------------------------------------

def compute_metrics_pass(
    db: Session,
    user: User,
    now: Optional[datetime] = None,
    tz=None,
) -> MetricsPassResult:
    now = ensure_utc(now) if now else utc_now()
    tz = tz or user_timezone(user)
    today = local_date(now, tz)

    plan = get_training_plan(user.training_plan)

    skill_state = get_or_create_skill_state(db, user.id)
    decay_points = apply_lazy_skill_decay(db, skill_state, now)
    db.commit()

    recovery_state = db.query(RecoveryState).filter(RecoveryState.user_id == user.id).first()
    recovery = current_recovery(recovery_state, now, settings.RECOVERY_NIGHT_DECAY_MULTIPLIER, tz)

    low_recovery_days = completed_low_recovery_days(get_snapshot(db, user.id), today)

    reading = (
        db.query(WearableReading)
        .filter(WearableReading.user_id == user.id, WearableReading.reading_date == today)
        .first()
    )

    weekly = weekly_activity(db, user.id, now)

    skills = skills_from_state(skill_state)
    derived = DerivedScoreCalculator().compute(
        skills, recovery, reading, low_recovery_days,
        weekly_s1_xp=weekly.s1_xp, weekly_s2_xp=weekly.s2_xp,
    )

    reasoning = _reasoning_quality(db, user, derived.s2, now)

    days_since_training = None
    if weekly.last_training_at is not None:
        days_since_training = (now - weekly.last_training_at).total_seconds() / 86400.0
    sci = calculate_sci(
        skills,
        EngagementInputs(
            weekly_training_xp=weekly.training_xp,
            weekly_target_xp=plan.weekly_xp_target,
            days_since_training=days_since_training,
        ),
        RecoveryInputs(
            weekly_detox_minutes=weekly.detox_minutes,
            weekly_walk_minutes=weekly.walk_minutes,
            weekly_target_minutes=plan.weekly_recovery_minutes,
            current_recovery=recovery,
        ),
    )

    snapshot = commit_daily_snapshot(db, user.id, today, recovery, now=now)

    result = MetricsPassResult(
        user_id=user.id,
        local_date=today,
        computed_at=now,
        plan=plan,
        recovery=recovery,
        derived=derived,
        reasoning=reasoning,
        sci=sci,
        snapshot=snapshot,
        low_recovery_days=low_recovery_days,
        skill_decay_points=decay_points,
    )
    upsert_metric_history(db, user.id, today, result.history_values(), now)

    if decay_points > 0:
        dispatch_intraday_event(
            db, user.id, IntradayEventType.DECAY, result.metrics,
            {"skill_decay_points": round(decay_points, 1)}, now=now, local_date=today,
        )
    return result


def refresh_metrics(db: Session, user: User, now: Optional[datetime] = None, tz=None) -> MetricsPassResult:
    """Run the pass and store the payload as the user's last known good metrics."""
    result = compute_metrics_pass(db, user, now=now, tz=tz)
    metric_cache.write(user.id, result.to_payload(), now=result.computed_at)
    return result


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------

def record_training_completion(
    db: Session,
    user: User,
    xp: int,
    system: Optional[str] = None,
    focus: Optional[str] = None,
    skill: Optional[str] = None,
    score: Optional[float] = None,
    exercise_id: Optional[str] = None,
    now: Optional[datetime] = None,
    tz=None,
) -> Tuple[TrainingCompletion, MetricsPassResult]:
    """
    Credit a completed exercise.

    The XP goes to ``skill`` when given, otherwise to the skill routed from
    ``system`` and ``focus``. The skill's inactivity clock restarts.
    """
    now = ensure_utc(now) if now else utc_now()
    if xp < 0:
        raise ValueError("xp must be non-negative")
    if score is not None and not 0 <= score <= 100:
        raise ValueError("score must be between 0 and 100")

    if skill is not None:
        target = parse_skill(skill)
    elif system is not None:
        target = route_xp(CognitiveSystem(system), focus)
    else:
        raise ValueError("either skill or system is required")

    state = get_or_create_skill_state(db, user.id)
    column = skill_attr(target)
    raised = getattr(SkillState, column) + skill_gain(xp)
    # in-database increment so a concurrent decay write cannot drop the gain
    db.execute(
        update(SkillState)
        .where(SkillState.id == state.id)
        .values({
            column: case((raised > SKILL_MAX, SKILL_MAX), else_=raised),
            skill_attr(target, "last_activity_at"): now,
            skill_attr(target, "decay_applied"): 0.0,
            "updated_at": now,
        })
        .execution_options(synchronize_session=False)
    )
    db.expire(state)

    completion = TrainingCompletion(
        user_id=user.id,
        exercise_id=exercise_id,
        skill=target.value,
        system=SKILL_SYSTEM[target].value,
        focus=focus,
        xp_awarded=xp,
        score=score,
        completed_at=now,
    )
    db.add(completion)
    db.commit()

    result = refresh_metrics(db, user, now=now, tz=tz)
    dispatch_intraday_event(
        db, user.id, IntradayEventType.GAME, result.metrics,
        {"skill": target.value, "xp": xp, "score": score}, now=now, local_date=result.local_date,
    )
    return completion, result


def calibrate_skills(
    db: Session,
    user: User,
    skills: Dict[str, float],
    now: Optional[datetime] = None,
    tz=None,
) -> MetricsPassResult:
    """
    Store assessed skill levels.

    Each assessed value becomes both the current value and the baseline that
    inactivity decay may not cross. The inactivity clock restarts.
    """
    now = ensure_utc(now) if now else utc_now()
    if not skills:
        raise ValueError("at least one skill is required")
    assessed = {}
    for name, value in skills.items():
        skill = parse_skill(name)
        if value is None or not SKILL_MIN <= value <= SKILL_MAX:
            raise ValueError(f"{skill.value} must be between {SKILL_MIN:g} and {SKILL_MAX:g}")
        assessed[skill] = float(value)

    state = get_or_create_skill_state(db, user.id)
    for skill, value in assessed.items():
        setattr(state, skill_attr(skill), value)
        setattr(state, skill_attr(skill, "baseline"), value)
        setattr(state, skill_attr(skill, "last_activity_at"), now)
        setattr(state, skill_attr(skill, "decay_applied"), 0.0)
    state.updated_at = now
    db.commit()
    logger.info(f"Calibrated {', '.join(s.value for s in assessed)} for user {user.id}")

    return refresh_metrics(db, user, now=now, tz=tz)


def _ensure_baseline(user: User, state: RecoveryState, now: datetime) -> bool:
    if state.has_baseline and state.value is not None:
        return False
    baseline = calculate_baseline(
        user.onboarding_sleep_hours,
        user.onboarding_detox_hours,
        user.onboarding_mental_state,
    )
    update = initialize_baseline(baseline, now)
    state.value = update.value
    state.last_update_at = update.timestamp
    state.has_baseline = True
    state.updated_at = now
    logger.info(f"Recovery baseline {update.value} initialised for user {user.id}")
    return True


def record_recovery_session(
    db: Session,
    user: User,
    detox_minutes: int = 0,
    walk_minutes: int = 0,
    now: Optional[datetime] = None,
    tz=None,
) -> Tuple[RecoveryState, MetricsPassResult]:
    """Decay stored Recovery to now, then add the session's minutes."""
    now = ensure_utc(now) if now else utc_now()
    if detox_minutes < 0 or walk_minutes < 0:
        raise ValueError("restorative minutes must be non-negative")
    if detox_minutes == 0 and walk_minutes == 0:
        raise ValueError("a recovery session needs detox or walking minutes")
    tz = tz or user_timezone(user)

    state = get_or_create_recovery_state(db, user.id)
    _ensure_baseline(user, state, now)
    update = apply_gain(
        state.value,
        ensure_utc(state.last_update_at),
        detox_minutes,
        walk_minutes,
        now=now,
        night_multiplier=settings.RECOVERY_NIGHT_DECAY_MULTIPLIER,
        tz=tz,
    )
    state.value = update.value
    state.last_update_at = update.timestamp
    state.updated_at = now

    if detox_minutes:
        db.add(RecoverySession(user_id=user.id, kind="detox", minutes=detox_minutes, completed_at=now))
    if walk_minutes:
        db.add(RecoverySession(user_id=user.id, kind="walking", minutes=walk_minutes, completed_at=now))
    db.commit()

    result = refresh_metrics(db, user, now=now, tz=tz)
    if detox_minutes:
        dispatch_intraday_event(
            db, user.id, IntradayEventType.DETOX, result.metrics,
            {"minutes": detox_minutes}, now=now, local_date=result.local_date,
        )
    if walk_minutes:
        dispatch_intraday_event(
            db, user.id, IntradayEventType.WALKING, result.metrics,
            {"minutes": walk_minutes}, now=now, local_date=result.local_date,
        )
    return state, result


def record_content_completion(
    db: Session,
    user: User,
    content_type: str,
    title: Optional[str] = None,
    now: Optional[datetime] = None,
    tz=None,
) -> Tuple[ContentCompletion, MetricsPassResult]:
    now = ensure_utc(now) if now else utc_now()
    content_type = (content_type or "").lower()
    if content_type not in TASK_WEIGHTS:
        raise ValueError(f"content_type must be one of {sorted(TASK_WEIGHTS)}")

    completion = ContentCompletion(user_id=user.id, content_type=content_type, title=title, completed_at=now)
    db.add(completion)
    db.commit()

    result = refresh_metrics(db, user, now=now, tz=tz)
    dispatch_intraday_event(
        db, user.id, IntradayEventType.TASK, result.metrics,
        {"content_type": content_type, "title": title}, now=now, local_date=result.local_date,
    )
    return completion, result


def initialize_recovery_baseline(
    db: Session,
    user: User,
    sleep_hours: Optional[str] = None,
    detox_hours: Optional[str] = None,
    mental_state: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[RecoveryState, bool]:
    """
    Store onboarding answers and set the first Recovery value.

    Idempotent: once a baseline exists it is returned unchanged and the
    second element is False.
    """
    now = ensure_utc(now) if now else utc_now()
    state = get_or_create_recovery_state(db, user.id)
    if state.has_baseline and state.value is not None:
        return state, False

    if sleep_hours is not None:
        user.onboarding_sleep_hours = sleep_hours
    if detox_hours is not None:
        user.onboarding_detox_hours = detox_hours
    if mental_state is not None:
        user.onboarding_mental_state = mental_state

    created = _ensure_baseline(user, state, now)
    db.commit()
    metric_cache.invalidate(user.id)
    return state, created


def record_wearable_reading(
    db: Session,
    user: User,
    reading_date: date,
    hrv_ms: Optional[float] = None,
    resting_hr: Optional[float] = None,
    sleep_duration_min: Optional[float] = None,
    sleep_efficiency: Optional[float] = None,
    source: Optional[str] = None,
) -> WearableReading:
    """Store (or replace) the day's physiological reading."""
    reading = (
        db.query(WearableReading)
        .filter(WearableReading.user_id == user.id, WearableReading.reading_date == reading_date)
        .first()
    )
    if reading is None:
        reading = WearableReading(user_id=user.id, reading_date=reading_date)
        db.add(reading)
    reading.hrv_ms = hrv_ms
    reading.resting_hr = resting_hr
    reading.sleep_duration_min = sleep_duration_min
    reading.sleep_efficiency = sleep_efficiency
    reading.source = source
    db.commit()
    metric_cache.invalidate(user.id)
    return reading


def record_app_open(db: Session, user: User, now: Optional[datetime] = None, tz=None) -> MetricsPassResult:
    now = ensure_utc(now) if now else utc_now()
    result = refresh_metrics(db, user, now=now, tz=tz)
    dispatch_intraday_event(
        db, user.id, IntradayEventType.APP_OPEN, result.metrics, None,
        now=now, local_date=result.local_date,
    )
    return result
