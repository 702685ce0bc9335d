"""
Cognitive Actions API Router

Write endpoints at the action boundaries that move the metrics:
- App foreground
- Training completion (XP -> skill)
- Skill calibration (assessed levels and decay baselines)
- Detox / walking session (Recovery gain)
- Content completion (Reasoning Quality task priming)
- Onboarding recovery baseline
- Wearable reading

Each action returns the post-action metrics.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ValidationError
from models import User
from schemas import (
    CognitiveMetricsResponse,
    ContentCompletionCreate,
    ContentCompletionResponse,
    RecoveryBaselineCreate,
    RecoveryBaselineResponse,
    RecoverySessionCreate,
    RecoverySessionResponse,
    SkillCalibrationCreate,
    TrainingCompletionCreate,
    TrainingCompletionResponse,
    WearableReadingCreate,
    WearableReadingResponse,
)
from services import cognitive_metrics
from services.local_time import user_timezone
from services.metric_cache import CacheState

router = APIRouter(prefix="/v1/cognitive", tags=["Cognitive Actions"])


def _metrics(result) -> CognitiveMetricsResponse:
    return CognitiveMetricsResponse(**result.to_payload(), cache_state=CacheState.FRESH.value)


@router.post("/app-open", response_model=CognitiveMetricsResponse)
def app_open(
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """App came to the foreground: recompute and log an app_open event."""
    result = cognitive_metrics.record_app_open(
        db, current_user, tz=user_timezone(current_user, x_timezone)
    )
    return _metrics(result)


@router.post("/training", response_model=TrainingCompletionResponse, status_code=status.HTTP_201_CREATED)
def complete_training(
    body: TrainingCompletionCreate,
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        completion, result = cognitive_metrics.record_training_completion(
            db,
            current_user,
            xp=body.xp,
            system=body.system,
            focus=body.focus,
            skill=body.skill,
            score=body.score,
            exercise_id=body.exercise_id,
            tz=user_timezone(current_user, x_timezone),
        )
    except ValueError as e:
        raise ValidationError(str(e))

    return TrainingCompletionResponse(
        id=completion.id,
        skill=completion.skill,
        system=completion.system,
        xp_awarded=completion.xp_awarded,
        score=completion.score,
        completed_at=completion.completed_at,
        metrics=_metrics(result),
    )


@router.post("/calibration", response_model=CognitiveMetricsResponse)
def calibrate(
    body: SkillCalibrationCreate,
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Assessment results. Each value also becomes the skill's decay baseline."""
    try:
        result = cognitive_metrics.calibrate_skills(
            db, current_user, body.skills, tz=user_timezone(current_user, x_timezone)
        )
    except ValueError as e:
        raise ValidationError(str(e))
    return _metrics(result)


@router.post("/recovery-sessions", response_model=RecoverySessionResponse, status_code=status.HTTP_201_CREATED)
def complete_recovery_session(
    body: RecoverySessionCreate,
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Detox and/or walking minutes. Initialises the baseline on first use."""
    try:
        state, result = cognitive_metrics.record_recovery_session(
            db,
            current_user,
            detox_minutes=body.detox_minutes,
            walk_minutes=body.walk_minutes,
            tz=user_timezone(current_user, x_timezone),
        )
    except ValueError as e:
        raise ValidationError(str(e))

    return RecoverySessionResponse(
        recovery=state.value,
        last_update_at=state.last_update_at,
        metrics=_metrics(result),
    )


@router.post("/content", response_model=ContentCompletionResponse, status_code=status.HTTP_201_CREATED)
def complete_content(
    body: ContentCompletionCreate,
    x_timezone: Optional[str] = Header(None, alias="X-Timezone"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        completion, result = cognitive_metrics.record_content_completion(
            db,
            current_user,
            content_type=body.content_type,
            title=body.title,
            tz=user_timezone(current_user, x_timezone),
        )
    except ValueError as e:
        raise ValidationError(str(e), field="content_type")

    return ContentCompletionResponse(
        id=completion.id,
        content_type=completion.content_type,
        completed_at=completion.completed_at,
        metrics=_metrics(result),
    )


@router.post("/recovery-baseline", response_model=RecoveryBaselineResponse)
def set_recovery_baseline(
    body: RecoveryBaselineCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Onboarding baseline. Repeated calls leave an existing baseline untouched."""
    state, created = cognitive_metrics.initialize_recovery_baseline(
        db,
        current_user,
        sleep_hours=body.sleep_hours,
        detox_hours=body.detox_hours,
        mental_state=body.mental_state,
    )
    return RecoveryBaselineResponse(
        recovery=state.value,
        has_baseline=state.has_baseline,
        created=created,
    )


@router.post("/wearables", response_model=WearableReadingResponse)
def submit_wearable_reading(
    body: WearableReadingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Store the day's physiological reading (replaces an earlier one)."""
    return cognitive_metrics.record_wearable_reading(
        db,
        current_user,
        reading_date=body.reading_date,
        hrv_ms=body.hrv_ms,
        resting_hr=body.resting_hr,
        sleep_duration_min=body.sleep_duration_min,
        sleep_efficiency=body.sleep_efficiency,
        source=body.source,
    )
