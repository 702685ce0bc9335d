from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Literal


# ------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------

class ReasoningQualityDetail(BaseModel):
    s2_component: float
    score_component: float
    task_component: float
    decay_points: float
    is_decaying: bool
    multiplier: float


class SCIResponse(BaseModel):
    total: float
    performance: float
    engagement: float
    recovery: float
    level: str
    bottleneck: str
    decay_penalty: float = 0.0
    adjusted_total: Optional[float] = None


class SnapshotStatus(BaseModel):
    outcome: str
    streak_days: int


class CognitiveMetricsResponse(BaseModel):
    user_id: UUID
    local_date: date
    computed_at: datetime
    plan: str
    recovery: Optional[float] = None
    sharpness: float
    readiness: float
    readiness_penalty: float = 0.0
    low_recovery_days: int = 0
    physio: Optional[float] = None
    s1: float
    s2: float
    skills: Dict[str, float]
    dual_process_balance: float
    dual_process_level: str
    dual_process_decay: float = 0.0
    reasoning_quality: float
    reasoning_quality_detail: ReasoningQualityDetail
    sci: SCIResponse
    snapshot: SnapshotStatus
    skill_decay_points: float = 0.0
    cache_state: str = "missing"


class DailyMetricSnapshotResponse(BaseModel):
    snapshot_date: date
    readiness: Optional[float] = None
    sharpness: Optional[float] = None
    recovery: Optional[float] = None
    reasoning_quality: Optional[float] = None
    s1: Optional[float] = None
    s2: Optional[float] = None
    ae: Optional[float] = None
    ra: Optional[float] = None
    ct: Optional[float] = None
    in_score: Optional[float] = None
    sci: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class IntradayEventResponse(BaseModel):
    id: UUID
    event_date: date
    event_timestamp: datetime
    event_type: str
    readiness: Optional[float] = None
    sharpness: Optional[float] = None
    recovery: Optional[float] = None
    reasoning_quality: Optional[float] = None
    event_details: Optional[Dict] = None

    model_config = ConfigDict(from_attributes=True)


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------

class TrainingCompletionCreate(BaseModel):
    """Either ``skill`` or ``system`` (with an optional focus) must be given."""
    xp: int = Field(ge=0, le=10000)
    system: Optional[Literal["S1", "S2"]] = None
    focus: Optional[Literal["focus", "creativity", "reasoning", "insight"]] = None
    skill: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    exercise_id: Optional[str] = None

    @model_validator(mode="after")
    def _skill_or_system(self):
        if self.skill is None and self.system is None:
            raise ValueError("either skill or system is required")
        return self


class TrainingCompletionResponse(BaseModel):
    id: UUID
    skill: str
    system: str
    xp_awarded: int
    score: Optional[float] = None
    completed_at: datetime
    metrics: CognitiveMetricsResponse


class SkillCalibrationCreate(BaseModel):
    """Assessment result per skill code (AE, RA, CT, IN) or legacy skill name."""
    skills: Dict[str, float] = Field(min_length=1)


class RecoverySessionCreate(BaseModel):
    detox_minutes: int = Field(default=0, ge=0, le=24 * 60)
    walk_minutes: int = Field(default=0, ge=0, le=24 * 60)

    @model_validator(mode="after")
    def _has_minutes(self):
        if self.detox_minutes == 0 and self.walk_minutes == 0:
            raise ValueError("detox_minutes or walk_minutes must be positive")
        return self


class RecoverySessionResponse(BaseModel):
    recovery: float
    last_update_at: datetime
    metrics: CognitiveMetricsResponse


class ContentCompletionCreate(BaseModel):
    content_type: Literal["podcast", "article", "book"]
    title: Optional[str] = None


class ContentCompletionResponse(BaseModel):
    id: UUID
    content_type: str
    completed_at: datetime
    metrics: CognitiveMetricsResponse


class RecoveryBaselineCreate(BaseModel):
    sleep_hours: Optional[str] = None
    detox_hours: Optional[str] = None
    mental_state: Optional[str] = None


class RecoveryBaselineResponse(BaseModel):
    recovery: float
    has_baseline: bool
    created: bool


class WearableReadingCreate(BaseModel):
    reading_date: date
    hrv_ms: Optional[float] = Field(default=None, ge=0)
    resting_hr: Optional[float] = Field(default=None, ge=0)
    sleep_duration_min: Optional[float] = Field(default=None, ge=0)
    sleep_efficiency: Optional[float] = Field(default=None, ge=0, le=100)
    source: Optional[str] = None


class WearableReadingResponse(BaseModel):
    id: UUID
    reading_date: date
    hrv_ms: Optional[float] = None
    resting_hr: Optional[float] = None
    sleep_duration_min: Optional[float] = None
    sleep_efficiency: Optional[float] = None
    source: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class IntradayEventList(BaseModel):
    local_date: date
    events: List[IntradayEventResponse]
