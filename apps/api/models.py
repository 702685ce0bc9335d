from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)

    # 'light' | 'expert' | 'superhuman' (see services/training_plans.py)
    training_plan = Column(Text, default="expert", nullable=False)
    # IANA zone name; NULL -> DEFAULT_TIMEZONE
    timezone = Column(Text, nullable=True)

    # --- ONBOARDING (recovery baseline inputs) ---
    onboarding_sleep_hours = Column(Text, nullable=True)     # '6-7' | '7-8' | '8+' | ...
    onboarding_detox_hours = Column(Text, nullable=True)     # '1-2' | '2+' | ...
    onboarding_mental_state = Column(Text, nullable=True)    # 'good' | 'okay' | 'stressed'


class SkillState(Base):
    """
    The four trained skills for one user.

    Values live in [0, 100]. ``*_decay_applied`` holds the inactivity decay
    already deducted for the current idle stretch so re-evaluating the same
    interval is a no-op; training a skill resets it to 0. ``*_baseline`` is
    the calibrated level that inactivity decay stops at.
    """
    __tablename__ = "cognitive_skill_state"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False, unique=True, index=True)

    ae = Column(Float, nullable=False, default=50.0)
    ra = Column(Float, nullable=False, default=50.0)
    ct = Column(Float, nullable=False, default=50.0)
    in_score = Column(Float, nullable=False, default=50.0)

    ae_last_activity_at = Column(DateTime(timezone=True), nullable=True)
    ra_last_activity_at = Column(DateTime(timezone=True), nullable=True)
    ct_last_activity_at = Column(DateTime(timezone=True), nullable=True)
    in_score_last_activity_at = Column(DateTime(timezone=True), nullable=True)

    ae_decay_applied = Column(Float, nullable=False, default=0.0)
    ra_decay_applied = Column(Float, nullable=False, default=0.0)
    ct_decay_applied = Column(Float, nullable=False, default=0.0)
    in_score_decay_applied = Column(Float, nullable=False, default=0.0)

    # Calibrated starting level; inactivity decay never goes below it
    ae_baseline = Column(Float, nullable=False, default=50.0)
    ra_baseline = Column(Float, nullable=False, default=50.0)
    ct_baseline = Column(Float, nullable=False, default=50.0)
    in_score_baseline = Column(Float, nullable=False, default=50.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("ae >= 0 AND ae <= 100", name="ck_skill_state_ae_range"),
        CheckConstraint("ra >= 0 AND ra <= 100", name="ck_skill_state_ra_range"),
        CheckConstraint("ct >= 0 AND ct <= 100", name="ck_skill_state_ct_range"),
        CheckConstraint("in_score >= 0 AND in_score <= 100", name="ck_skill_state_in_range"),
    )


class RecoveryState(Base):
    """Stored Recovery value; decayed lazily from last_update_at on read."""
    __tablename__ = "recovery_state"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False, unique=True, index=True)
    value = Column(Float, nullable=True)
    last_update_at = Column(DateTime(timezone=True), nullable=True)
    has_baseline = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class RecoverySnapshot(Base):
    """
    Once-per-local-day Recovery snapshot and low-recovery streak.

    One row per user. prior_* keep the state before the last transition so a
    same-day correction write can recompute the streak. Writes go through the
    conditional upsert in services/recovery_snapshot.py.
    """
    __tablename__ = "recovery_snapshot"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    snapshot_date = Column(Date, nullable=False)               # user's local calendar day
    recovery_value = Column(Float, nullable=True)
    low_recovery_streak_days = Column(Integer, nullable=False, default=0)
    prior_snapshot_date = Column(Date, nullable=True)
    prior_streak_days = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_recovery_snapshot_user"),
        CheckConstraint("low_recovery_streak_days >= 0", name="ck_recovery_snapshot_streak_nonneg"),
    )


class DailyMetricSnapshot(Base):
    """Per-day metric history for range queries. One row per user per local day."""
    __tablename__ = "daily_metric_snapshot"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    snapshot_date = Column(Date, nullable=False)
    readiness = Column(Float, nullable=True)
    sharpness = Column(Float, nullable=True)
    recovery = Column(Float, nullable=True)
    reasoning_quality = Column(Float, nullable=True)
    s1 = Column(Float, nullable=True)
    s2 = Column(Float, nullable=True)
    ae = Column(Float, nullable=True)
    ra = Column(Float, nullable=True)
    ct = Column(Float, nullable=True)
    in_score = Column(Float, nullable=True)
    sci = Column(Float, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "snapshot_date", name="uq_daily_metric_snapshot_user_date"),
        Index("ix_daily_metric_snapshot_user_date", "user_id", "snapshot_date"),
    )


class IntradayEvent(Base):
    """
    Append-only log of metric values at action boundaries.

    Rows are never updated; they are deleted only by outlier cleanup.
    """
    __tablename__ = "intraday_metric_event"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    event_date = Column(Date, nullable=False)                  # local calendar day
    event_timestamp = Column(DateTime(timezone=True), nullable=False)
    event_type = Column(Text, nullable=False)                  # decay | task | game | detox | walking | app_open
    readiness = Column(Float, nullable=True)
    sharpness = Column(Float, nullable=True)
    recovery = Column(Float, nullable=True)
    reasoning_quality = Column(Float, nullable=True)
    event_details = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_intraday_event_user_date", "user_id", "event_date"),
        Index("ix_intraday_event_user_type_ts", "user_id", "event_type", "event_timestamp"),
    )


class TrainingCompletion(Base):
    """A completed training exercise and the XP it awarded."""
    __tablename__ = "training_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    exercise_id = Column(Text, nullable=True)
    skill = Column(Text, nullable=False)                       # AE | RA | CT | IN
    system = Column(Text, nullable=False)                      # S1 | S2
    focus = Column(Text, nullable=True)                        # focus | creativity | reasoning | insight
    xp_awarded = Column(Integer, nullable=False, default=0)
    score = Column(Float, nullable=True)                       # 0-100
    completed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_training_completion_user_completed", "user_id", "completed_at"),
    )


class RecoverySession(Base):
    """A detox or walking session that replenished Recovery."""
    __tablename__ = "recovery_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    kind = Column(Text, nullable=False)                        # detox | walking
    minutes = Column(Integer, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("minutes >= 0", name="ck_recovery_session_minutes_nonneg"),
        Index("ix_recovery_session_user_completed", "user_id", "completed_at"),
    )


class ContentCompletion(Base):
    """A finished podcast / article / book (RQ task priming)."""
    __tablename__ = "content_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    content_type = Column(Text, nullable=False)                # podcast | article | book
    title = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_content_completion_user_completed", "user_id", "completed_at"),
    )


class WearableReading(Base):
    """Daily physiological reading pushed by the wearable bridge."""
    __tablename__ = "wearable_reading"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False)
    reading_date = Column(Date, nullable=False)
    hrv_ms = Column(Float, nullable=True)
    resting_hr = Column(Float, nullable=True)
    sleep_duration_min = Column(Float, nullable=True)
    sleep_efficiency = Column(Float, nullable=True)            # 0-1 (or percent)
    source = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "reading_date", name="uq_wearable_reading_user_date"),
    )
