"""cognitive metrics initial tables

Revision ID: cognitive_metrics_001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates:
- app_user
- cognitive_skill_state, recovery_state: per-user engine state
- recovery_snapshot: once-per-day snapshot + low-recovery streak (unique per user)
- daily_metric_snapshot: per-day metric history
- intraday_metric_event: append-only intraday event log
- training_completion, recovery_session, content_completion, wearable_reading: inputs
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'cognitive_metrics_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('training_plan', sa.Text(), server_default='expert', nullable=False),
        sa.Column('timezone', sa.Text(), nullable=True),
        sa.Column('onboarding_sleep_hours', sa.Text(), nullable=True),
        sa.Column('onboarding_detox_hours', sa.Text(), nullable=True),
        sa.Column('onboarding_mental_state', sa.Text(), nullable=True),
        sa.UniqueConstraint('email', name='uq_app_user_email'),
    )

    op.create_table(
        'cognitive_skill_state',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('ae', sa.Float(), server_default='50', nullable=False),
        sa.Column('ra', sa.Float(), server_default='50', nullable=False),
        sa.Column('ct', sa.Float(), server_default='50', nullable=False),
        sa.Column('in_score', sa.Float(), server_default='50', nullable=False),
        sa.Column('ae_last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ra_last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ct_last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('in_score_last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ae_decay_applied', sa.Float(), server_default='0', nullable=False),
        sa.Column('ra_decay_applied', sa.Float(), server_default='0', nullable=False),
        sa.Column('ct_decay_applied', sa.Float(), server_default='0', nullable=False),
        sa.Column('in_score_decay_applied', sa.Float(), server_default='0', nullable=False),
        sa.Column('ae_baseline', sa.Float(), server_default='50', nullable=False),
        sa.Column('ra_baseline', sa.Float(), server_default='50', nullable=False),
        sa.Column('ct_baseline', sa.Float(), server_default='50', nullable=False),
        sa.Column('in_score_baseline', sa.Float(), server_default='50', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.CheckConstraint('ae >= 0 AND ae <= 100', name='ck_skill_state_ae_range'),
        sa.CheckConstraint('ra >= 0 AND ra <= 100', name='ck_skill_state_ra_range'),
        sa.CheckConstraint('ct >= 0 AND ct <= 100', name='ck_skill_state_ct_range'),
        sa.CheckConstraint('in_score >= 0 AND in_score <= 100', name='ck_skill_state_in_range'),
    )
    op.create_index('ix_cognitive_skill_state_user_id', 'cognitive_skill_state', ['user_id'], unique=True)

    op.create_table(
        'recovery_state',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('value', sa.Float(), nullable=True),
        sa.Column('last_update_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('has_baseline', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
    )
    op.create_index('ix_recovery_state_user_id', 'recovery_state', ['user_id'], unique=True)

    op.create_table(
        'recovery_snapshot',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('recovery_value', sa.Float(), nullable=True),
        sa.Column('low_recovery_streak_days', sa.Integer(), server_default='0', nullable=False),
        sa.Column('prior_snapshot_date', sa.Date(), nullable=True),
        sa.Column('prior_streak_days', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.UniqueConstraint('user_id', name='uq_recovery_snapshot_user'),
        sa.CheckConstraint('low_recovery_streak_days >= 0', name='ck_recovery_snapshot_streak_nonneg'),
    )

    op.create_table(
        'daily_metric_snapshot',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('readiness', sa.Float(), nullable=True),
        sa.Column('sharpness', sa.Float(), nullable=True),
        sa.Column('recovery', sa.Float(), nullable=True),
        sa.Column('reasoning_quality', sa.Float(), nullable=True),
        sa.Column('s1', sa.Float(), nullable=True),
        sa.Column('s2', sa.Float(), nullable=True),
        sa.Column('ae', sa.Float(), nullable=True),
        sa.Column('ra', sa.Float(), nullable=True),
        sa.Column('ct', sa.Float(), nullable=True),
        sa.Column('in_score', sa.Float(), nullable=True),
        sa.Column('sci', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.UniqueConstraint('user_id', 'snapshot_date', name='uq_daily_metric_snapshot_user_date'),
    )
    op.create_index('ix_daily_metric_snapshot_user_date', 'daily_metric_snapshot', ['user_id', 'snapshot_date'])

    op.create_table(
        'intraday_metric_event',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('event_timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('readiness', sa.Float(), nullable=True),
        sa.Column('sharpness', sa.Float(), nullable=True),
        sa.Column('recovery', sa.Float(), nullable=True),
        sa.Column('reasoning_quality', sa.Float(), nullable=True),
        sa.Column('event_details', postgresql.JSONB(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
    )
    op.create_index('ix_intraday_event_user_date', 'intraday_metric_event', ['user_id', 'event_date'])
    op.create_index(
        'ix_intraday_event_user_type_ts', 'intraday_metric_event',
        ['user_id', 'event_type', 'event_timestamp'],
    )

    op.create_table(
        'training_completion',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('exercise_id', sa.Text(), nullable=True),
        sa.Column('skill', sa.Text(), nullable=False),
        sa.Column('system', sa.Text(), nullable=False),
        sa.Column('focus', sa.Text(), nullable=True),
        sa.Column('xp_awarded', sa.Integer(), server_default='0', nullable=False),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
    )
    op.create_index('ix_training_completion_user_completed', 'training_completion', ['user_id', 'completed_at'])

    op.create_table(
        'recovery_session',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False),
        sa.Column('minutes', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.CheckConstraint('minutes >= 0', name='ck_recovery_session_minutes_nonneg'),
    )
    op.create_index('ix_recovery_session_user_completed', 'recovery_session', ['user_id', 'completed_at'])

    op.create_table(
        'content_completion',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('content_type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
    )
    op.create_index('ix_content_completion_user_completed', 'content_completion', ['user_id', 'completed_at'])

    op.create_table(
        'wearable_reading',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('reading_date', sa.Date(), nullable=False),
        sa.Column('hrv_ms', sa.Float(), nullable=True),
        sa.Column('resting_hr', sa.Float(), nullable=True),
        sa.Column('sleep_duration_min', sa.Float(), nullable=True),
        sa.Column('sleep_efficiency', sa.Float(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.UniqueConstraint('user_id', 'reading_date', name='uq_wearable_reading_user_date'),
    )


def downgrade() -> None:
    op.drop_table('wearable_reading')
    op.drop_index('ix_content_completion_user_completed', table_name='content_completion')
    op.drop_table('content_completion')
    op.drop_index('ix_recovery_session_user_completed', table_name='recovery_session')
    op.drop_table('recovery_session')
    op.drop_index('ix_training_completion_user_completed', table_name='training_completion')
    op.drop_table('training_completion')
    op.drop_index('ix_intraday_event_user_type_ts', table_name='intraday_metric_event')
    op.drop_index('ix_intraday_event_user_date', table_name='intraday_metric_event')
    op.drop_table('intraday_metric_event')
    op.drop_index('ix_daily_metric_snapshot_user_date', table_name='daily_metric_snapshot')
    op.drop_table('daily_metric_snapshot')
    op.drop_table('recovery_snapshot')
    op.drop_index('ix_recovery_state_user_id', table_name='recovery_state')
    op.drop_table('recovery_state')
    op.drop_index('ix_cognitive_skill_state_user_id', table_name='cognitive_skill_state')
    op.drop_table('cognitive_skill_state')
    op.drop_table('app_user')
