"""
Daily Recovery Snapshot & Low-Recovery Streak

Once per local calendar day the current Recovery is committed together with
the count of consecutive low-recovery days (Recovery < 40).

Transition rule, comparing the stored snapshot to today's local date:
    - no Recovery value yet (no baseline) -> skip (never commit a misleading zero)
    - same day, stored value is real      -> skip (idempotent)
    - same day, stored value placeholder  -> correction write, streak recomputed
      (None or 0) and today differs          from the state before that day
    - stored day is yesterday             -> continue: low ? streak + 1 : 0
    - gap or no snapshot                  -> restart: low ? 1 : 0
    - stored day is after today           -> skip (another device is ahead)

The commit is a single INSERT .. ON CONFLICT (user_id) DO UPDATE guarded by
the stored row the decision was planned from (compare-and-swap). Two passes
racing for the same transition produce one write; the loser reports
CONFLICT and the next pass re-plans from the committed row.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

import logging

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import dialect_insert
from models import RecoverySnapshot

logger = logging.getLogger(__name__)


LOW_RECOVERY_THRESHOLD = 40.0


class SnapshotAction(str, Enum):
    SKIP_NO_VALUE = "skip_no_value"
    SKIP_ALREADY_COMMITTED = "skip_already_committed"
    SKIP_STORED_AHEAD = "skip_stored_ahead"
    CORRECTION = "correction"
    CONTINUE = "continue"
    RESTART = "restart"


class SnapshotOutcome(str, Enum):
    SKIPPED_NO_VALUE = "skipped_no_value"
    SKIPPED_ALREADY_COMMITTED = "skipped_already_committed"
    COMMITTED = "committed"
    CORRECTED = "corrected"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass
class SnapshotDecision:
    action: SnapshotAction
    snapshot_date: date
    recovery_value: Optional[float]
    streak_days: int
    prior_snapshot_date: Optional[date] = None
    prior_streak_days: int = 0

    @property
    def should_write(self) -> bool:
        return self.action in (SnapshotAction.CORRECTION, SnapshotAction.CONTINUE, SnapshotAction.RESTART)


@dataclass
class SnapshotCommitResult:
    outcome: SnapshotOutcome
    decision: SnapshotDecision
    streak_days: int


def is_placeholder(value: Optional[float]) -> bool:
    return value is None or value == 0


def is_low_recovery(value: float) -> bool:
    return value < LOW_RECOVERY_THRESHOLD


def _next_streak(previous_date: Optional[date], previous_streak: int, today: date, low: bool) -> int:
    if previous_date is not None and (today - previous_date).days == 1:
        return previous_streak + 1 if low else 0
    return 1 if low else 0


# ------------------------------------------------------------------
# Pure planning
# ------------------------------------------------------------------

def plan_snapshot_transition(stored, today: date, recovery_value: Optional[float]) -> SnapshotDecision:
    """
    Decide what (if anything) to commit for ``today``.

    ``stored`` is the current RecoverySnapshot row (or any object with the
    same attributes), or None when the user has never been snapshotted.
    """
    stored_date = stored.snapshot_date if stored is not None else None
    stored_streak = (stored.low_recovery_streak_days or 0) if stored is not None else 0

    def skip(action: SnapshotAction) -> SnapshotDecision:
        return SnapshotDecision(
            action=action,
            snapshot_date=stored_date or today,
            recovery_value=stored.recovery_value if stored is not None else None,
            streak_days=stored_streak,
            prior_snapshot_date=stored.prior_snapshot_date if stored is not None else None,
            prior_streak_days=(stored.prior_streak_days or 0) if stored is not None else 0,
        )

    # a fully depleted Recovery of 0.0 is a real value and extends the streak
    if recovery_value is None:
        return skip(SnapshotAction.SKIP_NO_VALUE)

    low = is_low_recovery(recovery_value)

    if stored_date == today:
        if not is_placeholder(stored.recovery_value) or stored.recovery_value == recovery_value:
            return skip(SnapshotAction.SKIP_ALREADY_COMMITTED)
        prior_date = stored.prior_snapshot_date
        prior_streak = stored.prior_streak_days or 0
        return SnapshotDecision(
            action=SnapshotAction.CORRECTION,
            snapshot_date=today,
            recovery_value=recovery_value,
            streak_days=_next_streak(prior_date, prior_streak, today, low),
            prior_snapshot_date=prior_date,
            prior_streak_days=prior_streak,
        )

    if stored_date is not None and stored_date > today:
        return skip(SnapshotAction.SKIP_STORED_AHEAD)

    continues = stored_date is not None and (today - stored_date).days == 1
    return SnapshotDecision(
        action=SnapshotAction.CONTINUE if continues else SnapshotAction.RESTART,
        snapshot_date=today,
        recovery_value=recovery_value,
        streak_days=_next_streak(stored_date, stored_streak, today, low),
        prior_snapshot_date=stored_date,
        prior_streak_days=stored_streak,
    )


def completed_low_recovery_days(stored, today: date) -> int:
    """
    Consecutive low-recovery days completed before ``today``.

    Feeds the Readiness decay penalty. Today's own snapshot does not count
    until the day is over, so the value is the same whether or not today has
    already been committed.
    """
    if stored is None or stored.snapshot_date is None:
        return 0
    yesterday = today - timedelta(days=1)
    if stored.snapshot_date == today:
        if stored.prior_snapshot_date == yesterday:
            return stored.prior_streak_days or 0
        return 0
    if stored.snapshot_date == yesterday:
        return stored.low_recovery_streak_days or 0
    return 0


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------

def get_snapshot(db: Session, user_id: UUID) -> Optional[RecoverySnapshot]:
    return db.query(RecoverySnapshot).filter(RecoverySnapshot.user_id == user_id).first()


def commit_daily_snapshot(
    db: Session,
    user_id: UUID,
    today: date,
    recovery_value: Optional[float],
    now: Optional[datetime] = None,
) -> SnapshotCommitResult:
    """
    Plan and atomically commit today's snapshot.

    The upsert only updates the row if it still holds the date and value it
    was planned from. On a database error the transaction is rolled back and
    FAILED is returned; stored state is unchanged and the next pass retries.
    """
    stored = get_snapshot(db, user_id)
    decision = plan_snapshot_transition(stored, today, recovery_value)

    if not decision.should_write:
        outcome = (
            SnapshotOutcome.SKIPPED_NO_VALUE
            if decision.action == SnapshotAction.SKIP_NO_VALUE
            else SnapshotOutcome.SKIPPED_ALREADY_COMMITTED
        )
        return SnapshotCommitResult(outcome=outcome, decision=decision, streak_days=decision.streak_days)

    read_date = stored.snapshot_date if stored is not None else None
    read_value = stored.recovery_value if stored is not None else None
    values = {
        "snapshot_date": decision.snapshot_date,
        "recovery_value": decision.recovery_value,
        "low_recovery_streak_days": decision.streak_days,
        "prior_snapshot_date": decision.prior_snapshot_date,
        "prior_streak_days": decision.prior_streak_days,
        "updated_at": now or datetime.now(timezone.utc),
    }

    table = RecoverySnapshot.__table__
    insert = dialect_insert(db)
    stmt = insert(table).values(id=uuid4(), user_id=user_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id],
        set_={key: stmt.excluded[key] for key in values},
        where=and_(
            table.c.snapshot_date.is_not_distinct_from(read_date),
            table.c.recovery_value.is_not_distinct_from(read_value),
        ),
    ).returning(table.c.user_id)

    try:
        written = db.execute(stmt).first()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Snapshot commit failed for user {user_id} on {today}: {e}",
            extra={"extra_fields": {"user_id": str(user_id), "snapshot_date": str(today)}},
        )
        return SnapshotCommitResult(
            outcome=SnapshotOutcome.FAILED,
            decision=decision,
            streak_days=stored.low_recovery_streak_days if stored is not None else 0,
        )

    if stored is not None:
        db.expire(stored)

    if written is None:
        logger.warning(
            f"Snapshot for user {user_id} on {today} changed concurrently; "
            f"{decision.action.value} not applied",
            extra={"extra_fields": {"user_id": str(user_id), "snapshot_date": str(today)}},
        )
        current = get_snapshot(db, user_id)
        return SnapshotCommitResult(
            outcome=SnapshotOutcome.CONFLICT,
            decision=decision,
            streak_days=current.low_recovery_streak_days if current is not None else 0,
        )

    outcome = (
        SnapshotOutcome.CORRECTED
        if decision.action == SnapshotAction.CORRECTION
        else SnapshotOutcome.COMMITTED
    )
    logger.info(
        f"Snapshot {outcome.value} for user {user_id}: {today} "
        f"recovery={decision.recovery_value} streak={decision.streak_days}"
    )
    return SnapshotCommitResult(outcome=outcome, decision=decision, streak_days=decision.streak_days)
