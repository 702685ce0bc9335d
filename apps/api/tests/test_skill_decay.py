"""
Tests for skill inactivity decay.

Schedule after 30 idle days: 1 point, +1 per further 15 days, at most 3
points per 90-day window. Re-evaluating the same idle stretch is a no-op.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from services.skill_decay import apply_skill_decay, decay_all_skills, inactivity_decay_points
from services.skill_mapping import Skill


NOW = datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc)


def _days_ago(days):
    return NOW - timedelta(days=days)


class TestInactivityDecayPoints:

    @pytest.mark.parametrize("idle_days,expected", [
        (0, 0.0),
        (29.9, 0.0),
        (30, 1.0),
        (44, 1.0),
        (45, 2.0),
        (60, 3.0),
        (119, 3.0),
        (120, 4.0),
        (210, 7.0),
    ])
    def test_schedule(self, idle_days, expected):
        assert inactivity_decay_points(_days_ago(idle_days), NOW) == expected

    def test_never_trained_skill_does_not_decay(self):
        assert inactivity_decay_points(None, NOW) == 0.0


class TestApplySkillDecay:

    def test_first_evaluation_deducts_owed_points(self):
        result = apply_skill_decay(70.0, _days_ago(45), 0.0, NOW)
        assert result.value == 68.0
        assert result.decay_applied == 2.0
        assert result.delta == -2.0

    def test_reevaluating_same_interval_is_noop(self):
        first = apply_skill_decay(70.0, _days_ago(45), 0.0, NOW)
        second = apply_skill_decay(first.value, _days_ago(45), first.decay_applied, NOW)
        assert second.value == first.value
        assert second.delta == 0.0

    def test_only_pending_points_deducted(self):
        """Evaluated at day 45 (2 points), again at day 60 (3 owed): 1 more."""
        result = apply_skill_decay(68.0, _days_ago(60), 2.0, NOW)
        assert result.value == 67.0
        assert result.decay_applied == 3.0

    def test_floor_respected(self):
        result = apply_skill_decay(1.0, _days_ago(210), 0.0, NOW)
        assert result.value == 0.0

    def test_value_at_floor_unchanged(self):
        result = apply_skill_decay(0.0, _days_ago(210), 0.0, NOW)
        assert result.value == 0.0
        assert result.delta == 0.0

    def test_baseline_floor_stops_decay(self):
        result = apply_skill_decay(51.0, _days_ago(60), 0.0, NOW, floor=50.0)
        assert result.value == 50.0
        assert result.delta == -1.0
        assert result.decay_applied == 3.0

    def test_value_below_baseline_is_left_alone(self):
        result = apply_skill_decay(40.0, _days_ago(60), 0.0, NOW, floor=50.0)
        assert result.value == 40.0
        assert result.delta == 0.0

    def test_missing_value_defaults_to_50(self):
        assert apply_skill_decay(None, None, None, NOW).value == 50.0


class TestDecayAllSkills:

    def test_evaluates_each_skill_without_mutating(self):
        state = SimpleNamespace(
            ae=60.0, ra=60.0, ct=60.0, in_score=60.0,
            ae_last_activity_at=_days_ago(31),
            ra_last_activity_at=_days_ago(2),
            ct_last_activity_at=None,
            in_score_last_activity_at=_days_ago(60),
            ae_decay_applied=0.0,
            ra_decay_applied=0.0,
            ct_decay_applied=0.0,
            in_score_decay_applied=0.0,
            ae_baseline=50.0, ra_baseline=50.0, ct_baseline=50.0, in_score_baseline=50.0,
        )
        results = decay_all_skills(state, NOW)

        assert results[Skill.AE].value == 59.0
        assert results[Skill.RA].value == 60.0
        assert results[Skill.CT].value == 60.0
        assert results[Skill.IN].value == 57.0
        assert state.ae == 60.0

    def test_calibrated_baseline_is_the_floor(self):
        state = SimpleNamespace(
            ae=60.0, ra=60.0, ct=60.0, in_score=60.0,
            ae_last_activity_at=_days_ago(210),
            ra_last_activity_at=_days_ago(210),
            ct_last_activity_at=_days_ago(210),
            in_score_last_activity_at=_days_ago(210),
            ae_decay_applied=0.0,
            ra_decay_applied=0.0,
            ct_decay_applied=0.0,
            in_score_decay_applied=0.0,
            ae_baseline=50.0, ra_baseline=50.0, ct_baseline=50.0, in_score_baseline=58.0,
        )
        results = decay_all_skills(state, NOW)

        assert results[Skill.AE].value == 53.0
        assert results[Skill.IN].value == 58.0
        assert results[Skill.IN].delta == -2.0
