"""
Tests for Sharpness, Readiness, S1/S2, the physiological component and
the Readiness decay penalty.
"""
from types import SimpleNamespace

import pytest

from services.derived_scores import (
    DerivedScoreCalculator,
    dual_process_balance,
    dual_process_decay,
    physio_component,
    readiness,
    readiness_decay_penalty,
    sharpness,
    system_scores,
)
from services.skill_mapping import Skill


SKILLS = {Skill.AE: 60.0, Skill.RA: 40.0, Skill.CT: 70.0, Skill.IN: 50.0}


def _reading(**overrides):
    values = dict(hrv_ms=70.0, resting_hr=67.5, sleep_duration_min=420.0, sleep_efficiency=0.84)
    values.update(overrides)
    return SimpleNamespace(**values)


class TestSystemScores:

    def test_averages(self):
        assert system_scores(SKILLS) == (50.0, 60.0)

    def test_missing_skills_default_to_50(self):
        assert system_scores({}) == (50.0, 50.0)


class TestSharpness:

    def test_recovery_modulates(self):
        # (0.6*50 + 0.4*60) * (0.75 + 0.25*0.8)
        assert sharpness(SKILLS, 80.0) == pytest.approx(51.3)

    def test_low_recovery_lowers_sharpness(self):
        assert sharpness(SKILLS, 10.0) < sharpness(SKILLS, 90.0)

    def test_unknown_recovery_is_neutral(self):
        assert sharpness(SKILLS, None) == sharpness(SKILLS, 50.0)


class TestReadiness:

    def test_weighted_sum(self):
        # 0.35*80 + 0.35*60 + 0.30*60
        assert readiness(SKILLS, 80.0) == pytest.approx(67.0)

    def test_penalty_subtracted(self):
        assert readiness(SKILLS, 80.0, penalty=5.0) == pytest.approx(62.0)

    def test_physio_redistributes_weights(self):
        # 0.5*80 + 0.5*(0.30*70 + 0.25*60 + 0.20*50 + 0.15*60 + 0.10*50)
        assert readiness(SKILLS, 80.0, physio=80.0) == pytest.approx(70.0)

    def test_unknown_recovery_is_neutral(self):
        assert readiness(SKILLS, None) == pytest.approx(56.5)

    def test_clamped_to_range(self):
        low = {skill: 0.0 for skill in Skill}
        assert readiness(low, 0.0, penalty=15.0) == 0.0


class TestPhysioComponent:

    def test_midpoint_reading(self):
        assert physio_component(_reading()) == pytest.approx(50.0)

    def test_efficiency_as_percentage(self):
        assert physio_component(_reading(sleep_efficiency=84.0)) == pytest.approx(50.0)

    def test_incomplete_reading(self):
        assert physio_component(_reading(hrv_ms=None)) is None
        assert physio_component(None) is None

    def test_better_reading_scores_higher(self):
        good = _reading(hrv_ms=110.0, resting_hr=50.0)
        assert physio_component(good) > physio_component(_reading())


class TestReadinessDecayPenalty:

    @pytest.mark.parametrize("days,expected", [
        (0, 0.0),
        (2, 0.0),
        (3, 5.0),
        (4, 7.0),
        (7, 13.0),
        (8, 15.0),
        (20, 15.0),
    ])
    def test_schedule(self, days, expected):
        assert readiness_decay_penalty(days) == expected


class TestDualProcessBalance:

    @pytest.mark.parametrize("s1,s2,balance,level", [
        (50.0, 60.0, 90.0, "elite"),
        (50.0, 75.0, 75.0, "good"),
        (20.0, 80.0, 40.0, "unbalanced"),
    ])
    def test_levels(self, s1, s2, balance, level):
        assert dual_process_balance(s1, s2) == (balance, level)


class TestDualProcessDecay:

    @pytest.mark.parametrize("s1_xp,s2_xp,expected", [
        (0, 0, 0.0),
        (100, 0, 5.0),
        (0, 40, 5.0),
        (200, 100, 5.0),
        (199, 100, 0.0),
        (50, 100, 5.0),
        (51, 100, 0.0),
        (100, 100, 0.0),
    ])
    def test_ratio_boundaries(self, s1_xp, s2_xp, expected):
        assert dual_process_decay(s1_xp, s2_xp) == expected

    def test_weekly_cap_reached(self):
        assert dual_process_decay(300, 0, already_applied=10.0) == 0.0

    def test_weekly_cap_partially_used(self):
        assert dual_process_decay(300, 0, already_applied=7.0) == 3.0


class TestDerivedScoreCalculator:

    def test_bundle(self):
        scores = DerivedScoreCalculator().compute(SKILLS, 80.0, reading=None, low_recovery_days=3)

        assert scores.s1 == 50.0
        assert scores.s2 == 60.0
        assert scores.readiness_penalty == 5.0
        assert scores.readiness == pytest.approx(62.0)
        assert scores.physio is None
        assert scores.skills == {"AE": 60.0, "RA": 40.0, "CT": 70.0, "IN": 50.0}

    def test_recomputing_does_not_stack_penalty(self):
        calculator = DerivedScoreCalculator()
        first = calculator.compute(SKILLS, 80.0, low_recovery_days=4)
        second = calculator.compute(SKILLS, 80.0, low_recovery_days=4)
        assert first.readiness == second.readiness

    def test_one_sided_training_reports_balance_decay(self):
        scores = DerivedScoreCalculator().compute(SKILLS, 80.0, weekly_s1_xp=120, weekly_s2_xp=0)
        assert scores.balance_decay == 5.0

    def test_no_training_has_no_balance_decay(self):
        assert DerivedScoreCalculator().compute(SKILLS, 80.0).balance_decay == 0.0
