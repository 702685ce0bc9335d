"""
Tests for Reasoning Quality (RQ).

RQ = 0.50 * S2 + 0.30 * recent slow-system scores + 0.20 * task priming,
minus inactivity decay after 14 idle days (floor S2 - 10).
"""
from datetime import datetime, timedelta, timezone

import pytest

from services.reasoning_quality import (
    ReasoningQualityCalculator,
    inactivity_decay,
    recency_weighted_score,
    rq_multiplier,
    task_priming_score,
)


NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def _ago(days):
    return NOW - timedelta(days=days)


class TestRecencyWeightedScore:

    def test_single_score(self):
        assert recency_weighted_score([80.0], fallback=50.0) == 80.0

    def test_newest_weighs_most(self):
        # (100 * 1 + 60 * 0.85) / 1.85
        assert recency_weighted_score([60.0, 100.0], fallback=50.0) == pytest.approx(151 / 1.85)

    def test_fallback_when_empty(self):
        assert recency_weighted_score([], fallback=42.0) == 42.0

    def test_window_keeps_last_ten(self):
        scores = [0.0] * 5 + [90.0] * 10
        assert recency_weighted_score(scores, fallback=0.0) == pytest.approx(90.0)


class TestTaskPriming:

    def test_book_today(self):
        assert task_priming_score([("book", NOW)], NOW) == 20.0

    def test_recency_weight_by_whole_days(self):
        # 2.5 days ago -> 1 - 0.1 * 2
        assert task_priming_score([("article", _ago(2.5))], NOW) == pytest.approx(12.0)

    def test_outside_window_ignored(self):
        assert task_priming_score([("book", _ago(8))], NOW) == 0.0

    def test_extra_tasks_count_half(self):
        tasks = [("podcast", NOW - timedelta(minutes=i)) for i in range(6)]
        assert task_priming_score(tasks, NOW) == pytest.approx(5 * 12 + 6)

    def test_unknown_type_ignored(self):
        assert task_priming_score([("video", NOW)], NOW) == 0.0

    def test_capped_at_100(self):
        tasks = [("book", NOW - timedelta(minutes=i)) for i in range(20)]
        assert task_priming_score(tasks, NOW) == 100.0


class TestInactivityDecay:

    def test_within_grace_period(self):
        assert inactivity_decay(_ago(10), None, None, NOW) == (0.0, 10.0)

    def test_exactly_fourteen_days(self):
        assert inactivity_decay(_ago(14), None, None, NOW)[0] == 0.0

    def test_started_weeks_count(self):
        assert inactivity_decay(_ago(15), None, None, NOW)[0] == 2.0
        assert inactivity_decay(_ago(22), None, None, NOW)[0] == 4.0

    def test_latest_anchor_wins(self):
        points, days = inactivity_decay(_ago(40), _ago(3), _ago(90), NOW)
        assert points == 0.0
        assert days == pytest.approx(3.0)

    def test_no_anchor(self):
        assert inactivity_decay(None, None, None, NOW) == (0.0, None)


class TestReasoningQualityCalculator:

    def test_blend(self):
        result = ReasoningQualityCalculator().compute(s2=60.0, recent_scores=[], baseline_at=NOW, now=NOW)
        # 0.5*60 + 0.3*60 (fallback) + 0.2*0
        assert result.rq == pytest.approx(48.0)
        assert result.score_component == 60.0
        assert result.task_component == 0.0
        assert not result.is_decaying

    def test_decay_applied_after_grace(self):
        result = ReasoningQualityCalculator().compute(
            s2=60.0, recent_scores=[100.0], last_game_at=_ago(29), now=NOW,
        )
        # raw 60, 3 started weeks -> 6 points
        assert result.decay_points == 6.0
        assert result.rq == pytest.approx(54.0)
        assert result.is_decaying

    def test_decay_floor_is_s2_minus_ten(self):
        result = ReasoningQualityCalculator().compute(
            s2=60.0, recent_scores=[100.0], last_game_at=_ago(100), now=NOW,
        )
        assert result.rq == pytest.approx(50.0)

    def test_recent_high_score_never_lowers_rq(self):
        calculator = ReasoningQualityCalculator()
        before = calculator.compute(s2=60.0, recent_scores=[70.0], last_game_at=_ago(1), now=NOW)
        after = calculator.compute(s2=60.0, recent_scores=[70.0, 90.0], last_game_at=NOW, now=NOW)
        assert after.rq >= before.rq

    def test_new_task_never_lowers_rq(self):
        calculator = ReasoningQualityCalculator()
        before = calculator.compute(s2=60.0, tasks=[("article", _ago(1))], now=NOW, baseline_at=NOW)
        after = calculator.compute(
            s2=60.0, tasks=[("article", _ago(1)), ("podcast", NOW)], now=NOW, baseline_at=NOW,
        )
        assert after.rq >= before.rq

    def test_stays_in_range(self):
        result = ReasoningQualityCalculator().compute(
            s2=100.0,
            recent_scores=[100.0] * 10,
            tasks=[("book", NOW)] * 10,
            now=NOW,
        )
        assert 0.0 <= result.rq <= 100.0


class TestWeights:

    def test_custom_weights_normalised(self):
        calculator = ReasoningQualityCalculator({"s2": 1.0, "scores": 1.0, "tasks": 0.0})
        assert calculator.weights == {"s2": 0.5, "scores": 0.5, "tasks": 0.0}

    @pytest.mark.parametrize("weights", [
        {"s2": 0.5, "scores": 0.5},
        {"s2": -0.1, "scores": 0.6, "tasks": 0.5},
        {"s2": 0.0, "scores": 0.0, "tasks": 0.0},
    ])
    def test_invalid_weights(self, weights):
        with pytest.raises(ValueError):
            ReasoningQualityCalculator(weights)


@pytest.mark.parametrize("rq,expected", [(None, 0.85), (0.0, 0.85), (50.0, 0.925), (100.0, 1.0)])
def test_rq_multiplier(rq, expected):
    assert rq_multiplier(rq) == pytest.approx(expected)
