"""
Tests for the Recovery decay / gain calculator.

Decay: value * 2^(-hours / 72), floored at 0, never increasing.
Gain:  decay to now first, then + 0.12 * (detox + 0.5 * walk), capped at 100.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from services.recovery_engine import (
    BASELINE_DEFAULT,
    BASELINE_MAX,
    BASELINE_MIN,
    apply_gain,
    calculate_baseline,
    current_recovery,
    decay,
    effective_decay_hours,
    initialize_baseline,
    weekly_recovery_percent,
)


T0 = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)


class TestDecay:

    def test_one_half_life_halves_value(self):
        assert decay(80.0, T0, T0 + timedelta(hours=72)) == 40.0

    def test_two_half_lives(self):
        assert decay(80.0, T0, T0 + timedelta(hours=144)) == 20.0

    def test_zero_elapsed_returns_input(self):
        assert decay(63.7, T0, T0) == 63.7

    def test_clock_skew_returns_input(self):
        """now before last_timestamp: no decay, no growth."""
        assert decay(63.7, T0, T0 - timedelta(hours=5)) == 63.7

    def test_no_timestamp_returns_input(self):
        assert decay(50.0, None, T0) == 50.0

    def test_never_increases(self):
        for hours in (0.01, 0.5, 1, 10, 100, 1000):
            assert decay(37.3, T0, T0 + timedelta(hours=hours)) <= 37.3

    def test_floor_at_zero(self):
        assert decay(10.0, T0, T0 + timedelta(days=365)) == 0.0

    def test_rounded_to_one_decimal(self):
        value = decay(70.0, T0, T0 + timedelta(hours=10))
        assert value == round(value, 1)

    def test_naive_timestamps_are_utc(self):
        naive = T0.replace(tzinfo=None)
        assert decay(80.0, naive, T0 + timedelta(hours=72)) == 40.0


class TestNightWeighting:

    def test_default_multiplier_is_plain_elapsed_hours(self):
        assert effective_decay_hours(T0, T0 + timedelta(hours=30)) == pytest.approx(30.0)

    def test_night_hours_count_at_multiplier(self):
        # 22:00 -> 08:00 UTC: 1 day hour, 8 night hours, 1 day hour
        start = datetime(2026, 5, 4, 22, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=10)
        hours = effective_decay_hours(start, end, night_multiplier=0.5, tz=timezone.utc)
        assert hours == pytest.approx(1 + 8 * 0.5 + 1)

    def test_night_window_follows_local_zone(self):
        # 20:00-22:00 UTC is 22:00-00:00 in Europe/Berlin (CEST): one night hour
        tz = ZoneInfo("Europe/Berlin")
        start = datetime(2026, 5, 4, 20, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=2)
        hours = effective_decay_hours(start, end, night_multiplier=0.0, tz=tz)
        assert hours == pytest.approx(1.0)

    def test_multiplier_slows_decay(self):
        start = datetime(2026, 5, 4, 22, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=10)
        plain = decay(80.0, start, end)
        weighted = decay(80.0, start, end, night_multiplier=0.5, tz=timezone.utc)
        assert weighted > plain


class TestGain:

    def test_detox_minutes_add_points(self):
        update = apply_gain(50.0, T0, detox_minutes=30, now=T0)
        assert update.value == pytest.approx(53.6)
        assert update.timestamp == T0

    def test_walking_counts_half(self):
        update = apply_gain(50.0, T0, detox_minutes=0, walk_minutes=60, now=T0)
        assert update.value == pytest.approx(53.6)

    def test_decay_applied_before_gain(self):
        update = apply_gain(80.0, T0, detox_minutes=0, now=T0 + timedelta(hours=72))
        assert update.value == 40.0
        assert update.timestamp == T0 + timedelta(hours=72)

    def test_decayed_value_plus_detox_hour(self):
        update = apply_gain(80.0, T0, detox_minutes=60, now=T0 + timedelta(hours=72))
        assert update.value == pytest.approx(47.2)

    def test_capped_at_100(self):
        assert apply_gain(95.0, T0, detox_minutes=600, now=T0).value == 100.0

    def test_negative_minutes_rejected(self):
        with pytest.raises(ValueError):
            apply_gain(50.0, T0, detox_minutes=-1, now=T0)
        with pytest.raises(ValueError):
            apply_gain(50.0, T0, detox_minutes=0, walk_minutes=-5, now=T0)


class TestBaseline:

    def test_default_without_answers(self):
        assert calculate_baseline() == BASELINE_DEFAULT

    def test_additive_rule(self):
        # 45 + 5 (7-8h) + 5 (2+h detox) + 5 (good) = 60 -> clamped to 55
        assert calculate_baseline("7-8", "2+", "good") == BASELINE_MAX

    def test_partial_answers(self):
        assert calculate_baseline("6-7", None, "okay") == pytest.approx(50.0)

    def test_stressed_lowers_baseline(self):
        assert calculate_baseline(None, None, "stressed") == pytest.approx(43.0)

    def test_initialize_clamps_into_band(self):
        assert initialize_baseline(90.0, now=T0).value == BASELINE_MAX
        assert initialize_baseline(10.0, now=T0).value == BASELINE_MIN
        assert initialize_baseline(None, now=T0).value == BASELINE_DEFAULT


class _State:
    def __init__(self, value, last_update_at, has_baseline=True):
        self.value = value
        self.last_update_at = last_update_at
        self.has_baseline = has_baseline


class TestCurrentRecovery:

    def test_none_without_baseline(self):
        assert current_recovery(None, T0) is None
        assert current_recovery(_State(None, None, has_baseline=False), T0) is None

    def test_decays_stored_value(self):
        state = _State(60.0, T0)
        assert current_recovery(state, T0 + timedelta(hours=72)) == 30.0


class TestWeeklyRecoveryPercent:

    def test_share_of_target(self):
        assert weekly_recovery_percent(420, 0, 840) == pytest.approx(50.0)

    def test_walking_weighted(self):
        assert weekly_recovery_percent(0, 840, 840) == pytest.approx(50.0)

    def test_capped(self):
        assert weekly_recovery_percent(2000, 0, 840) == 100.0

    def test_zero_target(self):
        assert weekly_recovery_percent(100, 0, 0) == 0.0
