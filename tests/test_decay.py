"""Tests for nightcap.pharmacokinetics.decay -- decay and superposition."""

import math

import pytest

from nightcap.errors import InvalidParameter
from nightcap.pharmacokinetics.decay import (
    decay_level,
    aggregate_level,
    elapsed_hours,
    typical_dose,
)
from tests.conftest import at, make_event


class TestDecayLevel:
    def test_no_time_elapsed(self):
        assert decay_level(100.0, 5.0, 0.0) == 100.0

    def test_one_half_life(self):
        assert decay_level(100.0, 5.0, 5.0) == pytest.approx(50.0)

    @pytest.mark.parametrize("dose,half_life", [(1.0, 0.5), (64.0, 5.0), (3.5, 12.0)])
    def test_half_life_property(self, dose, half_life):
        assert decay_level(dose, half_life, half_life) == pytest.approx(dose / 2)

    def test_three_half_lives(self):
        assert decay_level(100.0, 5.0, 15.0) == pytest.approx(12.5)

    @pytest.mark.parametrize("elapsed", [-0.001, -1.0, -48.0])
    def test_future_dose_contributes_nothing(self, elapsed):
        assert decay_level(100.0, 5.0, elapsed) == 0.0

    @pytest.mark.parametrize("half_life", [0.0, -5.0, math.nan])
    def test_invalid_half_life(self, half_life):
        with pytest.raises(InvalidParameter):
            decay_level(100.0, half_life, 1.0)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            decay_level(100.0, 0.0, 1.0)


class TestAggregateLevel:
    def test_empty(self):
        assert aggregate_level([], at(12), 5.0) == 0.0

    def test_single_dose_timeline_points(self):
        events = [make_event(8, 100.0)]
        assert aggregate_level(events, at(13), 5.0) == pytest.approx(50.0)
        assert aggregate_level(events, at(18), 5.0) == pytest.approx(25.0)
        assert aggregate_level(events, at(23), 5.0) == pytest.approx(12.5)

    def test_dose_at_query_instant_counts_fully(self):
        assert aggregate_level([make_event(8, 100.0)], at(8), 5.0) == 100.0

    def test_later_events_ignored(self):
        events = [make_event(8, 100.0), make_event(14, 200.0)]
        assert aggregate_level(events, at(13), 5.0) == pytest.approx(50.0)

    def test_superposition_is_additive(self):
        a = [make_event(7, 80.0), make_event(9, 40.0)]
        b = [make_event(12, 95.0), make_event(20, 64.0, day=-1)]
        t = at(16)
        combined = aggregate_level(a + b, t, 5.0)
        assert combined == pytest.approx(aggregate_level(a, t, 5.0) + aggregate_level(b, t, 5.0))

    def test_washout_threshold_zeroes_old_dose(self):
        events = [make_event(0, 100.0)]
        # 21h: 100 * 0.5**4.2 ~= 5.44, still above 5%
        assert aggregate_level(events, at(21), 5.0, 5.0) == pytest.approx(100 * 0.5 ** 4.2)
        # 22h: 100 * 0.5**4.4 ~= 4.74, below 5% -> eliminated
        assert aggregate_level(events, at(22), 5.0, 5.0) == 0.0

    def test_zero_threshold_keeps_tail(self):
        events = [make_event(0, 100.0)]
        assert aggregate_level(events, at(22), 5.0, 0.0) == pytest.approx(100 * 0.5 ** 4.4)

    def test_threshold_is_per_dose(self):
        # The old dose is washed out even though the total is large
        events = [make_event(0, 100.0), make_event(21, 100.0)]
        assert aggregate_level(events, at(22), 5.0, 5.0) == pytest.approx(100 * 0.5 ** 0.2)

    def test_dose_from_days_ago_still_counts(self):
        events = [make_event(8, 100.0, day=-2)]
        level = aggregate_level(events, at(8), 24.0, 5.0)
        assert level == pytest.approx(25.0)

    @pytest.mark.parametrize("threshold", [0.0, 5.0, 20.0])
    @pytest.mark.parametrize("query_hour", [6, 13, 22, 40])
    def test_matches_sum_of_single_doses(self, threshold, query_hour):
        events = [
            make_event(7, 95.0), make_event(13, 64.0), make_event(20, 30.0),
            make_event(22, 150.0, day=-1), make_event(30, 47.0),
        ]
        t = at(query_hour)
        expected = 0.0
        for e in events:
            remaining = decay_level(e.amount, 5.0, elapsed_hours(e.consumed_at, t))
            if remaining >= e.amount * threshold / 100.0:
                expected += remaining
        assert aggregate_level(events, t, 5.0, threshold) == pytest.approx(expected)

    def test_invalid_threshold(self):
        with pytest.raises(InvalidParameter):
            aggregate_level([make_event(8)], at(9), 5.0, 150.0)

    def test_invalid_half_life(self):
        with pytest.raises(InvalidParameter):
            aggregate_level([make_event(8)], at(9), 0.0)

    def test_does_not_mutate_input(self):
        events = [make_event(14), make_event(8)]
        snapshot = list(events)
        aggregate_level(events, at(20), 5.0)
        assert events == snapshot


class TestHelpers:
    def test_elapsed_hours(self):
        assert elapsed_hours(at(8), at(23)) == 15.0
        assert elapsed_hours(at(23), at(8)) == -15.0

    def test_typical_dose(self):
        assert typical_dose([make_event(8, 60.0), make_event(12, 120.0)]) == 90.0

    def test_typical_dose_empty(self):
        assert typical_dose([]) == 0.0
