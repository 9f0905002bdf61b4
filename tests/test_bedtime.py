"""Tests for nightcap.pharmacokinetics.bedtime -- tiers and bedtime levels."""

import pytest

from nightcap.errors import InvalidParameter
from nightcap.models import DrugLevelSample
from nightcap.pharmacokinetics.bedtime import (
    Tier,
    TierPolicy,
    LevelTier,
    MODERATE_FRACTION,
    classify_level,
    classify_bedtime,
    classify_against_timeline,
    bedtime_for_day,
    daily_bedtime_levels,
    parse_bedtime,
)
from nightcap.pharmacokinetics.timeline import Timeline, generate_timeline
from tests.conftest import at, day, make_event, make_habit


class TestClassifyLevel:
    def test_zero_is_green(self):
        result = classify_level(0.0, 100.0)
        assert result.tier is Tier.GREEN
        assert result.label == "Low"

    def test_moderate(self):
        result = classify_level(12.5, 100.0)
        assert result.tier is Tier.YELLOW
        assert result.label == "Moderate"
        assert result.percentage == pytest.approx(12.5)

    def test_boundary_is_yellow(self):
        assert classify_level(100.0 * MODERATE_FRACTION, 100.0).tier is Tier.YELLOW

    def test_above_boundary_is_red(self):
        result = classify_level(31.0, 100.0)
        assert result.tier is Tier.RED
        assert result.label == "High"

    def test_no_typical_dose(self):
        result = classify_level(5.0, 0.0)
        assert result.percentage == 0.0
        assert result.tier is Tier.RED

    def test_explicit_reference(self):
        result = classify_level(20.0, 100.0, reference=50.0, policy=TierPolicy.TIMELINE_MAX)
        assert result.tier is Tier.RED
        assert result.percentage == pytest.approx(20.0)
        assert result.reference == 50.0

    def test_to_dict(self):
        d = classify_level(12.5, 100.0).to_dict()
        assert d["tier"] == "yellow"
        assert d["label"] == "Moderate"
        assert d["policy"] == "typical_dose"

    def test_repr(self):
        assert "yellow" in repr(classify_level(12.5, 100.0))


class TestPolicies:
    def test_bedtime_scenario(self):
        # 100 mg at 08:00, half-life 5h, checked at 23:00 (3 half-lives)
        habit = make_habit(half_life=5.0, threshold=5.0)
        result = classify_bedtime([make_event(8, 100.0)], at(23), habit)
        assert isinstance(result, LevelTier)
        assert result.level == pytest.approx(12.5)
        assert result.tier is Tier.YELLOW
        assert result.policy is TierPolicy.TYPICAL_DOSE
        assert result.percentage == pytest.approx(12.5)

    def test_bedtime_uses_mean_dose(self):
        habit = make_habit()
        events = [make_event(8, 100.0), make_event(20, 20.0)]
        result = classify_bedtime(events, at(23), habit)
        assert result.reference == pytest.approx(60.0)

    def test_bedtime_with_nothing_logged(self):
        result = classify_bedtime([], at(23), make_habit())
        assert result.level == 0.0
        assert result.tier is Tier.GREEN

    def test_timeline_scenario(self):
        tl = generate_timeline([make_event(8, 100.0)], at(8), at(23), 5.0, 5.0, 60)
        result = classify_against_timeline(tl[-1].level, tl, 100.0)
        assert result.policy is TierPolicy.TIMELINE_MAX
        assert result.reference == pytest.approx(100.0)
        assert result.tier is Tier.YELLOW

    def test_policies_can_disagree(self):
        tl = Timeline((DrugLevelSample(at(8), 50.0), DrugLevelSample(at(9), 40.0)))
        assert classify_level(20.0, 100.0).tier is Tier.YELLOW
        assert classify_against_timeline(20.0, tl, 100.0).tier is Tier.RED

    def test_empty_timeline_reference(self):
        result = classify_against_timeline(0.0, Timeline())
        assert result.reference == 0.0
        assert result.tier is Tier.GREEN


class TestBedtimeForDay:
    def test_evening_bedtime(self):
        assert bedtime_for_day(day(0), "22:30") == at(22, 30)

    def test_after_midnight_bedtime(self):
        assert bedtime_for_day(day(0), "01:30:00") == at(1, 30, day=1)

    def test_default_bedtime(self):
        assert bedtime_for_day(day(0)) == at(22)

    def test_malformed(self):
        with pytest.raises(InvalidParameter):
            parse_bedtime("late")


class TestDailyBedtimeLevels:
    def test_levels_per_night(self):
        habit = make_habit()
        levels = daily_bedtime_levels([make_event(8, 100.0)], [day(0), day(1)], habit, "23:00")
        assert levels[day(0)] == pytest.approx(12.5)
        # 39h later the dose is below the 5% washout threshold
        assert levels[day(1)] == 0.0

    def test_long_half_life_carries_over(self):
        habit = make_habit(half_life=24.0)
        levels = daily_bedtime_levels([make_event(23, 100.0)], [day(0), day(1)], habit, "23:00")
        assert levels[day(0)] == 100.0
        assert levels[day(1)] == pytest.approx(50.0)

    def test_no_events(self):
        levels = daily_bedtime_levels([], [day(0)], make_habit(), "23:00")
        assert levels == {day(0): 0.0}
