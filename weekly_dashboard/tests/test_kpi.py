# SPDX-License-Identifier: Apache-2.0
"""
Behavioral tests for the KPI computation engine.

Status thresholds are checked exactly at their boundaries because normal and
inverse metrics use different comparison operators.
"""
import datetime

import pandas as pd
import pytest

from weekly_dashboard.kpi import (
    calculate_overall_status,
    calculate_percentage,
    calculate_status,
    calculate_variance,
    calculate_weekly_trend,
    calculate_wow_change,
    compute,
    round_half_away,
    summarize_performance,
)
from weekly_dashboard.models import OverallPerformance, RawMetricReading


class TestCalculatePercentage:
    def test_ratio(self):
        assert calculate_percentage(100, 90) == pytest.approx(90.0)

    def test_zero_target(self):
        assert calculate_percentage(0, 50) == 0.0

    def test_capped_at_999(self):
        assert calculate_percentage(1, 50) == 999

    def test_negative_values_are_not_floored(self):
        assert calculate_percentage(100, -20) == pytest.approx(-20.0)


class TestCalculateStatus:
    @pytest.mark.parametrize("percentage, expected", [
        (100.01, "supergreen"),
        (100, "green"),
        (85.01, "green"),
        (85, "yellow"),
        (55.01, "yellow"),
        (55, "red"),
        (0, "red"),
    ])
    def test_normal_boundaries(self, percentage, expected):
        assert calculate_status(percentage, False) == expected

    @pytest.mark.parametrize("percentage, expected", [
        (120, "red"),
        (100, "red"),
        (99.99, "yellow"),
        (85, "yellow"),
        (84.99, "green"),
        (55, "green"),
        (54.99, "supergreen"),
        (0, "supergreen"),
    ])
    def test_inverse_boundaries(self, percentage, expected):
        assert calculate_status(percentage, True) == expected


class TestWowChange:
    def test_no_previous_value(self):
        assert calculate_wow_change("KPI-01", 90, {}) == (0.0, "neutral")

    def test_previous_zero_is_treated_as_missing(self):
        assert calculate_wow_change("KPI-01", 90, {"KPI-01": 0}) == (0.0, "neutral")

    @pytest.mark.parametrize("previous, direction", [
        (89.5, "neutral"),
        (90.5, "neutral"),
        (89.4, "up"),
        (90.6, "down"),
    ])
    def test_dead_zone(self, previous, direction):
        change, actual_direction = calculate_wow_change("KPI-01", 90, {"KPI-01": previous})
        assert change == pytest.approx(90 - previous)
        assert actual_direction == direction


class TestCalculateVariance:
    def test_ahead_of_schedule(self):
        # Day 15 of a 30-day month: half the target is expected
        expected, variance, status = calculate_variance(100, 90, False, 4, 2026, today=datetime.date(2026, 4, 15))
        assert expected == 50.0
        assert variance == 80.0
        assert status == "ahead"

    def test_inverse_over_budget_is_behind(self):
        expected, variance, status = calculate_variance(10, 12, True, 4, 2026, today=datetime.date(2026, 4, 30))
        assert expected == 10.0
        assert variance == -20.0
        assert status == "behind"

    def test_within_band_is_on_schedule(self):
        _, variance, status = calculate_variance(100, 52, False, 4, 2026, today=datetime.date(2026, 4, 15))
        assert variance == 4.0
        assert status == "on_schedule"

    def test_zero_target(self):
        assert calculate_variance(0, 10, False, 4, 2026, today=datetime.date(2026, 4, 15)) == (0.0, 0.0, "on_schedule")

    def test_rounding(self):
        expected, variance, _ = calculate_variance(100, 10, False, 2, 2026, today=datetime.date(2026, 2, 3))
        assert expected == 10.71
        assert variance == -6.7

    def test_exact_halves_round_away_from_zero(self):
        # Day 31 of 31: the expectation equals the target
        expected, _, _ = calculate_variance(12.125, 12.125, False, 1, 2026, today=datetime.date(2026, 1, 31))
        assert expected == 12.13

        _, variance, _ = calculate_variance(100, 101.25, False, 1, 2026, today=datetime.date(2026, 1, 31))
        assert variance == 1.3

        _, variance, _ = calculate_variance(100, 101.25, True, 1, 2026, today=datetime.date(2026, 1, 31))
        assert variance == -1.3


@pytest.mark.parametrize("value, digits, expected", [
    (2.25, 1, 2.3), (-2.25, 1, -2.3), (12.125, 2, 12.13), (0.5, 0, 1.0), (2.24, 1, 2.2),
])
def test_round_half_away(value, digits, expected):
    assert round_half_away(value, digits) == expected


class TestOverall:
    @pytest.mark.parametrize("percentage, expected", [
        (85.01, "green"), (85, "yellow"), (55.01, "yellow"), (55, "red"),
    ])
    def test_overall_status(self, percentage, expected):
        assert calculate_overall_status(percentage) == expected

    def test_supergreen_counts_as_green(self):
        readings = [
            RawMetricReading("A", "D", "a", target=100, actual=150),
            RawMetricReading("B", "D", "b", target=100, actual=90),
            RawMetricReading("C", "D", "c", target=100, actual=60),
            RawMetricReading("E", "D", "e", target=100, actual=10),
        ]
        indicators, overall, schedule = compute(readings, {}, 4, 2026, today=datetime.date(2026, 4, 30))

        assert [i.status for i in indicators] == ["supergreen", "green", "yellow", "red"]
        assert (overall.green_count, overall.yellow_count, overall.red_count) == (2, 1, 1)
        assert overall.percentage == 50.0
        assert overall.status == "red"
        assert schedule.ahead_count + schedule.on_schedule_count + schedule.behind_count == 4

    def test_empty_dashboard(self):
        overall = summarize_performance([])
        assert overall.percentage == 0.0
        assert overall.status == "red"


class TestScenarios:
    def test_normal_metric_day_15_of_30(self):
        reading = RawMetricReading("KPI-01", "FINANCE", "Revenue", target=100, actual=90)
        indicators, overall, _ = compute([reading], {}, 4, 2026, today=datetime.date(2026, 4, 15))
        indicator = indicators[0]

        assert indicator.percentage == pytest.approx(90.0)
        assert indicator.status == "green"
        assert indicator.expected_progress == 50.0
        assert indicator.variance == 80.0
        assert indicator.schedule_status == "ahead"
        assert overall.status == "green"

    def test_inverse_metric_over_target(self):
        reading = RawMetricReading("KPI-07", "PS", "Non Billable Cost", target=10, actual=12, is_inverse=True)
        indicators, _, _ = compute([reading], {}, 4, 2026, today=datetime.date(2026, 4, 30))

        assert indicators[0].percentage == pytest.approx(120.0)
        assert indicators[0].status == "red"


class TestWeeklyTrend:
    def test_no_previous_batch(self):
        trend = calculate_weekly_trend(OverallPerformance(50.0, "red", green_count=2), pd.DataFrame(), {})
        assert (trend.change, trend.direction, trend.green_count_change) == (0.0, "neutral", 2)

    def test_previous_statuses_use_inverse_flags(self):
        previous = pd.DataFrame({
            "indicator_id": ["KPI-01", "KPI-07"],
            "percentage": [90.0, 60.0],
        })
        current = OverallPerformance(50.0, "red", green_count=1, yellow_count=1)

        # KPI-07 at 60% is green only because it is inverse
        trend = calculate_weekly_trend(current, previous, {"KPI-07": True})

        assert trend.change == -50.0
        assert trend.direction == "down"
        assert trend.green_count_change == -1

    def test_small_change_is_neutral(self):
        previous = pd.DataFrame({"indicator_id": ["KPI-01", "KPI-02"], "percentage": [90.0, 10.0]})
        trend = calculate_weekly_trend(OverallPerformance(50.4, "red", green_count=1), previous, {})
        assert trend.direction == "neutral"
