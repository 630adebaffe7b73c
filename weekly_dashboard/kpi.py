# SPDX-License-Identifier: Apache-2.0
"""
KPI computation: achievement percentage, status colour, week-over-week change,
schedule variance and the dashboard-wide aggregates.

All functions are pure. The current date used for schedule variance is
injectable so results are reproducible.
"""
import datetime
import logging
import math

import pandas as pd

from weekly_dashboard.constants import (
    DIRECTION_DOWN,
    DIRECTION_NEUTRAL,
    DIRECTION_UP,
    GREEN_THRESHOLD,
    PERCENTAGE_CAP,
    SCHEDULE_AHEAD,
    SCHEDULE_BAND,
    SCHEDULE_BEHIND,
    SCHEDULE_ON,
    STATUS_GREEN,
    STATUS_RED,
    STATUS_SUPERGREEN,
    STATUS_YELLOW,
    SUPERGREEN_THRESHOLD,
    WOW_DEAD_ZONE,
    YELLOW_THRESHOLD,
)
from weekly_dashboard.models import ComputedIndicator, OverallPerformance, ScheduleSummary, WeeklyTrend
from weekly_dashboard.sheet_utility import days_in_month

logger = logging.getLogger(__name__)


def calculate_percentage(target: float, actual: float) -> float:
    """
    Achievement percentage, actual / target * 100, capped at 999. A zero target gives 0.
    Inverse metrics use the same formula; only their status thresholds differ.
    """
    if target == 0:
        return 0.0
    return min((actual / target) * 100, PERCENTAGE_CAP)


def calculate_status(percentage: float, is_inverse: bool) -> str:
    """
    Classifies a percentage into supergreen, green, yellow or red.

    Normal metrics: >100 supergreen, >85 green, >55 yellow, otherwise red.
    Inverse metrics: >=100 red, >=85 yellow, >=55 green, otherwise supergreen.
    """
    if is_inverse:
        if percentage >= SUPERGREEN_THRESHOLD:
            return STATUS_RED
        if percentage >= GREEN_THRESHOLD:
            return STATUS_YELLOW
        if percentage >= YELLOW_THRESHOLD:
            return STATUS_GREEN
        return STATUS_SUPERGREEN

    if percentage > SUPERGREEN_THRESHOLD:
        return STATUS_SUPERGREEN
    if percentage > GREEN_THRESHOLD:
        return STATUS_GREEN
    if percentage > YELLOW_THRESHOLD:
        return STATUS_YELLOW
    return STATUS_RED


def change_direction(change: float) -> str:
    if change > WOW_DEAD_ZONE:
        return DIRECTION_UP
    if change < -WOW_DEAD_ZONE:
        return DIRECTION_DOWN
    return DIRECTION_NEUTRAL


def calculate_wow_change(code: str, current_percentage: float, previous_percentages: dict) -> tuple:
    """
    Week-over-week change against the most recent recorded percentage of the metric.

    Returns:
        tuple: (change, direction). (0, "neutral") when no usable previous value exists.
    """
    previous = previous_percentages.get(code)
    if not previous:
        return 0.0, DIRECTION_NEUTRAL

    change = current_percentage - previous
    return change, change_direction(change)


def calculate_variance(target: float, actual: float, is_inverse: bool, month: int, year: int,
                       today: datetime.date = None) -> tuple:
    """
    Compares the actual value with a linear expectation for the elapsed part of the month.

    The elapsed ratio is today's day-of-month over the number of days in the requested
    month. For inverse metrics being below the expectation counts as ahead.

    Args:
        target (float): Monthly target.
        actual (float): Current value.
        is_inverse (bool): True when lower is better.
        month (int): Requested month.
        year (int): Requested year.
        today (datetime.date): Current date, defaults to date.today().

    Returns:
        tuple: (expected_progress rounded to 2 places, variance in percent rounded to 1 place,
            schedule status).
    """
    if target == 0:
        return 0.0, 0.0, SCHEDULE_ON

    today = today or datetime.date.today()
    elapsed_ratio = today.day / days_in_month(month, year)
    expected = target * elapsed_ratio

    if expected == 0:
        return expected, 0.0, SCHEDULE_ON

    if is_inverse:
        variance = ((expected - actual) / expected) * 100
    else:
        variance = ((actual - expected) / expected) * 100

    schedule_status = SCHEDULE_ON
    if variance > SCHEDULE_BAND:
        schedule_status = SCHEDULE_AHEAD
    elif variance < -SCHEDULE_BAND:
        schedule_status = SCHEDULE_BEHIND

    return round_half_away(expected, 2), round_half_away(variance, 1), schedule_status


def round_half_away(value: float, digits: int) -> float:
    """
    Rounds exact halves away from zero (2.25 -> 2.3, -2.25 -> -2.3), unlike round().
    Stored snapshot history was computed this way.
    """
    factor = 10 ** digits
    return math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor


def calculate_overall_status(percentage: float) -> str:
    if percentage > GREEN_THRESHOLD:
        return STATUS_GREEN
    if percentage > YELLOW_THRESHOLD:
        return STATUS_YELLOW
    return STATUS_RED


def compute_indicator(reading, previous_percentages: dict, month: int, year: int,
                      today: datetime.date = None) -> ComputedIndicator:
    percentage = calculate_percentage(reading.target, reading.actual)
    status = calculate_status(percentage, reading.is_inverse)
    wow_change, wow_direction = calculate_wow_change(reading.code, percentage, previous_percentages)
    expected, variance, schedule_status = calculate_variance(
        reading.target, reading.actual, reading.is_inverse, month, year, today)
    return ComputedIndicator(reading, percentage, status, wow_change, wow_direction,
                             expected, variance, schedule_status)


def compute_indicators(readings: list, previous_percentages: dict, month: int, year: int,
                       today: datetime.date = None) -> list:
    return [compute_indicator(reading, previous_percentages or {}, month, year, today) for reading in readings]


def summarize_performance(indicators: list) -> OverallPerformance:
    """
    Counts indicators per colour (supergreen counts as green) and derives the overall score.
    """
    green_count = sum(1 for i in indicators if i.status in (STATUS_GREEN, STATUS_SUPERGREEN))
    yellow_count = sum(1 for i in indicators if i.status == STATUS_YELLOW)
    red_count = sum(1 for i in indicators if i.status == STATUS_RED)

    total = green_count + yellow_count + red_count
    percentage = (green_count / total) * 100 if total else 0.0

    return OverallPerformance(percentage, calculate_overall_status(percentage), green_count, yellow_count, red_count)


def summarize_schedule(indicators: list) -> ScheduleSummary:
    return ScheduleSummary(
        ahead_count=sum(1 for i in indicators if i.schedule_status == SCHEDULE_AHEAD),
        on_schedule_count=sum(1 for i in indicators if i.schedule_status == SCHEDULE_ON),
        behind_count=sum(1 for i in indicators if i.schedule_status == SCHEDULE_BEHIND),
    )


def calculate_weekly_trend(current: OverallPerformance, previous_batch: pd.DataFrame,
                           inverse_lookup: dict) -> WeeklyTrend:
    """
    Compares the current overall score with the one implied by the latest stored batch.

    The stored batch only carries percentages, so each row's status is re-derived with
    the catalog's inverse flags before counting greens.

    Args:
        current (OverallPerformance): Current aggregate.
        previous_batch (pd.DataFrame): Rows of the latest snapshot batch with columns
            "indicator_id" and "percentage"; may be None or empty.
        inverse_lookup (dict): Metric code -> is_inverse.

    Returns:
        WeeklyTrend: change, direction and the change in green count.
    """
    if previous_batch is None or previous_batch.empty:
        return WeeklyTrend(0.0, DIRECTION_NEUTRAL, current.green_count)

    statuses = previous_batch.apply(
        lambda row: calculate_status(row["percentage"], inverse_lookup.get(row["indicator_id"], False)), axis=1)
    previous_green = int(statuses.isin([STATUS_GREEN, STATUS_SUPERGREEN]).sum())
    previous_percentage = (previous_green / len(previous_batch)) * 100

    change = current.percentage - previous_percentage
    logger.debug(f"Weekly trend: current={current.percentage:.1f} previous={previous_percentage:.1f}")

    return WeeklyTrend(change, change_direction(change), current.green_count - previous_green)


def compute(readings: list, previous_percentages: dict, month: int, year: int,
            today: datetime.date = None) -> tuple:
    """
    Runs the per-indicator computation and the aggregates in one pass.

    Returns:
        tuple: (indicators, OverallPerformance, ScheduleSummary)
    """
    indicators = compute_indicators(readings, previous_percentages, month, year, today)
    return indicators, summarize_performance(indicators), summarize_schedule(indicators)
