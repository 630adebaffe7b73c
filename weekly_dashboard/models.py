# SPDX-License-Identifier: Apache-2.0
import datetime
from json import JSONEncoder


class MetricDefinition:
    """
    A configured KPI: where to find it in the spreadsheet and how to judge it.

    Attributes:
        code (str): Unique metric code, e.g. "KPI-01".
        department (str): Owning department.
        name (str): Display name.
        label (str): Expected label text in the spreadsheet label column, may be empty.
        fallback_row (int): 1-based row used when the label cannot be found.
        is_inverse (bool): True when a lower value is better (cost ratios, attrition).
        active (bool): Inactive metrics are never fetched.
        display_order (int): Sort key for the dashboard.
        unit_of_measure (str): Display unit.
    """

    def __init__(self, code, department, name, label="", fallback_row=0, is_inverse=False, active=True,
                 display_order=0, unit_of_measure=""):
        self.code = code
        self.department = department
        self.name = name
        self.label = label or ""
        self.fallback_row = fallback_row
        self.is_inverse = is_inverse
        self.active = active
        self.display_order = display_order
        self.unit_of_measure = unit_of_measure


class RawMetricReading:
    def __init__(self, code, department, name, target=0.0, actual=0.0, is_inverse=False, reported_percentage=0.0):
        self.code = code
        self.department = department
        self.name = name
        self.target = target
        self.actual = actual
        self.is_inverse = is_inverse
        # The sheet's own percent column, informational only
        self.reported_percentage = reported_percentage

    @classmethod
    def empty(cls, definition: MetricDefinition):
        return cls(definition.code, definition.department, definition.name, is_inverse=definition.is_inverse)


class ComputedIndicator:
    def __init__(self, reading: RawMetricReading, percentage, status, wow_change, wow_direction,
                 expected_progress, variance, schedule_status):
        self.code = reading.code
        self.department = reading.department
        self.name = reading.name
        self.target = reading.target
        self.performance = reading.actual
        self.percentage = percentage
        self.status = status
        self.is_inverse = reading.is_inverse
        self.wow_change = wow_change
        self.wow_direction = wow_direction
        self.expected_progress = expected_progress
        self.variance = variance
        self.schedule_status = schedule_status


class OverallPerformance:
    def __init__(self, percentage=0.0, status="red", green_count=0, yellow_count=0, red_count=0):
        self.percentage = percentage
        self.status = status
        self.green_count = green_count
        self.yellow_count = yellow_count
        self.red_count = red_count


class WeeklyTrend:
    def __init__(self, change=0.0, direction="neutral", green_count_change=0):
        self.change = change
        self.direction = direction
        self.green_count_change = green_count_change


class ScheduleSummary:
    def __init__(self, ahead_count=0, on_schedule_count=0, behind_count=0):
        self.ahead_count = ahead_count
        self.on_schedule_count = on_schedule_count
        self.behind_count = behind_count


class Period:
    def __init__(self, month, year, month_name):
        self.month = month
        self.year = year
        self.month_name = month_name


class DashboardResponse:
    def __init__(self, period: Period, overall_performance: OverallPerformance, weekly_trend: WeeklyTrend,
                 schedule_summary: ScheduleSummary, indicators: list, last_updated: datetime.datetime):
        self.period = period
        self.overall_performance = overall_performance
        self.weekly_trend = weekly_trend
        self.schedule_summary = schedule_summary
        self.indicators = indicators
        self.last_updated = last_updated


class Encoder(JSONEncoder):
    def default(self, o):
        if isinstance(o, (datetime.datetime, datetime.date)):
            return o.isoformat()
        return o.__dict__
