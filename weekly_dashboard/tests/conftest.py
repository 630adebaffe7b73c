# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the dashboard test suite.

Provides an in-memory spreadsheet source that answers A1 range reads from a
small scorecard grid, and an in-memory snapshot repository with the same
delete-then-insert behaviour as the PostgreSQL one.
"""
import datetime
import re

import pandas as pd
import pytest

from weekly_dashboard.catalog import MetricCatalog
from weekly_dashboard.config_loader import AppConfig
from weekly_dashboard.dashboard import DashboardService
from weekly_dashboard.models import MetricDefinition
from weekly_dashboard.sheet_utility import column_to_index
from weekly_dashboard.snapshot_repository import SNAPSHOT_COLUMNS, BaseSnapshotRepository
from weekly_dashboard.snapshot_store import SnapshotStore
from weekly_dashboard.sources.base import BaseSheetSource

# Columns: A=code, B=department, C=label, then per month Target, Lagging, % Performance, actual.
HEADER = ["Code", "Dept", "KPI",
          "January Target", "January Lagging", "% January Performance", "January",
          "February Target", "February Lagging", "% February Performance", "February"]


def build_grid():
    """A 61-row scorecard with revenue on row 3, an inverse cost ratio on row 27 and a duplicated label."""
    grid = [[] for _ in range(61)]
    grid[0] = list(HEADER)
    grid[2] = ["KPI-01", "FINANCE", "Revenue Group", "100", "", "90%", "90", "200", "", "", "150"]
    grid[26] = ["KPI-07", "PS", "Non Billable Cost Ratio (max)", "10", "", "", "12", "10", "", "", "5"]
    grid[35] = ["KPI-09", "DELIVERY", "Customer Satisfaction", "4", "", "", "4.4"]
    grid[60] = ["", "", "Customer Satisfaction", "1", "", "", "1"]
    return grid


_RANGE = re.compile(r"^(?:'?(?P<sheet>[^'!]+)'?!)?(?P<start>[A-Z]*)(?P<start_row>\d*):(?P<end>[A-Z]*)(?P<end_row>\d*)$")


class FakeSheetSource(BaseSheetSource):
    """
    Answers whole-row, whole-column and single-row A1 ranges from an in-memory grid.
    """

    def __init__(self, grid=None, spreadsheet_id="sheet-1"):
        super().__init__({"spreadsheet_id": spreadsheet_id})
        self.spreadsheet_id = spreadsheet_id
        self.grid = grid if grid is not None else build_grid()
        self.get_calls = []
        self.batch_calls = []
        self.fail = False
        self.deny_access = False

    def connect(self):
        pass

    def disconnect(self):
        pass

    def _read(self, range_):
        match = _RANGE.match(range_)
        if not match:
            raise ValueError(f"unsupported range {range_}")
        start, end = match.group("start"), match.group("end")
        start_row, end_row = match.group("start_row"), match.group("end_row")

        if not start and not end:
            row = int(start_row)
            return [list(self.grid[row - 1])] if row <= len(self.grid) and self.grid[row - 1] else []

        column = column_to_index(start)
        if not start_row:
            return [[row[column]] if len(row) > column else [] for row in self.grid]

        row = self.grid[int(start_row) - 1] if int(start_row) <= len(self.grid) else []
        cells = row[column:column_to_index(end) + 1]
        return [list(cells)] if cells else []

    def get_values(self, range_):
        self.get_calls.append(range_)
        if self.fail:
            raise ConnectionError("sheet unavailable")
        return self._read(range_)

    def batch_get_values(self, ranges):
        self.batch_calls.append(list(ranges))
        if self.fail:
            raise ConnectionError("sheet unavailable")
        return [self._read(range_) for range_ in ranges]

    def check_access(self):
        if self.deny_access:
            raise ConnectionError("no access to spreadsheet: 403")


class InMemorySnapshotRepository(BaseSnapshotRepository):
    def __init__(self):
        self.rows = []
        self.fail = False

    def find_snapshots(self, month, year, week_number=None):
        rows = [r for r in self.rows if r["month"] == month and r["year"] == year
                and (week_number is None or r["week_number"] == week_number)]
        return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)

    def delete_snapshots(self, month, year, week_number):
        if self.fail:
            raise RuntimeError("Could not delete snapshots on PostgreSQL: boom")
        kept = [r for r in self.rows
                if not (r["month"] == month and r["year"] == year and r["week_number"] == week_number)]
        deleted = len(self.rows) - len(kept)
        self.rows = kept
        return deleted

    def create_snapshots(self, rows):
        self.rows.extend(dict(row) for row in rows)


def snapshot_row(code, percentage, week, snapshot_date, month=1, year=2026, department="FINANCE", name=None):
    return {
        "indicator_id": code,
        "department": department,
        "indicator_name": name or code,
        "target_value": 100.0,
        "performance_value": percentage,
        "percentage": percentage,
        "snapshot_date": snapshot_date,
        "month": month,
        "week_number": week,
        "year": year,
    }


def sample_definitions():
    return [
        MetricDefinition("KPI-01", "FINANCE", "Revenue Group", "Revenue Group", 3, display_order=1),
        MetricDefinition("KPI-07", "PS", "Non Billable Cost", "Non Billable Cost Ratio (max)", 27,
                         is_inverse=True, display_order=2),
        MetricDefinition("KPI-09", "DELIVERY", "Customer Satisfaction", "Customer Satisfaction", 36,
                         display_order=3),
    ]


def sample_config(**overrides):
    cfg = {
        "setup": {
            "spreadsheet_id": "sheet-1",
            "sheet_name": "DashboardTemplate",
            "spreadsheet_year": 2026,
            "label_column": "C",
        },
        "source": {"type": "google_sheets"},
        "database": {},
        "metrics": [],
    }
    cfg["setup"].update(overrides)
    return AppConfig(cfg)


@pytest.fixture
def source():
    return FakeSheetSource()


@pytest.fixture
def repository():
    return InMemorySnapshotRepository()


@pytest.fixture
def store(repository):
    return SnapshotStore(repository, clock=lambda: datetime.datetime(2026, 1, 15, 9, 0))


@pytest.fixture
def service(source, store):
    return DashboardService(sample_config(), MetricCatalog(sample_definitions()), source, store,
                            clock=lambda: datetime.datetime(2026, 1, 15, 9, 0))
