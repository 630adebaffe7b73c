# SPDX-License-Identifier: Apache-2.0
import datetime
import logging
from contextlib import contextmanager

import pandas as pd

from weekly_dashboard.constants import MAX_WEEK, MIN_WEEK
from weekly_dashboard.sheet_utility import get_month_name
from weekly_dashboard.snapshot_repository import BaseSnapshotRepository

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Weekly snapshot history on top of a snapshot repository.

    Saving a week replaces whatever that week held before, so saving twice
    leaves exactly one batch for the week.
    """

    def __init__(self, repository: BaseSnapshotRepository, clock=datetime.datetime.now):
        self.repository = repository
        self.clock = clock

    @contextmanager
    def _unit_of_work(self):
        """
        Opens the repository for one operation and closes it afterwards. A database that
        cannot be reached is reported as RuntimeError like any other storage failure.
        """
        try:
            with self.repository as repository:
                yield repository
        except ConnectionError as e:
            logger.error(f"Snapshot storage unavailable: {e}")
            raise RuntimeError(f"Snapshot storage unavailable: {e}")

    def save_snapshot(self, indicators: list, month: int, year: int, week: int) -> int:
        """
        Records the indicators as the batch of (month, year, week).

        Args:
            indicators (list[ComputedIndicator]): Computed indicators.
            month (int): Month of the batch.
            year (int): Year of the batch.
            week (int): Week number within the month.

        Returns:
            int: Number of rows written.
        """
        snapshot_date = self.clock()
        rows = [
            {
                "indicator_id": indicator.code,
                "department": indicator.department,
                "indicator_name": indicator.name,
                "target_value": indicator.target,
                "performance_value": indicator.performance,
                "percentage": indicator.percentage,
                "snapshot_date": snapshot_date,
                "month": month,
                "week_number": week,
                "year": year,
            }
            for indicator in indicators
        ]

        with self._unit_of_work() as repository:
            deleted = repository.replace_week(month, year, week, rows)
        if deleted:
            logger.info(f"Deleted {deleted} existing snapshots for month={month}, year={year}, week={week}")
        logger.info(f"Saved {len(rows)} snapshots for month {month}, week {week}, year {year}")
        return len(rows)

    def _month_rows(self, month: int, year: int) -> pd.DataFrame:
        with self._unit_of_work() as repository:
            return repository.find_snapshots(month, year)

    def get_previous_week_percentages(self, month: int, year: int) -> dict:
        """
        Returns the most recently recorded percentage of every metric in the month.
        """
        df = self._month_rows(month, year)
        if df.empty:
            return {}
        latest = df.sort_values("snapshot_date", ascending=False, kind="stable").drop_duplicates("indicator_id")
        return dict(zip(latest["indicator_id"], latest["percentage"].astype(float)))

    def get_latest_batch(self, month: int, year: int) -> pd.DataFrame:
        """
        Returns every row sharing the newest snapshot_date of the month, or an empty DataFrame.
        """
        df = self._month_rows(month, year)
        if df.empty:
            return df
        latest_date = df["snapshot_date"].max()
        return df[df["snapshot_date"] == latest_date].reset_index(drop=True)

    def get_snapshots_for_month(self, month: int, year: int) -> dict:
        """
        Groups the weekly history of a month by metric.

        Returns:
            dict: {"indicators": [{"code", "department", "name", "weeks": [{"week", "percentage"}]}],
                "available_weeks": sorted weeks present, "month", "year", "month_name"}
        """
        df = self._month_rows(month, year)
        if not df.empty:
            df = df[(df["week_number"] >= MIN_WEEK) & (df["week_number"] <= MAX_WEEK)]
            df = df.sort_values(["indicator_id", "week_number"], kind="stable")
            df = df.drop_duplicates(["indicator_id", "week_number"])

        indicators = []
        for code, group in (df.groupby("indicator_id", sort=False) if not df.empty else []):
            first = group.iloc[0]
            indicators.append({
                "code": code,
                "department": first["department"],
                "name": first["indicator_name"],
                "weeks": [{"week": int(week), "percentage": float(percentage)}
                          for week, percentage in zip(group["week_number"], group["percentage"])],
            })

        available_weeks = sorted(int(week) for week in df["week_number"].unique()) if not df.empty else []

        return {
            "indicators": indicators,
            "available_weeks": available_weeks,
            "month": month,
            "year": year,
            "month_name": get_month_name(month),
        }

    def delete_snapshot_week(self, month: int, year: int, week: int) -> int:
        with self._unit_of_work() as repository:
            deleted = repository.delete_snapshots(month, year, week)
        logger.info(f"Deleted {deleted} snapshot records for month={month}, year={year}, week={week}")
        return deleted

    def has_data_for_month(self, month: int, year: int) -> bool:
        return not self._month_rows(month, year).empty
