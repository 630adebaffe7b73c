# SPDX-License-Identifier: Apache-2.0
import datetime
import logging

from weekly_dashboard import kpi
from weekly_dashboard.catalog import MetricCatalog
from weekly_dashboard.config_loader import AppConfig, extract_spreadsheet_id
from weekly_dashboard.fetcher import BatchFetcher
from weekly_dashboard.layout import LayoutDiscoveryError, LayoutSnapshot, discover_layout
from weekly_dashboard.layout_cache import LayoutCache
from weekly_dashboard.models import DashboardResponse, Period
from weekly_dashboard.sheet_utility import get_month_name
from weekly_dashboard.snapshot_store import SnapshotStore
from weekly_dashboard.sources.base import BaseSheetSource

logger = logging.getLogger(__name__)

COMPARE_PREVIOUS_MONTH = "previous_month"
COMPARE_PREVIOUS_YEAR = "previous_year"


def comparison_period(month: int, year: int, compare_with: str) -> tuple:
    """
    Returns the (month, year) to compare against. Unknown modes compare with the same period.
    """
    if compare_with == COMPARE_PREVIOUS_MONTH:
        if month == 1:
            return 12, year - 1
        return month - 1, year
    if compare_with == COMPARE_PREVIOUS_YEAR:
        return month, year - 1
    return month, year


class DashboardService:
    """
    Builds the weekly KPI dashboard from the spreadsheet and the snapshot history.

    Attributes:
        config (AppConfig): Runtime configuration, including the spreadsheet target.
        catalog (MetricCatalog): Configured metrics.
        source (BaseSheetSource): Spreadsheet source.
        store (SnapshotStore): Snapshot history.
        layout_cache (LayoutCache): Cached spreadsheet layout.
    """

    def __init__(self, config: AppConfig, catalog: MetricCatalog, source: BaseSheetSource, store: SnapshotStore,
                 clock=None):
        self.config = config
        self.catalog = catalog
        self.source = source
        self.store = store
        self.clock = clock or datetime.datetime.now
        self.fetcher = BatchFetcher(source, config.sheet_name)
        self.layout_cache = LayoutCache(self._discover, ttl_seconds=config.layout_ttl_seconds)

    def _discover(self) -> LayoutSnapshot:
        return discover_layout(self.source, self.config.sheet_name, self.config.label_column)

    def get_layout(self) -> LayoutSnapshot:
        return self.layout_cache.get_layout()

    def invalidate_layout(self, discard: bool = False):
        self.layout_cache.invalidate_layout(discard)

    def check_source_access(self):
        """
        Raises:
            ConnectionError: If the spreadsheet cannot be read with the configured credentials.
        """
        self.source.check_access()

    def _fetch_readings(self, month: int, year: int) -> list:
        if year != self.config.spreadsheet_year:
            logger.info(f"Skipping spreadsheet fetch: requested year {year} != configured year "
                        f"{self.config.spreadsheet_year}")
            return []

        layout = self.layout_cache.get_layout()
        try:
            return self.fetcher.fetch_metric_data(self.catalog.active(), month, layout)
        except ValueError as e:
            logger.warning(f"Error fetching sheet data, continuing with empty data: {e}")
            return []

    def get_dashboard_data(self, month: int, year: int, today: datetime.date = None) -> DashboardResponse:
        """
        Computes the dashboard for a month.

        Args:
            month (int): Month number (1-12).
            year (int): Calendar year. Only the configured spreadsheet year is read from the sheet;
                other years produce an empty indicator list.
            today (datetime.date): Date used for schedule variance, defaults to today.

        Returns:
            DashboardResponse: Indicators, aggregates and trend.

        Raises:
            LayoutDiscoveryError: If the layout cannot be discovered and nothing is cached.
        """
        readings = self._fetch_readings(month, year)
        previous_percentages = self.store.get_previous_week_percentages(month, year)

        indicators, overall, schedule = kpi.compute(readings, previous_percentages, month, year, today)
        trend = kpi.calculate_weekly_trend(overall, self.store.get_latest_batch(month, year),
                                           self.catalog.inverse_lookup())

        logger.info(f"Dashboard for {month}/{year}: {len(indicators)} indicators, "
                    f"overall={overall.percentage:.1f}% ({overall.status})")

        return DashboardResponse(
            period=Period(month, year, get_month_name(month)),
            overall_performance=overall,
            weekly_trend=trend,
            schedule_summary=schedule,
            indicators=indicators,
            last_updated=self.clock(),
        )

    def get_available_months(self, today: datetime.date = None) -> dict:
        today = today or datetime.date.today()
        spreadsheet_year = self.config.spreadsheet_year

        months = [
            {
                "month": month,
                "year": spreadsheet_year,
                "label": f"{get_month_name(month)} {spreadsheet_year}",
                "has_data": self.store.has_data_for_month(month, spreadsheet_year),
            }
            for month in range(1, 13)
        ]

        current_month = today.month if today.year == spreadsheet_year else 1

        return {
            "available_months": months,
            "current_month": {"month": current_month, "year": spreadsheet_year},
        }

    def compare(self, month: int, year: int, compare_with: str = COMPARE_PREVIOUS_MONTH,
                today: datetime.date = None) -> dict:
        """
        Computes the dashboard for a month and for the period it is compared with.

        A failure on the comparison side yields None for "comparison" rather than an error.
        """
        current = self.get_dashboard_data(month, year, today)

        compare_month, compare_year = comparison_period(month, year, compare_with)
        try:
            comparison = self.get_dashboard_data(compare_month, compare_year, today)
        except (LayoutDiscoveryError, RuntimeError, ConnectionError) as e:
            logger.error(f"Failed to get comparison dashboard data: {e}")
            comparison = None

        return {
            "current": current,
            "comparison": comparison,
            "compare_with": {"type": compare_with, "month": compare_month, "year": compare_year},
        }

    def save_snapshot(self, month: int, year: int, week: int, today: datetime.date = None) -> dict:
        dashboard = self.get_dashboard_data(month, year, today)
        self.store.save_snapshot(dashboard.indicators, month, year, week)
        return {
            "month": month,
            "year": year,
            "week_number": week,
            "saved_at": dashboard.last_updated,
        }

    def get_snapshots_by_month(self, month: int, year: int) -> dict:
        return self.store.get_snapshots_for_month(month, year)

    def delete_snapshot_week(self, month: int, year: int, week: int) -> int:
        return self.store.delete_snapshot_week(month, year, week)

    def get_spreadsheet_settings(self) -> dict:
        return {
            "spreadsheet_id": self.config.spreadsheet_id,
            "sheet_name": self.config.sheet_name,
        }

    def update_spreadsheet_settings(self, spreadsheet_id_or_url: str, sheet_name: str = None) -> dict:
        """
        Re-targets the source at another spreadsheet or tab and drops the cached layout.

        Args:
            spreadsheet_id_or_url (str): Bare id or full Google Sheets URL.
            sheet_name (str): New tab name; the current one is kept when empty.

        Raises:
            ValueError: If no spreadsheet id can be extracted.
        """
        spreadsheet_id = extract_spreadsheet_id(spreadsheet_id_or_url)
        if not spreadsheet_id:
            raise ValueError("Spreadsheet ID or URL is required")

        sheet_name = sheet_name or self.config.sheet_name

        self.config.spreadsheet_id = spreadsheet_id
        self.config.sheet_name = sheet_name
        self.source.spreadsheet_id = spreadsheet_id
        self.fetcher.sheet_name = sheet_name
        self.layout_cache.invalidate_layout(discard=True)

        logger.info(f"Spreadsheet settings updated: ID={spreadsheet_id}, Sheet={sheet_name}")
        return self.get_spreadsheet_settings()
