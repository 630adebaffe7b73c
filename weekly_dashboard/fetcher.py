# SPDX-License-Identifier: Apache-2.0
import logging

from weekly_dashboard.constants import MONTH_NAMES
from weekly_dashboard.layout import LayoutSnapshot, MonthColumns
from weekly_dashboard.models import MetricDefinition, RawMetricReading
from weekly_dashboard.resolver import resolve_metric_row
from weekly_dashboard.sheet_utility import format_sheet_name, index_to_column, parse_cell_value
from weekly_dashboard.sources.base import BaseSheetSource

logger = logging.getLogger(__name__)


class BatchFetcher:
    """
    Reads the target, percent and actual cells of many metrics with one batch request.

    Attributes:
        source (BaseSheetSource): The spreadsheet source.
        sheet_name (str): The tab holding the scorecard.
    """

    def __init__(self, source: BaseSheetSource, sheet_name: str):
        self.source = source
        self.sheet_name = sheet_name

    def _month_columns(self, layout: LayoutSnapshot, month: int) -> MonthColumns:
        if month not in layout.month_columns:
            raise ValueError(f"month {month} not found in discovered layout")
        columns = layout.month_columns[month]
        logger.info(f"Month {month} ({MONTH_NAMES.get(month)}): target={columns.target}, "
                    f"percent={columns.percent}, actual={columns.actual}")
        return columns

    def _row_range(self, row: int, columns: MonthColumns) -> str:
        needed = [index for index in (columns.target, columns.percent, columns.actual) if index is not None]
        last_column = index_to_column(max(needed) if needed else 0)
        return f"{format_sheet_name(self.sheet_name)}!A{row}:{last_column}{row}"

    def fetch_metric_data(self, definitions: list, month: int, layout: LayoutSnapshot) -> list:
        """
        Fetches raw readings for every active, resolvable metric of a month.

        Metrics whose row cannot be resolved are skipped, as are metrics the batch
        response has no range for. If the batch request fails entirely, every resolved
        metric gets a zero-valued reading instead of failing the dashboard.

        Args:
            definitions (list[MetricDefinition]): The metric catalog.
            month (int): Month number (1-12).
            layout (LayoutSnapshot): The discovered layout.

        Returns:
            list[RawMetricReading]: Readings in catalog order.

        Raises:
            ValueError: If the month has no columns in the layout.
        """
        columns = self._month_columns(layout, month)

        ranges = []
        resolved = []
        for definition in definitions:
            if not definition.active:
                continue
            row = resolve_metric_row(definition, layout)
            if row is None:
                continue
            resolved.append(definition)
            ranges.append(self._row_range(row, columns))

        if not ranges:
            return []

        logger.info(f"Batch fetching {len(ranges)} KPIs in a single call for month {month}")

        try:
            value_ranges = self.source.batch_get_values(ranges)
        except ConnectionError as e:
            logger.error(f"Error in batch fetch, returning empty readings: {e}")
            return [RawMetricReading.empty(definition) for definition in resolved]

        if len(value_ranges) < len(resolved):
            logger.warning(f"Batch fetch returned {len(value_ranges)} ranges for {len(resolved)} KPIs, "
                           f"KPIs without a range are left out")

        readings = [parse_metric_row(values, definition, columns)
                    for definition, values in zip(resolved, value_ranges)]

        logger.info(f"Successfully fetched {len(readings)} KPIs")
        return readings

    def fetch_single(self, definition: MetricDefinition, month: int, layout: LayoutSnapshot) -> RawMetricReading:
        """
        Fetches one metric with a single range read.

        Raises:
            ValueError: If the month is missing from the layout or the metric has no row.
            ConnectionError: If the read fails.
        """
        columns = self._month_columns(layout, month)
        row = resolve_metric_row(definition, layout)
        if row is None:
            raise ValueError(f"could not determine row for KPI {definition.code}")
        values = self.source.get_values(self._row_range(row, columns))
        return parse_metric_row(values, definition, columns)


def parse_metric_row(values: list, definition: MetricDefinition, columns: MonthColumns) -> RawMetricReading:
    """
    Parses one fetched row. Cells past the end of a short row read as 0.
    """
    reading = RawMetricReading.empty(definition)
    if not values or not values[0]:
        return reading

    row = values[0]

    def cell(index):
        if index is None or index >= len(row):
            return 0.0
        return parse_cell_value(row[index])

    reading.target = cell(columns.target)
    reading.reported_percentage = cell(columns.percent)
    reading.actual = cell(columns.actual)
    return reading
