# SPDX-License-Identifier: Apache-2.0
"""
Layout discovery for the scorecard spreadsheet.

The spreadsheet is edited by hand, so month columns move and metric rows are
inserted or deleted. Instead of hard-coding positions, the header row and the
label column are scanned once and turned into a read-only LayoutSnapshot that
the row resolver and the batch fetcher consume.

Header cells are matched against four shapes per month (case-insensitive):

    "<Month> Target"           -> target column
    "<Month> Lagging"          -> lagging column
    "% <Month> Performance"    -> percent column
    "<Month>"                  -> actual column

When two headers claim the same (month, slot) the later column wins.
"""
import datetime
import logging
from collections import namedtuple
from types import MappingProxyType

from weekly_dashboard.constants import (
    COLUMN_ACTUAL,
    COLUMN_LAGGING,
    COLUMN_PERCENT,
    COLUMN_TARGET,
    DEFAULT_LABEL_COLUMN,
    HEADER_ROW,
    MONTH_NAMES,
    NAME_TO_MONTH,
)
from weekly_dashboard.sheet_utility import format_sheet_name, index_to_column, normalize_label

logger = logging.getLogger(__name__)

MonthColumns = namedtuple("MonthColumns", [COLUMN_TARGET, COLUMN_LAGGING, COLUMN_PERCENT, COLUMN_ACTUAL],
                          defaults=(None, None, None, None))


class LayoutDiscoveryError(Exception):
    """Raised when the spreadsheet layout cannot be discovered."""


class LayoutSnapshot:
    """
    Immutable record of where each month's columns and each metric's rows live.

    Attributes:
        month_columns (Mapping[int, MonthColumns]): 0-based column positions per month (1-12).
            A slot without a matching header is None; months without any header are absent.
        label_rows (Mapping[str, tuple]): Normalized label -> 1-based row numbers in sheet order.
        captured_at (datetime.datetime): When the snapshot was built.
    """

    __slots__ = ("_month_columns", "_label_rows", "_captured_at")

    def __init__(self, month_columns: dict, label_rows: dict, captured_at: datetime.datetime = None):
        object.__setattr__(self, "_month_columns", MappingProxyType(dict(month_columns)))
        object.__setattr__(self, "_label_rows", MappingProxyType(
            {label: tuple(rows) for label, rows in label_rows.items()}))
        object.__setattr__(self, "_captured_at", captured_at or datetime.datetime.now())

    def __setattr__(self, key, value):
        raise AttributeError("LayoutSnapshot is read-only")

    @property
    def month_columns(self):
        return self._month_columns

    @property
    def label_rows(self):
        return self._label_rows

    @property
    def captured_at(self):
        return self._captured_at

    def rows_for_label(self, label: str) -> tuple:
        return self._label_rows.get(normalize_label(label), ())


def match_month_from_header(header) -> tuple:
    """
    Parses one header cell into (month, column slot).

    Args:
        header (Any): Raw header cell. Non-string cells never match.

    Returns:
        tuple: (month number, slot name) or (None, None) when the header is not a month column.
    """
    if not isinstance(header, str):
        return None, None

    lower = header.strip().lower()

    if lower.startswith("% ") and lower.endswith(" performance"):
        inner = lower[len("% "):-len(" performance")].strip()
        if inner in NAME_TO_MONTH:
            return NAME_TO_MONTH[inner], COLUMN_PERCENT

    for suffix, slot in ((" target", COLUMN_TARGET), (" lagging", COLUMN_LAGGING)):
        if lower.endswith(suffix) and lower[:-len(suffix)] in NAME_TO_MONTH:
            return NAME_TO_MONTH[lower[:-len(suffix)]], slot

    if lower in NAME_TO_MONTH:
        return NAME_TO_MONTH[lower], COLUMN_ACTUAL

    return None, None


def build_month_columns(header_row: list) -> dict:
    """
    Scans the header row and records the column index of every month slot.

    Raises:
        LayoutDiscoveryError: If the header row is empty.
    """
    if not header_row:
        raise LayoutDiscoveryError("header row is empty")

    logger.debug(f"Header row has {len(header_row)} columns")

    month_columns = {}
    for column_index, header in enumerate(header_row):
        month, slot = match_month_from_header(header)
        if month is None:
            continue
        current = month_columns.get(month, MonthColumns())
        # Later headers overwrite earlier ones for the same slot
        month_columns[month] = current._replace(**{slot: column_index})
        logger.debug(f"Col {index_to_column(column_index)} ('{header}') -> month={month} type={slot}")

    return month_columns


def build_label_rows(label_column: list) -> dict:
    """
    Records every non-empty label with the 1-based rows it appears on. Duplicates are kept.

    Args:
        label_column (list): Rows as returned by a single-column read; each row is a list
            that may be empty.

    Raises:
        LayoutDiscoveryError: If the column holds no labels at all.
    """
    label_rows = {}
    for row_index, row in enumerate(label_column or []):
        if not row or row[0] is None:
            continue
        key = normalize_label(row[0])
        if not key:
            continue
        label_rows.setdefault(key, []).append(row_index + 1)

    if not label_rows:
        raise LayoutDiscoveryError("label column is empty")

    return label_rows


def discover_layout(source, sheet_name: str, label_column: str = DEFAULT_LABEL_COLUMN) -> LayoutSnapshot:
    """
    Reads the header row and the label column from the source and builds a LayoutSnapshot.

    Args:
        source (BaseSheetSource): Connected spreadsheet source.
        sheet_name (str): The tab holding the scorecard.
        label_column (str): Column letters of the metric label column.

    Returns:
        LayoutSnapshot: The discovered layout.

    Raises:
        LayoutDiscoveryError: If either read fails or returns no usable content.
    """
    sheet = format_sheet_name(sheet_name)

    try:
        header_values = source.get_values(f"{sheet}!{HEADER_ROW}:{HEADER_ROW}")
    except ConnectionError as e:
        raise LayoutDiscoveryError(f"column discovery failed: failed to fetch header row: {e}") from e

    try:
        month_columns = build_month_columns(header_values[0] if header_values else [])
    except LayoutDiscoveryError as e:
        raise LayoutDiscoveryError(f"column discovery failed: {e}") from e

    try:
        label_values = source.get_values(f"{sheet}!{label_column}:{label_column}")
    except ConnectionError as e:
        raise LayoutDiscoveryError(f"row discovery failed: failed to fetch column {label_column}: {e}") from e

    try:
        label_rows = build_label_rows(label_values)
    except LayoutDiscoveryError as e:
        raise LayoutDiscoveryError(f"row discovery failed: {e}") from e

    snapshot = LayoutSnapshot(month_columns, label_rows)
    logger.info(f"Discovered {len(month_columns)} month columns and {len(label_rows)} KPI rows")

    for month in sorted(month_columns):
        columns = month_columns[month]
        mapping = " ".join(
            f"{slot}={index_to_column(index) if index is not None else '-'}({index})"
            for slot, index in columns._asdict().items())
        logger.info(f"Month {month:2d} ({MONTH_NAMES[month]}): {mapping}")

    for label, rows in label_rows.items():
        logger.debug(f"KPI '{label}' -> rows {rows}")

    return snapshot
