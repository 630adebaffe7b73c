# SPDX-License-Identifier: Apache-2.0
import calendar
import logging
from typing import Any

from weekly_dashboard.constants import MONTH_NAMES

logger = logging.getLogger(__name__)


def parse_cell_value(value: Any) -> float:
    """
    Converts a raw spreadsheet cell into a float.

    Formatted strings like "1,234.5%" lose their percent signs and thousands
    separators before parsing. Empty cells, dashes and anything that cannot be
    parsed become 0 so a single malformed cell never aborts a computation.

    Args:
        value (Any): The cell content as returned by the source (None, number or string).

    Returns:
        float: The parsed number, or 0.0 when the cell carries no usable value.
    """
    if value is None:
        return 0.0

    # bool is an int subclass but a checkbox cell is not a metric value
    if isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        return float(value)

    if not isinstance(value, str):
        return 0.0

    cleaned = value.replace("%", "").replace(",", "").strip()
    if cleaned == "" or cleaned == "-":
        return 0.0

    try:
        return float(cleaned)
    except ValueError:
        logger.warning(f"Failed to parse float from '{value}'")
        return 0.0


def normalize_label(label: Any) -> str:
    return str(label).strip().lower()


def index_to_column(index: int) -> str:
    """
    Converts a 0-based column index to spreadsheet column letters (0 -> A, 26 -> AA).
    """
    result = ""
    while index >= 0:
        result = chr(ord("A") + index % 26) + result
        index = index // 26 - 1
    return result


def column_to_index(column: str) -> int:
    """
    Converts spreadsheet column letters to a 0-based index (A -> 0, AB -> 27).
    """
    result = 0
    for char in column.strip().upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def format_sheet_name(name: str) -> str:
    # A1 notation requires quoting for names with spaces
    if " " in name:
        return f"'{name}'"
    return name


def days_in_month(month: int, year: int) -> int:
    _, total_days = calendar.monthrange(year, month)
    return total_days


def get_month_name(month: int) -> str:
    if month in MONTH_NAMES:
        return MONTH_NAMES[month].capitalize()
    return ""
