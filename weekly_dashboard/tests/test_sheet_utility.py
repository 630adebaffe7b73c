# SPDX-License-Identifier: Apache-2.0
"""
Behavioral tests for the cell parsing and A1 notation helpers.
"""
import pytest

from weekly_dashboard.sheet_utility import (
    column_to_index,
    days_in_month,
    format_sheet_name,
    get_month_name,
    index_to_column,
    normalize_label,
    parse_cell_value,
)


class TestParseCellValue:
    @pytest.mark.parametrize("raw, expected", [
        ("1,234.5", 1234.5),
        ("85%", 85.0),
        ("1,234.5%", 1234.5),
        (" 12 ", 12.0),
        ("-", 0.0),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        (42, 42.0),
        (3.5, 3.5),
        ("-7.25", -7.25),
    ])
    def test_examples(self, raw, expected):
        assert parse_cell_value(raw) == expected

    def test_boolean_cells_read_as_zero(self):
        assert parse_cell_value(True) == 0.0

    def test_unparseable_string_logs_warning(self, caplog):
        parse_cell_value("n/a")
        assert "Failed to parse float from 'n/a'" in caplog.text


class TestColumnLetters:
    @pytest.mark.parametrize("index, letters", [(0, "A"), (2, "C"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ")])
    def test_index_to_column(self, index, letters):
        assert index_to_column(index) == letters
        assert column_to_index(letters) == index

    def test_lowercase_letters(self):
        assert column_to_index("c") == 2


def test_format_sheet_name_quotes_names_with_spaces():
    assert format_sheet_name("Dashboard Template") == "'Dashboard Template'"
    assert format_sheet_name("DashboardTemplate") == "DashboardTemplate"


def test_normalize_label():
    assert normalize_label("  Revenue GROUP ") == "revenue group"


def test_days_in_month_handles_leap_years():
    assert days_in_month(2, 2024) == 29
    assert days_in_month(2, 2026) == 28
    assert days_in_month(4, 2026) == 30


def test_get_month_name():
    assert get_month_name(1) == "January"
    assert get_month_name(13) == ""
