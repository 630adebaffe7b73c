# SPDX-License-Identifier: Apache-2.0
import copy
import unittest

from weekly_dashboard.validator import DashboardConfigValidator


class TestDashboardConfigValidator(unittest.TestCase):

    def setUp(self):
        self.base_config = {
            "setup": {
                "spreadsheet_id": "sheet-1",
                "sheet_name": "DashboardTemplate",
                "spreadsheet_year": 2026,
                "label_column": "C",
                "__line__": 1,
            },
            "metrics": [
                {"code": "KPI-01", "department": "FINANCE", "name": "Revenue Group", "label": "Revenue Group",
                 "fallback_row": 3, "__line__": 10},
                {"code": "KPI-07", "department": "PS", "name": "Non Billable Cost", "fallback_row": 27,
                 "is_inverse": True, "active": False, "__line__": 16},
            ],
        }

    def config(self):
        return copy.deepcopy(self.base_config)

    def test_valid_config(self):
        DashboardConfigValidator(self.config()).validate_yaml()

    def test_missing_setup_section(self):
        cfg = self.config()
        del cfg["setup"]
        with self.assertRaisesRegex(KeyError, "Missing SETUP section"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_missing_spreadsheet_id_reports_line(self):
        cfg = self.config()
        cfg["setup"]["spreadsheet_id"] = ""
        with self.assertRaisesRegex(KeyError, "spreadsheet_id is required, at line 1"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_invalid_year(self):
        cfg = self.config()
        cfg["setup"]["spreadsheet_year"] = "next year"
        with self.assertRaisesRegex(ValueError, "spreadsheet_year must be a year"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_invalid_label_column(self):
        cfg = self.config()
        cfg["setup"]["label_column"] = "C1"
        with self.assertRaisesRegex(ValueError, "label_column must be column letters"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_empty_metrics(self):
        cfg = self.config()
        cfg["metrics"] = []
        with self.assertRaisesRegex(KeyError, "Missing METRICS section"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_missing_metric_name_reports_line(self):
        cfg = self.config()
        del cfg["metrics"][1]["name"]
        with self.assertRaisesRegex(KeyError, "at line: 16"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_duplicate_code(self):
        cfg = self.config()
        cfg["metrics"][1]["code"] = "KPI-01"
        with self.assertRaisesRegex(ValueError, "Duplicate metric code KPI-01 at line: 16"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_fallback_row_must_be_positive_integer(self):
        for value in (0, -3, "27", True, None):
            cfg = self.config()
            cfg["metrics"][0]["fallback_row"] = value
            with self.assertRaisesRegex(ValueError, "fallback_row must be a positive integer for the metric KPI-01"):
                DashboardConfigValidator(cfg).validate_yaml()

    def test_flags_must_be_booleans(self):
        cfg = self.config()
        cfg["metrics"][0]["is_inverse"] = "yes please"
        with self.assertRaisesRegex(ValueError, "Invalid value provided for is_inverse"):
            DashboardConfigValidator(cfg).validate_yaml()

    def test_display_order_must_be_integer(self):
        cfg = self.config()
        cfg["metrics"][0]["display_order"] = "first"
        with self.assertRaisesRegex(ValueError, "display_order must be an integer"):
            DashboardConfigValidator(cfg).validate_yaml()
