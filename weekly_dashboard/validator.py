# SPDX-License-Identifier: Apache-2.0
import logging
import re

logger = logging.getLogger(__name__)

_COLUMN_LETTERS = re.compile(r'^[A-Za-z]{1,3}$')


def _line(section) -> str:
    if isinstance(section, dict):
        return section.get('__line__', 'unknown')
    return 'unknown'


class DashboardConfigValidator:
    def __init__(self, cfg: dict):
        """
        Initializes the DashboardConfigValidator that validates the yaml setup and metric catalog

        Args:
            cfg (dict): The dashboard YAML configuration, loaded with SafeLineLoader.
        """
        self.cfg = cfg

    def validate_yaml(self):
        self.check_setup()
        self.validate_metrics()

    def check_setup(self):
        """
        Checks the setup section of the configuration.

        Raises:
            KeyError: If the setup section or a required key is missing.
            ValueError: If a value has the wrong shape.
        """
        setup = self.cfg.get('setup')
        if not isinstance(setup, dict):
            raise KeyError("Missing SETUP section in dashboard config")

        for key in ('spreadsheet_id', 'sheet_name'):
            if not setup.get(key):
                raise KeyError(f"Error in SETUP section, {key} is required, at line {_line(setup)}")

        if 'spreadsheet_year' in setup:
            try:
                int(setup['spreadsheet_year'])
            except (TypeError, ValueError):
                raise ValueError(f"spreadsheet_year must be a year, e.g. 2026, at line: {_line(setup)}")

        label_column = setup.get('label_column')
        if label_column is not None and not _COLUMN_LETTERS.match(str(label_column)):
            raise ValueError(f"label_column must be column letters, e.g. C, at line: {_line(setup)}")

    def validate_metrics(self):
        """
        Validates every metric catalog entry.

        Raises:
            KeyError: If the metrics section or a required metric parameter is missing.
            ValueError: If a code is duplicated or a value has the wrong type.
        """
        metrics = self.cfg.get('metrics')
        if not isinstance(metrics, list) or not metrics:
            raise KeyError("Missing METRICS section in dashboard config, expected a non-empty list")

        seen_codes = set()
        for metric in metrics:
            if not isinstance(metric, dict):
                raise ValueError(f"Every metric must be a mapping, got {metric!r}")

            for key in ('code', 'department', 'name'):
                if not metric.get(key):
                    raise KeyError(
                        f"One of the required metric config parameters from the list [code, department, name] "
                        f"is missing for the metric at line: {_line(metric)}")

            code = metric['code']
            if code in seen_codes:
                raise ValueError(f"Duplicate metric code {code} at line: {_line(metric)}")
            seen_codes.add(code)

            fallback_row = metric.get('fallback_row')
            if isinstance(fallback_row, bool) or not isinstance(fallback_row, int) or fallback_row < 1:
                raise ValueError(
                    f"fallback_row must be a positive integer for the metric {code} at line: {_line(metric)}")

            for flag in ('is_inverse', 'active'):
                if flag in metric and not isinstance(metric[flag], bool):
                    raise ValueError(
                        f"Invalid value provided for {flag} {metric[flag]} for the metric {code}, expected "
                        f"true or false, at line: {_line(metric)}")

            if 'display_order' in metric and (isinstance(metric['display_order'], bool)
                                              or not isinstance(metric['display_order'], int)):
                raise ValueError(
                    f"display_order must be an integer for the metric {code} at line: {_line(metric)}")
