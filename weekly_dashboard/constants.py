# SPDX-License-Identifier: Apache-2.0
"""
Named constants for the KPI dashboard engine.

These constants replace magic numbers throughout the codebase so the
classification tables and layout conventions of the scorecard spreadsheet
stay self-documenting.
"""

# ---------------------------------------------------------------------------
# Spreadsheet layout
# ---------------------------------------------------------------------------
HEADER_ROW = 1
DEFAULT_LABEL_COLUMN = "C"
DEFAULT_SHEET_NAME = "DashboardTemplate"

MONTH_NAMES = {
    1: "january", 2: "february", 3: "march", 4: "april",
    5: "may", 6: "june", 7: "july", 8: "august",
    9: "september", 10: "october", 11: "november", 12: "december",
}
NAME_TO_MONTH = {name: number for number, name in MONTH_NAMES.items()}

# Column slots discovered for every month group in the header row
COLUMN_TARGET = "target"
COLUMN_LAGGING = "lagging"
COLUMN_PERCENT = "percent"
COLUMN_ACTUAL = "actual"

# ---------------------------------------------------------------------------
# Layout cache
# ---------------------------------------------------------------------------
LAYOUT_TTL_SECONDS = 300
SOURCE_TIMEOUT_SECONDS = 10

# ---------------------------------------------------------------------------
# Percentage and status classification
#
# Normal metrics (higher is better) use strict '>' comparisons, inverse
# metrics (lower is better) use '>='. Stored snapshot history was computed
# with exactly these operators.
# ---------------------------------------------------------------------------
PERCENTAGE_CAP = 999

STATUS_SUPERGREEN = "supergreen"
STATUS_GREEN = "green"
STATUS_YELLOW = "yellow"
STATUS_RED = "red"

SUPERGREEN_THRESHOLD = 100
GREEN_THRESHOLD = 85
YELLOW_THRESHOLD = 55

# ---------------------------------------------------------------------------
# Week-over-week
# ---------------------------------------------------------------------------
DIRECTION_UP = "up"
DIRECTION_DOWN = "down"
DIRECTION_NEUTRAL = "neutral"

WOW_DEAD_ZONE = 0.5

# ---------------------------------------------------------------------------
# Schedule variance
# ---------------------------------------------------------------------------
SCHEDULE_AHEAD = "ahead"
SCHEDULE_ON = "on_schedule"
SCHEDULE_BEHIND = "behind"

SCHEDULE_BAND = 5

# ---------------------------------------------------------------------------
# Request bounds
# ---------------------------------------------------------------------------
MIN_YEAR = 2020
MAX_YEAR = 2100
MIN_WEEK = 1
MAX_WEEK = 5
