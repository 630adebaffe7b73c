# SPDX-License-Identifier: Apache-2.0
import logging

from weekly_dashboard.layout import LayoutSnapshot
from weekly_dashboard.models import MetricDefinition

logger = logging.getLogger(__name__)


def resolve_metric_row(definition: MetricDefinition, layout: LayoutSnapshot):
    """
    Determines the spreadsheet row of a metric.

    Priority: label match in the discovered layout, then the configured fallback row.
    When a label occurs on several rows the one numerically closest to the fallback
    row wins; on equal distance the first row in sheet order is kept.

    Args:
        definition (MetricDefinition): The configured metric.
        layout (LayoutSnapshot): The discovered layout.

    Returns:
        int | None: 1-based row number, or None when the metric cannot be placed.
    """
    if definition.label:
        rows = layout.rows_for_label(definition.label)
        if len(rows) == 1:
            return rows[0]
        if rows:
            best = rows[0]
            best_distance = abs(rows[0] - definition.fallback_row)
            for row in rows[1:]:
                distance = abs(row - definition.fallback_row)
                if distance < best_distance:
                    best = row
                    best_distance = distance
            logger.info(f"KPI '{definition.code}': label '{definition.label}' matched {len(rows)} rows, "
                        f"using row {best} (closest to fallback {definition.fallback_row})")
            return best
        logger.warning(f"KPI '{definition.code}' (label='{definition.label}') not found in the label column, "
                       f"falling back to row {definition.fallback_row}")

    if isinstance(definition.fallback_row, int) and definition.fallback_row > 0:
        return definition.fallback_row

    logger.warning(f"KPI '{definition.code}' has no label match and no valid fallback row, skipping")
    return None
