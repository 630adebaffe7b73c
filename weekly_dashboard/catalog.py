# SPDX-License-Identifier: Apache-2.0
import logging

from weekly_dashboard.models import MetricDefinition

logger = logging.getLogger(__name__)


class MetricCatalog:
    """
    The configured metrics, in display order.
    """

    def __init__(self, definitions: list):
        self.definitions = sorted(definitions, key=lambda d: d.display_order)

    @classmethod
    def from_config(cls, metrics: list):
        definitions = []
        for position, entry in enumerate(metrics):
            definitions.append(MetricDefinition(
                code=entry['code'],
                department=entry['department'],
                name=entry['name'],
                label=entry.get('label', ''),
                fallback_row=entry.get('fallback_row', 0),
                is_inverse=entry.get('is_inverse', False),
                active=entry.get('active', True),
                display_order=entry.get('display_order', position + 1),
                unit_of_measure=entry.get('unit_of_measure', ''),
            ))
        logger.info(f"Loaded {len(definitions)} metric definitions")
        return cls(definitions)

    def active(self) -> list:
        return [d for d in self.definitions if d.active]

    def inverse_lookup(self) -> dict:
        # Includes inactive metrics, stored batches may predate a deactivation
        return {d.code: d.is_inverse for d in self.definitions}
