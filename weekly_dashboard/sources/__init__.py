# SPDX-License-Identifier: Apache-2.0
from .base import BaseSheetSource
from .google_sheets import GoogleSheetsSource

import logging

from ..secret_loader import get_loader

logger = logging.getLogger(__name__)

_SOURCE_MAP = {
    "google_sheets": GoogleSheetsSource,
}


def get_source(source_type: str, config: dict) -> BaseSheetSource:
    """
    Factory function to get a spreadsheet source instance.

    Args:
        source_type (str): The type of spreadsheet source (e.g., "google_sheets").
        config (dict): The configuration dictionary for the source.

    Returns:
        BaseSheetSource: An instance of the appropriate source.

    Raises:
        ValueError: If the source_type is not supported.
    """
    source_class = _SOURCE_MAP.get(source_type.lower())
    if not source_class:
        logger.error(f"Unsupported spreadsheet source type: {source_type}")
        raise ValueError(f"Unsupported spreadsheet source type: {source_type}. Supported types are: {list(_SOURCE_MAP.keys())}")

    logger.info(f"Creating spreadsheet source of type: {source_type}")

    if "service" in config:
        config = _load_secret(config)

    return source_class(config)


def _load_secret(secret_config) -> dict:
    secret_loader = get_loader(secret_config)
    secret: dict = secret_loader.load_secret()
    merged = dict(secret_config)
    merged.update({k: v for k, v in secret.items()})
    return merged


__all__ = [
    "BaseSheetSource",
    "GoogleSheetsSource",
    "get_source",
]
