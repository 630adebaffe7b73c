# SPDX-License-Identifier: Apache-2.0
import datetime
import logging
import os
import traceback

import requests
import yaml
from yaml import SafeLoader
from yaml.scanner import ScannerError

from weekly_dashboard.constants import (
    DEFAULT_LABEL_COLUMN,
    DEFAULT_SHEET_NAME,
    LAYOUT_TTL_SECONDS,
    SOURCE_TIMEOUT_SECONDS,
)
from weekly_dashboard.validator import DashboardConfigValidator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default_config.yaml")


class SafeLineLoader(SafeLoader):
    def construct_mapping(self, node, deep=False):
        mapping = super(SafeLineLoader, self).construct_mapping(node, deep=deep)
        # Add 1 so line numbering starts at 1
        mapping['__line__'] = node.start_mark.line + 1
        return mapping


def _parse_yaml(content: str, origin: str) -> dict:
    try:
        return yaml.load(content, SafeLineLoader)
    except (ScannerError, yaml.YAMLError) as e:
        logging.error(e, exc_info=True)
        error_message = traceback.format_exc().split('.yaml')[-1].replace(',', '').replace('"', '')
        raise ValueError(f"Could not load dashboard config from {origin} due to incorrect yaml: {error_message}")


def load_yaml_from_path(path: str) -> dict:
    try:
        with open(path, 'r') as f:
            content = f.read()
    except FileNotFoundError:
        logger.error(f"Dashboard configuration file not found at local path: {path}")
        raise FileNotFoundError(f"Dashboard configuration file not found at: {path}")
    logger.info(f"Read dashboard configuration from local path: {path}")
    return _parse_yaml(content, path)


def load_yaml_from_url(url: str) -> dict:
    try:
        response = requests.get(url, allow_redirects=True, timeout=SOURCE_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to fetch dashboard configuration from URL: {url}. Error: {e}", exc_info=True)
        raise ConnectionError(f"Failed to fetch dashboard configuration from URL: {url}")
    return _parse_yaml(response.content.decode("utf-8"), url)


def load_yaml(url_or_path: str) -> dict:
    if url_or_path.lower().startswith(('http://', 'https://')):
        return load_yaml_from_url(url_or_path)
    return load_yaml_from_path(url_or_path)


def extract_spreadsheet_id(value: str) -> str:
    """
    Accepts a bare spreadsheet id or a full Google Sheets URL and returns the id.

    >>> extract_spreadsheet_id("https://docs.google.com/spreadsheets/d/abc123/edit#gid=0")
    'abc123'
    """
    value = (value or "").strip()
    if not value:
        return ""

    if "docs.google.com/spreadsheets" in value:
        parts = value.split("/d/", 1)
        if len(parts) == 2:
            return parts[1].split("/", 1)[0]

    return value


def strip_line_numbers(value):
    """
    Removes the '__line__' keys SafeLineLoader adds, recursively.
    """
    if isinstance(value, dict):
        return {k: strip_line_numbers(v) for k, v in value.items() if k != '__line__'}
    if isinstance(value, list):
        return [strip_line_numbers(v) for v in value]
    return value


# Environment variable -> (section, key, cast)
_ENV_OVERRIDES = {
    "SPREADSHEET_ID": ("setup", "spreadsheet_id", extract_spreadsheet_id),
    "SHEET_NAME": ("setup", "sheet_name", str),
    "SPREADSHEET_YEAR": ("setup", "spreadsheet_year", int),
    "LABEL_COLUMN": ("setup", "label_column", str),
    "LAYOUT_TTL_SECONDS": ("setup", "layout_ttl_seconds", float),
    "SOURCE_TIMEOUT_SECONDS": ("setup", "source_timeout_seconds", float),
    "GOOGLE_ACCESS_TOKEN": ("source", "access_token", str),
    "GOOGLE_API_KEY": ("source", "api_key", str),
    "DB_HOST": ("database", "host", str),
    "DB_PORT": ("database", "port", int),
    "DB_USER": ("database", "username", str),
    "DB_PASSWORD": ("database", "password", str),
    "DB_NAME": ("database", "database", str),
    "DB_SSL_MODE": ("database", "sslmode", str),
}


class AppConfig:
    """
    Runtime configuration assembled from the YAML file and environment overrides.

    Attributes:
        spreadsheet_id (str): Target spreadsheet.
        sheet_name (str): Tab holding the scorecard.
        spreadsheet_year (int): The only year the spreadsheet holds data for.
        label_column (str): Column letters of the metric labels.
        layout_ttl_seconds (float): Layout cache freshness window.
        source_timeout_seconds (float): Timeout of every spreadsheet request.
        source_type (str): Spreadsheet source type for get_source().
        source_config (dict): Extra source settings (credentials, secret service).
        database (dict): PostgreSQL connection settings.
        metrics (list[dict]): Metric catalog entries.
    """

    def __init__(self, cfg: dict):
        setup = cfg.get('setup') or {}
        source = cfg.get('source') or {}
        self.spreadsheet_id = extract_spreadsheet_id(str(setup.get('spreadsheet_id', '')))
        self.sheet_name = setup.get('sheet_name', DEFAULT_SHEET_NAME)
        self.spreadsheet_year = int(setup.get('spreadsheet_year', datetime.date.today().year))
        self.label_column = setup.get('label_column', DEFAULT_LABEL_COLUMN)
        self.layout_ttl_seconds = float(setup.get('layout_ttl_seconds', LAYOUT_TTL_SECONDS))
        self.source_timeout_seconds = float(setup.get('source_timeout_seconds', SOURCE_TIMEOUT_SECONDS))
        self.source_type = source.get('type', 'google_sheets')
        self.source_config = {k: v for k, v in source.items() if k != 'type'}
        self.database = dict(cfg.get('database') or {})
        self.metrics = list(cfg.get('metrics') or [])


def apply_env_overrides(cfg: dict, environ=None) -> dict:
    environ = os.environ if environ is None else environ
    for env_name, (section, key, cast) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        try:
            cfg.setdefault(section, {})
            if cfg[section] is None:
                cfg[section] = {}
            cfg[section][key] = cast(value)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {value}")
    return cfg


def load_app_config(url_or_path: str = None, environ=None) -> AppConfig:
    """
    Loads, validates and returns the application configuration.

    The path comes from the argument, else DASHBOARD_CONFIG, else the bundled default_config.yaml.

    Raises:
        FileNotFoundError: If the local file does not exist.
        ValueError: If the YAML cannot be parsed or the metric catalog is invalid.
        KeyError: If a required setting is missing.
    """
    environ = os.environ if environ is None else environ
    url_or_path = url_or_path or environ.get("DASHBOARD_CONFIG") or DEFAULT_CONFIG_PATH

    cfg = load_yaml(url_or_path)
    if not isinstance(cfg, dict):
        raise ValueError(f"Invalid dashboard configuration in {url_or_path}: expected a mapping")

    cfg = apply_env_overrides(cfg, environ)
    DashboardConfigValidator(cfg).validate_yaml()

    config = AppConfig(strip_line_numbers(cfg))
    logger.info(f"Configuration loaded: spreadsheet={config.spreadsheet_id}, sheet={config.sheet_name}, "
                f"year={config.spreadsheet_year}, metrics={len(config.metrics)}")
    return config
