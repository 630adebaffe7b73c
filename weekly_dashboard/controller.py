# SPDX-License-Identifier: Apache-2.0
import datetime
import json
import logging

from flask import Flask, request
from flask_cors import CORS

from weekly_dashboard.catalog import MetricCatalog
from weekly_dashboard.config_loader import AppConfig, load_app_config
from weekly_dashboard.constants import MAX_WEEK, MAX_YEAR, MIN_WEEK, MIN_YEAR
from weekly_dashboard.dashboard import COMPARE_PREVIOUS_MONTH, DashboardService
from weekly_dashboard.layout import LayoutDiscoveryError
from weekly_dashboard.models import Encoder
from weekly_dashboard.snapshot_repository import PostgresSnapshotRepository
from weekly_dashboard.snapshot_store import SnapshotStore
from weekly_dashboard.sources import get_source

app = Flask(__name__)

cors = CORS(app, resources={r"/api/*": {"origins": "*"}})

NO_ACCESS_MESSAGE = "You do not have access to the performance spreadsheet. Please contact your administrator."

_service = None


def build_dashboard_service(config: AppConfig) -> DashboardService:
    source_config = dict(config.source_config)
    source_config["spreadsheet_id"] = config.spreadsheet_id
    source_config["timeout"] = config.source_timeout_seconds
    source = get_source(config.source_type, source_config)

    store = SnapshotStore(PostgresSnapshotRepository(config.database))
    catalog = MetricCatalog.from_config(config.metrics)
    return DashboardService(config, catalog, source, store)


def get_dashboard_service() -> DashboardService:
    global _service
    if _service is None:
        _service = build_dashboard_service(load_app_config())
    return _service


def set_dashboard_service(service: DashboardService):
    global _service
    _service = service


def _response(body: dict, status: int = 200):
    return app.response_class(
        response=json.dumps(body, indent=4, cls=Encoder),
        status=status,
        mimetype='application/json'
    )


def _success(data=None, message: str = None):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return _response(body)


def _error(message: str, status: int):
    return _response({"success": False, "error": message}, status)


def _int_arg(name: str, low: int, high: int):
    """
    Returns the query argument as an int when it is present and within [low, high], else None.
    """
    value = request.args.get(name, type=int)
    if value is None or value < low or value > high:
        return None
    return value


def _period_args(default_week: int = None) -> tuple:
    # Invalid or missing optional values fall back to the current period
    today = datetime.date.today()
    month = _int_arg("month", 1, 12) or today.month
    year = _int_arg("year", MIN_YEAR, MAX_YEAR) or today.year
    week = _int_arg("week", MIN_WEEK, MAX_WEEK) or default_week
    return month, year, week


def _has_access(service: DashboardService) -> bool:
    try:
        service.check_source_access()
        return True
    except ConnectionError as e:
        logging.warning(f"No access to spreadsheet: {e}")
        return False


@app.route('/api/v1/health', methods=['GET'])
def health():
    return _success({"status": "ok"})


@app.route('/api/v1/dashboard', methods=['GET'])
def get_dashboard():
    """
    A flask endpoint, builds the KPI dashboard for the requested month.
    """
    service = get_dashboard_service()
    month, year, _ = _period_args()

    logging.info(f"Fetching dashboard for month={month}, year={year}")

    if request.args.get("refresh") == "true":
        logging.info("Force refresh requested, invalidating layout cache")
        service.invalidate_layout()

    if not _has_access(service):
        return _error(NO_ACCESS_MESSAGE, 403)

    try:
        dashboard = service.get_dashboard_data(month, year)
    except (LayoutDiscoveryError, RuntimeError) as e:
        logging.error(e, exc_info=True)
        return _error("Failed to fetch dashboard data. Please try again later.", 500)

    return _success(dashboard)


@app.route('/api/v1/months', methods=['GET'])
def get_available_months():
    try:
        months = get_dashboard_service().get_available_months()
    except RuntimeError as e:
        logging.error(e, exc_info=True)
        return _error("Failed to fetch available months", 500)
    return _success(months)


@app.route('/api/v1/dashboard/compare', methods=['GET'])
def compare_dashboard():
    if not request.args.get("month") or not request.args.get("year"):
        return _error("Month and year are required", 400)

    month = _int_arg("month", 1, 12)
    if month is None:
        return _error("Invalid month value", 400)

    year = _int_arg("year", MIN_YEAR, MAX_YEAR)
    if year is None:
        return _error("Invalid year value", 400)

    compare_with = request.args.get("compareWith", COMPARE_PREVIOUS_MONTH)

    try:
        comparison = get_dashboard_service().compare(month, year, compare_with)
    except (LayoutDiscoveryError, RuntimeError) as e:
        logging.error(e, exc_info=True)
        return _error("Failed to fetch dashboard data", 500)

    return _success(comparison)


@app.route('/api/v1/dashboard/snapshot', methods=['POST'])
def save_snapshot():
    """
    A flask endpoint, records the current dashboard as the snapshot of a week, replacing that week.
    """
    service = get_dashboard_service()
    month, year, week = _period_args(default_week=1)

    logging.info(f"Saving snapshot for month={month}, year={year}, week={week}")

    try:
        saved = service.save_snapshot(month, year, week)
    except LayoutDiscoveryError as e:
        logging.error(e, exc_info=True)
        return _error("Failed to fetch current dashboard data", 500)
    except RuntimeError as e:
        logging.error(e, exc_info=True)
        return _error("Failed to save snapshot", 500)

    return _success(saved, "Snapshot saved successfully")


@app.route('/api/v1/dashboard/snapshots', methods=['GET'])
def get_snapshots_by_month():
    service = get_dashboard_service()

    if not _has_access(service):
        return _error(NO_ACCESS_MESSAGE, 403)

    month, year, _ = _period_args()

    try:
        snapshots = service.get_snapshots_by_month(month, year)
    except RuntimeError as e:
        logging.error(e, exc_info=True)
        return _error("Failed to fetch snapshot data", 500)

    return _success(snapshots)


@app.route('/api/v1/dashboard/snapshot', methods=['DELETE'])
def delete_snapshot():
    if not all(request.args.get(name) for name in ("month", "year", "week")):
        return _error("Month, year, and week are required", 400)

    month = _int_arg("month", 1, 12)
    year = _int_arg("year", MIN_YEAR, MAX_YEAR)
    week = _int_arg("week", MIN_WEEK, MAX_WEEK)
    if month is None or year is None or week is None:
        return _error("Invalid month, year, or week value", 400)

    try:
        get_dashboard_service().delete_snapshot_week(month, year, week)
    except RuntimeError as e:
        logging.error(e, exc_info=True)
        return _error("Failed to delete snapshot", 500)

    return _success(message=f"Snapshot for week {week} deleted successfully")


@app.route('/api/v1/settings/spreadsheet', methods=['GET'])
def get_spreadsheet_settings():
    return _success(get_dashboard_service().get_spreadsheet_settings())


@app.route('/api/v1/settings/spreadsheet', methods=['PUT'])
def update_spreadsheet_settings():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error("Invalid request body", 400)

    try:
        settings = get_dashboard_service().update_spreadsheet_settings(
            body.get("spreadsheet_id", ""), body.get("sheet_name"))
    except ValueError as e:
        return _error(str(e), 400)

    return _success(settings, "Spreadsheet settings updated successfully")


def start():
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(debug=False, port=5001, host='0.0.0.0')
