# SPDX-License-Identifier: Apache-2.0
import logging
from urllib.parse import quote

import requests

from weekly_dashboard.constants import SOURCE_TIMEOUT_SECONDS
from .base import BaseSheetSource

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"


class GoogleSheetsSource(BaseSheetSource):
    """
    Source for Google Sheets, using the Sheets v4 REST API.

    Config keys:
        spreadsheet_id (str): Required.
        access_token (str): OAuth bearer token, or
        token_provider (Callable[[], str]): called before every request for a fresh token, or
        api_key (str): API key for link-shared sheets.
        timeout (float): Per-request timeout in seconds.
    """

    def __init__(self, config: dict):
        super().__init__(config)
        self.session = None
        self.spreadsheet_id = self.config.get("spreadsheet_id")
        if not self.spreadsheet_id:
            raise ValueError("spreadsheet_id is required in Google Sheets configuration.")
        self.timeout = self.config.get("timeout", SOURCE_TIMEOUT_SECONDS)

    def connect(self):
        """
        Creates the HTTP session used for all requests.
        """
        self.session = requests.Session()
        logger.debug(f"Created Google Sheets session for spreadsheet {self.spreadsheet_id}")

    def disconnect(self):
        if self.session:
            self.session.close()
            self.session = None

    def _auth(self) -> tuple:
        headers = {}
        params = {}
        token_provider = self.config.get("token_provider")
        access_token = token_provider() if token_provider else self.config.get("access_token")
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        elif self.config.get("api_key"):
            params["key"] = self.config.get("api_key")
        return headers, params

    def _get(self, url: str, params: list = None) -> dict:
        if not self.session:
            self.connect()

        try:
            headers, auth_params = self._auth()
        except Exception as e:
            logger.error(f"Failed to obtain a valid token for Google Sheets: {e}")
            raise ConnectionError(f"Failed to get valid token: {e}")

        query = list(params or [])
        query.extend(auth_params.items())

        try:
            response = self.session.get(url, params=query, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Google Sheets request failed: {e}")
            raise ConnectionError(f"Google Sheets request failed: {e}")

    def get_values(self, range_: str) -> list:
        url = f"{SHEETS_API_URL}/{self.spreadsheet_id}/values/{quote(range_, safe='')}"
        payload = self._get(url)
        return payload.get("values", [])

    def batch_get_values(self, ranges: list) -> list:
        url = f"{SHEETS_API_URL}/{self.spreadsheet_id}/values:batchGet"
        payload = self._get(url, [("ranges", range_) for range_ in ranges])
        value_ranges = payload.get("valueRanges", [])
        logger.info(f"Batch fetched {len(value_ranges)} of {len(ranges)} ranges in a single call")
        return [value_range.get("values", []) for value_range in value_ranges]

    def check_access(self):
        url = f"{SHEETS_API_URL}/{self.spreadsheet_id}"
        try:
            self._get(url, [("fields", "spreadsheetId")])
        except ConnectionError as e:
            raise ConnectionError(f"no access to spreadsheet: {e}")
