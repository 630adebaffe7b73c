# SPDX-License-Identifier: Apache-2.0
from abc import ABC, abstractmethod


class BaseSheetSource(ABC):
    """
    Abstract base class for spreadsheet sources.
    Each source reads ranges in A1 notation and returns rows as lists of cell values.
    """

    def __init__(self, config: dict):
        """
        Initialize the source with its configuration.

        Args:
            config (dict): Source-specific connection parameters.
        """
        self.config = config

    @abstractmethod
    def connect(self):
        """
        Prepare the underlying client.
        """
        pass

    @abstractmethod
    def disconnect(self):
        """
        Release the underlying client.
        """
        pass

    @abstractmethod
    def get_values(self, range_: str) -> list:
        """
        Read a single range.

        Args:
            range_ (str): Range in A1 notation, e.g. "Sheet!1:1".

        Returns:
            list: Rows of cell values. Trailing empty cells and rows may be omitted.

        Raises:
            ConnectionError: If the source cannot be reached or rejects the request.
        """
        pass

    @abstractmethod
    def batch_get_values(self, ranges: list) -> list:
        """
        Read several ranges in a single request.

        Args:
            ranges (list): Ranges in A1 notation.

        Returns:
            list: One list of rows per returned range, in request order.

        Raises:
            ConnectionError: If the source cannot be reached or rejects the request.
        """
        pass

    @abstractmethod
    def check_access(self):
        """
        Reads the source metadata to confirm the credentials can read it.

        Raises:
            ConnectionError: If access is denied or the source is unreachable.
        """
        pass

    def __enter__(self):
        """
        Context management entry point.
        """
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Context management exit point. Ensures disconnection.
        """
        self.disconnect()
