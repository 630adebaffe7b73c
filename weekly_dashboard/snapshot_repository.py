# SPDX-License-Identifier: Apache-2.0
import logging
import threading
from abc import ABC, abstractmethod

import pandas as pd
import psycopg2
from psycopg2 import sql
from psycopg2.extras import execute_values

logger = logging.getLogger(__name__)

SNAPSHOT_TABLE = "weekly_snapshots"

SNAPSHOT_COLUMNS = [
    "indicator_id",
    "department",
    "indicator_name",
    "target_value",
    "performance_value",
    "percentage",
    "snapshot_date",
    "month",
    "week_number",
    "year",
]

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id SERIAL PRIMARY KEY,
    indicator_id VARCHAR(32) NOT NULL,
    department VARCHAR(128),
    indicator_name VARCHAR(255),
    target_value DOUBLE PRECISION,
    performance_value DOUBLE PRECISION,
    percentage DOUBLE PRECISION,
    snapshot_date TIMESTAMP NOT NULL,
    month INTEGER NOT NULL,
    week_number INTEGER NOT NULL,
    year INTEGER NOT NULL
)
"""


class BaseSnapshotRepository(ABC):
    """
    Abstract persistence for weekly snapshot rows.

    Rows are plain dicts keyed by SNAPSHOT_COLUMNS; reads come back as a pandas DataFrame
    with exactly those columns.
    """

    def connect(self):
        pass

    def disconnect(self):
        pass

    @abstractmethod
    def find_snapshots(self, month: int, year: int, week_number: int = None) -> pd.DataFrame:
        """
        Args:
            month (int): Month filter.
            year (int): Year filter.
            week_number (int): Optional week filter.

        Returns:
            pd.DataFrame: Matching rows, possibly empty.
        """
        pass

    @abstractmethod
    def delete_snapshots(self, month: int, year: int, week_number: int) -> int:
        """
        Returns:
            int: Number of rows removed.
        """
        pass

    @abstractmethod
    def create_snapshots(self, rows: list):
        pass

    def replace_week(self, month: int, year: int, week_number: int, rows: list) -> int:
        """
        Removes the rows of one week and inserts the given ones.

        Returns:
            int: Number of rows removed.
        """
        deleted = self.delete_snapshots(month, year, week_number)
        self.create_snapshots(rows)
        return deleted

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


class PostgresSnapshotRepository(BaseSnapshotRepository):
    """
    Snapshot rows stored in a PostgreSQL table through psycopg2.

    Connections are per thread: each request thread opens its own with `with repository:`
    and closes it on exit, so concurrent requests never share a transaction. A call made
    outside a `with` block opens a connection for that call only.
    """

    def __init__(self, config: dict):
        self.config = config
        self.table = config.get("table", SNAPSHOT_TABLE)
        self._local = threading.local()
        self._schema_ready = False

    @property
    def connection(self):
        return getattr(self._local, "connection", None)

    @connection.setter
    def connection(self, value):
        self._local.connection = value

    def connect(self):
        """
        Establishes a connection to the PostgreSQL database and makes sure the table exists.
        """
        try:
            self.connection = psycopg2.connect(
                host=self.config.get("host"),
                port=self.config.get("port", 5432),
                user=self.config.get("username"),
                password=self.config.get("password"),
                dbname=self.config.get("database"),
                sslmode=self.config.get("sslmode", "disable"),
            )
            logger.info(
                f"Successfully connected to PostgreSQL database: {self.config.get('database')} at {self.config.get('host')}")
        except psycopg2.Error as e:
            logger.error(f"Error connecting to PostgreSQL: {e}")
            raise ConnectionError(f"Could not connect to PostgreSQL: {e}")

        if not self._schema_ready:
            try:
                self.ensure_schema()
            except RuntimeError:
                self.disconnect()
                raise
            self._schema_ready = True

    def disconnect(self):
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info(
                f"Disconnected from PostgreSQL database: {self.config.get('database')} at {self.config.get('host')}")

    def _drop_connection(self):
        connection = self.connection
        self.connection = None
        try:
            connection.close()
        except psycopg2.Error as e:
            logger.warning(f"Error closing broken PostgreSQL connection: {e}")

    def _run(self, action, description: str):
        owned = self.connection is None
        if owned:
            self.connect()

        cursor = None
        try:
            cursor = self.connection.cursor()
            result = action(cursor)
            self.connection.commit()
            return result
        except (psycopg2.InterfaceError, psycopg2.OperationalError) as e:
            logger.error(f"PostgreSQL connection lost during {description}, dropping it: {e}")
            cursor = None
            self._drop_connection()
            raise RuntimeError(f"Could not {description} on PostgreSQL: {e}")
        except psycopg2.Error as e:
            logger.error(f"Error during {description} on PostgreSQL: {e}")
            self.connection.rollback()
            raise RuntimeError(f"Could not {description} on PostgreSQL: {e}")
        except Exception as e:
            logger.error(f"An unexpected error occurred during {description} on PostgreSQL: {e}")
            self.connection.rollback()
            raise
        finally:
            if cursor is not None:
                cursor.close()
            if owned and self.connection is not None:
                self.disconnect()

    def ensure_schema(self):
        def action(cursor):
            cursor.execute(sql.SQL(_CREATE_TABLE).format(table=sql.Identifier(self.table)))

        self._run(action, "create snapshot table")

    def _delete(self, cursor, month, year, week_number) -> int:
        cursor.execute(
            sql.SQL("DELETE FROM {table} WHERE month = %s AND year = %s AND week_number = %s").format(
                table=sql.Identifier(self.table)),
            (month, year, week_number))
        return cursor.rowcount

    def _insert(self, cursor, rows: list):
        if not rows:
            return
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES %s").format(
            table=sql.Identifier(self.table),
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in SNAPSHOT_COLUMNS))
        execute_values(cursor, query, [tuple(row[column] for column in SNAPSHOT_COLUMNS) for row in rows])

    def find_snapshots(self, month: int, year: int, week_number: int = None) -> pd.DataFrame:
        def action(cursor):
            query = sql.SQL("SELECT {columns} FROM {table} WHERE month = %s AND year = %s").format(
                columns=sql.SQL(", ").join(sql.Identifier(column) for column in SNAPSHOT_COLUMNS),
                table=sql.Identifier(self.table))
            params = [month, year]
            if week_number is not None:
                query = query + sql.SQL(" AND week_number = %s")
                params.append(week_number)
            logger.debug(f"Fetching snapshots for month={month}, year={year}, week={week_number}")
            cursor.execute(query, params)
            return pd.DataFrame(cursor.fetchall(), columns=SNAPSHOT_COLUMNS)

        df = self._run(action, "read snapshots")
        logger.info(f"Fetched {len(df)} snapshot rows for month={month}, year={year}")
        return df

    def delete_snapshots(self, month: int, year: int, week_number: int) -> int:
        return self._run(lambda cursor: self._delete(cursor, month, year, week_number), "delete snapshots")

    def create_snapshots(self, rows: list):
        self._run(lambda cursor: self._insert(cursor, rows), "insert snapshots")

    def replace_week(self, month: int, year: int, week_number: int, rows: list) -> int:
        """
        Deletes and re-inserts one week inside a single transaction.
        """
        def action(cursor):
            deleted = self._delete(cursor, month, year, week_number)
            self._insert(cursor, rows)
            return deleted

        return self._run(action, "replace snapshots")
