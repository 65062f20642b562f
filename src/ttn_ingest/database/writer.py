# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Uplink writer.

Inserts one decoded uplink message per call into the ``data`` table.
"""

import logging
import sqlite3

from ..errors import StoreError
from ..models import UplinkMessage
from .schema import COLUMNS, TABLE_NAME
from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

INSERT_SQL = "INSERT INTO {table} ({columns}) VALUES ({placeholders})".format(
    table=TABLE_NAME,
    columns=", ".join(COLUMNS),
    placeholders=", ".join("?" for _ in COLUMNS),
)


class UplinkWriter:
    """
    Writes uplink messages to SQLite.

    Each insert is an independent write committed on its own: no batching,
    no upsert and no uniqueness checks.
    """

    def __init__(self, client: SQLiteClient):
        """
        Initialize writer.

        Args:
            client: SQLiteClient with the schema already created
        """
        self.client = client
        self.sql = INSERT_SQL
        self.prepared = False

    def prepare(self) -> None:
        """
        Compile the insert statement once against the current schema.

        Raises:
            StoreError: If the statement cannot be compiled (e.g. the table
                is missing or lacks a column)
        """
        with self.client.get_connection() as conn:
            try:
                conn.execute(f"EXPLAIN {self.sql}", (None,) * len(COLUMNS)).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"cannot prepare insert: {e}", e) from e

        self.prepared = True
        logger.debug(f"Prepared insert: {self.sql}")

    def insert(self, message: UplinkMessage) -> None:
        """
        Insert one message as a new row.

        Args:
            message: Decoded uplink message

        Raises:
            StoreError: If the insert fails
        """
        if not self.prepared:
            self.prepare()

        with self.client.get_connection() as conn:
            try:
                conn.execute(self.sql, message.row())
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(str(e), e) from e
            except UnicodeEncodeError as e:
                conn.rollback()
                raise StoreError(f"cannot encode value for SQLite: {e}", e) from e

        logger.debug(f"Stored uplink from {message.app_id}/{message.dev_id} (counter {message.counter})")

    def count(self) -> int:
        """Return the number of rows in the data table."""
        with self.client.get_connection() as conn:
            try:
                return conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]
            except sqlite3.Error as e:
                raise StoreError(str(e), e) from e
