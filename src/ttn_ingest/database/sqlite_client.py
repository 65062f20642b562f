# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite connection management.

The client owns one connection for the lifetime of the process. It is
opened once at startup and shared by the schema setup and the writer.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, Any

from ..errors import ReadError, StoreError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class SQLiteClient:
    """Owns the process-wide SQLite connection."""

    def __init__(self, db_path: str, journal_mode: str = "WAL", busy_timeout_ms: int = 5000):
        """
        Initialize SQLite client.

        Args:
            db_path: Path to the database file (or ``:memory:``)
            journal_mode: SQLite journal mode applied on open
            busy_timeout_ms: How long a write waits on a locked database
        """
        self.db_path = db_path
        self.journal_mode = journal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def initialize_database(self) -> None:
        """
        Open the database and apply connection settings.

        The file is created if it does not exist yet; its parent directory
        must exist.

        Raises:
            ReadError: If the database file cannot be opened
            StoreError: If the connection settings cannot be applied
        """
        if self._connection is not None:
            return

        try:
            self._connection = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise ReadError(f"cannot open database {self.db_path}: {e}", e) from e

        self._connection.row_factory = sqlite3.Row

        try:
            self._connection.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            if self.db_path != MEMORY_DB:
                mode = self._connection.execute(
                    f"PRAGMA journal_mode = {self.journal_mode}"
                ).fetchone()[0]
                logger.debug(f"Journal mode: {mode}")
        except sqlite3.Error as e:
            self.close()
            raise StoreError(f"cannot configure database {self.db_path}: {e}", e) from e

        logger.info(f"Opened database: {self.db_path}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield the open connection, opening it on first use."""
        if self._connection is None:
            self.initialize_database()
        yield self._connection

    def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """
        Execute one statement and commit it.

        Raises:
            StoreError: If the statement fails
        """
        with self.get_connection() as conn:
            try:
                conn.execute(sql, params)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(str(e), e) from e

    def close(self) -> None:
        """Close the connection if it is open."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
