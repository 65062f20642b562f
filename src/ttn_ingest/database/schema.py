# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Schema for the uplink ``data`` table.
"""

import logging

from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

TABLE_NAME = "data"

# Column order is shared with the insert statement in writer.py
COLUMNS = (
    "app_id", "dev_id", "hardware_serial", "port", "counter",
    "time", "lon", "lat", "alt",
    "payload",
)

CREATE_DATA_TABLE = """
CREATE TABLE IF NOT EXISTS data (
    app_id TEXT NOT NULL, dev_id TEXT NOT NULL, hardware_serial TEXT NOT NULL,
    port INTEGER NOT NULL, counter INTEGER NOT NULL,
    time TEXT NOT NULL, lon REAL NOT NULL, lat REAL NOT NULL, alt REAL NOT NULL,
    payload BLOB NOT NULL
)
"""


def create_schema(client: SQLiteClient) -> None:
    """
    Create the ``data`` table if it does not exist yet.

    Existing tables and rows are left untouched.

    Raises:
        StoreError: If the DDL fails
    """
    client.execute(CREATE_DATA_TABLE)
    logger.debug(f"Ensured table '{TABLE_NAME}' exists")
