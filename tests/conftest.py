# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fixtures for TTN Ingest tests.
"""

import json
import sqlite3
import tempfile
from pathlib import Path
from typing import Any, Dict

import pytest

from ttn_ingest.database import SQLiteClient, UplinkWriter, create_schema

EXAMPLE_LINE = (
    '{"app_id":"a1","dev_id":"d1","hardware_serial":"h1","port":1,"counter":2,'
    '"metadata":{"time":"2020-01-01T00:00:00Z","longitude":1.5,"latitude":2.5,"altitude":3.5},'
    '"payload_raw":"AQID"}'
)


def make_message(**overrides: Any) -> Dict[str, Any]:
    """Build a valid uplink message dict, with top-level overrides."""
    message = {
        "app_id": "weather-app",
        "dev_id": "station-07",
        "hardware_serial": "0004A30B001C0530",
        "port": 1,
        "counter": 42,
        "metadata": {
            "time": "2019-06-01T12:34:56.789Z",
            "longitude": 8.6821,
            "latitude": 50.1109,
            "altitude": 112.0,
        },
        "payload_raw": "AQID",
    }
    message.update(overrides)
    return message


def make_line(**overrides: Any) -> str:
    return json.dumps(make_message(**overrides))


def fetch_rows(db_path: Path):
    """Read all rows of the data table with a separate connection."""
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute(
            "SELECT app_id, dev_id, hardware_serial, port, counter, time, lon, lat, alt, payload "
            "FROM data ORDER BY rowid"
        ).fetchall()
    finally:
        conn.close()


@pytest.fixture
def db_path():
    """Path to a database file in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "ttn_db.sqlite"


@pytest.fixture
def client(db_path):
    """Open SQLiteClient with the schema created."""
    client = SQLiteClient(str(db_path))
    client.initialize_database()
    create_schema(client)
    yield client
    client.close()


@pytest.fixture
def writer(client):
    """Prepared UplinkWriter."""
    writer = UplinkWriter(client)
    writer.prepare()
    return writer
