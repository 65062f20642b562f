# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingest server for TTN uplink messages.

Orchestrates database initialization, schema creation and the stream
consumer. Setup failures propagate to the caller; once the consumer runs,
per-line failures are handled inside it.
"""

import logging
import sys
from typing import BinaryIO, Optional, TextIO, Union

from ..config import Config
from ..database.schema import create_schema
from ..database.sqlite_client import SQLiteClient
from ..database.writer import UplinkWriter
from .consumer import IngestionStats, StreamConsumer

logger = logging.getLogger(__name__)


class IngestServer:
    """
    Main entry point for one ingestion run.

    Manages:
    - SQLite database initialization
    - Schema creation
    - Insert preparation
    - Stream consumer
    """

    def __init__(self, config: Optional[Config] = None, db_path: Optional[str] = None):
        """
        Initialize ingest server.

        Args:
            config: Configuration instance (creates default if not provided)
            db_path: Database path (uses the configured path if not provided)
        """
        self.config = config or Config()
        self.db_path = db_path or self.config.db_path

        self.sqlite_client: Optional[SQLiteClient] = None
        self.writer: Optional[UplinkWriter] = None

    def setup(self) -> None:
        """
        Open the database, create the schema and prepare the insert.

        Raises:
            ReadError: If the database file cannot be opened
            StoreError: If schema creation or insert preparation fails
        """
        logger.info(f"Initializing database: {self.db_path}")
        logger.debug(f"Configuration: {self.config.to_dict()}")

        self.sqlite_client = SQLiteClient(
            self.db_path,
            journal_mode=self.config.journal_mode,
            busy_timeout_ms=self.config.busy_timeout_ms,
        )
        self.sqlite_client.initialize_database()

        create_schema(self.sqlite_client)

        self.writer = UplinkWriter(self.sqlite_client)
        self.writer.prepare()

        logger.info("Database initialized successfully")

    def run(self, stream: Union[BinaryIO, TextIO, None] = None) -> IngestionStats:
        """
        Consume the stream until end of input.

        Args:
            stream: Input stream (defaults to binary stdin)

        Returns:
            Counters for the run
        """
        if self.writer is None:
            self.setup()

        if stream is None:
            stream = sys.stdin.buffer

        consumer = StreamConsumer(
            self.writer,
            stream,
            max_consecutive_read_errors=self.config.max_consecutive_read_errors,
        )
        return consumer.run()

    def close(self) -> None:
        """Release the database connection."""
        if self.sqlite_client:
            self.sqlite_client.close()
            self.sqlite_client = None
        self.writer = None


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
        force=True,
    )
