# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Stream consumer for line-delimited uplink messages.

Reads lines from the input stream until it ends, hands each one to the
line processor and reports per-line failures without stopping.
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, TextIO, Union

from ..database.writer import UplinkWriter
from ..errors import FormatError, IngestError, ReadError, StoreError
from .line_processor import process_line

logger = logging.getLogger(__name__)


@dataclass
class IngestionStats:
    """Counters for one ingestion run."""

    lines_read: int = 0
    inserted: int = 0
    format_errors: int = 0
    store_errors: int = 0
    read_errors: int = 0

    @property
    def errors(self) -> int:
        return self.format_errors + self.store_errors + self.read_errors

    def record_error(self, error: IngestError) -> None:
        if isinstance(error, FormatError):
            self.format_errors += 1
        elif isinstance(error, StoreError):
            self.store_errors += 1
        elif isinstance(error, ReadError):
            self.read_errors += 1

    def summary(self) -> str:
        return (
            f"{self.lines_read} lines read, {self.inserted} stored, {self.errors} errors "
            f"(format: {self.format_errors}, store: {self.store_errors}, read: {self.read_errors})"
        )


class StreamConsumer:
    """
    Sequential consumer of a JSON line stream.

    Every failure while reading, decoding or storing one line is logged and
    counted; the consumer then moves on to the next line. Only end of input
    ends the run, unless ``max_consecutive_read_errors`` is set.
    """

    def __init__(
        self,
        writer: UplinkWriter,
        stream: Union[BinaryIO, TextIO],
        max_consecutive_read_errors: int = 0,
    ):
        """
        Initialize stream consumer.

        Args:
            writer: Writer for the data table
            stream: Binary or text stream yielding one JSON object per line
            max_consecutive_read_errors: Stop after this many read errors in
                a row (0 = never stop on read errors)
        """
        self.writer = writer
        self.stream = stream
        self.max_consecutive_read_errors = max_consecutive_read_errors
        self.stats = IngestionStats()
        self._consecutive_read_errors = 0

    def _read_line(self) -> Optional[str]:
        """
        Read the next line without its line terminator.

        Returns:
            The line, or None at end of input

        Raises:
            ReadError: If reading fails or the line is not valid UTF-8
        """
        try:
            raw = self.stream.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(str(e), e) from e

        if not raw:
            return None

        if isinstance(raw, bytes):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ReadError(f"stream did not contain valid UTF-8: {e}", e) from e
        else:
            line = raw

        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        return line

    def _report(self, error: IngestError) -> None:
        self.stats.record_error(error)
        logger.error(f"Error while processing message: {error}")

    def _should_give_up(self) -> bool:
        return (
            self.max_consecutive_read_errors > 0
            and self._consecutive_read_errors >= self.max_consecutive_read_errors
        )

    def run(self) -> IngestionStats:
        """
        Consume the stream until end of input.

        Returns:
            Counters for this run
        """
        logger.info("Stream consumer started")

        while True:
            try:
                line = self._read_line()
            except ReadError as e:
                self._consecutive_read_errors += 1
                self._report(e)
                if self._should_give_up():
                    logger.error(
                        f"Giving up after {self._consecutive_read_errors} consecutive read errors"
                    )
                    break
                continue

            if line is None:
                break

            self._consecutive_read_errors = 0
            self.stats.lines_read += 1

            try:
                process_line(line, self.writer)
            except IngestError as e:
                self._report(e)
            else:
                self.stats.inserted += 1

        logger.info(f"Stream consumer stopped: {self.stats.summary()}")
        return self.stats
