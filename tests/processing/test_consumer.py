# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the stream consumer and its failure isolation.
"""

import io
import logging
from unittest.mock import Mock

from conftest import EXAMPLE_LINE, fetch_rows, make_line
from ttn_ingest.errors import StoreError
from ttn_ingest.processing.consumer import IngestionStats, StreamConsumer


def binary_stream(*lines: str) -> io.BytesIO:
    return io.BytesIO("".join(line + "\n" for line in lines).encode("utf-8"))


class FlakyStream:
    """Stream that raises OSError for selected readline calls."""

    def __init__(self, results):
        self.results = list(results)

    def readline(self):
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class TestStreamConsumer:
    """Test the ingestion loop."""

    def test_isolation(self, writer, db_path, caplog):
        """A malformed line between two good ones gives two rows and one error."""
        stream = binary_stream(make_line(counter=1), "{broken", make_line(counter=2))

        with caplog.at_level(logging.INFO, logger="ttn_ingest"):
            stats = StreamConsumer(writer, stream).run()

        rows = fetch_rows(db_path)
        assert sorted(row[4] for row in rows) == [1, 2]
        assert stats.inserted == 2
        assert stats.format_errors == 1
        assert stats.errors == 1
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "Error while processing message" in errors[0].message

    def test_not_json_continues(self, writer, db_path):
        """'not json' is reported and later lines are still processed."""
        stats = StreamConsumer(writer, binary_stream("not json", EXAMPLE_LINE)).run()

        assert stats.format_errors == 1
        assert stats.inserted == 1
        assert len(fetch_rows(db_path)) == 1

    def test_only_malformed(self, writer, db_path):
        """Malformed input alone stores nothing."""
        stats = StreamConsumer(writer, binary_stream("not json")).run()

        assert stats.lines_read == 1
        assert stats.inserted == 0
        assert fetch_rows(db_path) == []

    def test_empty_input(self, writer):
        """End of input terminates normally."""
        stats = StreamConsumer(writer, io.BytesIO(b"")).run()
        assert stats == IngestionStats()

    def test_text_stream_and_crlf(self, writer, db_path):
        """Text streams and CRLF line endings are accepted."""
        stream = io.StringIO(EXAMPLE_LINE + "\r\n" + EXAMPLE_LINE)

        stats = StreamConsumer(writer, stream).run()

        assert stats.inserted == 2
        assert len(fetch_rows(db_path)) == 2

    def test_blank_line_is_reported(self, writer):
        """An empty line counts as a malformed message."""
        stats = StreamConsumer(writer, binary_stream(EXAMPLE_LINE, "", EXAMPLE_LINE)).run()

        assert stats.inserted == 2
        assert stats.format_errors == 1

    def test_invalid_utf8_is_read_error(self, writer, db_path):
        """A line that is not UTF-8 is a read error and the loop continues."""
        stream = io.BytesIO(b"\xff\xfe{}\n" + EXAMPLE_LINE.encode("utf-8") + b"\n")

        stats = StreamConsumer(writer, stream).run()

        assert stats.read_errors == 1
        assert stats.inserted == 1
        assert len(fetch_rows(db_path)) == 1

    def test_os_error_is_reported(self, writer):
        """I/O errors from the stream are reported and reading continues."""
        stream = FlakyStream([
            OSError("device not ready"),
            (EXAMPLE_LINE + "\n").encode("utf-8"),
            b"",
        ])

        stats = StreamConsumer(writer, stream).run()

        assert stats.read_errors == 1
        assert stats.inserted == 1

    def test_gives_up_after_consecutive_read_errors(self, writer):
        """With a limit set, a broken stream ends the run."""
        stream = FlakyStream([OSError("broken")] * 3 + [(EXAMPLE_LINE + "\n").encode("utf-8")])

        stats = StreamConsumer(writer, stream, max_consecutive_read_errors=3).run()

        assert stats.read_errors == 3
        assert stats.inserted == 0

    def test_read_error_counter_resets(self, writer):
        """A successful read resets the consecutive read error count."""
        line = (EXAMPLE_LINE + "\n").encode("utf-8")
        stream = FlakyStream([OSError("x"), line, OSError("y"), line, b""])

        stats = StreamConsumer(writer, stream, max_consecutive_read_errors=2).run()

        assert stats.read_errors == 2
        assert stats.inserted == 2

    def test_store_error_is_not_fatal(self):
        """Failed inserts are counted and the loop continues."""
        writer = Mock()
        writer.insert.side_effect = [StoreError("database is locked"), None]

        stats = StreamConsumer(writer, binary_stream(EXAMPLE_LINE, EXAMPLE_LINE)).run()

        assert stats.store_errors == 1
        assert stats.inserted == 1
        assert writer.insert.call_count == 2

    def test_many_malformed_lines(self, writer):
        """An unbounded run of bad lines is tolerated."""
        lines = ["garbage"] * 500 + [EXAMPLE_LINE]

        stats = StreamConsumer(writer, binary_stream(*lines)).run()

        assert stats.format_errors == 500
        assert stats.inserted == 1

    def test_lone_surrogate_does_not_stop_the_loop(self, writer, db_path):
        """A line with an unencodable string is reported and the next line is stored."""
        bad = EXAMPLE_LINE.replace('"a1"', '"\\ud800"')

        stats = StreamConsumer(writer, binary_stream(bad, EXAMPLE_LINE)).run()

        assert stats.format_errors == 1
        assert stats.errors == 1
        assert stats.inserted == 1
        assert fetch_rows(db_path)[0][0] == "a1"
