# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Error types for the ingestion pipeline.

Every failure that can happen while handling one input line is an
IngestError carrying a ``kind`` tag, so the ingestion loop can catch and
report them at a single boundary.
"""

from typing import Optional


class IngestError(Exception):
    """Base class for all ingestion errors."""

    kind = "ingest"
    label = "Ingest error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.label} ({self.message})"


class ReadError(IngestError):
    """Reading the input stream (or opening the store file) failed."""

    kind = "io"
    label = "IO error"


class FormatError(IngestError):
    """Malformed JSON, missing or mistyped field, or a bad payload."""

    kind = "format"
    label = "Format error"


class StoreError(IngestError):
    """Creating the schema, preparing or executing an insert failed."""

    kind = "store"
    label = "SQLite error"


class ConfigError(Exception):
    """Invalid configuration value."""
