# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Per-line processing: decode, log, persist.
"""

import logging
from typing import Union

from ..database.writer import UplinkWriter
from ..models import UplinkMessage

logger = logging.getLogger(__name__)


def process_line(line: Union[str, bytes], writer: UplinkWriter) -> UplinkMessage:
    """
    Decode one JSON line and store it.

    The summary is logged before the insert, so a failing insert still
    leaves its summary line behind. A line that fails to decode produces
    neither.

    Args:
        line: One JSON-encoded uplink message
        writer: Writer for the data table

    Returns:
        The stored message

    Raises:
        FormatError: If the line cannot be decoded
        StoreError: If the insert fails
    """
    message = UplinkMessage.from_json(line)

    logger.info(message.summary())

    writer.insert(message)
    return message
