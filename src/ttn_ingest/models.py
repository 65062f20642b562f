# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Uplink message model.

Defines the shape of one uplink event as delivered by The Things Network
bridge and the bounded decode of its Base64 payload.
"""

import base64
import binascii
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from .errors import FormatError

# The maximum payload size in bytes, as defined by TTN
MAX_PAYLOAD_SIZE = 512

U32_MAX = 0xFFFFFFFF


class Payload:
    """
    Binary payload stored in a fixed-capacity buffer.

    The buffer always holds exactly MAX_PAYLOAD_SIZE bytes. Only the first
    ``size`` bytes are meaningful; the rest stay zeroed and are never exposed.
    """

    __slots__ = ("_buffer", "_size")

    def __init__(self):
        self._buffer = bytearray(MAX_PAYLOAD_SIZE)
        self._size = 0

    @classmethod
    def empty(cls) -> "Payload":
        return cls()

    @classmethod
    def from_base64(cls, text: str) -> "Payload":
        """
        Decode a standard Base64 string into a new payload.

        The decoded length is derived from the text before decoding and
        checked against the buffer capacity, so an oversized payload is
        rejected without anything being written.

        Args:
            text: Base64 text (``A-Z a-z 0-9 + /`` with ``=`` padding)

        Returns:
            Payload holding the decoded bytes

        Raises:
            FormatError: If the text is not valid Base64 or decodes to more
                than MAX_PAYLOAD_SIZE bytes
        """
        if not isinstance(text, str):
            raise FormatError(f"payload_raw: expected a Base64 string, got {_type_name(text)}")

        try:
            encoded = text.encode("ascii")
        except UnicodeEncodeError as e:
            raise FormatError("payload_raw: invalid Base64 (non-ASCII character)", e) from e

        if len(encoded) % 4 != 0:
            raise FormatError("payload_raw: invalid Base64 (bad padding)")

        padding = len(encoded) - len(encoded.rstrip(b"="))
        if padding > 2:
            raise FormatError("payload_raw: invalid Base64 (bad padding)")

        size = (len(encoded) // 4) * 3 - padding
        if size > MAX_PAYLOAD_SIZE:
            raise FormatError(
                f"payload_raw: payload too large ({size} bytes, maximum is {MAX_PAYLOAD_SIZE})"
            )

        try:
            decoded = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise FormatError(f"payload_raw: invalid Base64 ({e})", e) from e

        if len(decoded) != size:
            raise FormatError("payload_raw: invalid Base64 (unexpected decoded length)")

        # Trailing bits of the last symbol must be zero
        if base64.b64encode(decoded) != encoded:
            raise FormatError("payload_raw: invalid Base64 (invalid last symbol)")

        payload = cls()
        payload._buffer[0:size] = decoded
        payload._size = size
        return payload

    @property
    def size(self) -> int:
        return self._size

    def as_bytes(self) -> bytes:
        """Return the meaningful part of the buffer."""
        return bytes(self._buffer[0:self._size])

    def __len__(self) -> int:
        return self._size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self.as_bytes() == other.as_bytes()

    def __repr__(self) -> str:
        return f"Payload(size={self._size})"


@dataclass
class UplinkMetadata:
    """Gateway metadata attached to an uplink message."""

    time: str
    longitude: float
    latitude: float
    altitude: float

    @classmethod
    def from_dict(cls, data: Any) -> "UplinkMetadata":
        if not isinstance(data, dict):
            raise FormatError(f"metadata: expected an object, got {_type_name(data)}")

        return cls(
            time=_get_str(data, "time", "metadata.", allow_empty=True),
            longitude=_get_float(data, "longitude", "metadata."),
            latitude=_get_float(data, "latitude", "metadata."),
            altitude=_get_float(data, "altitude", "metadata."),
        )


@dataclass
class UplinkMessage:
    """One uplink event as published by the TTN bridge."""

    app_id: str
    dev_id: str
    hardware_serial: str
    port: int
    counter: int
    metadata: UplinkMetadata
    payload: Payload

    @classmethod
    def from_json(cls, line: Union[str, bytes]) -> "UplinkMessage":
        """
        Parse one JSON-encoded uplink message.

        Args:
            line: JSON object text

        Returns:
            Decoded UplinkMessage

        Raises:
            FormatError: On invalid JSON, a missing or mistyped field, or a
                bad payload
        """
        try:
            data = json.loads(line, parse_constant=_reject_constant)
        except ValueError as e:
            raise FormatError(str(e), e) from e
        except RecursionError as e:
            raise FormatError("JSON nesting too deep", e) from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> "UplinkMessage":
        if not isinstance(data, dict):
            raise FormatError(f"expected a JSON object, got {_type_name(data)}")

        return cls(
            app_id=_get_str(data, "app_id"),
            dev_id=_get_str(data, "dev_id"),
            hardware_serial=_get_str(data, "hardware_serial"),
            port=_get_u32(data, "port"),
            counter=_get_u32(data, "counter"),
            metadata=UplinkMetadata.from_dict(_require(data, "metadata", "")),
            payload=Payload.from_base64(_require(data, "payload_raw", "")),
        )

    def summary(self) -> str:
        """Human-readable one-line description of the message."""
        return (
            f'Received uplink message (appID: "{self.app_id}", deviceID: "{self.dev_id}", '
            f'time: "{self.metadata.time}", payload: {self.payload.size} bytes)'
        )

    def row(self) -> Tuple[Any, ...]:
        """Values in the column order of the ``data`` table."""
        return (
            self.app_id,
            self.dev_id,
            self.hardware_serial,
            self.port,
            self.counter,
            self.metadata.time,
            self.metadata.longitude,
            self.metadata.latitude,
            self.metadata.altitude,
            self.payload.as_bytes(),
        )


def _reject_constant(name: str) -> float:
    raise FormatError(f"non-finite number `{name}` is not valid JSON")


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _require(data: Dict[str, Any], key: str, prefix: str) -> Any:
    if key not in data:
        raise FormatError(f"missing field `{prefix}{key}`")
    return data[key]


def _get_str(data: Dict[str, Any], key: str, prefix: str = "", allow_empty: bool = False) -> str:
    value = _require(data, key, prefix)
    if not isinstance(value, str):
        raise FormatError(f"{prefix}{key}: expected a string, got {_type_name(value)}")
    if not value and not allow_empty:
        raise FormatError(f"{prefix}{key}: must not be empty")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise FormatError(f"{prefix}{key}: string is not valid Unicode (lone surrogate)", e) from e
    return value


def _get_u32(data: Dict[str, Any], key: str, prefix: str = "") -> int:
    value = _require(data, key, prefix)
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"{prefix}{key}: expected an unsigned integer, got {_type_name(value)}")
    if not 0 <= value <= U32_MAX:
        raise FormatError(f"{prefix}{key}: {value} is out of range for u32")
    return value


def _get_float(data: Dict[str, Any], key: str, prefix: str = "") -> float:
    value = _require(data, key, prefix)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatError(f"{prefix}{key}: expected a number, got {_type_name(value)}")
    try:
        result = float(value)
    except OverflowError as e:
        raise FormatError(f"{prefix}{key}: number out of range for f64", e) from e
    if not math.isfinite(result):
        raise FormatError(f"{prefix}{key}: number out of range for f64")
    return result
