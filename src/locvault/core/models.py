"""
Data models for location payloads and the values found in the document store
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import FormatError


@dataclass(frozen=True)
class LocationPayload:
    """
    One location reading as produced by the monitored device.

    Coordinates are kept as Python floats (IEEE-754 doubles) and are never
    rounded. ``to_bytes`` is the canonical plaintext that gets encrypted:
    compact JSON with a fixed field order (latitude, longitude, timestamp,
    address; absent optional fields are left out), so the same payload always
    serializes to the same bytes.
    """

    latitude: float
    longitude: float
    timestamp: Optional[str] = None
    address: Optional[str] = None

    def __post_init__(self):
        # every instance is checked here, however it was built
        for name in ("latitude", "longitude"):
            value = getattr(self, name)
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise FormatError(f"location payload field '{name}' must be a number")
            value = float(value)
            if not math.isfinite(value):
                raise FormatError(f"location payload field '{name}' must be finite")
            object.__setattr__(self, name, value)

        if self.timestamp is not None and not isinstance(self.timestamp, str):
            raise FormatError("location payload field 'timestamp' must be an ISO-8601 string")
        if self.address is not None and not isinstance(self.address, str):
            raise FormatError("location payload field 'address' must be a string")

    @classmethod
    def create(cls, latitude: float, longitude: float, address: Optional[str] = None) -> "LocationPayload":
        """Build a payload stamped with the current UTC time."""
        return cls(
            latitude=latitude,
            longitude=longitude,
            timestamp=datetime.now(timezone.utc).isoformat(),
            address=address,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        if self.address is not None:
            data["address"] = self.address
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LocationPayload":
        """
        Rebuild a payload from a mapping.

        Raises FormatError when coordinates are missing or not finite numbers.
        Records written without a timestamp keep it as None.
        """
        if not isinstance(data, Mapping):
            raise FormatError("location payload must be an object")
        return cls(
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            timestamp=data.get("timestamp"),
            address=data.get("address"),
        )

    def to_bytes(self) -> bytes:
        # ensure_ascii=False keeps addresses (e.g. Korean) as raw UTF-8
        return json.dumps(
            self.to_dict(),
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "LocationPayload":
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FormatError("location payload is not valid UTF-8 JSON") from e
        return cls.from_dict(data)

    def coordinates(self) -> tuple[float, float]:
        return self.latitude, self.longitude


# ----------------------------------------------------------------------
# Values as they come out of the document store
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Structured:
    # legacy record written before encryption existed
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Text:
    # an envelope, or a legacy JSON string
    value: str = ""


@dataclass(frozen=True)
class Absent:
    pass


StorageValue = Union[Structured, Text, Absent]


def classify(raw: Any) -> StorageValue:
    """
    Wrap an arbitrary stored value in its StorageValue variant.

    ``bytes`` are decoded as UTF-8 text. Any other type raises FormatError.
    """
    if raw is None:
        return Absent()
    if isinstance(raw, Mapping):
        return Structured(raw)
    if isinstance(raw, str):
        return Text(raw)
    if isinstance(raw, (bytes, bytearray)):
        try:
            return Text(bytes(raw).decode("utf-8"))
        except UnicodeDecodeError as e:
            raise FormatError("stored bytes are not UTF-8 text") from e
    raise FormatError(f"unsupported stored value type: {type(raw).__name__}")
