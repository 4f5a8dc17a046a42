"""Sensor packets exchanged between manhole nodes, gateways and the server."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Mapping

_UINT32_MAX = 0xFFFFFFFF

# Python attribute name -> JSON key on the wire.
_WIRE_KEYS = {
    "node_id": "node_id",
    "timestamp_s": "timestamp_s",
    "flow_m3_per_s": "flow_m3s",
    "fog_mg_per_l": "fog_mgL",
    "temperature_c": "temperature_C",
    "battery_v": "battery_V",
    "quality_flags": "quality_flags",
}


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise KeyError(f"missing field {key!r}") from None


def _as_str(data: Mapping[str, Any], key: str) -> str:
    value = _field(data, key)
    if not isinstance(value, str):
        raise TypeError(f"field {key!r} must be a string")
    return value


def _as_int(data: Mapping[str, Any], key: str) -> int:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"field {key!r} must be an integer")
    return value


def _as_float(data: Mapping[str, Any], key: str) -> float:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"field {key!r} must be a number")
    return float(value)


@dataclass(frozen=True)
class SensorPacket:
    """One measurement sample reported by a node."""

    node_id: str
    timestamp_s: int
    flow_m3_per_s: float
    fog_mg_per_l: float
    temperature_c: float
    battery_v: float
    quality_flags: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.quality_flags <= _UINT32_MAX:
            raise ValueError("quality_flags must fit in 32 unsigned bits")

    def to_dict(self) -> dict[str, Any]:
        """Return the packet as a mapping keyed by wire names."""
        return {_WIRE_KEYS[name]: value for name, value in asdict(self).items()}

    def to_json(self) -> str:
        """Serialise the packet to a compact JSON document."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def to_mqtt_payload(self) -> bytes:
        """Return the JSON document as the bytes of an MQTT payload."""
        return self.to_json().encode("utf-8")

    @classmethod
    def from_json(cls, text: str | bytes) -> "SensorPacket":
        """Parse a packet from JSON text or bytes.

        Raises ``json.JSONDecodeError`` for malformed JSON, ``KeyError`` for
        a missing field, ``TypeError`` for a field of the wrong type and
        ``ValueError`` for out-of-range quality flags.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise TypeError("packet JSON must be an object")
        return cls(
            node_id=_as_str(data, "node_id"),
            timestamp_s=_as_int(data, "timestamp_s"),
            flow_m3_per_s=_as_float(data, "flow_m3s"),
            fog_mg_per_l=_as_float(data, "fog_mgL"),
            temperature_c=_as_float(data, "temperature_C"),
            battery_v=_as_float(data, "battery_V"),
            quality_flags=_as_int(data, "quality_flags"),
        )