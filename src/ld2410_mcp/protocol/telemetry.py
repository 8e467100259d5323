"""Decoding of periodic telemetry payloads.

Payload layout::

    +------+------+--------+------------+--------+------------+--------+----------+
    | Type | 0xAA | Status | Moving     | Moving | Stationary | Stat.  | Detect   |
    | 1 B  | 1 B  | 1 B    | dist (2 B) | sig 1B | dist (2 B) | sig 1B | dist 2 B |
    +------+------+--------+------------+--------+------------+--------+----------+

Basic frames (type 0x02) end with ``55 00``. Enhanced frames (type 0x01)
continue with the max moving gate M, the max stationary gate S, M+1 moving
gate signals, S+1 stationary gate signals, two reserved bytes (light level
and OUT pin), then ``55 00``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models.sensor import STATUS_MOVING, STATUS_STATIONARY, SensorData
from ..models.values import ValuesArray

logger = logging.getLogger(__name__)

TYPE_ENHANCED = 0x01
TYPE_BASIC = 0x02
HEAD = 0xAA
TAIL = b"\x55\x00"
BASIC_LENGTH = 13
ENHANCED_RESERVED = 2


@dataclass
class TelemetryReport:
    """A decoded telemetry payload."""

    data: SensorData
    enhanced: bool


def decode(payload: bytes, timestamp: float) -> TelemetryReport | None:
    """Decode a telemetry payload received at ``timestamp`` (ms).

    Returns ``None`` when the payload does not have the expected shape; no
    partial report is ever produced.
    """
    if len(payload) < BASIC_LENGTH or payload[1] != HEAD:
        logger.debug("Telemetry rejected: %s", payload.hex(" "))
        return None

    kind = payload[0]
    if kind == TYPE_BASIC:
        if len(payload) != BASIC_LENGTH or payload[11:13] != TAIL:
            logger.debug("Malformed basic telemetry: %s", payload.hex(" "))
            return None
        moving_signals = ValuesArray()
        stationary_signals = ValuesArray()
    elif kind == TYPE_ENHANCED:
        gates = _decode_gates(payload)
        if gates is None:
            logger.debug("Malformed enhanced telemetry: %s", payload.hex(" "))
            return None
        moving_signals, stationary_signals = gates
    else:
        logger.debug("Unknown telemetry type 0x%02X", kind)
        return None

    status = payload[2] & (STATUS_MOVING | STATUS_STATIONARY)
    data = SensorData(
        status=status,
        timestamp=timestamp,
        moving_distance=int.from_bytes(payload[3:5], "little"),
        moving_signal=payload[5],
        stationary_distance=int.from_bytes(payload[6:8], "little"),
        stationary_signal=payload[8],
        moving_signals=moving_signals,
        stationary_signals=stationary_signals,
    )
    return TelemetryReport(data=data, enhanced=kind == TYPE_ENHANCED)


def merge(previous: SensorData, report: TelemetryReport) -> SensorData:
    """Build the snapshot that replaces ``previous``.

    Fields of a target type that is not detected in the new frame keep the
    values from ``previous``; the aggregate distance is the nearest of the
    detected targets.
    """
    new = report.data
    merged = previous.copy()
    merged.status = new.status
    merged.timestamp = new.timestamp
    if new.moving:
        merged.moving_distance = new.moving_distance
        merged.moving_signal = new.moving_signal
    if new.stationary:
        merged.stationary_distance = new.stationary_distance
        merged.stationary_signal = new.stationary_signal
    if new.moving and new.stationary:
        merged.distance = min(merged.moving_distance, merged.stationary_distance)
    elif new.moving:
        merged.distance = merged.moving_distance
    elif new.stationary:
        merged.distance = merged.stationary_distance
    if report.enhanced:
        merged.moving_signals.assign(new.moving_signals)
        merged.stationary_signals.assign(new.stationary_signals)
    return merged


def _decode_gates(payload: bytes) -> tuple[ValuesArray, ValuesArray] | None:
    if len(payload) < BASIC_LENGTH + 2:
        return None
    moving_count = payload[11] + 1
    stationary_count = payload[12] + 1
    if moving_count > ValuesArray.CAPACITY or stationary_count > ValuesArray.CAPACITY:
        return None
    start = 13
    end = start + moving_count + stationary_count
    expected = end + ENHANCED_RESERVED + len(TAIL)
    if len(payload) != expected or payload[expected - 2 : expected] != TAIL:
        return None
    moving = ValuesArray.from_values(payload[start : start + moving_count])
    stationary = ValuesArray.from_values(payload[start + moving_count : end])
    return moving, stationary
