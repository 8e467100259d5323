"""Telemetry snapshot model."""

from __future__ import annotations

from dataclasses import dataclass, field

from .values import ValuesArray

STATUS_MOVING = 0x01
STATUS_STATIONARY = 0x02

STATUS_STRINGS = (
    "No target",
    "Moving only",
    "Stationary only",
    "Both moving and stationary",
)


@dataclass
class SensorData:
    """Last decoded telemetry frame.

    Distance and signal fields of a target type that is not flagged in
    ``status`` keep whatever the previous frame left there. Gate reads on
    :attr:`moving` / :attr:`stationary` first.
    """

    status: int = 0
    timestamp: float = 0.0
    moving_distance: int = 0
    moving_signal: int = 0
    stationary_distance: int = 0
    stationary_signal: int = 0
    distance: int = 0
    moving_signals: ValuesArray = field(default_factory=ValuesArray)
    stationary_signals: ValuesArray = field(default_factory=ValuesArray)

    @property
    def moving(self) -> bool:
        return bool(self.status & STATUS_MOVING)

    @property
    def stationary(self) -> bool:
        return bool(self.status & STATUS_STATIONARY)

    @property
    def status_string(self) -> str:
        return STATUS_STRINGS[self.status & 0x03]

    def copy(self) -> SensorData:
        return SensorData(
            status=self.status,
            timestamp=self.timestamp,
            moving_distance=self.moving_distance,
            moving_signal=self.moving_signal,
            stationary_distance=self.stationary_distance,
            stationary_signal=self.stationary_signal,
            distance=self.distance,
            moving_signals=self.moving_signals.copy(),
            stationary_signals=self.stationary_signals.copy(),
        )
