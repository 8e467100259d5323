"""Device state model: modes, parameters, identity and the telemetry snapshot.

Every telemetry accessor applies the staleness policy: a snapshot older than
``data_lifespan`` milliseconds is treated as "nothing detected", so a radar
that stopped talking is never reported as permanently occupied.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from .sensor import SensorData
from .values import ValuesArray

DEFAULT_DATA_LIFESPAN_MS = 500

RESOLUTION_FINE_CM = 20
RESOLUTION_COARSE_CM = 75


@dataclass
class DeviceModel:
    """Last-known state of one connected radar."""

    data_lifespan: float = DEFAULT_DATA_LIFESPAN_MS
    is_config: bool = False
    is_enhanced: bool = False
    max_range: int = 0
    max_moving_gate: int = 0
    max_stationary_gate: int = 0
    no_one_window: int = 0
    fine_resolution: bool | None = None
    moving_thresholds: ValuesArray = field(default_factory=ValuesArray)
    stationary_thresholds: ValuesArray = field(default_factory=ValuesArray)
    mac: bytes = b""
    firmware: str = ""
    version: int = 0
    buffer_size: int = 0
    sensor: SensorData = field(default_factory=SensorData)

    def reset(self) -> None:
        """Forget everything learned from the device, keeping the lifespan."""
        fresh = DeviceModel(data_lifespan=self.data_lifespan)
        for f in fields(self):
            setattr(self, f.name, getattr(fresh, f.name))

    # ─── telemetry ────────────────────────────────────────────────────

    def update_sensor(self, data: SensorData, enhanced: bool) -> None:
        """Replace the snapshot with a freshly decoded one."""
        self.sensor = data
        self.is_enhanced = enhanced

    def is_fresh(self, now: float) -> bool:
        return now - self.sensor.timestamp < self.data_lifespan

    def moving_detected(self, now: float) -> bool:
        return self.is_fresh(now) and self.sensor.moving

    def stationary_detected(self, now: float) -> bool:
        return self.is_fresh(now) and self.sensor.stationary

    def presence_detected(self, now: float) -> bool:
        return self.moving_detected(now) or self.stationary_detected(now)

    def moving_distance(self, now: float) -> int:
        return self.sensor.moving_distance if self.moving_detected(now) else 0

    def moving_signal(self, now: float) -> int:
        return self.sensor.moving_signal if self.moving_detected(now) else 0

    def stationary_distance(self, now: float) -> int:
        return self.sensor.stationary_distance if self.stationary_detected(now) else 0

    def stationary_signal(self, now: float) -> int:
        return self.sensor.stationary_signal if self.stationary_detected(now) else 0

    def detected_distance(self, now: float) -> int:
        return self.sensor.distance if self.presence_detected(now) else 0

    def moving_signals(self, now: float) -> ValuesArray:
        if self.is_enhanced and self.is_fresh(now):
            return self.sensor.moving_signals.copy()
        return ValuesArray()

    def stationary_signals(self, now: float) -> ValuesArray:
        if self.is_enhanced and self.is_fresh(now):
            return self.sensor.stationary_signals.copy()
        return ValuesArray()

    def status_string(self, now: float) -> str:
        if not self.is_fresh(now):
            return SensorData().status_string
        return self.sensor.status_string

    # ─── parameters and identity ──────────────────────────────────────

    @property
    def resolution_cm(self) -> int:
        """Gate width in cm: 20, 75, or 0 when not yet known."""
        if self.fine_resolution is None:
            return 0
        return RESOLUTION_FINE_CM if self.fine_resolution else RESOLUTION_COARSE_CM

    @property
    def range_cm(self) -> int:
        return (self.max_range + 1) * self.resolution_cm

    @property
    def mac_str(self) -> str:
        return ":".join(f"{b:02X}" for b in self.mac)

    def parameters_dict(self) -> dict:
        return {
            "max_range": self.max_range,
            "max_range_cm": self.range_cm,
            "max_moving_gate": self.max_moving_gate,
            "max_stationary_gate": self.max_stationary_gate,
            "no_one_window": self.no_one_window,
            "resolution_cm": self.resolution_cm,
            "moving_thresholds": self.moving_thresholds.to_list(),
            "stationary_thresholds": self.stationary_thresholds.to_list(),
        }

    def identity_dict(self) -> dict:
        return {
            "mac": self.mac_str,
            "firmware": self.firmware,
            "protocol_version": self.version,
            "buffer_size": self.buffer_size,
        }
