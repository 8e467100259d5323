"""Data models for per-gate values, telemetry snapshots and device state."""

from .values import ValuesArray
from .sensor import SensorData
from .device import DeviceModel
