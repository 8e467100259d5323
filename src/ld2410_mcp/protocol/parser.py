"""Parsing of command acknowledgements.

An ack payload is::

    +--------------+---------+-----------------+
    | Command|0x100| Status  |  Response data  |
    | 2 bytes LE   | 2 bytes |  variable       |
    +--------------+---------+-----------------+
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.values import ValuesArray
from .commands import ACK_BIT, Command
from .framing import Dialect, Frame

PARAMETERS_HEAD = 0xAA


@dataclass
class Ack:
    """A decoded acknowledgement."""

    command: int
    status: int
    data: bytes

    @property
    def success(self) -> bool:
        return self.status == 0

    def __repr__(self) -> str:
        return (
            f"Ack(command=0x{self.command:04X}, status={self.status}, "
            f"data={self.data.hex(' ') if self.data else '(empty)'})"
        )


@dataclass
class ConfigModeResponse:
    """Parsed ENABLE_CONFIG ack."""

    version: int
    buffer_size: int


@dataclass
class FirmwareResponse:
    """Parsed READ_FIRMWARE ack."""

    firmware_type: int
    major: int
    minor: int
    build: int

    @property
    def firmware(self) -> str:
        return f"{self.major}.{self.minor:02x}.{self.build:08x}"


@dataclass
class MacResponse:
    """Parsed READ_MAC ack."""

    mac: bytes

    @property
    def mac_str(self) -> str:
        return ":".join(f"{b:02X}" for b in self.mac)


@dataclass
class ResolutionResponse:
    """Parsed READ_RESOLUTION ack."""

    index: int

    @property
    def fine(self) -> bool:
        return self.index == 1


@dataclass
class ParametersResponse:
    """Parsed READ_PARAMETERS ack."""

    max_range: int
    max_moving_gate: int
    max_stationary_gate: int
    moving_thresholds: ValuesArray
    stationary_thresholds: ValuesArray
    no_one_window: int


def parse_ack(frame: Frame) -> Ack | None:
    """Decode a command-dialect frame into an :class:`Ack`.

    Returns ``None`` for telemetry frames, payloads too short to hold a
    command word and status, or words without the ack bit.
    """
    if frame.dialect is not Dialect.COMMAND:
        return None
    payload = frame.payload
    if len(payload) < 4:
        return None
    word = int.from_bytes(payload[0:2], "little")
    if not word & ACK_BIT:
        return None
    return Ack(
        command=word & ~ACK_BIT & 0xFFFF,
        status=int.from_bytes(payload[2:4], "little"),
        data=payload[4:],
    )


def parse_config_mode(ack: Ack) -> ConfigModeResponse | None:
    if ack.command != Command.ENABLE_CONFIG or len(ack.data) < 4:
        return None
    return ConfigModeResponse(
        version=int.from_bytes(ack.data[0:2], "little"),
        buffer_size=int.from_bytes(ack.data[2:4], "little"),
    )


def parse_firmware(ack: Ack) -> FirmwareResponse | None:
    """Parse firmware type, version and build.

    Data layout: type (2), minor (1), major (1), build (4, LE). The build is
    rendered as hex so ``0x23022511`` reads as ``23022511``.
    """
    if ack.command != Command.READ_FIRMWARE or len(ack.data) < 8:
        return None
    data = ack.data
    return FirmwareResponse(
        firmware_type=int.from_bytes(data[0:2], "little"),
        minor=data[2],
        major=data[3],
        build=int.from_bytes(data[4:8], "little"),
    )


def parse_mac(ack: Ack) -> MacResponse | None:
    if ack.command != Command.READ_MAC or len(ack.data) < 6:
        return None
    return MacResponse(mac=bytes(ack.data[0:6]))


def parse_resolution(ack: Ack) -> ResolutionResponse | None:
    if ack.command != Command.READ_RESOLUTION or len(ack.data) < 2:
        return None
    return ResolutionResponse(index=int.from_bytes(ack.data[0:2], "little"))


def parse_parameters(ack: Ack) -> ParametersResponse | None:
    """Parse the gate configuration.

    Data layout: ``0xAA``, max gate N, max moving gate, max stationary gate,
    N+1 moving thresholds, N+1 stationary thresholds, no-one window (2, LE).
    """
    if ack.command != Command.READ_PARAMETERS or len(ack.data) < 4:
        return None
    data = ack.data
    if data[0] != PARAMETERS_HEAD:
        return None
    max_range = data[1]
    count = max_range + 1
    if count > ValuesArray.CAPACITY or len(data) < 4 + 2 * count + 2:
        return None
    moving = data[4 : 4 + count]
    stationary = data[4 + count : 4 + 2 * count]
    window_at = 4 + 2 * count
    return ParametersResponse(
        max_range=max_range,
        max_moving_gate=data[2],
        max_stationary_gate=data[3],
        moving_thresholds=ValuesArray.from_values(moving),
        stationary_thresholds=ValuesArray.from_values(stationary),
        no_one_window=int.from_bytes(data[window_at : window_at + 2], "little"),
    )
