"""Shared fixtures: a scripted serial port and a controllable clock."""

from __future__ import annotations

from typing import Callable

import pytest

from ld2410_mcp.driver import LD2410
from ld2410_mcp.protocol.commands import ack_code, frame_command
from ld2410_mcp.protocol.framing import Dialect, build_frame


def ack_frame(command: int, data: bytes = b"", status: int = 0) -> bytes:
    """Wire bytes of the device's ack for ``command``."""
    payload = (
        ack_code(command).to_bytes(2, "little")
        + status.to_bytes(2, "little")
        + data
    )
    return build_frame(Dialect.COMMAND, payload)


def basic_telemetry(
    status: int,
    moving_distance: int = 0,
    moving_signal: int = 0,
    stationary_distance: int = 0,
    stationary_signal: int = 0,
    detection_distance: int = 0,
) -> bytes:
    payload = (
        bytes([0x02, 0xAA, status])
        + moving_distance.to_bytes(2, "little")
        + bytes([moving_signal])
        + stationary_distance.to_bytes(2, "little")
        + bytes([stationary_signal])
        + detection_distance.to_bytes(2, "little")
        + b"\x55\x00"
    )
    return build_frame(Dialect.TELEMETRY, payload)


def enhanced_telemetry(
    status: int,
    moving_signals: list[int],
    stationary_signals: list[int],
    moving_distance: int = 0,
    stationary_distance: int = 0,
) -> bytes:
    payload = (
        bytes([0x01, 0xAA, status])
        + moving_distance.to_bytes(2, "little")
        + bytes([50])
        + stationary_distance.to_bytes(2, "little")
        + bytes([40])
        + (0).to_bytes(2, "little")
        + bytes([len(moving_signals) - 1, len(stationary_signals) - 1])
        + bytes(moving_signals)
        + bytes(stationary_signals)
        + b"\x00\x00"
        + b"\x55\x00"
    )
    return build_frame(Dialect.TELEMETRY, payload)


class FakeClock:
    """Millisecond clock that advances by ``step`` on every reading."""

    def __init__(self, start: float = 1000.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTransport:
    """In-memory serial port.

    ``responder`` maps a written command word to the bytes the device
    sends back; missing entries simulate a silent device.
    """

    def __init__(self, responder: dict[int, bytes] | None = None) -> None:
        self.rx = bytearray()
        self.written: list[bytes] = []
        self.responder = responder if responder is not None else {}

    def feed(self, data: bytes) -> None:
        self.rx.extend(data)

    @property
    def in_waiting(self) -> int:
        return len(self.rx)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        reply = self.responder.get(frame_command(data))
        if reply:
            self.rx.extend(reply)
        return len(data)

    @property
    def commands(self) -> list[int]:
        return [frame_command(frame) for frame in self.written]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(step=1.0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_radar(transport: FakeTransport, clock: FakeClock) -> Callable[..., LD2410]:
    def factory(**kwargs) -> LD2410:
        return LD2410(transport, clock=clock, **kwargs)

    return factory


PARAMETERS_DATA = (
    bytes([0xAA, 8, 8, 8])
    + bytes([50, 50, 40, 30, 20, 15, 15, 15, 15])
    + bytes([0, 0, 40, 40, 30, 30, 20, 20, 20])
    + (5).to_bytes(2, "little")
)
FIRMWARE_DATA = b"\x00\x01\x04\x02" + (0x23022511).to_bytes(4, "little")
MAC_DATA = bytes.fromhex("8f272eb80f65")


def device_responses() -> dict[int, bytes]:
    """Acks of a healthy radar for every command the driver sends."""
    return {
        0x00FF: ack_frame(0x00FF, b"\x01\x00\x40\x00"),
        0x00FE: ack_frame(0x00FE),
        0x0060: ack_frame(0x0060),
        0x0061: ack_frame(0x0061, PARAMETERS_DATA),
        0x0062: ack_frame(0x0062),
        0x0063: ack_frame(0x0063),
        0x0064: ack_frame(0x0064),
        0x00A0: ack_frame(0x00A0, FIRMWARE_DATA),
        0x00A2: ack_frame(0x00A2),
        0x00A3: ack_frame(0x00A3),
        0x00A4: ack_frame(0x00A4),
        0x00A5: ack_frame(0x00A5, MAC_DATA),
        0x00AA: ack_frame(0x00AA),
        0x00AB: ack_frame(0x00AB, b"\x01\x00"),
    }
