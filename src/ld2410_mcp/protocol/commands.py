"""Command word constants and request builders.

Each request is a command-dialect frame whose payload is the 16-bit command
word (little-endian) followed by its parameters. The device acknowledges
with the same word plus :data:`ACK_BIT`.
"""

from __future__ import annotations

from enum import IntEnum

from .framing import HEADERS, Dialect, build_frame

ACK_BIT = 0x0100
ALL_GATES = 0xFFFF
MAX_GATE = 8
MAX_THRESHOLD = 100
MAX_WINDOW = 0xFFFF

# Parameter words for SET_MAX_GATE
PAR_MAX_MOVING_GATE = 0x0000
PAR_MAX_STATIONARY_GATE = 0x0001
PAR_NO_ONE_WINDOW = 0x0002

# Parameter words for SET_GATE_PARAMETERS
PAR_GATE = 0x0000
PAR_MOVING_THRESHOLD = 0x0001
PAR_STATIONARY_THRESHOLD = 0x0002


class Command(IntEnum):
    """Command words understood by the LD2410."""

    ENABLE_CONFIG = 0x00FF
    DISABLE_CONFIG = 0x00FE
    SET_MAX_GATE = 0x0060
    READ_PARAMETERS = 0x0061
    ENABLE_ENHANCED = 0x0062
    DISABLE_ENHANCED = 0x0063
    SET_GATE_PARAMETERS = 0x0064
    READ_FIRMWARE = 0x00A0
    FACTORY_RESET = 0x00A2
    REBOOT = 0x00A3
    BLUETOOTH = 0x00A4
    READ_MAC = 0x00A5
    SET_RESOLUTION = 0x00AA
    READ_RESOLUTION = 0x00AB


def ack_code(command: int) -> int:
    """Return the word the device uses to acknowledge ``command``."""
    return command | ACK_BIT


def _word(value: int) -> bytes:
    return (value & 0xFFFF).to_bytes(2, "little")


def _param(word: int, value: int) -> bytes:
    return _word(word) + (value & 0xFFFFFFFF).to_bytes(4, "little")


def _check(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be {low}-{high}, got {value}")


def command_payload(command: int, parameters: bytes = b"") -> bytes:
    return _word(command) + parameters


def build_command(command: int, parameters: bytes = b"") -> bytes:
    """Build a complete command frame."""
    return build_frame(Dialect.COMMAND, command_payload(command, parameters))


def build_config_mode(enable: bool) -> bytes:
    if enable:
        return build_command(Command.ENABLE_CONFIG, _word(0x0001))
    return build_command(Command.DISABLE_CONFIG)


def build_enhanced_mode(enable: bool) -> bytes:
    return build_command(
        Command.ENABLE_ENHANCED if enable else Command.DISABLE_ENHANCED
    )


def build_read_mac() -> bytes:
    return build_command(Command.READ_MAC, _word(0x0001))


def build_read_firmware() -> bytes:
    return build_command(Command.READ_FIRMWARE)


def build_read_resolution() -> bytes:
    return build_command(Command.READ_RESOLUTION)


def build_set_resolution(fine: bool) -> bytes:
    """Build a resolution change: 20 cm gates when ``fine``, else 75 cm.

    Takes effect after a reboot.
    """
    return build_command(Command.SET_RESOLUTION, _word(1 if fine else 0))


def build_read_parameters() -> bytes:
    return build_command(Command.READ_PARAMETERS)


def build_set_max_gate(
    moving_gate: int, stationary_gate: int, no_one_window: int
) -> bytes:
    """Build a max-gate / no-one window update.

    Args:
        moving_gate: Farthest gate for moving targets, 0-8.
        stationary_gate: Farthest gate for stationary targets, 0-8.
        no_one_window: Seconds without presence before reporting absence.
    """
    _check("Moving gate", moving_gate, 0, MAX_GATE)
    _check("Stationary gate", stationary_gate, 0, MAX_GATE)
    _check("No-one window", no_one_window, 0, MAX_WINDOW)
    parameters = (
        _param(PAR_MAX_MOVING_GATE, moving_gate)
        + _param(PAR_MAX_STATIONARY_GATE, stationary_gate)
        + _param(PAR_NO_ONE_WINDOW, no_one_window)
    )
    return build_command(Command.SET_MAX_GATE, parameters)


def build_set_gate_parameters(
    gate: int,
    moving_threshold: int,
    stationary_threshold: int,
    min_gate: int = 0,
    max_gate: int = MAX_GATE,
) -> bytes:
    """Build a threshold update for one gate.

    Args:
        gate: Gate index; 0 applies the thresholds to every gate.
        moving_threshold: 0-100.
        stationary_threshold: 0-100.
        min_gate: Lowest gate index accepted (0 keeps the broadcast form).
        max_gate: Highest gate index accepted.
    """
    _check("Gate", gate, min_gate, max_gate)
    selector = ALL_GATES if gate == 0 else gate
    return _gate_parameters(selector, moving_threshold, stationary_threshold)


def build_per_gate_parameters(
    gate: int, moving_threshold: int, stationary_threshold: int
) -> bytes:
    """Build a threshold update addressed to exactly one gate, gate 0 included."""
    _check("Gate", gate, 0, MAX_GATE)
    return _gate_parameters(gate, moving_threshold, stationary_threshold)


def _gate_parameters(
    selector: int, moving_threshold: int, stationary_threshold: int
) -> bytes:
    _check("Moving threshold", moving_threshold, 0, MAX_THRESHOLD)
    _check("Stationary threshold", stationary_threshold, 0, MAX_THRESHOLD)
    parameters = (
        _param(PAR_GATE, selector)
        + _param(PAR_MOVING_THRESHOLD, moving_threshold)
        + _param(PAR_STATIONARY_THRESHOLD, stationary_threshold)
    )
    return build_command(Command.SET_GATE_PARAMETERS, parameters)


def frame_command(frame: bytes) -> int:
    """Return the command word carried by a frame built here."""
    offset = len(HEADERS[Dialect.COMMAND]) + 2
    return int.from_bytes(frame[offset : offset + 2], "little")


def build_factory_reset() -> bytes:
    return build_command(Command.FACTORY_RESET)


def build_reboot() -> bytes:
    return build_command(Command.REBOOT)


def build_bluetooth(enable: bool) -> bytes:
    return build_command(Command.BLUETOOTH, _word(1 if enable else 0))
