"""Tests for command builders."""

import pytest

from ld2410_mcp.protocol.commands import (
    ACK_BIT,
    Command,
    ack_code,
    build_bluetooth,
    build_command,
    build_config_mode,
    build_enhanced_mode,
    build_per_gate_parameters,
    build_read_mac,
    build_read_parameters,
    build_reboot,
    build_set_gate_parameters,
    build_set_max_gate,
    build_set_resolution,
    frame_command,
)
from ld2410_mcp.protocol.framing import Dialect, FrameDecoder


def _payload(frame: bytes) -> bytes:
    events = FrameDecoder().feed_bytes(frame)
    assert len(events) == 1
    assert events[0].frame.dialect is Dialect.COMMAND
    return events[0].frame.payload


def test_command_enum_values():
    """Command words as published by the vendor."""
    assert Command.ENABLE_CONFIG == 0x00FF
    assert Command.DISABLE_CONFIG == 0x00FE
    assert Command.SET_MAX_GATE == 0x0060
    assert Command.READ_PARAMETERS == 0x0061
    assert Command.SET_GATE_PARAMETERS == 0x0064
    assert Command.READ_FIRMWARE == 0x00A0
    assert Command.READ_MAC == 0x00A5
    assert Command.READ_RESOLUTION == 0x00AB


def test_ack_code_sets_ack_bit():
    assert ack_code(Command.ENABLE_CONFIG) == 0x01FF
    assert ack_code(Command.READ_PARAMETERS) == 0x0161
    assert ACK_BIT == 0x0100


def test_enter_config_frame():
    assert build_config_mode(True) == bytes.fromhex(
        "FDFCFBFA 0400 FF00 0100 04030201"
    )


def test_leave_config_frame():
    assert build_config_mode(False) == bytes.fromhex("FDFCFBFA 0200 FE00 04030201")


def test_enhanced_mode_frames():
    assert _payload(build_enhanced_mode(True)) == b"\x62\x00"
    assert _payload(build_enhanced_mode(False)) == b"\x63\x00"


def test_read_mac_carries_selector():
    assert _payload(build_read_mac()) == b"\xA5\x00\x01\x00"


def test_set_resolution_values():
    assert _payload(build_set_resolution(True)) == b"\xAA\x00\x01\x00"
    assert _payload(build_set_resolution(False)) == b"\xAA\x00\x00\x00"


def test_bluetooth_values():
    assert _payload(build_bluetooth(True)) == b"\xA4\x00\x01\x00"
    assert _payload(build_bluetooth(False)) == b"\xA4\x00\x00\x00"


def test_set_max_gate_frame():
    assert build_set_max_gate(8, 8, 5) == bytes.fromhex(
        "FDFCFBFA 1400 6000"
        "0000 08000000"
        "0100 08000000"
        "0200 05000000"
        "04030201"
    )


def test_set_max_gate_bounds():
    with pytest.raises(ValueError):
        build_set_max_gate(9, 8, 5)
    with pytest.raises(ValueError):
        build_set_max_gate(8, -1, 5)
    with pytest.raises(ValueError):
        build_set_max_gate(8, 8, 0x10000)


def test_set_gate_parameters_broadcast():
    """Gate 0 addresses every gate with the 0xFFFF selector."""
    payload = _payload(build_set_gate_parameters(0, 40, 30))
    assert payload == bytes.fromhex(
        "6400 0000 FFFF0000 0100 28000000 0200 1E000000"
    )


def test_set_gate_parameters_single_gate():
    payload = _payload(build_set_gate_parameters(3, 40, 30))
    assert payload[2:8] == bytes.fromhex("0000 03000000")


def test_set_gate_parameters_bounds():
    with pytest.raises(ValueError):
        build_set_gate_parameters(9, 50, 50)
    with pytest.raises(ValueError):
        build_set_gate_parameters(2, 101, 50)
    with pytest.raises(ValueError):
        build_set_gate_parameters(2, 50, -1)


def test_set_gate_parameters_custom_gate_range():
    with pytest.raises(ValueError):
        build_set_gate_parameters(1, 50, 50, min_gate=2)
    assert frame_command(build_set_gate_parameters(2, 50, 50, min_gate=2)) == 0x64


def test_per_gate_parameters_address_gate_zero_directly():
    payload = _payload(build_per_gate_parameters(0, 10, 20))
    assert payload[2:8] == bytes.fromhex("0000 00000000")


def test_frame_command_round_trip():
    assert frame_command(build_reboot()) == Command.REBOOT
    assert frame_command(build_read_parameters()) == Command.READ_PARAMETERS
    assert frame_command(build_command(0x1234, b"\x00")) == 0x1234
