"""MCP server entry point for the HLK-LD2410 presence radar.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .driver import LD2410, Response
from .models.values import ValuesArray
from .transport.serial_connection import (
    DEFAULT_BAUDRATE,
    DEFAULT_PORT,
    SerialConnection,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "ld2410",
    instructions="MCP server for the HLK-LD2410 24 GHz presence radar",
)

# Global connection state
_connection: SerialConnection | None = None
_radar: LD2410 | None = None


def _get_radar() -> LD2410:
    """Get the active driver, raising if not connected."""
    if _radar is None or _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _radar


def _readings(radar: LD2410) -> dict[str, Any]:
    return {
        "status": radar.status_string(),
        "presence": radar.presence_detected(),
        "moving": radar.moving_target_detected(),
        "moving_distance": radar.moving_target_distance(),
        "moving_signal": radar.moving_target_signal(),
        "stationary": radar.stationary_target_detected(),
        "stationary_distance": radar.stationary_target_distance(),
        "stationary_signal": radar.stationary_target_signal(),
        "detected_distance": radar.detected_distance(),
        "enhanced": radar.in_enhanced_mode(),
        "moving_signals": radar.get_moving_signals().to_list(),
        "stationary_signals": radar.get_stationary_signals().to_list(),
    }


def _result(ok: bool, **fields: Any) -> dict[str, Any]:
    if not ok:
        return {"error": "Device did not acknowledge the request", **fields}
    return {"ok": True, **fields}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str = DEFAULT_PORT, baudrate: int = DEFAULT_BAUDRATE) -> dict[str, Any]:
    """Open the serial port and handshake with the radar.

    Reads firmware, MAC, resolution and gate parameters once the radar
    answers the config-mode probe.

    Args:
        port: Serial device, e.g. /dev/ttyUSB0 or COM3.
        baudrate: UART speed (256000 unless reconfigured).
    """
    global _connection, _radar
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.port_info.port,
        }

    _connection = SerialConnection(port, baudrate)
    try:
        _connection.open()
    except ConnectionError as e:
        _connection = None
        return {"connected": False, "error": str(e)}
    _radar = LD2410(_connection)

    if not _radar.begin():
        _connection.close()
        _connection = None
        _radar = None
        return {"connected": False, "error": "Radar did not respond"}

    return {
        "connected": True,
        "port": port,
        **_radar.model.identity_dict(),
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Leave config mode and close the serial port."""
    global _connection, _radar
    if _radar is not None and _connection is not None and _connection.connected:
        _radar.end()
    if _connection is not None:
        _connection.close()
    _connection = None
    _radar = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Return MAC, firmware and protocol version read at connect time."""
    radar = _get_radar()
    return radar.model.identity_dict()


# ─── TELEMETRY TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def poll() -> dict[str, Any]:
    """Consume buffered radar output and return the current readings."""
    radar = _get_radar()
    response = radar.check()
    result = _readings(radar)
    result["response"] = Response(response).name
    return result


@mcp.tool()
def get_readings() -> dict[str, Any]:
    """Return the last readings without reading the port.

    Readings older than the data lifespan report no presence.
    """
    return _readings(_get_radar())


# ─── CONFIGURATION TOOLS ─────────────────────────────────────────────

@mcp.tool()
def get_parameters(refresh: bool = False) -> dict[str, Any]:
    """Return gate thresholds, max gates, resolution and the no-one window.

    Args:
        refresh: Re-read the values from the radar first.
    """
    radar = _get_radar()
    if refresh and not (radar.request_parameters() and radar.request_resolution()):
        return {"error": "Device did not acknowledge the request"}
    return radar.model.parameters_dict()


@mcp.tool()
def set_config_mode(enable: bool) -> dict[str, Any]:
    """Enter or leave config mode explicitly, to batch several changes.

    Args:
        enable: True to enter, False to leave.
    """
    radar = _get_radar()
    return _result(radar.config_mode(enable), config_mode=radar.in_config_mode())


@mcp.tool()
def set_enhanced_mode(enable: bool) -> dict[str, Any]:
    """Switch between basic and enhanced (per-gate) telemetry.

    Args:
        enable: True for enhanced, False for basic.
    """
    radar = _get_radar()
    return _result(radar.enhanced_mode(enable), enhanced=radar.in_enhanced_mode())


@mcp.tool()
def set_resolution(fine: bool) -> dict[str, Any]:
    """Select 20 cm (fine) or 75 cm gates. Takes effect after a reboot.

    Args:
        fine: True for 20 cm gates, False for 75 cm.
    """
    radar = _get_radar()
    return _result(radar.set_resolution(fine), resolution_cm=radar.get_resolution())


@mcp.tool()
def set_gate_parameters(
    gate: int | None = None,
    moving_threshold: int = 100,
    stationary_threshold: int = 100,
    moving_thresholds: list[int] | None = None,
    stationary_thresholds: list[int] | None = None,
    no_one_window: int = 5,
) -> dict[str, Any]:
    """Set detection thresholds for one gate, all gates, or per gate.

    Either pass ``gate`` (0 = all gates) with single thresholds, or pass
    both threshold lists to write gates 0..N-1 and the no-one window.

    Args:
        gate: Gate index 0-8, 0 broadcasting to every gate.
        moving_threshold: Moving threshold 0-100 for ``gate``.
        stationary_threshold: Stationary threshold 0-100 for ``gate``.
        moving_thresholds: Per-gate moving thresholds.
        stationary_thresholds: Per-gate stationary thresholds.
        no_one_window: No-one window in seconds, used with the lists.
    """
    radar = _get_radar()
    if moving_thresholds is not None and stationary_thresholds is not None:
        try:
            moving = ValuesArray.from_values(moving_thresholds)
            stationary = ValuesArray.from_values(stationary_thresholds)
        except ValueError as e:
            return {"error": str(e)}
        ok = radar.set_gate_parameters_array(moving, stationary, no_one_window)
    elif gate is not None:
        ok = radar.set_gate_parameters(gate, moving_threshold, stationary_threshold)
    else:
        return {"error": "Pass either gate or both threshold lists"}
    return _result(ok, **radar.model.parameters_dict())


@mcp.tool()
def set_max_gate(
    moving_gate: int, stationary_gate: int, no_one_window: int = 5
) -> dict[str, Any]:
    """Limit the detection range and set the no-one window.

    Args:
        moving_gate: Farthest gate for moving targets (0-8).
        stationary_gate: Farthest gate for stationary targets (0-8).
        no_one_window: Seconds without presence before reporting absence.
    """
    radar = _get_radar()
    ok = radar.set_max_gate(moving_gate, stationary_gate, no_one_window)
    return _result(ok, **radar.model.parameters_dict())


@mcp.tool()
def set_no_one_window(seconds: int) -> dict[str, Any]:
    """Set the no-one window, keeping the current max gates.

    Args:
        seconds: Seconds without presence before reporting absence.
    """
    radar = _get_radar()
    return _result(radar.set_no_one_window(seconds), no_one_window=radar.get_no_one_window())


@mcp.tool()
def factory_reset() -> dict[str, Any]:
    """Restore factory parameters. Takes effect after a reboot."""
    return _result(_get_radar().request_reset())


@mcp.tool()
def reboot() -> dict[str, Any]:
    """Reboot the radar."""
    return _result(_get_radar().request_reboot())


@mcp.tool()
def set_bluetooth(enable: bool) -> dict[str, Any]:
    """Turn the radar's Bluetooth on or off. Takes effect after a reboot.

    Args:
        enable: True to turn Bluetooth on.
    """
    radar = _get_radar()
    ok = radar.request_bt_on() if enable else radar.request_bt_off()
    return _result(ok, bluetooth=enable)


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("ld2410://device/info")
def resource_device_info() -> str:
    """MAC, firmware, protocol version and connection state."""
    if _radar is None or _connection is None or not _connection.connected:
        return json.dumps({"connected": False})

    info = _connection.port_info
    return json.dumps({
        "connected": True,
        "port": info.port,
        "baudrate": info.baudrate,
        **_radar.model.identity_dict(),
    })


@mcp.resource("ld2410://device/status")
def resource_device_status() -> str:
    """Connection state and reporting modes."""
    connected = _connection is not None and _connection.connected
    if not connected or _radar is None:
        return json.dumps({"connected": False})
    return json.dumps({
        "connected": True,
        "config_mode": _radar.in_config_mode(),
        "enhanced_mode": _radar.in_enhanced_mode(),
    })


@mcp.resource("ld2410://sensor/readings")
def resource_readings() -> str:
    """Last readings, subject to the staleness policy."""
    if _radar is None:
        return json.dumps({"readings": {}})
    return json.dumps({"readings": _readings(_radar)})


@mcp.resource("ld2410://sensor/parameters")
def resource_parameters() -> str:
    """Gate parameters as last read from the radar."""
    if _radar is None:
        return json.dumps({"parameters": {}})
    return json.dumps({"parameters": _radar.model.parameters_dict()})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
