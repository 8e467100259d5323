"""UART connection to the HLK-LD2410.

The radar talks 8N1 at 256000 baud by default. Reads are non-blocking so the
driver can poll without stalling; the ack wait loop does its own timing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 256000
READ_TIMEOUT_S = 0
WRITE_TIMEOUT_S = 1.0


@dataclass
class PortInfo:
    """Settings of the open port."""

    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE


class SerialConnection:
    """Manages the serial link to the radar.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        data = conn.read(conn.in_waiting)
        conn.close()
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
    ) -> None:
        self._port_info = PortInfo(port=port, baudrate=baudrate)
        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    def open(self) -> PortInfo:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(
                port=self._port_info.port,
                baudrate=self._port_info.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=READ_TIMEOUT_S,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open {self._port_info.port} at "
                f"{self._port_info.baudrate} baud: {e}"
            ) from e

        logger.info(
            "Opened %s at %d baud", self._port_info.port, self._port_info.baudrate
        )
        return self._port_info

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            logger.info("Disconnected")

    @property
    def in_waiting(self) -> int:
        """Number of bytes that can be read without blocking."""
        return self._require().in_waiting

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes that are already buffered."""
        return self._require().read(size)

    def write(self, data: bytes) -> int:
        """Write raw bytes to the radar.

        Raises:
            ConnectionError: If not connected.
        """
        port = self._require()
        written = port.write(data)
        port.flush()
        return written

    def _require(self) -> serial.Serial:
        if not self.connected:
            raise ConnectionError("Not connected to device")
        return self._serial
