"""Request/acknowledgement matching over a byte transport.

:class:`CommandCorrelator` writes one command frame and then keeps pumping
the shared :class:`~.framing.FrameDecoder` until the matching ack arrives or
the deadline passes. Telemetry that arrives in the meantime is handed to a
callback instead of being lost.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from .commands import ack_code, build_command, frame_command
from .framing import Dialect, Frame, FrameDecoder
from .parser import Ack, parse_ack

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 2000
READ_CHUNK = 64


class LD2410Error(Exception):
    """Base class for driver errors."""


class CommandTimeout(LD2410Error):
    """No matching acknowledgement arrived in time."""


class CommandRejected(LD2410Error):
    """The device acknowledged a command with a failure status."""

    def __init__(self, ack: Ack) -> None:
        super().__init__(
            f"Command 0x{ack.command:04X} rejected with status {ack.status}"
        )
        self.ack = ack


class Transport(Protocol):
    """Minimal duplex byte channel."""

    @property
    def in_waiting(self) -> int: ...

    def read(self, size: int = 1) -> bytes: ...

    def write(self, data: bytes) -> int | None: ...


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class CommandCorrelator:
    """Sends commands and waits for their acks.

    Usage::

        correlator = CommandCorrelator(transport, decoder)
        ack = correlator.send(Command.READ_FIRMWARE)
    """

    def __init__(
        self,
        transport: Transport,
        decoder: FrameDecoder,
        timeout: float = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = monotonic_ms,
        on_telemetry: Callable[[Frame], None] | None = None,
    ) -> None:
        self._transport = transport
        self._decoder = decoder
        self.timeout = timeout
        self._clock = clock
        self._on_telemetry = on_telemetry

    def send(
        self, command: int, parameters: bytes = b"", timeout: float | None = None
    ) -> Ack:
        """Build and send ``command`` with ``parameters`` and wait for its ack."""
        return self.send_frame(build_command(command, parameters), timeout)

    def send_frame(self, frame: bytes, timeout: float | None = None) -> Ack:
        """Send a prebuilt command frame and wait for its ack.

        Raises:
            CommandTimeout: If no matching ack arrives within ``timeout`` ms.
            CommandRejected: If the ack carries a failure status.
        """
        command = frame_command(frame)
        wait = self.timeout if timeout is None else timeout
        logger.debug("-> %s", frame.hex(" "))
        self._transport.write(frame)

        expected = ack_code(command)
        deadline = self._clock() + wait
        while self._clock() < deadline:
            ack = self._pump(expected)
            if ack is None:
                continue
            if not ack.success:
                raise CommandRejected(ack)
            return ack

        raise CommandTimeout(
            f"No ack for command 0x{command:04X} within {wait:.0f} ms"
        )

    def _pump(self, expected: int) -> Ack | None:
        """Feed available bytes until the expected ack completes or input runs dry."""
        waiting = self._transport.in_waiting
        if not waiting:
            return None
        data = self._transport.read(min(waiting, READ_CHUNK))
        for index, byte in enumerate(data):
            event = self._decoder.feed(byte)
            frame = event.frame
            if frame is None:
                continue
            if frame.dialect is Dialect.TELEMETRY:
                if self._on_telemetry is not None:
                    self._on_telemetry(frame)
                continue
            ack = parse_ack(frame)
            if ack is not None and ack_code(ack.command) == expected:
                self._feed_rest(data[index + 1 :])
                return ack
            logger.debug("Ignoring unrelated command frame %r", frame)
        return None

    def _feed_rest(self, data: bytes) -> None:
        # Bytes already read past the ack still belong to the stream.
        for event in self._decoder.feed_bytes(data):
            if event.frame is None:
                continue
            if event.frame.dialect is Dialect.TELEMETRY and self._on_telemetry:
                self._on_telemetry(event.frame)
            else:
                logger.debug("Ignoring command frame %r after ack", event.frame)
