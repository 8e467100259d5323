"""Frame builder and byte-stream decoder for the LD2410 serial protocol.

Frame layout::

    +----------+---------+------------------+----------+
    | Header   | Length  |     Payload      | Footer   |
    | 4 bytes  | 2 bytes |  Length bytes    | 4 bytes  |
    +----------+---------+------------------+----------+

- Length: little-endian payload size
- Command dialect (host requests and device acks):
  header ``FD FC FB FA``, footer ``04 03 02 01``
- Telemetry dialect (periodic device reports):
  header ``F4 F3 F2 F1``, footer ``F8 F7 F6 F5``

The decoder is fed one byte at a time and resynchronises on its own after
line noise or truncated frames.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum

logger = logging.getLogger(__name__)

COMMAND_HEADER = b"\xFD\xFC\xFB\xFA"
COMMAND_FOOTER = b"\x04\x03\x02\x01"
TELEMETRY_HEADER = b"\xF4\xF3\xF2\xF1"
TELEMETRY_FOOTER = b"\xF8\xF7\xF6\xF5"
MARKER_SIZE = 4
LENGTH_SIZE = 2
BUFFER_CAPACITY = 0x40


class Dialect(IntEnum):
    """Frame families, told apart only by their header/footer bytes."""

    COMMAND = 0
    TELEMETRY = 1


HEADERS: dict[Dialect, bytes] = {
    Dialect.COMMAND: COMMAND_HEADER,
    Dialect.TELEMETRY: TELEMETRY_HEADER,
}

FOOTERS: dict[Dialect, bytes] = {
    Dialect.COMMAND: COMMAND_FOOTER,
    Dialect.TELEMETRY: TELEMETRY_FOOTER,
}


@dataclass(frozen=True)
class Frame:
    """A complete, structurally verified frame."""

    dialect: Dialect
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(dialect={self.dialect.name}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


class DecoderState(Enum):
    SEEKING_HEADER = "seeking_header"
    ACCUMULATING_HEADER = "accumulating_header"
    READING_LENGTH = "reading_length"
    ACCUMULATING_PAYLOAD = "accumulating_payload"
    VERIFYING_FOOTER = "verifying_footer"


class FrameEventKind(Enum):
    PENDING = "pending"
    EMIT = "emit"
    DISCARD = "discard"


class DiscardReason(Enum):
    HEADER = "header"
    OVERFLOW = "overflow"
    FOOTER = "footer"


@dataclass(frozen=True)
class FrameEvent:
    """Outcome of feeding one byte to the decoder."""

    kind: FrameEventKind
    frame: Frame | None = None
    reason: DiscardReason | None = None

    @property
    def pending(self) -> bool:
        return self.kind is FrameEventKind.PENDING


PENDING = FrameEvent(FrameEventKind.PENDING)


def build_frame(dialect: Dialect, payload: bytes = b"") -> bytes:
    """Wrap ``payload`` in the header, length and footer of ``dialect``."""
    if len(payload) > 0xFFFF:
        raise ValueError(f"Payload too long: {len(payload)} bytes")
    size = len(payload).to_bytes(LENGTH_SIZE, "little")
    return HEADERS[dialect] + size + payload + FOOTERS[dialect]


class FrameDecoder:
    """Byte-at-a-time frame recogniser.

    Usage::

        decoder = FrameDecoder()
        for event in decoder.feed_bytes(chunk):
            if event.frame is not None:
                handle(event.frame)
    """

    def __init__(self, capacity: int = BUFFER_CAPACITY) -> None:
        self._capacity = capacity
        self._buffer = bytearray()
        self.reset()

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def capacity(self) -> int:
        return self._capacity

    def reset(self) -> None:
        """Drop any partial frame and go back to looking for a header."""
        self._state = DecoderState.SEEKING_HEADER
        self._dialect: Dialect | None = None
        self._matched = 0
        self._length_bytes = bytearray()
        self._declared = 0
        self._buffer.clear()

    def feed(self, byte: int) -> FrameEvent:
        """Advance the state machine by one byte."""
        state = self._state

        if state is DecoderState.SEEKING_HEADER:
            self._start_header(byte)
            return PENDING

        if state is DecoderState.ACCUMULATING_HEADER:
            header = HEADERS[self._dialect]
            if byte != header[self._matched]:
                return self._discard(DiscardReason.HEADER, byte)
            self._matched += 1
            if self._matched == MARKER_SIZE:
                self._state = DecoderState.READING_LENGTH
            return PENDING

        if state is DecoderState.READING_LENGTH:
            self._length_bytes.append(byte)
            if len(self._length_bytes) < LENGTH_SIZE:
                return PENDING
            self._declared = int.from_bytes(self._length_bytes, "little")
            if self._declared > self._capacity:
                logger.debug(
                    "Declared length %d exceeds capacity %d",
                    self._declared,
                    self._capacity,
                )
                return self._discard(DiscardReason.OVERFLOW)
            self._enter_payload()
            return PENDING

        if state is DecoderState.ACCUMULATING_PAYLOAD:
            if len(self._buffer) >= self._capacity:
                return self._discard(DiscardReason.OVERFLOW)
            self._buffer.append(byte)
            if len(self._buffer) == self._declared:
                self._enter_footer()
            return PENDING

        # VERIFYING_FOOTER
        footer = FOOTERS[self._dialect]
        if byte != footer[self._matched]:
            return self._discard(DiscardReason.FOOTER, byte)
        self._matched += 1
        if self._matched < MARKER_SIZE:
            return PENDING
        frame = Frame(dialect=self._dialect, payload=bytes(self._buffer))
        self.reset()
        return FrameEvent(FrameEventKind.EMIT, frame=frame)

    def feed_bytes(self, data: bytes) -> list[FrameEvent]:
        """Feed a burst of bytes, returning every non-pending event in order."""
        events: list[FrameEvent] = []
        for byte in data:
            event = self.feed(byte)
            if not event.pending:
                events.append(event)
        return events

    def _start_header(self, byte: int) -> None:
        for dialect, header in HEADERS.items():
            if byte == header[0]:
                self._dialect = dialect
                self._matched = 1
                self._state = DecoderState.ACCUMULATING_HEADER
                return

    def _enter_payload(self) -> None:
        self._buffer.clear()
        if self._declared == 0:
            self._enter_footer()
        else:
            self._state = DecoderState.ACCUMULATING_PAYLOAD

    def _enter_footer(self) -> None:
        self._matched = 0
        self._state = DecoderState.VERIFYING_FOOTER

    def _discard(self, reason: DiscardReason, byte: int | None = None) -> FrameEvent:
        logger.debug(
            "Discarding %s frame (%s) after %d payload bytes",
            self._dialect.name if self._dialect is not None else "unknown",
            reason.value,
            len(self._buffer),
        )
        self.reset()
        # The byte that broke the frame may itself start the next header.
        if byte is not None:
            self._start_header(byte)
        return FrameEvent(FrameEventKind.DISCARD, reason=reason)
