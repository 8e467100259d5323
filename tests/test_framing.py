"""Tests for frame building and the byte-stream decoder."""

import random

from ld2410_mcp.protocol.framing import (
    BUFFER_CAPACITY,
    COMMAND_FOOTER,
    COMMAND_HEADER,
    FOOTERS,
    TELEMETRY_FOOTER,
    TELEMETRY_HEADER,
    DecoderState,
    Dialect,
    DiscardReason,
    Frame,
    FrameDecoder,
    FrameEventKind,
    build_frame,
)


def _frames(events):
    return [e.frame for e in events if e.kind is FrameEventKind.EMIT]


def _discards(events):
    return [e.reason for e in events if e.kind is FrameEventKind.DISCARD]


def test_build_command_frame_bytes():
    """Enter-config request as documented by the vendor."""
    frame = build_frame(Dialect.COMMAND, b"\xFF\x00\x01\x00")
    assert frame == bytes.fromhex("FDFCFBFA 0400 FF000100 04030201")


def test_build_telemetry_frame_markers():
    frame = build_frame(Dialect.TELEMETRY, b"\x02\xAA")
    assert frame[:4] == TELEMETRY_HEADER
    assert frame[4:6] == b"\x02\x00"
    assert frame[-4:] == TELEMETRY_FOOTER


def test_decode_single_frame():
    decoder = FrameDecoder()
    events = decoder.feed_bytes(build_frame(Dialect.COMMAND, b"\xFF\x01\x00\x00"))
    assert _frames(events) == [Frame(Dialect.COMMAND, b"\xFF\x01\x00\x00")]
    assert decoder.state is DecoderState.SEEKING_HEADER


def test_decode_byte_by_byte_reports_pending_until_footer():
    decoder = FrameDecoder()
    wire = build_frame(Dialect.TELEMETRY, b"\x01\x02\x03")
    kinds = [decoder.feed(b).kind for b in wire]
    assert kinds[:-1] == [FrameEventKind.PENDING] * (len(wire) - 1)
    assert kinds[-1] is FrameEventKind.EMIT


def test_decode_state_progression():
    decoder = FrameDecoder()
    wire = build_frame(Dialect.COMMAND, b"\xAA")
    decoder.feed(wire[0])
    assert decoder.state is DecoderState.ACCUMULATING_HEADER
    for b in wire[1:4]:
        decoder.feed(b)
    assert decoder.state is DecoderState.READING_LENGTH
    for b in wire[4:6]:
        decoder.feed(b)
    assert decoder.state is DecoderState.ACCUMULATING_PAYLOAD
    decoder.feed(wire[6])
    assert decoder.state is DecoderState.VERIFYING_FOOTER


def test_empty_payload():
    decoder = FrameDecoder()
    events = decoder.feed_bytes(build_frame(Dialect.COMMAND))
    assert _frames(events) == [Frame(Dialect.COMMAND, b"")]


def test_frames_split_across_bursts():
    decoder = FrameDecoder()
    wire = build_frame(Dialect.TELEMETRY, bytes(range(13)))
    assert decoder.feed_bytes(wire[:7]) == []
    events = decoder.feed_bytes(wire[7:])
    assert _frames(events) == [Frame(Dialect.TELEMETRY, bytes(range(13)))]


def test_mismatched_footer_is_discarded():
    """A command header closed by a telemetry footer never yields a frame."""
    decoder = FrameDecoder()
    wire = COMMAND_HEADER + b"\x02\x00" + b"\xFE\x01" + TELEMETRY_FOOTER
    events = decoder.feed_bytes(wire)
    assert _frames(events) == []
    assert _discards(events) == [DiscardReason.FOOTER]


def test_emitted_frames_always_have_matching_footer():
    rng = random.Random(2410)
    decoder = FrameDecoder()
    chunks = []
    for _ in range(200):
        header = rng.choice([COMMAND_HEADER, TELEMETRY_HEADER])
        footer = rng.choice([COMMAND_FOOTER, TELEMETRY_FOOTER])
        payload = bytes(rng.randrange(0xF0) for _ in range(rng.randrange(8)))
        chunks.append(header + len(payload).to_bytes(2, "little") + payload + footer)
    for frame in _frames(decoder.feed_bytes(b"".join(chunks))):
        wire = build_frame(frame.dialect, frame.payload)
        assert wire.endswith(FOOTERS[frame.dialect])
        assert wire in chunks


def test_noise_before_frame_resynchronises():
    decoder = FrameDecoder()
    noise = b"\x00\x13\xFD\x42\xF4\xF3\x99\xFD\xFC\xFB"
    wire = build_frame(Dialect.TELEMETRY, b"\x02\xAA\x01")
    assert _frames(decoder.feed_bytes(noise + wire)) == [
        Frame(Dialect.TELEMETRY, b"\x02\xAA\x01")
    ]


def test_header_starting_one_byte_later_is_found():
    decoder = FrameDecoder()
    wire = b"\xFD" + build_frame(Dialect.COMMAND, b"\xA0\x01\x00\x00")
    events = decoder.feed_bytes(wire)
    assert _discards(events) == [DiscardReason.HEADER]
    assert _frames(events) == [Frame(Dialect.COMMAND, b"\xA0\x01\x00\x00")]


def test_partial_header_of_other_dialect_then_frame():
    decoder = FrameDecoder()
    wire = TELEMETRY_HEADER[:3] + build_frame(Dialect.COMMAND, b"\xFE\x01\x00\x00")
    assert _frames(decoder.feed_bytes(wire)) == [
        Frame(Dialect.COMMAND, b"\xFE\x01\x00\x00")
    ]


def test_random_noise_between_frames():
    rng = random.Random(7)
    decoder = FrameDecoder()
    expected = []
    stream = b""
    for i in range(50):
        # Noise never contains a full header, only fragments of one.
        noise = bytes(rng.randrange(0xF0) for _ in range(rng.randrange(6)))
        fragment = rng.choice([COMMAND_HEADER, TELEMETRY_HEADER])[: rng.randrange(4)]
        dialect = rng.choice(list(Dialect))
        payload = bytes([i]) * rng.randrange(1, 20)
        expected.append(Frame(dialect, payload))
        stream += noise + fragment + build_frame(dialect, payload)
    assert _frames(decoder.feed_bytes(stream)) == expected


def test_overflow_discards_once_and_recovers():
    decoder = FrameDecoder()
    oversize = COMMAND_HEADER + (BUFFER_CAPACITY + 1).to_bytes(2, "little")
    events = decoder.feed_bytes(oversize)
    assert _discards(events) == [DiscardReason.OVERFLOW]
    assert decoder.state is DecoderState.SEEKING_HEADER

    events = decoder.feed_bytes(build_frame(Dialect.COMMAND, b"\xFF\x01\x00\x00"))
    assert _discards(events) == []
    assert _frames(events) == [Frame(Dialect.COMMAND, b"\xFF\x01\x00\x00")]


def test_payload_at_capacity_is_accepted():
    decoder = FrameDecoder()
    payload = bytes(BUFFER_CAPACITY)
    assert _frames(decoder.feed_bytes(build_frame(Dialect.TELEMETRY, payload))) == [
        Frame(Dialect.TELEMETRY, payload)
    ]


def test_reset_drops_partial_frame():
    decoder = FrameDecoder()
    wire = build_frame(Dialect.COMMAND, b"\xFF\x01\x00\x00")
    decoder.feed_bytes(wire[:8])
    decoder.reset()
    assert decoder.state is DecoderState.SEEKING_HEADER
    assert _frames(decoder.feed_bytes(wire[8:])) == []


def test_frame_repr():
    r = repr(Frame(Dialect.COMMAND, b"\xFF\x01"))
    assert "COMMAND" in r
    assert "ff 01" in r


def test_custom_capacity_limits_declared_length():
    decoder = FrameDecoder(capacity=8)
    assert decoder.capacity == 8
    events = decoder.feed_bytes(build_frame(Dialect.TELEMETRY, bytes(9)))
    assert _discards(events) == [DiscardReason.OVERFLOW]
    assert _frames(decoder.feed_bytes(build_frame(Dialect.TELEMETRY, bytes(8)))) == [
        Frame(Dialect.TELEMETRY, bytes(8))
    ]
