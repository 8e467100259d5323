"""Protocol layer: framing, command builders, ack parsing, telemetry and ack matching."""

from .framing import Dialect, Frame, FrameDecoder, build_frame
from .commands import Command, build_command
from .correlator import CommandCorrelator, CommandRejected, CommandTimeout, LD2410Error
