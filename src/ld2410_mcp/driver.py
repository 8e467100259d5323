"""High-level LD2410 driver.

Single-threaded and poll driven: call :meth:`LD2410.check` from the main
loop to consume telemetry, and the request methods to configure the radar.
Request methods block in a bounded wait for the device's ack and report the
outcome as ``True``/``False``; nothing here raises on device misbehaviour.

Usage::

    conn = SerialConnection("/dev/ttyUSB0")
    conn.open()
    radar = LD2410(conn)
    if radar.begin():
        while True:
            if radar.check() == Response.DATA and radar.presence_detected():
                print(radar.detected_distance())
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable

from .models.device import DEFAULT_DATA_LIFESPAN_MS, DeviceModel
from .models.sensor import SensorData
from .models.values import ValuesArray
from .protocol.commands import (
    MAX_GATE,
    MAX_THRESHOLD,
    MAX_WINDOW,
    Command,
    build_bluetooth,
    build_config_mode,
    build_enhanced_mode,
    build_factory_reset,
    build_per_gate_parameters,
    build_read_firmware,
    build_read_mac,
    build_read_parameters,
    build_read_resolution,
    build_reboot,
    build_set_gate_parameters,
    build_set_max_gate,
    build_set_resolution,
)
from .protocol.correlator import (
    DEFAULT_TIMEOUT_MS,
    CommandCorrelator,
    CommandRejected,
    CommandTimeout,
    Transport,
    monotonic_ms,
)
from .protocol.framing import Dialect, Frame, FrameDecoder
from .protocol.parser import (
    Ack,
    parse_ack,
    parse_config_mode,
    parse_firmware,
    parse_mac,
    parse_parameters,
    parse_resolution,
)
from .protocol.telemetry import decode, merge

logger = logging.getLogger(__name__)


class Response(IntEnum):
    """Outcome of one :meth:`LD2410.check` call."""

    FAIL = 0
    ACK = 1
    DATA = 2


class LD2410:
    """Driver for one HLK-LD2410 radar on a byte transport."""

    def __init__(
        self,
        transport: Transport,
        timeout: float = DEFAULT_TIMEOUT_MS,
        data_lifespan: float = DEFAULT_DATA_LIFESPAN_MS,
        clock: Callable[[], float] | None = None,
        gate_range: tuple[int, int] = (0, MAX_GATE),
    ) -> None:
        self._transport = transport
        self._clock = clock or monotonic_ms
        self._decoder = FrameDecoder()
        self._gate_range = gate_range
        self.model = DeviceModel(data_lifespan=data_lifespan)
        self._correlator = CommandCorrelator(
            transport,
            self._decoder,
            timeout=timeout,
            clock=self._clock,
            on_telemetry=self._process_telemetry,
        )

    @property
    def timeout(self) -> float:
        return self._correlator.timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self._correlator.timeout = value

    # ─── CONTROLS ─────────────────────────────────────────────────────

    def begin(self) -> bool:
        """Probe the radar and load its identity and parameters.

        Succeeds when the radar answers the config-mode probe. Failures of
        the follow-up reads are logged but do not fail the handshake.
        """
        self.model.reset()
        self._decoder.reset()

        if not self.config_mode(True):
            logger.warning("Radar did not answer the config-mode probe")
            return False

        steps = (
            ("firmware", self.request_firmware),
            ("MAC", self.request_mac),
            ("resolution", self.request_resolution),
            ("parameters", self.request_parameters),
        )
        for name, step in steps:
            if not step():
                logger.warning("Could not read %s during handshake", name)

        self.config_mode(False)
        logger.info(
            "LD2410 ready: firmware %s, protocol v%d",
            self.model.firmware or "unknown",
            self.model.version,
        )
        return True

    def end(self) -> None:
        """Leave config mode if it was entered. Safe to call repeatedly."""
        if self.model.is_config:
            self.config_mode(False)

    def check(self) -> Response:
        """Process every byte the transport has buffered right now."""
        waiting = self._transport.in_waiting
        if not waiting:
            return Response.FAIL

        got_data = False
        got_ack = False
        for event in self._decoder.feed_bytes(self._transport.read(waiting)):
            frame = event.frame
            if frame is None:
                continue
            if frame.dialect is Dialect.TELEMETRY:
                got_data = self._process_telemetry(frame) or got_data
                continue
            ack = parse_ack(frame)
            if ack is not None:
                logger.debug("Unsolicited %r", ack)
                got_ack = True

        if got_data:
            return Response.DATA
        if got_ack:
            return Response.ACK
        return Response.FAIL

    # ─── MODE QUERIES ─────────────────────────────────────────────────

    def in_config_mode(self) -> bool:
        return self.model.is_config

    def in_basic_mode(self) -> bool:
        return not self.model.is_enhanced

    def in_enhanced_mode(self) -> bool:
        return self.model.is_enhanced

    # ─── DETECTION QUERIES ────────────────────────────────────────────

    def presence_detected(self) -> bool:
        return self.model.presence_detected(self._clock())

    def moving_target_detected(self) -> bool:
        return self.model.moving_detected(self._clock())

    def stationary_target_detected(self) -> bool:
        return self.model.stationary_detected(self._clock())

    def moving_target_distance(self) -> int:
        """Distance to the moving target in cm, 0 when none."""
        return self.model.moving_distance(self._clock())

    def moving_target_signal(self) -> int:
        """Signal strength of the moving target, 0-100."""
        return self.model.moving_signal(self._clock())

    def stationary_target_distance(self) -> int:
        """Distance to the stationary target in cm, 0 when none."""
        return self.model.stationary_distance(self._clock())

    def stationary_target_signal(self) -> int:
        """Signal strength of the stationary target, 0-100."""
        return self.model.stationary_signal(self._clock())

    def detected_distance(self) -> int:
        """Distance to the nearest detected target in cm, 0 when none."""
        return self.model.detected_distance(self._clock())

    def get_moving_signals(self) -> ValuesArray:
        """Per-gate moving signals; empty unless in enhanced mode."""
        return self.model.moving_signals(self._clock())

    def get_stationary_signals(self) -> ValuesArray:
        """Per-gate stationary signals; empty unless in enhanced mode."""
        return self.model.stationary_signals(self._clock())

    def get_sensor_data(self) -> SensorData:
        return self.model.sensor.copy()

    def status_string(self) -> str:
        return self.model.status_string(self._clock())

    # ─── IDENTITY AND PARAMETER QUERIES ───────────────────────────────

    def get_mac(self) -> bytes:
        return self.model.mac

    def get_mac_str(self) -> str:
        return self.model.mac_str

    def get_firmware(self) -> str:
        return self.model.firmware

    def get_version(self) -> int:
        return self.model.version

    def get_resolution(self) -> int:
        """Gate width in cm: 20, 75, or 0 if unknown."""
        return self.model.resolution_cm

    def get_moving_thresholds(self) -> ValuesArray:
        return self.model.moving_thresholds.copy()

    def get_stationary_thresholds(self) -> ValuesArray:
        return self.model.stationary_thresholds.copy()

    def get_range(self) -> int:
        return self.model.max_range

    def get_range_cm(self) -> int:
        return self.model.range_cm

    def get_no_one_window(self) -> int:
        return self.model.no_one_window

    # ─── REQUESTS ─────────────────────────────────────────────────────

    def config_mode(self, enable: bool = True) -> bool:
        """Enter or leave config mode."""
        return self._send(build_config_mode(enable))

    def enhanced_mode(self, enable: bool = True) -> bool:
        return self._configured(lambda: self._send(build_enhanced_mode(enable)))

    def request_mac(self) -> bool:
        return self._configured(lambda: self._send(build_read_mac()))

    def request_firmware(self) -> bool:
        return self._configured(lambda: self._send(build_read_firmware()))

    def request_resolution(self) -> bool:
        return self._configured(lambda: self._send(build_read_resolution()))

    def set_resolution(self, fine: bool = False) -> bool:
        """Select 20 cm (``fine``) or 75 cm gates. Applies after a reboot."""
        frame = build_set_resolution(fine)
        return self._configured(
            lambda: self._send(frame) and self._send(build_read_resolution())
        )

    def request_parameters(self) -> bool:
        return self._configured(lambda: self._send(build_read_parameters()))

    def set_gate_parameters(
        self,
        gate: int,
        moving_threshold: int = MAX_THRESHOLD,
        stationary_threshold: int = MAX_THRESHOLD,
    ) -> bool:
        """Set the thresholds of one gate, or of every gate when ``gate`` is 0.

        Thresholds above 100 are clamped to 100.
        """
        low, high = self._gate_range
        frame = self._build(
            build_set_gate_parameters,
            gate,
            min(moving_threshold, MAX_THRESHOLD),
            min(stationary_threshold, MAX_THRESHOLD),
            low,
            high,
        )
        if frame is None:
            return False
        return self._configured(
            lambda: self._send(frame) and self._send(build_read_parameters())
        )

    def set_gate_parameters_array(
        self,
        moving_thresholds: ValuesArray,
        stationary_thresholds: ValuesArray,
        no_one_window: int = 5,
    ) -> bool:
        """Write per-gate thresholds for gates 0..N-1 and the no-one window.

        Both arrays must hold the same number of gates. Thresholds above 100
        are clamped to 100.
        """
        if len(moving_thresholds) != len(stationary_thresholds):
            logger.warning(
                "Invalid request: %d moving thresholds but %d stationary",
                len(moving_thresholds),
                len(stationary_thresholds),
            )
            return False
        frames = []
        for gate in range(len(moving_thresholds)):
            frame = self._build(
                build_per_gate_parameters,
                gate,
                min(moving_thresholds[gate], MAX_THRESHOLD),
                min(stationary_thresholds[gate], MAX_THRESHOLD),
            )
            if frame is None:
                return False
            frames.append(frame)
        if not self._within("No-one window", no_one_window, MAX_WINDOW):
            return False

        def action() -> bool:
            return all(self._send(frame) for frame in frames) and self._write_max_gate(
                None, None, no_one_window
            )

        return self._configured(action)

    def set_max_gate(
        self, moving_gate: int, stationary_gate: int, no_one_window: int = 5
    ) -> bool:
        """Set the farthest moving and stationary gates and the no-one window."""
        frame = self._build(build_set_max_gate, moving_gate, stationary_gate, no_one_window)
        if frame is None:
            return False
        return self._configured(
            lambda: self._send(frame) and self._send(build_read_parameters())
        )

    def set_no_one_window(self, no_one_window: int) -> bool:
        """Set how many seconds of absence pass before "no presence" is reported."""
        if not self._within("No-one window", no_one_window, MAX_WINDOW):
            return False
        return self._configured(
            lambda: self._write_max_gate(None, None, no_one_window)
        )

    def set_max_moving_gate(self, moving_gate: int) -> bool:
        if not self._within("Moving gate", moving_gate, MAX_GATE):
            return False
        return self._configured(lambda: self._write_max_gate(moving_gate, None, None))

    def set_max_stationary_gate(self, stationary_gate: int) -> bool:
        if not self._within("Stationary gate", stationary_gate, MAX_GATE):
            return False
        return self._configured(
            lambda: self._write_max_gate(None, stationary_gate, None)
        )

    def request_reset(self) -> bool:
        """Restore factory parameters. Applies after a reboot."""
        return self._configured(lambda: self._send(build_factory_reset()))

    def request_reboot(self) -> bool:
        """Reboot the radar. Config mode ends with the reboot."""
        return self._configured(lambda: self._send(build_reboot()))

    def request_bt_on(self) -> bool:
        return self._configured(lambda: self._send(build_bluetooth(True)))

    def request_bt_off(self) -> bool:
        return self._configured(lambda: self._send(build_bluetooth(False)))

    # ─── INTERNALS ────────────────────────────────────────────────────

    def _configured(self, action: Callable[[], bool]) -> bool:
        """Run ``action`` inside config mode.

        A session the caller opened is left open; otherwise one is opened
        for the action and closed afterwards.
        """
        if self.model.is_config:
            return action()
        if not self.config_mode(True):
            return False
        ok = action()
        if self.model.is_config:
            ok = self.config_mode(False) and ok
        return ok

    def _write_max_gate(
        self,
        moving_gate: int | None,
        stationary_gate: int | None,
        no_one_window: int | None,
    ) -> bool:
        """Send SET_MAX_GATE, filling unspecified values from the device."""
        if self.model.moving_thresholds.n == 0 and not self.request_parameters():
            return False
        model = self.model
        frame = self._build(
            build_set_max_gate,
            model.max_moving_gate if moving_gate is None else moving_gate,
            model.max_stationary_gate if stationary_gate is None else stationary_gate,
            model.no_one_window if no_one_window is None else no_one_window,
        )
        return (
            frame is not None
            and self._send(frame)
            and self._send(build_read_parameters())
        )

    def _send(self, frame: bytes) -> bool:
        try:
            ack = self._correlator.send_frame(frame)
        except CommandTimeout as e:
            logger.warning("%s", e)
            return False
        except CommandRejected as e:
            logger.warning("%s", e)
            return False
        return self._process_ack(ack)

    def _process_ack(self, ack: Ack) -> bool:
        """Apply a successful ack to the model."""
        model = self.model
        command = ack.command

        if command == Command.ENABLE_CONFIG:
            model.is_config = True
            info = parse_config_mode(ack)
            if info is not None:
                model.version = info.version
                model.buffer_size = info.buffer_size
        elif command in (Command.DISABLE_CONFIG, Command.REBOOT):
            model.is_config = False
        elif command == Command.ENABLE_ENHANCED:
            model.is_enhanced = True
        elif command == Command.DISABLE_ENHANCED:
            model.is_enhanced = False
        elif command == Command.READ_FIRMWARE:
            firmware = parse_firmware(ack)
            if firmware is None:
                return self._malformed(ack)
            model.firmware = firmware.firmware
        elif command == Command.READ_MAC:
            mac = parse_mac(ack)
            if mac is None:
                return self._malformed(ack)
            model.mac = mac.mac
        elif command == Command.READ_RESOLUTION:
            resolution = parse_resolution(ack)
            if resolution is None:
                return self._malformed(ack)
            model.fine_resolution = resolution.fine
        elif command == Command.READ_PARAMETERS:
            params = parse_parameters(ack)
            if params is None:
                return self._malformed(ack)
            model.max_range = params.max_range
            model.max_moving_gate = params.max_moving_gate
            model.max_stationary_gate = params.max_stationary_gate
            model.moving_thresholds.assign(params.moving_thresholds)
            model.stationary_thresholds.assign(params.stationary_thresholds)
            model.no_one_window = params.no_one_window
        return True

    def _process_telemetry(self, frame: Frame) -> bool:
        report = decode(frame.payload, self._clock())
        if report is None:
            return False
        self.model.update_sensor(merge(self.model.sensor, report), report.enhanced)
        return True

    @staticmethod
    def _malformed(ack: Ack) -> bool:
        logger.warning("Malformed response %r", ack)
        return False

    @staticmethod
    def _build(builder: Callable[..., bytes], *args: int) -> bytes | None:
        try:
            return builder(*args)
        except ValueError as e:
            logger.warning("Invalid request: %s", e)
            return None

    @staticmethod
    def _within(name: str, value: int, high: int) -> bool:
        if 0 <= value <= high:
            return True
        logger.warning("Invalid request: %s must be 0-%d, got %d", name, high, value)
        return False
