#!/usr/bin/env python3
# wsrobot_daemon/endpoint.py
# Robot endpoint: synchronizes WPILib channel/device state with a RobotBase

import asyncio
import logging
from typing import Any, Dict, Optional

from wsrobot_daemon import messages as msg
from wsrobot_daemon.math_util import map_value
from wsrobot_daemon.messages import MessageType, device_ident
from wsrobot_daemon.resilience import Backoff
from wsrobot_daemon.robot_base import DigitalChannelMode, RobotBase, call_hook
from wsrobot_daemon.sim_device import FieldDirection, field_name_and_direction
from wsrobot_daemon.state import (
    ChannelTables,
    DioChannel,
    DriverStationState,
    EncoderChannel,
    PwmChannel,
)
from wsrobot_daemon.watchdog import DSPacketWatchdog
from wsrobot_daemon.ws_interface import (
    DEFAULT_PORT,
    DEFAULT_URI,
    WSClientInterface,
    WSInterface,
    WSServerInterface,
)

logger = logging.getLogger(__name__)

# PWM domain exposed to robots
PWM_MIN = 0
PWM_MAX = 255
PWM_NEUTRAL = map_value(0, -1, 1, PWM_MIN, PWM_MAX)

NOMINAL_BATTERY_VOLTAGE = 12.0

DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_DS_PACKET_TIMEOUT = 0.25

# Fields the simulation side may originate
_OUTBOUND_DIRECTIONS = (FieldDirection.BIDIR, FieldDirection.INPUT_TO_ROBOT_CODE)


class RobotEndpoint:
    """
    Bridges a WPILib WebSocket transport to a RobotBase implementation.

    Inbound:  protocol messages -> per-category handlers -> robot setters
    Outbound: fixed-period poll of robot getters -> update messages
    Lifecycle: open/close, enable/disable and mode change reset or
               freeze specific channel classes

    A channel entry exists only after its init message has been seen since
    the last disconnect; anything else addressed to it is dropped.

    Everything runs on one event loop, so no locking is needed. Robot
    exceptions are not caught here.

    Usage:
        endpoint = RobotEndpoint.create_server_endpoint(robot)
        await endpoint.start()
        ...
        await endpoint.stop()
    """

    # ================================
    # Construction
    # ================================

    @classmethod
    def create_server_endpoint(cls, robot: RobotBase, host: str = "localhost",
                               port: int = DEFAULT_PORT, uri: str = DEFAULT_URI,
                               **kwargs) -> "RobotEndpoint":
        """Endpoint that listens for robot code to connect"""
        return cls(WSServerInterface(host, port, uri), robot, **kwargs)

    @classmethod
    def create_client_endpoint(cls, robot: RobotBase, host: str = "localhost",
                               port: int = DEFAULT_PORT, uri: str = DEFAULT_URI,
                               backoff: Optional[Backoff] = None,
                               **kwargs) -> "RobotEndpoint":
        """Endpoint that connects out to a robot-code server"""
        return cls(WSClientInterface(host, port, uri, backoff=backoff), robot, **kwargs)

    @classmethod
    def from_config(cls, robot: RobotBase, config) -> "RobotEndpoint":
        """Build an endpoint from a config.Config-like object"""
        role = str(config.WS_ROLE).lower()
        kwargs = {
            "poll_interval": config.POLL_INTERVAL_MS / 1000.0,
            "ds_packet_timeout": config.DS_PACKET_TIMEOUT_MS / 1000.0,
        }

        if role == "server":
            return cls.create_server_endpoint(
                robot, config.WS_HOST, config.WS_PORT, config.WS_URI, **kwargs
            )
        if role == "client":
            backoff = Backoff(config.RECONNECT_INITIAL_DELAY, config.RECONNECT_MAX_DELAY)
            return cls.create_client_endpoint(
                robot, config.WS_HOST, config.WS_PORT, config.WS_URI,
                backoff=backoff, **kwargs
            )
        raise ValueError(f"Unknown WS_ROLE '{config.WS_ROLE}' (expected 'server' or 'client')")

    def __init__(self, interface: WSInterface, robot: RobotBase,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 ds_packet_timeout: float = DEFAULT_DS_PACKET_TIMEOUT):
        self._interface = interface
        self._robot = robot
        self.poll_interval = poll_interval

        self._tables = ChannelTables()
        self._driver_station = DriverStationState()
        self._ds_watchdog = DSPacketWatchdog(
            ds_packet_timeout,
            on_timeout=lambda: call_hook(self._robot, "on_ds_packet_timeout_occurred"),
            on_cleared=lambda: call_hook(self._robot, "on_ds_packet_timeout_cleared"),
        )

        self._poll_task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def interface(self) -> WSInterface:
        return self._interface

    @property
    def robot(self) -> RobotBase:
        return self._robot

    @property
    def tables(self) -> ChannelTables:
        return self._tables

    @property
    def driver_station(self) -> DriverStationState:
        return self._driver_station

    # ================================
    # Service Control
    # ================================

    async def start(self):
        """Start transport, wait for it and the robot, then wire events and polling"""
        if self._started:
            raise RuntimeError("RobotEndpoint already started")
        self._started = True

        try:
            self._interface.start()
            await self._interface.wait_ready()
            logger.info("✅ WebSocket interface ready")

            await self._robot.ready()
            logger.info(f"✅ Robot ({self._robot.descriptor}) is ready")
        except Exception:
            self._started = False
            await self._interface.stop()
            raise

        self._hookup_events()

    def _hookup_events(self):
        self._attach_handlers()

        self._poll_task = asyncio.create_task(self._poll_loop())
        self._poll_task.add_done_callback(self._on_poll_task_done)

    def _attach_handlers(self):
        self._interface.attach(
            {
                MessageType.DIO: self._handle_dio_event,
                MessageType.ANALOG_IN: self._handle_analog_in_event,
                MessageType.ANALOG_OUT: self._handle_analog_out_event,
                MessageType.PWM: self._handle_pwm_event,
                MessageType.ENCODER: self._handle_encoder_event,
                MessageType.DRIVER_STATION: self._handle_driver_station_event,
                MessageType.SIM_DEVICE: self._handle_sim_device_event,
                MessageType.ACCEL: self._handle_accel_event,
                MessageType.GYRO: self._handle_gyro_event,
            },
            on_open=self._handle_open_connection,
            on_close=self._handle_close_connection,
        )

    async def stop(self):
        """Cancel polling, detach handlers and stop the transport"""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"❌ Polling task had failed: {e}")
            self._poll_task = None

        # detach() drops the close callback, so a live session is reset here
        if self._interface.connected:
            self._handle_close_connection()

        self._interface.detach()
        await self._interface.stop()
        self._started = False
        logger.info("🛑 Robot endpoint stopped")

    async def _poll_loop(self):
        while True:
            self.poll()
            await asyncio.sleep(self.poll_interval)

    def _on_poll_task_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("❌ Polling stopped by robot error", exc_info=error)

    def get_status(self) -> Dict:
        return {
            "robot": self._robot.descriptor,
            "started": self._started,
            "connected": self._interface.connected,
            "channels": self._tables.get_counts(),
            "driver_station": {
                "enabled": self._driver_station.enabled,
                "autonomous": self._driver_station.autonomous,
                "test": self._driver_station.test,
            },
            "ds_watchdog": self._ds_watchdog.get_report(),
            "transport": dict(self._interface.stats),
        }

    # ================================
    # Lifecycle
    # ================================

    def _handle_open_connection(self):
        logger.info("🔌 Connection opened")
        call_hook(self._robot, "on_connected")

    def _handle_close_connection(self):
        logger.info("🔌 Connection closed, resetting channel state")

        # Outputs go safe before their entries disappear
        self._stop_pwms()
        self._reset_encoders()
        self._tables.clear()

        self._driver_station = DriverStationState()
        self._ds_watchdog.reset()

        call_hook(self._robot, "on_disconnected")

    def _stop_pwms(self):
        """Drive every PWM to neutral, keeping the last commanded value"""
        for channel, pwm in self._tables.pwm.items():
            self._robot.set_pwm_value(channel, pwm.neutral)

    def _resume_pwms(self):
        for channel, pwm in self._tables.pwm.items():
            self._robot.set_pwm_value(channel, pwm.value)

    def _neutralize_pwms(self):
        """Drive every PWM to neutral and forget the commanded value"""
        for channel, pwm in self._tables.pwm.items():
            pwm.value = pwm.neutral
            self._robot.set_pwm_value(channel, pwm.neutral)

    def _reset_encoders(self):
        for channel in self._tables.encoder:
            self._robot.reset_encoder(channel)

    def _handle_driver_station_event(self, payload: Dict[str, Any]):
        self._ds_watchdog.feed()
        ds = self._driver_station

        enabled = payload.get(msg.DS_ENABLED)
        if enabled is not None and bool(enabled) != ds.enabled:
            ds.enabled = bool(enabled)
            if ds.enabled:
                logger.info("▶️ Driver station enabled")
                self._resume_pwms()
                call_hook(self._robot, "on_enabled")
            else:
                logger.info("⏸️ Driver station disabled")
                self._stop_pwms()
                call_hook(self._robot, "on_disabled")

        mode_changed = False
        autonomous = payload.get(msg.DS_AUTONOMOUS)
        if autonomous is not None and bool(autonomous) != ds.autonomous:
            ds.autonomous = bool(autonomous)
            mode_changed = True

        test = payload.get(msg.DS_TEST)
        if test is not None and bool(test) != ds.test:
            ds.test = bool(test)
            mode_changed = True

        if mode_changed:
            logger.info(f"🔄 Driver station mode changed (autonomous={ds.autonomous}, test={ds.test})")
            self._neutralize_pwms()

    # ================================
    # Inbound: channels
    # ================================

    @staticmethod
    def _check_channel_init(channel: int, payload: Dict[str, Any], table: Dict, factory) -> bool:
        """Create the entry on init; report whether the channel is live"""
        if channel not in table and payload.get(msg.INIT):
            table[channel] = factory()
        return channel in table

    def _handle_dio_event(self, channel: int, payload: Dict[str, Any]):
        if not self._check_channel_init(channel, payload, self._tables.dio, DioChannel):
            return

        dio = self._tables.dio[channel]

        is_input = payload.get(msg.DIO_INPUT)
        if is_input is not None:
            dio.mode = DigitalChannelMode.INPUT if is_input else DigitalChannelMode.OUTPUT
            self._robot.set_digital_channel_mode(channel, dio.mode)

        value = payload.get(msg.DIO_VALUE)
        if value is not None and dio.mode == DigitalChannelMode.OUTPUT:
            dio.value = bool(value)
            self._robot.set_dio_value(channel, dio.value)

    def _handle_analog_in_event(self, channel: int, payload: Dict[str, Any]):
        self._check_channel_init(channel, payload, self._tables.analog_in, float)

    def _handle_analog_out_event(self, channel: int, payload: Dict[str, Any]):
        if not self._check_channel_init(channel, payload, self._tables.analog_out, float):
            return

        voltage = payload.get(msg.AO_VOLTAGE)
        if voltage is not None:
            self._tables.analog_out[channel] = voltage
            self._robot.set_analog_out_voltage(channel, voltage)

    def _handle_pwm_event(self, channel: int, payload: Dict[str, Any]):
        live = self._check_channel_init(
            channel, payload, self._tables.pwm,
            lambda: PwmChannel(neutral=PWM_NEUTRAL, value=PWM_NEUTRAL),
        )
        if not live or not self._driver_station.enabled:
            return

        pwm = self._tables.pwm[channel]

        speed = payload.get(msg.PWM_SPEED)
        if speed is not None:
            # Speed is [-1, 1]
            pwm.value = map_value(speed, -1, 1, PWM_MIN, PWM_MAX)
            self._robot.set_pwm_value(channel, pwm.value)

        position = payload.get(msg.PWM_POSITION)
        if position is not None:
            # Position is [0, 1]
            pwm.value = map_value(position, 0, 1, PWM_MIN, PWM_MAX)
            self._robot.set_pwm_value(channel, pwm.value)

        raw = payload.get(msg.PWM_RAW)
        if raw is not None:
            pwm.value = raw
            self._robot.set_pwm_value(channel, pwm.value)

    def _handle_encoder_event(self, channel: int, payload: Dict[str, Any]):
        if channel not in self._tables.encoder and payload.get(msg.INIT) and (
                payload.get(msg.ENCODER_CHANNEL_A) is None or payload.get(msg.ENCODER_CHANNEL_B) is None):
            logger.debug(f"Ignoring Encoder({channel}) init without quadrature channels")
            return

        live = self._check_channel_init(
            channel, payload, self._tables.encoder,
            lambda: EncoderChannel(
                channel_a=payload.get(msg.ENCODER_CHANNEL_A),
                channel_b=payload.get(msg.ENCODER_CHANNEL_B),
            ),
        )
        if not live:
            return

        encoder = self._tables.encoder[channel]

        if payload.get(msg.INIT):
            self._robot.register_encoder(channel, encoder.channel_a, encoder.channel_b)

        if payload.get(msg.ENCODER_RESET):
            self._robot.reset_encoder(channel)
            encoder.count = 0

        reverse = payload.get(msg.ENCODER_REVERSE_DIRECTION)
        if reverse is not None:
            self._robot.set_encoder_reverse_direction(channel, bool(reverse))

    # ================================
    # Inbound: devices
    # ================================

    def _handle_sim_device_event(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        device = self._robot.get_sim_device(name, channel)
        if device is None:
            logger.debug(f"Ignoring message for unknown SimDevice '{device_ident(name, channel)}'")
            return

        for key, value in payload.items():
            device.set_value(key, value)

    def _handle_accel_event(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        accel = self._robot.get_accelerometer(name, channel)
        if accel is None:
            return

        ident = device_ident(name, channel)
        if ident not in self._tables.accelerometers:
            if not payload.get(msg.INIT):
                return
            self._tables.accelerometers[ident] = {axis: 0.0 for axis in accel.AXES}

        device_range = payload.get(msg.DEVICE_RANGE)
        if device_range is not None:
            accel.range = device_range

    def _handle_gyro_event(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        gyro = self._robot.get_gyro(name, channel)
        if gyro is None:
            return

        ident = device_ident(name, channel)
        if ident not in self._tables.gyros:
            if not payload.get(msg.INIT):
                return
            self._tables.gyros[ident] = {axis: 0.0 for axis in gyro.AXES}

        device_range = payload.get(msg.DEVICE_RANGE)
        if device_range is not None:
            gyro.range = device_range

    # ================================
    # Outbound polling
    # ================================

    def poll(self):
        """One polling tick: read the robot and emit updates"""
        self._ds_watchdog.check()

        if not self._interface.connected:
            return

        self._read_digital_inputs()
        self._read_analog_inputs()
        self._read_encoders()
        self._read_battery()
        self._read_sim_devices()
        self._read_accelerometers()
        self._read_gyros()

    def _read_digital_inputs(self):
        for channel, dio in self._tables.dio.items():
            if dio.mode != DigitalChannelMode.INPUT:
                continue
            dio.value = self._robot.get_dio_value(channel)
            self._interface.dio_update(channel, {msg.DIO_VALUE: dio.value})

    def _read_analog_inputs(self):
        for channel in self._tables.analog_in:
            voltage = self._robot.get_analog_in_voltage(channel)
            self._interface.analog_in_update(channel, {msg.AI_VOLTAGE: voltage})
            self._tables.analog_in[channel] = voltage

    def _read_encoders(self):
        for channel, encoder in self._tables.encoder.items():
            encoder.count = self._robot.get_encoder_count(channel)
            update = {msg.ENCODER_COUNT: encoder.count}

            encoder.period = self._robot.get_encoder_period(channel)
            if encoder.period is not None:
                update[msg.ENCODER_PERIOD] = encoder.period

            self._interface.encoder_update(channel, update)

    def _read_battery(self):
        percentage = self._robot.get_battery_percentage()
        if percentage > 0.0:
            self._interface.roborio_update({
                msg.ROBORIO_VIN_VOLTAGE: percentage * NOMINAL_BATTERY_VOLTAGE
            })

    def _read_sim_devices(self):
        """
        Send changed SimDevice fields.

        Every field is compared against the shadow cache. New or changed
        values are sent only for fields the simulation side may originate
        (BIDIR and INPUT_TO_ROBOT_CODE). One message per device.
        """
        for device in self._robot.get_all_sim_devices():
            ident = device_ident(device.name, device.channel)
            shadow = self._tables.sim_device_fields.setdefault(ident, {})
            updates = {}

            for field_ident in device.get_field_idents():
                value = device.get_value(field_ident)
                if field_ident in shadow and shadow[field_ident] == value:
                    continue

                shadow[field_ident] = value
                if field_name_and_direction(field_ident).direction in _OUTBOUND_DIRECTIONS:
                    updates[field_ident] = value

            if updates:
                self._interface.sim_device_update(device.name, device.channel, updates)

    def _read_accelerometers(self):
        for accel in self._robot.get_all_accelerometers():
            ident = device_ident(accel.name, accel.channel)
            cache = self._tables.accelerometers.get(ident)
            if cache is None:
                continue

            updates = self._diff_axes(accel.read_axes(), cache, msg.ACCEL_AXIS_KEYS)
            if updates:
                self._interface.accel_update(accel.name, accel.channel, updates)

    def _read_gyros(self):
        for gyro in self._robot.get_all_gyros():
            ident = device_ident(gyro.name, gyro.index)
            cache = self._tables.gyros.get(ident)
            if cache is None:
                continue

            updates = self._diff_axes(gyro.read_axes(), cache, msg.GYRO_AXIS_KEYS)
            if updates:
                self._interface.gyro_update(gyro.name, gyro.index, updates)

    @staticmethod
    def _diff_axes(current: Dict[str, float], cache: Dict[str, float], wire_keys: Dict[str, str]) -> Dict[str, float]:
        updates = {}
        for axis, value in current.items():
            if cache.get(axis) != value:
                cache[axis] = value
                updates[wire_keys[axis]] = value
        return updates
