# tests/conftest.py
# Shared mocks: an in-memory transport and a call-recording robot

import pytest

from wsrobot_daemon.endpoint import RobotEndpoint
from wsrobot_daemon.messages import MessageType, decode_message, encode_message
from wsrobot_daemon.robot_base import RobotBase, RobotLifecycleHooks
from wsrobot_daemon.ws_interface import WSInterface


class MockWSInterface(WSInterface):
    """Transport without sockets: frames are injected and outbound frames recorded"""

    def __init__(self):
        super().__init__()
        self.sent = []

    def start(self):
        self._ready.set()

    async def stop(self):
        self._ready.clear()

    def open(self):
        self.connected = True
        if self._on_open:
            self._on_open()

    def close(self):
        self.connected = False
        if self._on_close:
            self._on_close()

    def receive(self, msg_type, device, data):
        self._dispatch(encode_message(msg_type, str(device), data))

    def _send(self, msg_type, device, payload):
        if not self.connected:
            return
        self.sent.append(decode_message(encode_message(msg_type, device, payload)))

    def driver_station(self, **fields):
        self.receive(MessageType.DRIVER_STATION, "", {f">{key}": value for key, value in fields.items()})

    def sent_of(self, msg_type):
        return [m for m in self.sent if m.type == msg_type]


class MockRobot(RobotLifecycleHooks, RobotBase):
    """Robot that records every call and returns configurable readings"""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.events = []

        self.dio_inputs = {}
        self.analog_inputs = {}
        self.encoder_counts = {}
        self.encoder_periods = {}
        self.battery = 0.0
        self.ready_called = False

    @property
    def descriptor(self):
        return "MockRobot"

    async def ready(self):
        self.ready_called = True

    def calls_to(self, name):
        return [args for (call, *args) in self.calls if call == name]

    def get_battery_percentage(self):
        return self.battery

    def set_digital_channel_mode(self, channel, mode):
        self.calls.append(("set_digital_channel_mode", channel, mode))

    def set_dio_value(self, channel, value):
        self.calls.append(("set_dio_value", channel, value))

    def get_dio_value(self, channel):
        return self.dio_inputs.get(channel, False)

    def set_analog_out_voltage(self, channel, voltage):
        self.calls.append(("set_analog_out_voltage", channel, voltage))

    def get_analog_in_voltage(self, channel):
        return self.analog_inputs.get(channel, 0.0)

    def set_pwm_value(self, channel, value):
        self.calls.append(("set_pwm_value", channel, value))

    def register_encoder(self, encoder_channel, channel_a, channel_b):
        self.calls.append(("register_encoder", encoder_channel, channel_a, channel_b))

    def get_encoder_count(self, channel):
        return self.encoder_counts.get(channel, 0)

    def get_encoder_period(self, channel):
        return self.encoder_periods.get(channel)

    def reset_encoder(self, channel):
        self.calls.append(("reset_encoder", channel))

    def set_encoder_reverse_direction(self, channel, reverse):
        self.calls.append(("set_encoder_reverse_direction", channel, reverse))

    def on_connected(self):
        self.events.append("connected")

    def on_disconnected(self):
        self.events.append("disconnected")

    def on_enabled(self):
        self.events.append("enabled")

    def on_disabled(self):
        self.events.append("disabled")

    def on_ds_packet_timeout_occurred(self):
        self.events.append("PacketTimeoutOccurred")

    def on_ds_packet_timeout_cleared(self):
        self.events.append("PacketTimeoutCleared")


@pytest.fixture
def robot():
    return MockRobot()


@pytest.fixture
def interface():
    return MockWSInterface()


@pytest.fixture
def endpoint(interface, robot):
    """Endpoint with handlers attached and an open connection, no polling task"""
    ep = RobotEndpoint(interface, robot)
    ep._attach_handlers()
    interface.open()
    return ep

