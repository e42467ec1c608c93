# wsrobot_daemon/state.py
# Per-channel and per-device state owned by the robot endpoint
#
# Entries exist only for channels whose init message has been seen since
# the last disconnect. Accessed from the event loop only, so no locking.

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from wsrobot_daemon.robot_base import DigitalChannelMode


@dataclass
class DioChannel:
    mode: DigitalChannelMode = DigitalChannelMode.UNCONFIGURED
    value: bool = False


@dataclass
class PwmChannel:
    neutral: float
    value: float


@dataclass
class EncoderChannel:
    channel_a: int
    channel_b: int
    count: int = 0
    period: Optional[float] = None


@dataclass
class DriverStationState:
    enabled: bool = False
    autonomous: bool = False
    test: bool = False


@dataclass
class ChannelTables:
    dio: Dict[int, DioChannel] = field(default_factory=dict)
    analog_in: Dict[int, float] = field(default_factory=dict)
    analog_out: Dict[int, float] = field(default_factory=dict)
    pwm: Dict[int, PwmChannel] = field(default_factory=dict)
    encoder: Dict[int, EncoderChannel] = field(default_factory=dict)

    # Shadow caches for change detection, keyed by device ident
    sim_device_fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    accelerometers: Dict[str, Dict[str, float]] = field(default_factory=dict)
    gyros: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def clear(self):
        self.dio.clear()
        self.analog_in.clear()
        self.analog_out.clear()
        self.pwm.clear()
        self.encoder.clear()
        self.sim_device_fields.clear()
        self.accelerometers.clear()
        self.gyros.clear()

    def get_counts(self) -> Dict[str, int]:
        return {
            "dio": len(self.dio),
            "analog_in": len(self.analog_in),
            "analog_out": len(self.analog_out),
            "pwm": len(self.pwm),
            "encoder": len(self.encoder),
            "sim_devices": len(self.sim_device_fields),
            "accelerometers": len(self.accelerometers),
            "gyros": len(self.gyros),
        }
