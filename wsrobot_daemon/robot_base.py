#!/usr/bin/env python3
# wsrobot_daemon/robot_base.py
# Hardware abstraction driven by the robot endpoint

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from wsrobot_daemon.messages import device_ident
from wsrobot_daemon.robot_devices import RobotAccelerometer, RobotGyro
from wsrobot_daemon.sim_device import SimDevice

logger = logging.getLogger(__name__)


class DigitalChannelMode(Enum):
    INPUT = "input"
    OUTPUT = "output"
    UNCONFIGURED = "unconfigured"


class RobotBase(ABC):
    """
    Base class for a physical or virtual robot.

    Subclasses implement the abstract channel operations. All methods are
    called synchronously from the endpoint's event loop and must not block.

    PWM values are in the [0, 255] domain; 127.5 is neutral.

    Optional lifecycle notifications live in RobotLifecycleHooks; mix it in
    only if the robot needs them.
    """

    def __init__(self):
        self._sim_devices: Dict[str, SimDevice] = {}
        self._accelerometers: Dict[str, RobotAccelerometer] = {}
        self._gyros: Dict[str, RobotGyro] = {}

    # ================================
    # Identity / readiness
    # ================================

    @property
    @abstractmethod
    def descriptor(self) -> str:
        """Human readable robot description"""

    @abstractmethod
    async def ready(self):
        """Return once the robot has finished its own setup"""

    # ================================
    # System
    # ================================

    def get_battery_percentage(self) -> float:
        """Battery level in [0, 1]; 0 means no battery sensor"""
        return 0.0

    # ================================
    # Digital I/O
    # ================================

    @abstractmethod
    def set_digital_channel_mode(self, channel: int, mode: DigitalChannelMode):
        pass

    @abstractmethod
    def set_dio_value(self, channel: int, value: bool):
        pass

    @abstractmethod
    def get_dio_value(self, channel: int) -> bool:
        pass

    # ================================
    # Analog I/O
    # ================================

    @abstractmethod
    def set_analog_out_voltage(self, channel: int, voltage: float):
        pass

    @abstractmethod
    def get_analog_in_voltage(self, channel: int) -> float:
        pass

    # ================================
    # PWM
    # ================================

    @abstractmethod
    def set_pwm_value(self, channel: int, value: float):
        pass

    # ================================
    # Encoders
    # ================================

    def register_encoder(self, encoder_channel: int, channel_a: int, channel_b: int):
        """
        Called when robot code initializes an encoder.

        Args:
            encoder_channel: Virtual encoder channel
            channel_a: Digital input used for quadrature channel A
            channel_b: Digital input used for quadrature channel B
        """

    @abstractmethod
    def get_encoder_count(self, channel: int) -> int:
        pass

    def get_encoder_period(self, channel: int) -> Optional[float]:
        """Encoder period in seconds, or None if not measured"""
        return None

    @abstractmethod
    def reset_encoder(self, channel: int):
        pass

    @abstractmethod
    def set_encoder_reverse_direction(self, channel: int, reverse: bool):
        pass

    # ================================
    # Device registries
    # ================================

    def register_sim_device(self, device: SimDevice):
        ident = device_ident(device.name, device.channel)
        self._sim_devices[ident] = device
        logger.info(f"{self.descriptor}: registered SimDevice '{ident}'")

    def get_sim_device(self, name: str, channel: Optional[int] = None) -> Optional[SimDevice]:
        return self._sim_devices.get(device_ident(name, channel))

    def get_all_sim_devices(self) -> List[SimDevice]:
        return list(self._sim_devices.values())

    def register_accelerometer(self, accel: RobotAccelerometer):
        self._accelerometers[device_ident(accel.name, accel.channel)] = accel

    def get_accelerometer(self, name: str, channel: Optional[int] = None) -> Optional[RobotAccelerometer]:
        return self._accelerometers.get(device_ident(name, channel))

    def get_all_accelerometers(self) -> List[RobotAccelerometer]:
        return list(self._accelerometers.values())

    def register_gyro(self, gyro: RobotGyro):
        self._gyros[device_ident(gyro.name, gyro.index)] = gyro

    def get_gyro(self, name: str, index: Optional[int] = None) -> Optional[RobotGyro]:
        return self._gyros.get(device_ident(name, index))

    def get_all_gyros(self) -> List[RobotGyro]:
        return list(self._gyros.values())


class RobotLifecycleHooks:
    """Optional notifications. Every hook defaults to a no-op."""

    def on_connected(self):
        pass

    def on_disconnected(self):
        pass

    def on_enabled(self):
        pass

    def on_disabled(self):
        pass

    def on_ds_packet_timeout_occurred(self):
        pass

    def on_ds_packet_timeout_cleared(self):
        pass


def call_hook(robot, hook_name: str, *args):
    """Invoke an optional lifecycle hook if the robot provides one"""
    hook = getattr(robot, hook_name, None)
    if callable(hook):
        hook(*args)
