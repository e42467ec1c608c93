#!/usr/bin/env python3
# wsrobot_daemon/robot_devices.py
# Fixed-shape inertial devices: accelerometer and gyro

from typing import Dict, Optional


class RobotAccelerometer:
    """
    Three-axis accelerometer owned by a robot implementation.

    The robot updates accel_x/y/z; the range is set from the
    protocol side only. Override on_set_range() to react to it.
    """

    AXES = ("accel_x", "accel_y", "accel_z")

    def __init__(self, name: str, channel: Optional[int] = None):
        self.name = name
        self.channel = channel

        self.accel_x = 0.0
        self.accel_y = 0.0
        self.accel_z = 0.0

        self._range = 2

    @property
    def range(self):
        return self._range

    @range.setter
    def range(self, value):
        self._range = value
        self.on_set_range(value)

    def on_set_range(self, value):
        pass

    def read_axes(self) -> Dict[str, float]:
        return {axis: getattr(self, axis) for axis in self.AXES}


class RobotGyro:
    """
    Three-axis gyro reporting rates and accumulated angles.

    Gyros are identified by name and optional index.
    """

    AXES = ("rate_x", "rate_y", "rate_z", "angle_x", "angle_y", "angle_z")

    def __init__(self, name: str, index: Optional[int] = None):
        self.name = name
        self.index = index

        self.rate_x = 0.0
        self.rate_y = 0.0
        self.rate_z = 0.0
        self.angle_x = 0.0
        self.angle_y = 0.0
        self.angle_z = 0.0

        self._range = 1000

    # Gyros share the (name, channel) addressing of the other devices
    @property
    def channel(self) -> Optional[int]:
        return self.index

    @property
    def range(self):
        return self._range

    @range.setter
    def range(self, value):
        self._range = value
        self.on_set_range(value)

    def on_set_range(self, value):
        pass

    def read_axes(self) -> Dict[str, float]:
        return {axis: getattr(self, axis) for axis in self.AXES}
