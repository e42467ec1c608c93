#!/usr/bin/env python3
# wsrobot_daemon/debug_robot.py
# Logging-only robot used for bring-up and manual testing

import asyncio
import logging
import math
from typing import Dict

from wsrobot_daemon.robot_base import DigitalChannelMode, RobotBase, RobotLifecycleHooks
from wsrobot_daemon.robot_devices import RobotAccelerometer, RobotGyro
from wsrobot_daemon.sim_device import FieldDirection, SimDevice

logger = logging.getLogger(__name__)


class DebugAccelerometer(SimDevice):
    """SimDevice accelerometer with a robot-code controlled sensitivity"""

    def __init__(self):
        super().__init__("BuiltInAccelerometer")
        self.sensitivity = 2

        self.register_field("accelX", FieldDirection.BIDIR, 0.0)       # <>accelX
        self.register_field("accelY", FieldDirection.BIDIR, 0.0)       # <>accelY
        self.register_field("accelZ", FieldDirection.BIDIR, 0.0)       # <>accelZ
        self.register_field("sensitivity", FieldDirection.OUTPUT_FROM_ROBOT_CODE, 2)  # <sensitivity

    @property
    def x(self):
        return self.get_value("accelX")

    @x.setter
    def x(self, value):
        self.set_value("accelX", value)

    @property
    def y(self):
        return self.get_value("accelY")

    @y.setter
    def y(self, value):
        self.set_value("accelY", value)

    @property
    def z(self):
        return self.get_value("accelZ")

    @z.setter
    def z(self, value):
        self.set_value("accelZ", value)

    def on_set_value(self, field_name, value):
        if field_name == "sensitivity":
            self.sensitivity = value
            logger.info(f"Setting sensitivity: {value}")


class DebugRobot(RobotLifecycleHooks, RobotBase):
    """
    Robot that logs every hardware call.

    Inputs read back as idle values; the sim accelerometer is animated
    every 100 ms once the robot is ready.
    """

    def __init__(self, animate_interval: float = 0.1):
        super().__init__()
        self.animate_interval = animate_interval

        self.sim_accel = DebugAccelerometer()
        self.register_sim_device(self.sim_accel)
        self.register_accelerometer(RobotAccelerometer("BuiltInAccel"))
        self.register_gyro(RobotGyro("ADXRS450", 0))

        self.pwm_values: Dict[int, float] = {}
        self._animate_task = None

    @property
    def descriptor(self) -> str:
        return "Debug Robot"

    async def ready(self):
        if self._animate_task is None:
            self._animate_task = asyncio.create_task(self._animate())

    async def _animate(self):
        delta = 0.1
        accel_val = -2.0
        count = 0

        while True:
            self.sim_accel.x = round(accel_val, 2)
            self.sim_accel.y = math.sin(count) * 2
            self.sim_accel.z = math.cos(count) * 2

            accel_val += delta
            if accel_val > 2:
                accel_val = 2.0
                delta = -delta
            if accel_val < -2:
                accel_val = -2.0
                delta = -delta

            count += 1
            await asyncio.sleep(self.animate_interval)

    def set_digital_channel_mode(self, channel, mode):
        mode_name = "INPUT" if mode == DigitalChannelMode.INPUT else "OUTPUT"
        logger.info(f"SetDIOMode({channel}) => {mode_name}")

    def set_dio_value(self, channel, value):
        logger.info(f"DIO({channel}) => {value}")

    def get_dio_value(self, channel):
        return False

    def set_analog_out_voltage(self, channel, voltage):
        logger.info(f"AnalogOut({channel}) => {voltage}V")

    def get_analog_in_voltage(self, channel):
        return 0.0

    def set_pwm_value(self, channel, value):
        self.pwm_values[channel] = value
        logger.info(f"PWM({channel}) => {value}")

    def get_encoder_count(self, channel):
        return 0

    def reset_encoder(self, channel):
        logger.info(f"Encoder({channel}) RESET")

    def set_encoder_reverse_direction(self, channel, reverse):
        logger.info(f"Encoder({channel}) ReverseDirection({reverse})")

    def on_connected(self):
        logger.info("Robot code connected")

    def on_disconnected(self):
        logger.info("Robot code disconnected")

    def on_enabled(self):
        logger.info("Robot enabled")

    def on_disabled(self):
        logger.info("Robot disabled")

    def on_ds_packet_timeout_occurred(self):
        logger.warning("DS packet timeout")

    def on_ds_packet_timeout_cleared(self):
        logger.info("DS packets restored")
