# tests/test_debug_robot.py

import asyncio

from wsrobot_daemon.debug_robot import DebugRobot
from wsrobot_daemon.endpoint import RobotEndpoint
from wsrobot_daemon.messages import MessageType

from conftest import MockWSInterface


def test_registers_devices():
    robot = DebugRobot()

    assert robot.get_sim_device("BuiltInAccelerometer") is robot.sim_accel
    assert robot.get_accelerometer("BuiltInAccel") is not None
    assert robot.get_gyro("ADXRS450", 0) is not None


def test_sensitivity_written_from_robot_code():
    robot = DebugRobot()
    interface = MockWSInterface()
    endpoint = RobotEndpoint(interface, robot)
    endpoint._attach_handlers()
    interface.open()

    interface.receive(MessageType.SIM_DEVICE, "BuiltInAccelerometer", {"<sensitivity": 8})

    assert robot.sim_accel.sensitivity == 8
    assert robot.sim_accel.get_value("sensitivity") == 8


def test_pwm_values_recorded():
    robot = DebugRobot()
    robot.set_pwm_value(2, 127.5)
    assert robot.pwm_values == {2: 127.5}


def test_animation_updates_accelerometer():
    robot = DebugRobot(animate_interval=0.001)

    async def scenario():
        await robot.ready()
        await asyncio.sleep(0.02)
        robot._animate_task.cancel()

    asyncio.run(scenario())

    assert robot.sim_accel.x != 0.0
