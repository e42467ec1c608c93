# tests/test_sim_device.py

import pytest

from wsrobot_daemon.sim_device import (
    NOT_FOUND,
    DuplicateFieldError,
    FieldDirection,
    SimDevice,
    field_name_and_direction,
    field_with_direction_prefix,
)


@pytest.mark.parametrize("ident, field, direction", [
    ("<>accelX", "accelX", FieldDirection.BIDIR),
    (">fieldIn", "fieldIn", FieldDirection.INPUT_TO_ROBOT_CODE),
    ("<fieldOutputOnly", "fieldOutputOnly", FieldDirection.OUTPUT_FROM_ROBOT_CODE),
    ("plainField", "plainField", FieldDirection.UNKNOWN),
])
def test_field_name_and_direction(ident, field, direction):
    result = field_name_and_direction(ident)
    assert result.field == field
    assert result.direction == direction


def test_prefix_matches_direction():
    assert field_with_direction_prefix("f", FieldDirection.BIDIR) == "<>f"
    assert field_with_direction_prefix("f", FieldDirection.INPUT_TO_ROBOT_CODE) == ">f"
    assert field_with_direction_prefix("f", FieldDirection.OUTPUT_FROM_ROBOT_CODE) == "<f"
    assert field_with_direction_prefix("f", FieldDirection.UNKNOWN) == "f"


def test_name_index_and_channel():
    device = SimDevice("deviceName", 2)
    assert device.name == "deviceName"
    assert device.index == 2
    assert device.channel is None

    singleton = SimDevice("nochDevice")
    assert singleton.index is None

    with_channel = SimDevice("deviceIdxCh", 1, 6)
    assert with_channel.index == 1
    assert with_channel.channel == 6


def test_lists_registered_field_identifiers():
    device = SimDevice("device")
    device.register_field("bidirField", FieldDirection.BIDIR, False)
    device.register_field("inField", FieldDirection.INPUT_TO_ROBOT_CODE, 1.0)
    device.register_field("outField", FieldDirection.OUTPUT_FROM_ROBOT_CODE, 2.0)

    assert sorted(device.get_field_idents()) == ["<>bidirField", "<outField", ">inField"]


def test_duplicate_field_is_rejected():
    device = SimDevice("device")
    device.register_field("field1", FieldDirection.BIDIR, 0)

    with pytest.raises(DuplicateFieldError):
        device.register_field("field1", FieldDirection.INPUT_TO_ROBOT_CODE, 0)

    # Original registration is untouched
    assert device.get_field_direction("field1") == FieldDirection.BIDIR
    assert device.get_field_idents() == ["<>field1"]


def test_set_then_get_by_name_or_identifier():
    device = SimDevice("device")
    device.register_field("field1", FieldDirection.BIDIR, False)
    device.register_field("field2", FieldDirection.INPUT_TO_ROBOT_CODE, 1.0)

    assert device.get_value("field1") is False
    assert device.get_value("field2") == 1.0

    device.set_value("field1", True)
    assert device.get_value("field1") is True
    assert device.get_value("<>field1") is True

    device.set_value("<>field1", False)
    assert device.get_value("field1") is False

    device.set_value(">field2", 3.0)
    assert device.get_value("field2") == 3.0


def test_prefix_on_lookup_is_ignored():
    device = SimDevice("device")
    device.register_field("speed", FieldDirection.BIDIR, 0)

    # Any prefix resolves to the registered field
    device.set_value("<speed", 4)
    assert device.get_value(">speed") == 4


def test_unregistered_field():
    device = SimDevice("device")
    assert device.get_value("field1") is NOT_FOUND

    device.set_value("field1", 5)
    assert device.get_value("field1") is NOT_FOUND
    assert device.get_field_idents() == []

    device.register_field("field1", FieldDirection.BIDIR, 1.0)
    assert device.get_value("field1") == 1.0


def test_set_value_hook_runs_after_store():
    seen = []

    class Sensor(SimDevice):
        def __init__(self):
            super().__init__("sensor")
            self.sensitivity = 2
            self.register_field("sensitivity", FieldDirection.OUTPUT_FROM_ROBOT_CODE, 2)

        def on_set_value(self, field_name, value):
            seen.append((field_name, self.get_value(field_name)))
            if field_name == "sensitivity":
                self.sensitivity = value

    sensor = Sensor()
    sensor.set_value("<sensitivity", 8)
    sensor.set_value("unknown", 1)

    assert seen == [("sensitivity", 8)]
    assert sensor.sensitivity == 8
    assert sensor.get_value("sensitivity") == 8
