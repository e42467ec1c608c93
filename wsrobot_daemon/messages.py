#!/usr/bin/env python3
# wsrobot_daemon/messages.py
# WPILib simulation WebSocket message format
#
# Frame: {"type": "<tag>", "device": "<id>", "data": {<prefixed key>: value}}

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    DIO = "DIO"
    ANALOG_IN = "AI"
    ANALOG_OUT = "AO"
    PWM = "PWM"
    ENCODER = "Encoder"
    DRIVER_STATION = "DriverStation"
    SIM_DEVICE = "SimDevice"
    ACCEL = "Accel"
    GYRO = "Gyro"
    ROBORIO = "RoboRIO"


# Device id is a channel index
CHANNEL_TYPES = frozenset({
    MessageType.DIO,
    MessageType.ANALOG_IN,
    MessageType.ANALOG_OUT,
    MessageType.PWM,
    MessageType.ENCODER,
})

# Device id is "name" or "name[channel]"
DEVICE_TYPES = frozenset({
    MessageType.SIM_DEVICE,
    MessageType.ACCEL,
    MessageType.GYRO,
})


# ================================
# Payload keys
# ================================

INIT = "<init"

DIO_INPUT = "<input"
DIO_VALUE = "<>value"

AI_VOLTAGE = ">voltage"
AO_VOLTAGE = "<voltage"

PWM_SPEED = "<speed"
PWM_POSITION = "<position"
PWM_RAW = "<raw"

ENCODER_CHANNEL_A = "<channel_a"
ENCODER_CHANNEL_B = "<channel_b"
ENCODER_RESET = "<reset"
ENCODER_REVERSE_DIRECTION = "<reverse_direction"
ENCODER_COUNT = ">count"
ENCODER_PERIOD = ">period"

DS_ENABLED = ">enabled"
DS_AUTONOMOUS = ">autonomous"
DS_TEST = ">test"

ROBORIO_VIN_VOLTAGE = ">vin_voltage"

DEVICE_RANGE = "<range"

# Device attribute -> wire key
ACCEL_AXIS_KEYS = {
    "accel_x": ">x",
    "accel_y": ">y",
    "accel_z": ">z",
}

GYRO_AXIS_KEYS = {
    "rate_x": ">rate_x",
    "rate_y": ">rate_y",
    "rate_z": ">rate_z",
    "angle_x": ">angle_x",
    "angle_y": ">angle_y",
    "angle_z": ">angle_z",
}


@dataclass
class WSMessage:
    type: MessageType
    device: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


_DEVICE_IDENT_RE = re.compile(r"^(?P<name>.*?)\[(?P<channel>-?\d+)\]$")


def device_ident(name: str, channel: Optional[int] = None) -> str:
    """Build the wire id of a device: "name" or "name[channel]" """
    if channel is None:
        return name
    return f"{name}[{channel}]"


def parse_device_ident(ident: str) -> Tuple[str, Optional[int]]:
    """Inverse of device_ident()"""
    match = _DEVICE_IDENT_RE.match(ident)
    if match is None:
        return ident, None
    return match.group("name"), int(match.group("channel"))


def parse_channel(device: str) -> Optional[int]:
    """Channel index of a channel-category device id, or None if invalid"""
    try:
        return int(device)
    except (TypeError, ValueError):
        return None


def encode_message(msg_type: MessageType, device: str, data: Dict[str, Any]) -> str:
    return json.dumps({
        "type": MessageType(msg_type).value,
        "device": device,
        "data": data,
    })


def decode_message(raw) -> Optional[WSMessage]:
    """
    Parse one frame.

    Returns:
        WSMessage, or None if the frame is not a well-formed message
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", "ignore")

    try:
        frame = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.debug(f"Dropping non-JSON frame: {raw!r:.80}")
        return None

    if not isinstance(frame, dict):
        logger.debug(f"Dropping non-object frame: {raw!r:.80}")
        return None

    try:
        msg_type = MessageType(frame.get("type"))
    except ValueError:
        logger.debug(f"Dropping frame with unknown type: {frame.get('type')!r}")
        return None

    data = frame.get("data", {})
    if not isinstance(data, dict):
        logger.debug(f"Dropping {msg_type.value} frame with non-object data")
        return None

    device = frame.get("device", "")
    return WSMessage(type=msg_type, device="" if device is None else str(device), data=data)
