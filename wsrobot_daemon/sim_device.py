#!/usr/bin/env python3
# wsrobot_daemon/sim_device.py
# Simulated device with a direction-tagged field registry
#
# Field NAME:       friendly identifier, e.g. "accelX"
# Field IDENTIFIER: name prefixed with a direction marker, e.g. "<>accelX".
#                   This is the key used on the wire.

import logging
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

FieldValue = Union[bool, int, float, str]


class FieldDirection(Enum):
    INPUT_TO_ROBOT_CODE = ">"      # Written only by the simulation side
    OUTPUT_FROM_ROBOT_CODE = "<"   # Written only by robot code
    BIDIR = "<>"                   # Written by either side
    UNKNOWN = ""                   # Un-prefixed identifier

    @property
    def prefix(self) -> str:
        return self.value


class FieldNameAndDirection(NamedTuple):
    field: str
    direction: FieldDirection


class DuplicateFieldError(ValueError):
    """Raised when a field name is registered twice on one device"""


class _NotFound:
    def __repr__(self):
        return "NOT_FOUND"

    def __bool__(self):
        return False


# Returned by SimDevice.get_value() for unregistered fields
NOT_FOUND = _NotFound()


def field_with_direction_prefix(field: str, direction: FieldDirection) -> str:
    return direction.prefix + field


def field_name_and_direction(ident: str) -> FieldNameAndDirection:
    """Split a field name or identifier into (field name, direction)"""
    # "<>" must be checked before "<"
    if ident.startswith("<>"):
        return FieldNameAndDirection(ident[2:], FieldDirection.BIDIR)
    if ident.startswith("<"):
        return FieldNameAndDirection(ident[1:], FieldDirection.OUTPUT_FROM_ROBOT_CODE)
    if ident.startswith(">"):
        return FieldNameAndDirection(ident[1:], FieldDirection.INPUT_TO_ROBOT_CODE)
    return FieldNameAndDirection(ident, FieldDirection.UNKNOWN)


class SimDevice:
    """
    Base class for a simulated complex device.

    Holds the authoritative value of every registered field. Subclasses
    register their fields in __init__ and may override on_set_value()
    to react to writes of specific fields.

    Usage:
        device = SimDevice("BuiltInAccel")
        device.register_field("accelX", FieldDirection.BIDIR, 0.0)
        device.set_value("<>accelX", 1.5)
        device.get_value("accelX")  # 1.5
    """

    def __init__(self, name: str, index: Optional[int] = None, channel: Optional[int] = None):
        """
        Args:
            name: Device name as seen by robot code
            index: Device index, or None for a singleton device
            channel: Device channel, or None if the device has no channel
        """
        self._name = name
        self._index = index
        self._channel = channel

        self._field_name_to_ident: Dict[str, str] = {}
        self._fields: Dict[str, FieldValue] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def index(self) -> Optional[int]:
        return self._index

    @property
    def channel(self) -> Optional[int]:
        return self._channel

    def register_field(self, field: str, direction: FieldDirection, default_value: FieldValue):
        """
        Register a field on this device.

        Raises:
            DuplicateFieldError: field was already registered
        """
        if field in self._field_name_to_ident:
            raise DuplicateFieldError(f'Duplicate SimDevice field: "{field}"')

        field_ident = field_with_direction_prefix(field, direction)
        self._field_name_to_ident[field] = field_ident
        self._fields[field_ident] = default_value

    def get_value(self, field_name_or_ident: str):
        """Return the stored value, or NOT_FOUND if the field is not registered"""
        field_ident = self._resolve(field_name_or_ident)
        if field_ident is None:
            return NOT_FOUND
        return self._fields[field_ident]

    def set_value(self, field_name_or_ident: str, value: FieldValue):
        """Store a value. Unregistered fields are ignored."""
        field_ident = self._resolve(field_name_or_ident)
        if field_ident is None:
            logger.debug(f"{self._name}: ignoring write to unknown field '{field_name_or_ident}'")
            return

        self._fields[field_ident] = value
        self.on_set_value(field_name_and_direction(field_ident).field, value)

    def get_field_idents(self) -> List[str]:
        """Direction-prefixed identifiers of all registered fields"""
        return list(self._fields.keys())

    def get_field_direction(self, field_name_or_ident: str) -> Optional[FieldDirection]:
        field_ident = self._resolve(field_name_or_ident)
        if field_ident is None:
            return None
        return field_name_and_direction(field_ident).direction

    def on_set_value(self, field_name: str, value: FieldValue):
        """Hook for subclasses, called after a field value is stored"""

    def _resolve(self, field_name_or_ident: str) -> Optional[str]:
        field = field_name_and_direction(field_name_or_ident).field
        return self._field_name_to_ident.get(field)

    def __repr__(self):
        return f"SimDevice(name={self._name!r}, index={self._index!r}, channel={self._channel!r})"
