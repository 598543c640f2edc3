"""
Data models for simulated devices.

A device's status is a projection of its value for switches and doors; the
projection lives on DeviceKind so every writer derives it the same way.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

DeviceID = str
PropertyID = str
DeviceValue = Union[bool, int, float, None]


class DeviceKind(str, Enum):
    SWITCH = "switch"
    SENSOR = "sensor"
    DOOR = "door"

    def derive_status(self, value: DeviceValue, current: str) -> str:
        """
        Status implied by value for this kind.

        Switches map to on/off and doors to open/closed by truthiness of the
        value. Sensors have no projection and keep `current`.
        """
        labels = _STATUS_LABELS.get(self)
        if labels is None:
            return current
        on_label, off_label = labels
        return on_label if value else off_label


_STATUS_LABELS: Dict[DeviceKind, tuple] = {
    DeviceKind.SWITCH: ("on", "off"),
    DeviceKind.DOOR: ("open", "closed"),
}


@dataclass
class Device:
    """
    Canonical device record.

    Instances are owned by DeviceRegistry and shared by reference; only
    `value` and `status` change after creation.
    """

    id: DeviceID
    name: str
    kind: DeviceKind
    status: str
    value: DeviceValue
    property_id: PropertyID
    unit: Optional[str] = None  # e.g. "°C", "%"
    room: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Device as sent to clients; unit and room are omitted when unset."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
            "status": self.status,
            "value": self.value,
        }
        if self.unit is not None:
            payload["unit"] = self.unit
        if self.room is not None:
            payload["room"] = self.room
        payload["propertyId"] = self.property_id
        return payload
