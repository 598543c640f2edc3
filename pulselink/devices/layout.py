"""
Fixed device layout generated for every property.

Each property gets the same rooms and device kinds; only the id prefix
differs.
"""

from dataclasses import dataclass
from typing import List, Optional

from pulselink.devices.models import Device, DeviceKind, DeviceValue, PropertyID


@dataclass(frozen=True)
class DeviceTemplate:
    suffix: str
    name: str
    kind: DeviceKind
    value: DeviceValue
    room: str
    unit: Optional[str] = None
    status: str = "active"  # only used for sensors

    def build(self, property_id: PropertyID) -> Device:
        return Device(
            id=f"{property_id}-{self.suffix}",
            name=self.name,
            kind=self.kind,
            status=self.kind.derive_status(self.value, self.status),
            value=self.value,
            property_id=property_id,
            unit=self.unit,
            room=self.room,
        )


DEVICE_LAYOUT: tuple = (
    # Gate
    DeviceTemplate("gate-main", "Main Gate", DeviceKind.DOOR, False, "Gate"),
    DeviceTemplate("gate-light-1", "Gate Light", DeviceKind.SWITCH, False, "Gate"),
    DeviceTemplate("gate-sensor-1", "Gate Motion Sensor", DeviceKind.SENSOR, False, "Gate"),
    # Garage
    DeviceTemplate("garage-light-1", "Garage Light", DeviceKind.SWITCH, False, "Garage"),
    DeviceTemplate("garage-door-main", "Garage Door", DeviceKind.DOOR, False, "Garage"),
    # Living Room
    DeviceTemplate("living-lamp-1", "Living Room Main Light", DeviceKind.SWITCH, False, "Living Room"),
    DeviceTemplate("living-fan-1", "Living Room Ceiling Fan", DeviceKind.SWITCH, False, "Living Room"),
    # Bedroom
    DeviceTemplate("bedroom-lamp-1", "Bedroom Light", DeviceKind.SWITCH, False, "Bedroom"),
    DeviceTemplate("bedroom-fan-1", "Bedroom Fan", DeviceKind.SWITCH, False, "Bedroom"),
    # Kitchen
    DeviceTemplate("kitchen-light-1", "Kitchen Light", DeviceKind.SWITCH, False, "Kitchen"),
    # Outdoor
    DeviceTemplate("outdoor-light-1", "Outdoor Light", DeviceKind.SWITCH, False, "Outdoor"),
    DeviceTemplate("sensor-temp-1", "Temperature Sensor", DeviceKind.SENSOR, 22, "Outdoor", unit="°C"),
    DeviceTemplate("sensor-humidity-1", "Humidity Sensor", DeviceKind.SENSOR, 45, "Outdoor", unit="%"),
)


def build_property_devices(property_id: PropertyID) -> List[Device]:
    """Fresh device records for one property, in layout order."""
    return [template.build(property_id) for template in DEVICE_LAYOUT]
