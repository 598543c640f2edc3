"""
Authoritative in-memory device registry.

Owns every Device record. Other components hold device ids and go through
the registry to read or mutate state.
"""

import logging
from typing import Dict, Iterable, List, Optional

from pulselink.devices.layout import build_property_devices
from pulselink.devices.models import Device, DeviceID, DeviceValue, PropertyID
from pulselink.errors import DeviceNotFound

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    Canonical device collection with property and id indexes.

    Indexes:
    - By device id (O(1) lookup)
    - By property id (O(1) → O(n devices), layout order)

    Reads return the shared records; there is no copy-on-read.
    """

    def __init__(self):
        self._devices: Dict[DeviceID, Device] = {}
        self._by_property: Dict[PropertyID, List[DeviceID]] = {}

    def initialize(self, property_ids: Iterable[PropertyID]) -> None:
        """
        Rebuild the whole collection from the device layout.

        Any previous collection is dropped. Calling this twice with the same
        ids yields the same content.

        Args:
            property_ids: Properties to generate devices for; empty ids are skipped
        """
        self._devices.clear()
        self._by_property.clear()

        property_count = 0
        for property_id in property_ids:
            if not property_id or property_id in self._by_property:
                continue
            self._index_property(property_id)
            property_count += 1

        logger.info(f"Initialized {len(self._devices)} devices across {property_count} properties")

    def ensure_property(self, property_id: PropertyID) -> List[Device]:
        """
        Build a property's devices on first request.

        Returns the property's devices, existing or newly created.
        """
        if property_id not in self._by_property:
            self._index_property(property_id)
            logger.info(f"Generated devices for new property {property_id}")
        return self.list_by_property(property_id)

    def _index_property(self, property_id: PropertyID) -> None:
        """Internal: Generate and index one property's devices."""
        ids: List[DeviceID] = []
        for device in build_property_devices(property_id):
            self._devices[device.id] = device
            ids.append(device.id)
        self._by_property[property_id] = ids

    def get_by_id(self, device_id: DeviceID) -> Optional[Device]:
        return self._devices.get(device_id)

    def require(self, device_id: DeviceID) -> Device:
        device = self._devices.get(device_id)
        if device is None:
            raise DeviceNotFound(device_id)
        return device

    def list_by_property(self, property_id: PropertyID) -> List[Device]:
        ids = self._by_property.get(property_id, [])
        return [self._devices[did] for did in ids]

    def list_by_room(self, property_id: PropertyID, room: str) -> List[Device]:
        """Devices of one property located in `room` (case-insensitive)."""
        normalized_room = room.lower().strip()
        return [
            device for device in self.list_by_property(property_id)
            if device.room is not None and device.room.lower() == normalized_room
        ]

    def all_devices(self) -> List[Device]:
        return list(self._devices.values())

    def apply_update(
        self,
        device_id: DeviceID,
        value: DeviceValue,
        status: Optional[str] = None,
    ) -> Device:
        """
        Merge a new value (and optionally status) into a device in place.

        For switches and doors the status is always re-derived from the value;
        a caller-supplied status only applies to sensors.

        Args:
            device_id: Target device
            value: New value
            status: Optional new status (sensors only)

        Returns:
            The updated canonical record

        Raises:
            DeviceNotFound: If no device has this id (nothing is mutated)
        """
        device = self.require(device_id)

        device.value = value
        if status is not None:
            device.status = status
        device.status = device.kind.derive_status(device.value, device.status)
        return device

    @property
    def device_count(self) -> int:
        return len(self._devices)

    @property
    def property_ids(self) -> List[PropertyID]:
        return list(self._by_property.keys())
