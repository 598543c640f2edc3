"""
Simulated devices.

Device records, the per-property layout, the registry that owns them and the
sensor perturbation loop.
"""

from pulselink.devices.models import Device, DeviceKind, DeviceValue
from pulselink.devices.registry import DeviceRegistry

__all__ = [
    "Device",
    "DeviceKind",
    "DeviceValue",
    "DeviceRegistry",
]
