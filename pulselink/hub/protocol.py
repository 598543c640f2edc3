"""
Wire protocol between viewers and the simulator.

Inbound frames are JSON objects parsed into ControlCommand, SnapshotRequest
or Ping. Outbound frames are plain dicts built by the helpers below and
serialized by the broadcaster.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union

from pulselink.devices.models import Device, DeviceValue
from pulselink.errors import MalformedMessage, PulseLinkError, UnsupportedAction


class Action(str, Enum):
    TOGGLE = "toggle"
    SET = "set"


@dataclass(frozen=True, slots=True)
class ControlCommand:
    device_id: str
    action: Action
    value: DeviceValue = None
    has_value: bool = False


@dataclass(frozen=True, slots=True)
class SnapshotRequest:
    property_id: str


@dataclass(frozen=True, slots=True)
class Ping:
    pass


InboundMessage = Union[ControlCommand, SnapshotRequest, Ping]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _safe_json(text: str) -> dict[str, Any] | None:
    try:
        obj = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None
    return obj


def _valid_value(value: Any) -> bool:
    # bool is an int subclass, so this also admits true/false.
    if isinstance(value, int):
        return True
    # 1e400 parses to inf; non-finite floats have no JSON encoding.
    return isinstance(value, float) and math.isfinite(value)


def parse_message(text: str) -> InboundMessage:
    """
    Parse one inbound text frame.

    Shapes are tried in order: control command (deviceId + action), scoped
    snapshot request, keepalive.

    Raises:
        MalformedMessage: Not a JSON object, or no shape matches
        UnsupportedAction: A control command with an unknown action
    """
    payload = _safe_json(text)
    if payload is None:
        raise MalformedMessage()

    if payload.get("deviceId") and payload.get("action"):
        return _parse_control(payload)

    msg_type = payload.get("type")
    if msg_type == "getDevices" and payload.get("propertyId"):
        property_id = payload["propertyId"]
        if not isinstance(property_id, str):
            raise MalformedMessage()
        return SnapshotRequest(property_id=property_id)

    if msg_type == "ping":
        return Ping()

    raise MalformedMessage()


def _parse_control(payload: dict[str, Any]) -> ControlCommand:
    device_id = payload["deviceId"]
    if not isinstance(device_id, str):
        raise MalformedMessage()

    try:
        action = Action(payload["action"])
    except ValueError:
        raise UnsupportedAction(payload["action"]) from None

    has_value = "value" in payload
    value = payload.get("value")
    if has_value and not _valid_value(value):
        raise MalformedMessage("Value must be a boolean or a number")
    if action is Action.SET and not has_value:
        raise MalformedMessage("Action 'set' requires a value")

    return ControlCommand(device_id=device_id, action=action, value=value, has_value=has_value)


def devices_message(devices: Iterable[Device]) -> dict[str, Any]:
    return {"type": "devices", "devices": [device.to_wire() for device in devices]}


def device_update_message(device: Device) -> dict[str, Any]:
    return {
        "type": "deviceUpdate",
        "deviceId": device.id,
        "status": device.status,
        "value": device.value,
    }


def error_message(error: PulseLinkError) -> dict[str, Any]:
    return {"type": "error", "message": str(error), "code": error.code}


def pong_message() -> dict[str, Any]:
    return {"type": "pong"}
