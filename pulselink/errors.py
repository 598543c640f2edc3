"""
Error taxonomy for the simulator core.

Every error here is contained to the message or connection that caused it;
none of them is allowed to escape a session or the perturbation loop.
"""

from __future__ import annotations


class PulseLinkError(Exception):
    """Base class for simulator errors."""

    code = "error"


class DeviceNotFound(PulseLinkError):
    """A command or update referenced an unknown device id."""

    code = "device_not_found"

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device {device_id} not found")
        self.device_id = device_id


class MalformedMessage(PulseLinkError):
    """Inbound payload is not JSON or matches no known message shape."""

    code = "malformed_message"

    def __init__(self, reason: str = "Invalid message format") -> None:
        super().__init__(reason)
        self.reason = reason


class UnsupportedAction(MalformedMessage):
    code = "unsupported_action"

    def __init__(self, action: object) -> None:
        super().__init__(f"Unsupported action: {action}")
        self.action = action


class DeliveryFailure(PulseLinkError):
    """Handing a frame to one connection's transport failed."""

    code = "delivery_failure"

    def __init__(self, conn_id: str, reason: str) -> None:
        super().__init__(f"Delivery to {conn_id} failed: {reason}")
        self.conn_id = conn_id
        self.reason = reason
