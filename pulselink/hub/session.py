"""
Per-connection protocol handling.

The protocol is stateless per message: a connection is open from connect
until the transport closes, and each inbound frame is handled on its own.
Only a successful control command is broadcast; every other message gets at
most a reply to its sender.
"""

from __future__ import annotations

from typing import Optional

from pulselink.devices.models import Device
from pulselink.devices.registry import DeviceRegistry
from pulselink.errors import PulseLinkError
from pulselink.hub.connections import Connection, ConnectionRegistry
from pulselink.hub.fanout import Broadcaster
from pulselink.hub.protocol import (
    Action,
    ControlCommand,
    Ping,
    SnapshotRequest,
    device_update_message,
    devices_message,
    error_message,
    parse_message,
    pong_message,
)
from pulselink.properties import PropertyCatalog
from pulselink.pulselink_logging import get_logger

log = get_logger("PULSELINK")


class SessionHandler:
    def __init__(
        self,
        registry: DeviceRegistry,
        connections: ConnectionRegistry,
        broadcaster: Broadcaster,
        catalog: Optional[PropertyCatalog] = None,
    ):
        self._registry = registry
        self._connections = connections
        self._broadcaster = broadcaster
        self._catalog = catalog

    def on_connect(self, conn: Connection, property_id: Optional[str] = None) -> None:
        """Register the connection and push the initial device snapshot."""
        self._connections.register(conn)
        log.info(
            "PULSELINK.Session.Connected",
            extra={
                "fields": {
                    "conn_id": conn.conn_id,
                    "property_id": property_id,
                    "clients": len(self._connections),
                }
            },
        )
        self._broadcaster.send_to(conn, devices_message(self._snapshot(property_id)))

    def on_disconnect(self, conn: Connection) -> None:
        removed = self._connections.unregister(conn)
        conn.close()
        if removed:
            log.info(
                "PULSELINK.Session.Disconnected",
                extra={"fields": {"conn_id": conn.conn_id, "clients": len(self._connections)}},
            )

    def handle_bytes(self, conn: Connection, data: bytes) -> None:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            # Same reply as any other unparseable frame.
            text = ""
        self.handle_text(conn, text)

    def handle_text(self, conn: Connection, text: str) -> None:
        """Handle one inbound frame; errors are reported to `conn` only."""
        if conn not in self._connections:
            return
        try:
            message = parse_message(text)
            if isinstance(message, ControlCommand):
                self._handle_control(message)
            elif isinstance(message, SnapshotRequest):
                self._broadcaster.send_to(conn, devices_message(self._snapshot(message.property_id)))
            elif isinstance(message, Ping):
                self._broadcaster.send_to(conn, pong_message())
        except PulseLinkError as e:
            log.info(
                "PULSELINK.Session.Rejected",
                extra={"fields": {"conn_id": conn.conn_id, "code": e.code, "error": str(e)}},
            )
            self._broadcaster.send_to(conn, error_message(e))
        except Exception as e:
            log.error(
                "PULSELINK.Session.HandlerError",
                extra={"fields": {"conn_id": conn.conn_id, "error": repr(e)}},
                exc_info=True,
            )
            self._broadcaster.send_to(conn, error_message(PulseLinkError("Internal server error")))

    def _handle_control(self, command: ControlCommand) -> None:
        device = self._registry.require(command.device_id)

        if command.action is Action.TOGGLE:
            value = command.value if command.has_value else not device.value
        else:
            value = command.value

        device = self._registry.apply_update(device.id, value)
        self._log_control(command, device)
        self._broadcaster.broadcast(device_update_message(device))

    def _snapshot(self, property_id: Optional[str]) -> list[Device]:
        if not property_id:
            return self._registry.all_devices()
        if self._catalog is not None and self._catalog.has(property_id):
            return self._registry.ensure_property(property_id)
        return self._registry.list_by_property(property_id)

    @staticmethod
    def _log_control(command: ControlCommand, device: Device) -> None:
        event = "PULSELINK.Device.Toggled" if command.action is Action.TOGGLE else "PULSELINK.Device.Set"
        log.info(
            event,
            extra={
                "fields": {
                    "device_id": device.id,
                    "name": device.name,
                    "status": device.status,
                    "value": device.value,
                    "unit": device.unit,
                }
            },
        )
