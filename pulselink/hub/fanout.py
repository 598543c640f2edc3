"""
Fanout of protocol messages to connected viewers.
"""

from __future__ import annotations

import json
from typing import Any

from pulselink.errors import DeliveryFailure
from pulselink.hub.connections import Connection, ConnectionRegistry
from pulselink.pulselink_logging import get_logger

log = get_logger("PULSELINK")


class Broadcaster:
    """
    Serializes a message once and hands it to open connections.

    Closed connections are skipped silently. A DeliveryFailure on one
    connection is logged and the remaining connections still receive the
    frame. Nothing is retried.
    """

    def __init__(self, connections: ConnectionRegistry):
        self._connections = connections

    def broadcast(self, message: dict[str, Any]) -> int:
        """Send to every open connection; returns how many accepted the frame."""
        payload = json.dumps(message, ensure_ascii=False)
        delivered = 0
        for conn in self._connections:
            if self._deliver(conn, payload, message):
                delivered += 1
        return delivered

    def send_to(self, conn: Connection, message: dict[str, Any]) -> bool:
        payload = json.dumps(message, ensure_ascii=False)
        return self._deliver(conn, payload, message)

    def _deliver(self, conn: Connection, payload: str, message: dict[str, Any]) -> bool:
        if not conn.is_open:
            return False
        try:
            conn.deliver(payload)
        except Exception as e:
            log.warning(
                "PULSELINK.Fanout.DeliveryFailed",
                extra={
                    "fields": {
                        "conn_id": conn.conn_id,
                        "type": message.get("type"),
                        "error": e.reason if isinstance(e, DeliveryFailure) else repr(e),
                    }
                },
            )
            return False
        return True
