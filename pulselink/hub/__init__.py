"""
WebSocket hub: connection tracking, fanout, and the viewer protocol.
"""

from pulselink.hub.connections import Connection, ConnectionRegistry, WebSocketConnection
from pulselink.hub.fanout import Broadcaster
from pulselink.hub.session import SessionHandler

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "WebSocketConnection",
    "Broadcaster",
    "SessionHandler",
]
