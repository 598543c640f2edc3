"""
Client connections and the registry of live ones.

A Connection adapts one transport to a non-blocking `deliver()`; the
WebSocket implementation queues frames and writes them from its own task so
a slow viewer never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, Optional
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from pulselink.errors import DeliveryFailure
from pulselink.pulselink_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("PULSELINK")


class Connection(ABC):
    """One viewer session's transport handle."""

    def __init__(self, conn_id: Optional[str] = None):
        self.conn_id = conn_id or uuid4().hex

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def deliver(self, payload: str) -> None:
        """
        Hand one serialized frame to the transport without blocking.

        Raises:
            DeliveryFailure: If the transport refuses the frame
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Mark the connection closed. Must be idempotent."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.conn_id})"


class WebSocketConnection(Connection):
    def __init__(
        self,
        ws: WebSocket,
        *,
        queue_size: int = 64,
        on_close: Callable[[Connection], object] | None = None,
        conn_id: Optional[str] = None,
    ):
        super().__init__(conn_id)
        self._ws = ws
        # Bounded so a stalled viewer cannot grow memory without limit.
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._on_close = on_close
        self._closed = False
        self._writer: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Spawn the writer task; must be called from the running loop."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    def deliver(self, payload: str) -> None:
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            raise DeliveryFailure(self.conn_id, "send queue full") from None

    async def _write_loop(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self._ws.send_text(payload)
            except Exception as e:
                log.warning(
                    "PULSELINK.Connection.WriteFailed",
                    extra={"fields": {"conn_id": self.conn_id, "error": repr(e)}},
                )
                self.close()
                return

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        writer = self._writer
        if writer is not None and not writer.done() and writer is not asyncio.current_task():
            writer.cancel()
        if self._on_close is not None:
            self._on_close(self)

    async def wait_closed(self) -> None:
        """Wait for the writer task to finish after close()."""
        writer = self._writer
        if writer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await writer


class ConnectionRegistry:
    """Set of currently registered connections, keyed by conn_id."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, conn: Connection) -> None:
        self._connections[conn.conn_id] = conn
        logger.debug(f"Registered connection {conn.conn_id} ({len(self._connections)} total)")

    def unregister(self, conn: Connection) -> bool:
        """Remove a connection; returns False if it was not registered."""
        removed = self._connections.pop(conn.conn_id, None)
        if removed is None:
            return False
        logger.debug(f"Unregistered connection {conn.conn_id} ({len(self._connections)} remaining)")
        return True

    def __contains__(self, conn: object) -> bool:
        return isinstance(conn, Connection) and self._connections.get(conn.conn_id) is conn

    def __iter__(self) -> Iterator[Connection]:
        # Snapshot, so callbacks may unregister while a broadcast iterates.
        return iter(list(self._connections.values()))

    def __len__(self) -> int:
        return len(self._connections)
