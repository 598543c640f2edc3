from __future__ import annotations

import json
from typing import Any, Callable

import pytest

from pulselink.devices.registry import DeviceRegistry
from pulselink.errors import DeliveryFailure
from pulselink.hub.connections import Connection, ConnectionRegistry
from pulselink.hub.fanout import Broadcaster


class FakeConnection(Connection):
    """In-memory connection that records every delivered frame."""

    def __init__(self, conn_id: str | None = None, *, open: bool = True, fail: bool = False):
        super().__init__(conn_id)
        self.open = open
        self.fail = fail
        self.payloads: list[str] = []
        self.close_calls = 0

    @property
    def is_open(self) -> bool:
        return self.open

    def deliver(self, payload: str) -> None:
        if self.fail:
            raise DeliveryFailure(self.conn_id, "boom")
        self.payloads.append(payload)

    def close(self) -> None:
        self.close_calls += 1
        self.open = False

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(p) for p in self.payloads]

    def frames_of(self, msg_type: str) -> list[dict[str, Any]]:
        return [f for f in self.frames if f.get("type") == msg_type]


@pytest.fixture
def make_conn() -> Callable[..., FakeConnection]:
    def _make(conn_id: str | None = None, **kwargs: Any) -> FakeConnection:
        return FakeConnection(conn_id, **kwargs)

    return _make


@pytest.fixture
def registry() -> DeviceRegistry:
    reg = DeviceRegistry()
    reg.initialize(["p1", "p2"])
    return reg


@pytest.fixture
def connections() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def broadcaster(connections: ConnectionRegistry) -> Broadcaster:
    return Broadcaster(connections)
