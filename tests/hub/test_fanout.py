from __future__ import annotations

import json

from pulselink.hub.connections import ConnectionRegistry
from pulselink.hub.fanout import Broadcaster


class TestConnectionRegistry:
    def test_register_and_unregister(self, connections: ConnectionRegistry, make_conn):
        a, b = make_conn("a"), make_conn("b")
        connections.register(a)
        connections.register(b)

        assert len(connections) == 2
        assert a in connections
        assert b in connections

        assert connections.unregister(a) is True
        assert a not in connections
        assert len(connections) == 1

    def test_unregister_is_idempotent(self, connections: ConnectionRegistry, make_conn):
        a = make_conn("a")
        connections.register(a)
        assert connections.unregister(a) is True
        assert connections.unregister(a) is False
        assert connections.unregister(make_conn("never-registered")) is False

    def test_iteration_is_a_snapshot(self, connections: ConnectionRegistry, make_conn):
        conns = [make_conn(str(i)) for i in range(3)]
        for conn in conns:
            connections.register(conn)

        seen = []
        for conn in connections:
            seen.append(conn)
            connections.unregister(conn)

        assert seen == conns
        assert len(connections) == 0


class TestBroadcast:
    def test_reaches_every_open_connection(self, connections, broadcaster: Broadcaster, make_conn):
        conns = [make_conn(str(i)) for i in range(3)]
        for conn in conns:
            connections.register(conn)

        delivered = broadcaster.broadcast({"type": "deviceUpdate", "deviceId": "d1", "status": "on", "value": True})

        assert delivered == 3
        for conn in conns:
            assert conn.frames == [{"type": "deviceUpdate", "deviceId": "d1", "status": "on", "value": True}]

    def test_skips_closed_connections(self, connections, broadcaster: Broadcaster, make_conn):
        live, closed = make_conn("live"), make_conn("closed", open=False)
        connections.register(live)
        connections.register(closed)

        assert broadcaster.broadcast({"type": "pong"}) == 1
        assert len(live.payloads) == 1
        assert closed.payloads == []

    def test_failure_on_one_connection_does_not_abort(self, connections, broadcaster: Broadcaster, make_conn):
        first, broken, last = make_conn("first"), make_conn("broken", fail=True), make_conn("last")
        for conn in (first, broken, last):
            connections.register(conn)

        assert broadcaster.broadcast({"type": "pong"}) == 2
        assert len(first.payloads) == 1
        assert len(last.payloads) == 1

    def test_unexpected_transport_errors_are_contained(self, connections, broadcaster: Broadcaster, make_conn):
        bad, good = make_conn("bad"), make_conn("good")

        def explode(payload: str) -> None:
            raise OSError("socket gone")

        bad.deliver = explode
        connections.register(bad)
        connections.register(good)

        assert broadcaster.broadcast({"type": "pong"}) == 1
        assert len(good.payloads) == 1

    def test_serialized_once_for_all_connections(self, connections, broadcaster: Broadcaster, make_conn):
        a, b = make_conn("a"), make_conn("b")
        connections.register(a)
        connections.register(b)

        broadcaster.broadcast({"type": "deviceUpdate", "deviceId": "p1-sensor-temp-1", "status": "active", "value": 21.3})

        assert a.payloads[0] is b.payloads[0]
        assert json.loads(a.payloads[0])["value"] == 21.3

    def test_no_connections(self, broadcaster: Broadcaster):
        assert broadcaster.broadcast({"type": "pong"}) == 0


class TestSendTo:
    def test_open_connection(self, broadcaster: Broadcaster, make_conn):
        conn = make_conn()
        assert broadcaster.send_to(conn, {"type": "pong"}) is True
        assert conn.frames == [{"type": "pong"}]

    def test_closed_connection_is_a_noop(self, broadcaster: Broadcaster, make_conn):
        conn = make_conn(open=False)
        assert broadcaster.send_to(conn, {"type": "pong"}) is False
        assert conn.payloads == []

    def test_delivery_failure_returns_false(self, broadcaster: Broadcaster, make_conn):
        conn = make_conn(fail=True)
        assert broadcaster.send_to(conn, {"type": "pong"}) is False
