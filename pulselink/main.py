from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket

from pulselink.config import SimulatorConfig, load_config
from pulselink.devices.perturbation import PerturbationLoop
from pulselink.devices.registry import DeviceRegistry
from pulselink.http_api.routes import build_api_router
from pulselink.hub.connections import ConnectionRegistry, WebSocketConnection
from pulselink.hub.fanout import Broadcaster
from pulselink.hub.session import SessionHandler
from pulselink.properties import PropertyCatalog
from pulselink.pulselink_logging import get_logger

log = get_logger("PULSELINK")


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    state.registry.initialize(state.catalog.property_ids())
    log.info(
        "PULSELINK.Devices.Initialized",
        extra={
            "fields": {
                "devices": state.registry.device_count,
                "properties": len(state.registry.property_ids),
            }
        },
    )

    perturbation: PerturbationLoop | None = state.perturbation
    if perturbation is not None:
        perturbation.start()
    log.info(
        "PULSELINK.Server.Started",
        extra={"fields": {"perturbation": perturbation is not None, "port": state.config.port}},
    )

    yield

    log.info("PULSELINK.Server.Stopping")
    if perturbation is not None:
        perturbation.stop()
        await perturbation.wait_stopped()

    for conn in state.connections:
        conn.close()
    log.info("PULSELINK.Server.Stopped")


def create_app(
    config: SimulatorConfig | None = None,
    *,
    catalog: PropertyCatalog | None = None,
) -> FastAPI:
    config = config or load_config()
    catalog = catalog if catalog is not None else PropertyCatalog.load(config.properties_path)

    registry = DeviceRegistry()
    connections = ConnectionRegistry()
    broadcaster = Broadcaster(connections)
    session = SessionHandler(registry, connections, broadcaster, catalog)
    perturbation = None
    if config.perturbation_enabled:
        perturbation = PerturbationLoop(
            registry,
            broadcaster,
            interval_s=config.tick_s,
            motion_probability=config.motion_probability,
        )

    app = FastAPI(title="PulseLink Simulator", lifespan=lifespan)
    app.state.config = config
    app.state.catalog = catalog
    app.state.registry = registry
    app.state.connections = connections
    app.state.broadcaster = broadcaster
    app.state.session = session
    app.state.perturbation = perturbation

    app.include_router(
        build_api_router(
            registry=registry, catalog=catalog, connections=connections, perturbation=perturbation
        )
    )
    app.add_api_websocket_route("/", ws_devices)
    app.add_api_websocket_route("/ws", ws_devices)
    return app


async def ws_devices(ws: WebSocket) -> None:
    state = ws.app.state
    session: SessionHandler = state.session

    await ws.accept()
    conn = WebSocketConnection(
        ws,
        queue_size=state.config.send_queue_size,
        on_close=state.connections.unregister,
    )
    conn.start()
    session.on_connect(conn, ws.query_params.get("propertyId") or None)

    try:
        while True:
            message: dict[str, Any] = await ws.receive()
            if message.get("type") == "websocket.disconnect":
                return

            text = message.get("text")
            data = message.get("bytes")
            if text is not None:
                session.handle_text(conn, text)
            elif data is not None:
                session.handle_bytes(conn, data)
    except Exception as e:
        log.warning(
            "PULSELINK.Session.TransportError",
            extra={"fields": {"conn_id": conn.conn_id, "error": repr(e)}},
        )
    finally:
        session.on_disconnect(conn)
        await conn.wait_closed()


app = create_app()
