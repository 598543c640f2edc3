from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from pulselink.devices.perturbation import PerturbationLoop
from pulselink.devices.registry import DeviceRegistry
from pulselink.hub.connections import ConnectionRegistry
from pulselink.properties import PropertyCatalog


def cameras_for_property(property_id: str) -> list[dict[str, Any]]:
    layout = [
        ("camera-1", "Front Entrance", "Main Gate", "online"),
        ("camera-2", "Living Room", "Main Floor", "online"),
        ("camera-3", "Backyard", "Outdoor", "online"),
        ("camera-4", "Garage", "Ground Floor", "offline"),
    ]
    return [
        {
            "id": f"{property_id}-{suffix}",
            "name": name,
            "location": location,
            "status": status,
            "propertyId": property_id,
        }
        for suffix, name, location, status in layout
    ]


def automations_for_property(property_id: str) -> list[dict[str, Any]]:
    layout = [
        ("automation-morning", "Morning Routine", "Wake up lights, temperature, and security", False),
        ("automation-away", "Away Mode", "Security enabled, lights off, temperature optimized", False),
        ("automation-evening", "Evening Routine", "Dimmed lights, comfortable temperature", True),
        ("automation-night", "Night Mode", "All lights off, security armed, temperature lowered", False),
    ]
    return [
        {
            "id": f"{property_id}-{suffix}",
            "name": name,
            "description": description,
            "active": active,
            "propertyId": property_id,
        }
        for suffix, name, description, active in layout
    ]


def build_api_router(
    *,
    registry: DeviceRegistry,
    catalog: PropertyCatalog,
    connections: ConnectionRegistry,
    perturbation: Optional[PerturbationLoop] = None,
) -> APIRouter:
    """Read-only REST routes the mobile app uses next to the WebSocket feed."""

    router = APIRouter(prefix="/api")

    @router.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "message": "PulseLink API is running",
            "devices": registry.device_count,
            "connections": len(connections),
            "perturbation": perturbation.health() if perturbation is not None else {"status": "disabled"},
        }

    @router.get("/properties")
    async def list_properties() -> dict[str, Any]:
        return {"properties": catalog.properties()}

    @router.get("/properties/{property_id}")
    async def get_property(property_id: str) -> dict[str, Any]:
        prop = catalog.get(property_id)
        if prop is None:
            raise HTTPException(status_code=404, detail="Property not found")
        return {"property": prop}

    @router.get("/properties/{property_id}/devices")
    async def get_property_devices(property_id: str, room: Optional[str] = None) -> dict[str, Any]:
        if catalog.has(property_id):
            registry.ensure_property(property_id)
        if room:
            devices = registry.list_by_room(property_id, room)
        else:
            devices = registry.list_by_property(property_id)
        return {"devices": [device.to_wire() for device in devices]}

    @router.get("/properties/{property_id}/cameras")
    async def get_property_cameras(property_id: str) -> dict[str, Any]:
        return {"cameras": cameras_for_property(property_id)}

    @router.get("/properties/{property_id}/automations")
    async def get_property_automations(property_id: str) -> dict[str, Any]:
        return {"automations": automations_for_property(property_id)}

    return router
