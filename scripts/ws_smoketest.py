from __future__ import annotations

import argparse
import asyncio
import json

import websockets


async def _recv_json(ws, timeout: float) -> dict:
    raw = await asyncio.wait_for(ws.recv(), timeout=timeout)
    return json.loads(raw)


async def main() -> int:
    p = argparse.ArgumentParser(description="PulseLink WebSocket smoke test")
    p.add_argument("url", nargs="?", default="ws://localhost:8080", help="ws://host:port")
    p.add_argument("--property", default="p1", help="Property id to scope the snapshot to")
    p.add_argument("--device", default=None, help="Device to toggle (default: <property>-gate-main)")
    p.add_argument("--timeout", type=float, default=5.0)
    args = p.parse_args()

    device_id = args.device or f"{args.property}-gate-main"
    url = f"{args.url.rstrip('/')}/?propertyId={args.property}"

    async with websockets.connect(url) as ws:
        snapshot = await _recv_json(ws, args.timeout)
        if snapshot.get("type") != "devices":
            raise SystemExit(f"Expected devices snapshot, got {snapshot!r}")
        print(f"snapshot: {len(snapshot['devices'])} devices for {args.property}")

        await ws.send(json.dumps({"type": "ping"}))
        await ws.send(json.dumps({"deviceId": device_id, "action": "toggle"}))

        # Sensor updates from the perturbation loop can arrive in between.
        seen_pong = False
        seen_update = False
        while not (seen_pong and seen_update):
            msg = await _recv_json(ws, args.timeout)
            if msg.get("type") == "pong":
                seen_pong = True
            elif msg.get("type") == "deviceUpdate" and msg.get("deviceId") == device_id:
                seen_update = True
                print(f"update: {device_id} -> {msg['status']} ({msg['value']})")
            elif msg.get("type") == "error":
                raise SystemExit(f"server error: {msg.get('message')}")

    print("ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
