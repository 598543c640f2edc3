from __future__ import annotations

import argparse
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(prog="pulselink-sim", description="Run the PulseLink device simulator")
    parser.add_argument("--host", default=os.environ.get("PULSELINK_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("PULSELINK_PORT", "8080")))
    parser.add_argument("--log-level", default=os.environ.get("PULSELINK_LOG_LEVEL", "info"))
    parser.add_argument("--properties", default=None, help="Path to a properties.json catalog")
    parser.add_argument("--tick-ms", type=int, default=None, help="Sensor perturbation interval")
    parser.add_argument("--no-perturbation", action="store_true", help="Disable simulated sensor drift")
    args = parser.parse_args()

    # The app is built from the environment at import time; flags are passed through it.
    os.environ["PULSELINK_HOST"] = args.host
    os.environ["PULSELINK_PORT"] = str(args.port)
    os.environ["PULSELINK_LOG_LEVEL"] = args.log_level
    if args.properties:
        os.environ["PULSELINK_PROPERTIES_PATH"] = args.properties
    if args.tick_ms is not None:
        os.environ["PULSELINK_TICK_MS"] = str(args.tick_ms)
    if args.no_perturbation:
        os.environ["PULSELINK_PERTURBATION_ENABLED"] = "0"

    # Single worker: device state lives in this process only.
    uvicorn.run(
        "pulselink.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        workers=1,
    )


if __name__ == "__main__":
    main()
