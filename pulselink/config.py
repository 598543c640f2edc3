from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROPERTIES_PATH = Path(__file__).resolve().parent / "data" / "properties.json"


@dataclass(frozen=True, slots=True)
class SimulatorConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"
    properties_path: Path = DEFAULT_PROPERTIES_PATH
    perturbation_enabled: bool = True
    tick_s: float = 3.0
    motion_probability: float = 0.3
    send_queue_size: int = 64


def _truthy_env(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def load_config() -> SimulatorConfig:
    properties_path = os.environ.get("PULSELINK_PROPERTIES_PATH", "").strip()
    tick_ms = _int_env("PULSELINK_TICK_MS", 3000)
    motion_probability = _float_env("PULSELINK_MOTION_PROBABILITY", 0.3)
    if not 0.0 <= motion_probability <= 1.0:
        motion_probability = 0.3

    return SimulatorConfig(
        host=os.environ.get("PULSELINK_HOST", "0.0.0.0"),
        port=_int_env("PULSELINK_PORT", 8080),
        log_level=os.environ.get("PULSELINK_LOG_LEVEL", "info").strip().lower() or "info",
        properties_path=Path(properties_path) if properties_path else DEFAULT_PROPERTIES_PATH,
        perturbation_enabled=_truthy_env("PULSELINK_PERTURBATION_ENABLED", "1"),
        tick_s=max(tick_ms, 1) / 1000.0,
        motion_probability=motion_probability,
        send_queue_size=max(_int_env("PULSELINK_SEND_QUEUE_SIZE", 64), 1),
    )
