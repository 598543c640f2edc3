"""
Synthetic sensor telemetry.

Every tick draws a new reading for each labelled sensor and broadcasts the
ones that changed. A tick runs synchronously, so it is a single atomic step
relative to inbound messages on the event loop.
"""

from __future__ import annotations

import asyncio
import random
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pulselink.devices.models import Device, DeviceKind, DeviceValue
from pulselink.devices.registry import DeviceRegistry
from pulselink.hub.fanout import Broadcaster
from pulselink.hub.protocol import device_update_message
from pulselink.pulselink_logging import get_logger

log = get_logger("PULSELINK")

TEMPERATURE_RANGE: Tuple[float, float] = (18.0, 26.0)
HUMIDITY_RANGE: Tuple[float, float] = (30.0, 70.0)
MOTION_PROBABILITY = 0.3


class SensorProfile(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    MOTION = "motion"

    @classmethod
    def classify(cls, device: Device) -> Optional["SensorProfile"]:
        """Profile from the device id or name; None for non-sensors and unlabelled sensors."""
        if device.kind is not DeviceKind.SENSOR:
            return None
        name = device.name.lower()
        if "temp" in device.id or "temperature" in name:
            return cls.TEMPERATURE
        if "humidity" in device.id or "humidity" in name:
            return cls.HUMIDITY
        if "motion" in device.id or "motion" in name:
            return cls.MOTION
        return None


def _same_value(a: DeviceValue, b: DeviceValue) -> bool:
    # False == 0 in Python; a bool/number swap still counts as a change.
    return a == b and isinstance(a, bool) == isinstance(b, bool)


class PerturbationLoop:
    """
    Background task that redraws sensor readings every `interval_s` seconds.

    Started and stopped by the application lifespan; `health()` feeds
    `/api/health`.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        broadcaster: Broadcaster,
        *,
        interval_s: float = 3.0,
        rng: Optional[random.Random] = None,
        temperature_range: Tuple[float, float] = TEMPERATURE_RANGE,
        humidity_range: Tuple[float, float] = HUMIDITY_RANGE,
        motion_probability: float = MOTION_PROBABILITY,
    ):
        self._registry = registry
        self._broadcaster = broadcaster
        self.interval_s = interval_s
        self._rng = rng or random.Random()
        self.temperature_range = temperature_range
        self.humidity_range = humidity_range
        self.motion_probability = motion_probability

        self._task: asyncio.Task[None] | None = None
        self._stop_requested = False
        self.tick_count = 0
        self.last_tick_updates = 0
        self.failed_ticks = 0

    def candidate(self, device: Device) -> DeviceValue:
        """Next reading for a sensor; unlabelled devices keep their value."""
        profile = SensorProfile.classify(device)
        if profile is SensorProfile.TEMPERATURE:
            low, high = self.temperature_range
            return round(self._rng.uniform(low, high), 1)
        if profile is SensorProfile.HUMIDITY:
            low, high = self.humidity_range
            return round(self._rng.uniform(low, high), 1)
        if profile is SensorProfile.MOTION:
            return self._rng.random() < self.motion_probability
        return device.value

    def tick(self) -> int:
        """
        Perturb all sensors once.

        Returns:
            Number of devices whose value changed and was broadcast
        """
        updated = 0
        for device in self._registry.all_devices():
            if device.kind is not DeviceKind.SENSOR:
                continue
            try:
                value = self.candidate(device)
                if _same_value(value, device.value):
                    continue
                device = self._registry.apply_update(device.id, value)
                self._broadcaster.broadcast(device_update_message(device))
                updated += 1
                log.debug(
                    "PULSELINK.Sensor.Updated",
                    extra={
                        "fields": {
                            "device_id": device.id,
                            "value": device.value,
                            "unit": device.unit,
                        }
                    },
                )
            except Exception as e:
                log.error(
                    "PULSELINK.Sensor.UpdateFailed",
                    extra={"fields": {"device_id": device.id, "error": repr(e)}},
                )

        self.tick_count += 1
        self.last_tick_updates = updated
        return updated

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                self.tick()
            except Exception as e:
                self.failed_ticks += 1
                log.error("PULSELINK.Sensor.TickFailed", extra={"fields": {"error": repr(e)}})

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stop_requested

    def start(self) -> None:
        """Schedule the loop on the running event loop; no-op if already running."""
        if self.is_running:
            return
        self._stop_requested = False
        self._task = asyncio.get_running_loop().create_task(self.run())
        log.info("PULSELINK.Sensor.LoopStarted", extra={"fields": {"interval_s": self.interval_s}})

    def stop(self) -> None:
        if self._task is None or self._stop_requested:
            return
        self._stop_requested = True
        self._task.cancel()

    async def wait_stopped(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            log.error("PULSELINK.Sensor.LoopCrashed", extra={"fields": {"error": repr(e)}})
        self._task = None
        log.info(
            "PULSELINK.Sensor.LoopStopped",
            extra={"fields": {"ticks": self.tick_count, "failed_ticks": self.failed_ticks}},
        )

    def health(self) -> Dict[str, Any]:
        if self.is_running:
            status = "running"
        elif self._task is not None and not self._stop_requested:
            # run() only returns by cancellation, so a finished task crashed.
            status = "failed"
        else:
            status = "stopped"
        return {
            "status": status,
            "interval_s": self.interval_s,
            "ticks": self.tick_count,
            "last_tick_updates": self.last_tick_updates,
            "failed_ticks": self.failed_ticks,
        }
