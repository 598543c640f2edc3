from __future__ import annotations

import asyncio
import random

import pytest

from pulselink.devices.models import Device, DeviceKind
from pulselink.devices.perturbation import PerturbationLoop, SensorProfile
from pulselink.devices.registry import DeviceRegistry
from pulselink.hub.connections import ConnectionRegistry
from pulselink.hub.fanout import Broadcaster


def _sensor(device_id: str, name: str, value=None) -> Device:
    return Device(
        id=device_id, name=name, kind=DeviceKind.SENSOR, status="active", value=value, property_id="p1"
    )


@pytest.fixture
def viewer(make_conn, connections: ConnectionRegistry):
    conn = make_conn("viewer")
    connections.register(conn)
    return conn


class TestSensorProfile:
    def test_classify_by_id_and_name(self):
        assert SensorProfile.classify(_sensor("p1-sensor-temp-1", "Probe")) is SensorProfile.TEMPERATURE
        assert SensorProfile.classify(_sensor("p1-a", "Attic Temperature")) is SensorProfile.TEMPERATURE
        assert SensorProfile.classify(_sensor("p1-sensor-humidity-1", "Probe")) is SensorProfile.HUMIDITY
        assert SensorProfile.classify(_sensor("p1-gate-sensor-1", "Gate Motion Sensor")) is SensorProfile.MOTION

    def test_unlabelled_and_non_sensors(self):
        assert SensorProfile.classify(_sensor("p1-co2", "CO2 Meter")) is None
        switch = Device(
            id="p1-temp-switch", name="Temp", kind=DeviceKind.SWITCH, status="off", value=False, property_id="p1"
        )
        assert SensorProfile.classify(switch) is None


class TestTick:
    def test_values_stay_in_range(self, registry: DeviceRegistry, broadcaster: Broadcaster):
        loop = PerturbationLoop(registry, broadcaster, rng=random.Random(1234))
        temp = registry.get_by_id("p1-sensor-temp-1")
        humidity = registry.get_by_id("p2-sensor-humidity-1")

        for _ in range(2000):
            loop.tick()
            assert 18.0 <= temp.value <= 26.0
            assert 30.0 <= humidity.value <= 70.0
            assert round(temp.value, 1) == temp.value

    def test_motion_is_boolean(self, registry: DeviceRegistry, broadcaster: Broadcaster):
        loop = PerturbationLoop(registry, broadcaster, rng=random.Random(7))
        motion = registry.get_by_id("p1-gate-sensor-1")
        seen = set()
        for _ in range(200):
            loop.tick()
            assert isinstance(motion.value, bool)
            seen.add(motion.value)
        assert seen == {True, False}

    def test_unchanged_values_are_not_broadcast(self, registry, broadcaster, viewer):
        loop = PerturbationLoop(
            registry,
            broadcaster,
            rng=random.Random(0),
            temperature_range=(22.0, 22.0),
            humidity_range=(45.0, 45.0),
            motion_probability=0.0,
        )
        assert loop.tick() == 0
        assert viewer.payloads == []

    def test_changed_values_are_broadcast(self, registry, broadcaster, viewer):
        registry.initialize(["p1"])
        loop = PerturbationLoop(
            registry,
            broadcaster,
            rng=random.Random(0),
            temperature_range=(22.0, 22.0),
            humidity_range=(45.0, 45.0),
            motion_probability=1.0,
        )

        assert loop.tick() == 1
        assert viewer.frames == [
            {"type": "deviceUpdate", "deviceId": "p1-gate-sensor-1", "status": "active", "value": True}
        ]
        assert registry.get_by_id("p1-gate-sensor-1").value is True

        # Already True: the next tick is a no-op.
        assert loop.tick() == 0
        assert len(viewer.payloads) == 1

    def test_only_sensors_are_touched(self, registry, broadcaster):
        loop = PerturbationLoop(registry, broadcaster, rng=random.Random(3), motion_probability=1.0)
        before = {d.id: (d.value, d.status) for d in registry.all_devices() if d.kind is not DeviceKind.SENSOR}
        loop.tick()
        after = {d.id: (d.value, d.status) for d in registry.all_devices() if d.kind is not DeviceKind.SENSOR}
        assert before == after

    def test_failure_on_one_device_does_not_stop_the_tick(self, registry, broadcaster, viewer, monkeypatch):
        registry.initialize(["p1"])
        original = registry.apply_update

        def flaky(device_id, value, status=None):
            if device_id == "p1-sensor-temp-1":
                raise RuntimeError("sensor bus error")
            return original(device_id, value, status)

        monkeypatch.setattr(registry, "apply_update", flaky)
        loop = PerturbationLoop(
            registry,
            broadcaster,
            rng=random.Random(0),
            temperature_range=(20.0, 20.0),
            humidity_range=(60.0, 60.0),
            motion_probability=1.0,
        )

        assert loop.tick() == 2
        updated = {f["deviceId"] for f in viewer.frames}
        assert updated == {"p1-gate-sensor-1", "p1-sensor-humidity-1"}
        assert registry.get_by_id("p1-sensor-temp-1").value == 22

    def test_unlabelled_sensor_left_alone(self, broadcaster, viewer):
        reg = DeviceRegistry()
        reg.initialize(["p1"])
        reg.get_by_id("p1-gate-sensor-1").name = "Gate Beam"
        loop = PerturbationLoop(
            reg,
            broadcaster,
            rng=random.Random(0),
            temperature_range=(22.0, 22.0),
            humidity_range=(45.0, 45.0),
            motion_probability=1.0,
        )
        assert loop.tick() == 0
        assert reg.get_by_id("p1-gate-sensor-1").value is False


class TestLifecycle:
    def test_runs_on_interval_and_stops(self, registry, broadcaster):
        loop = PerturbationLoop(registry, broadcaster, interval_s=0.01, rng=random.Random(5))
        assert loop.health()["status"] == "stopped"

        async def scenario() -> None:
            loop.start()
            assert loop.is_running
            await asyncio.sleep(0.1)
            assert loop.health()["status"] == "running"
            loop.stop()
            assert not loop.is_running
            await loop.wait_stopped()

        asyncio.run(scenario())
        assert loop.tick_count >= 1
        assert not loop.is_running
        assert loop.health()["status"] == "stopped"

    def test_start_twice_keeps_one_task(self, registry, broadcaster):
        loop = PerturbationLoop(registry, broadcaster, interval_s=60.0)

        async def scenario() -> None:
            loop.start()
            first = loop._task
            loop.start()
            assert loop._task is first
            loop.stop()
            loop.stop()
            await loop.wait_stopped()

        asyncio.run(scenario())
        assert loop.health()["status"] == "stopped"

    def test_tick_errors_do_not_kill_the_loop(self, registry, broadcaster, monkeypatch):
        loop = PerturbationLoop(registry, broadcaster, interval_s=0.01)

        def boom():
            raise RuntimeError("boom")

        monkeypatch.setattr(registry, "all_devices", boom)

        async def scenario() -> None:
            loop.start()
            await asyncio.sleep(0.1)
            assert loop.health()["status"] == "running"
            loop.stop()
            await loop.wait_stopped()

        asyncio.run(scenario())
        assert loop.failed_ticks >= 1

    def test_crashed_task_reports_failed(self, registry, broadcaster):
        loop = PerturbationLoop(registry, broadcaster, interval_s=0.01)

        async def crash() -> None:
            raise RuntimeError("driver crashed")

        loop.run = crash

        async def scenario() -> None:
            loop.start()
            await asyncio.sleep(0.01)
            assert loop.health()["status"] == "failed"
            loop.stop()
            await loop.wait_stopped()

        asyncio.run(scenario())
        assert loop.health()["status"] == "stopped"
