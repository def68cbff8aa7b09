from __future__ import annotations

import json

from air_ingest.pipeline import IngestPipeline
from air_store.snapshot_store import SnapshotStore
from simulators.air_simulator import AirSimulator


class _LoopbackMqtt:
    """Publishes straight into a pipeline instead of a broker."""

    def __init__(self, pipeline: IngestPipeline):
        self.pipeline = pipeline
        self.topics = []

    def publish(self, topic, payload, retain=False):
        self.topics.append(topic)
        self.pipeline.handle(topic, payload.encode("utf-8"))

    def publish_json(self, topic, obj, retain=False):
        self.publish(topic, json.dumps(obj), retain=retain)


def test_step_stays_in_physical_ranges() -> None:
    sim = AirSimulator("localhost", 1883)
    for _ in range(200):
        reading = sim.step()
        assert 15.0 <= reading["temperature"] <= 35.0
        assert 20.0 <= reading["humidity"] <= 90.0
        assert 400 <= reading["gas_mq135"] <= 2000
        assert reading["state"] in ("ON", "OFF")


def test_published_telemetry_is_ingestible() -> None:
    store = SnapshotStore()
    sim = AirSimulator("localhost", 1883)
    loopback = _LoopbackMqtt(IngestPipeline(store))
    sim._mqtt = loopback

    sim.publish_once()

    snap = store.read()
    assert loopback.topics == [
        "esp32/telemetry",
        "home/air/temperature",
        "home/air/humidity",
        "home/air/co2_eq_ppm",
    ]
    assert snap.temperature is not None
    assert snap.humidity is not None
    assert snap.co2_eq_ppm is not None
    assert snap.relay_pin in (0, 1)
    assert snap.device_status == "ok"
