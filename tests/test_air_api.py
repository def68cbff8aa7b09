from __future__ import annotations

from datetime import datetime, timezone

import cherrypy
import pytest

from air_api.air_api import LIVENESS_TEXT, AirAPI, LivenessRoot
from air_ingest.diagnostics import IngestStats
from air_ingest.pipeline import IngestPipeline
from air_store.snapshot_store import SnapshotStore


class _FakeMqtt:
    broker_url = "mqtt://broker.local:1883"

    def __init__(self, connected: bool):
        self._connected = connected

    def is_connected(self) -> bool:
        return self._connected


@pytest.fixture
def store() -> SnapshotStore:
    return SnapshotStore()


@pytest.fixture
def api(store) -> AirAPI:
    return AirAPI(store, _FakeMqtt(connected=True), IngestStats())


def _feed(store: SnapshotStore, topic: str, payload: bytes) -> None:
    IngestPipeline(store, clock=lambda: datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)).handle(topic, payload)


def test_liveness_is_plain_text() -> None:
    assert LivenessRoot().GET() == LIVENESS_TEXT
    assert cherrypy.response.headers["Content-Type"].startswith("text/plain")


def test_latest_serializes_unknowns_as_null(api) -> None:
    body = api.GET("latest")

    assert body["temperature"] is None
    assert body["timestamp"] is None
    assert body["unknown_topics"] == {}


def test_latest_after_updates(api, store) -> None:
    _feed(store, "esp32/telemetry", b'{"temperature": 23.5, "gas_mq135": 480, "state": "on", "status": "ok"}')
    _feed(store, "sensor/pressure", b"1013")

    body = api.GET("latest")

    assert body == {
        "temperature": 23.5,
        "humidity": None,
        "co2_eq_ppm": 480,
        "relay_pin": 1,
        "device_status": "ok",
        "timestamp": "2026-03-01T08:30:00.000Z",
        "last_topic": "sensor/pressure",
        "unknown_topics": {"sensor/pressure": 1013},
    }


def test_single_metric_routes(api, store) -> None:
    _feed(store, "home/air/humidity", b"61")

    assert api.GET("temperature") == {"temperature": None, "timestamp": "2026-03-01T08:30:00.000Z"}
    assert api.GET("humidity") == {"humidity": 61, "timestamp": "2026-03-01T08:30:00.000Z"}
    assert api.GET("co2") == {"co2_eq_ppm": None, "timestamp": "2026-03-01T08:30:00.000Z"}


def test_mqtt_health(store) -> None:
    assert AirAPI(store, _FakeMqtt(connected=False)).GET("mqtt-health") == {
        "connected": False,
        "broker": "mqtt://broker.local:1883",
    }
    assert AirAPI(store).GET("mqtt-health") == {"connected": False, "broker": "mqtt://localhost:1883"}
    assert AirAPI(store, broker_url="mqtt://10.0.0.5:1883").GET("mqtt-health")["broker"] == "mqtt://10.0.0.5:1883"


def test_stats_route(api) -> None:
    assert api.GET("stats")["received"] == 0


def test_index_lists_endpoints(api) -> None:
    body = api.GET()

    assert body["ok"] is True
    assert "/api/air/latest" in body["endpoints"]


def test_unknown_path(api) -> None:
    assert api.GET("pressure") == {"error": "invalid endpoint"}
    assert cherrypy.response.status == 404
