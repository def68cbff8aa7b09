"""Air API: runs the MQTT ingestion bridge and exposes the latest reading over HTTP."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import cherrypy

from air_ingest.diagnostics import IngestStats
from air_ingest.pipeline import IngestPipeline
from air_store.snapshot_store import SnapshotStore, get_store
from Device_connectors import air_bridge
from Device_connectors.mqtt_client import MqttClient
from logging_setup import configure_logging
from settings import BridgeSettings

logger = logging.getLogger("air_api")

DEFAULT_BROKER_URL = BridgeSettings().broker_url

LIVENESS_TEXT = "Air quality backend is running"

ENDPOINTS = [
    "/api/air/latest",
    "/api/air/temperature",
    "/api/air/humidity",
    "/api/air/co2",
    "/api/air/mqtt-health",
    "/api/air/stats",
]


def _cors():
    cherrypy.response.headers["Access-Control-Allow-Origin"] = "*"
    cherrypy.response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
    cherrypy.response.headers["Access-Control-Allow-Headers"] = "Content-Type"


cherrypy.tools.cors = cherrypy.Tool("before_handler", _cors)


class LivenessRoot:
    exposed = True

    def GET(self):
        cherrypy.response.headers["Content-Type"] = "text/plain; charset=utf-8"
        return LIVENESS_TEXT


class AirAPI:
    exposed = True

    def __init__(
        self,
        store: SnapshotStore,
        mqtt_client: Optional[MqttClient] = None,
        stats: Optional[IngestStats] = None,
        broker_url: str = DEFAULT_BROKER_URL,
    ):
        self.store = store
        self.mqtt = mqtt_client
        self.broker_url = mqtt_client.broker_url if mqtt_client is not None else broker_url
        self.stats = stats

    @cherrypy.tools.json_out()
    def OPTIONS(self, *uri, **_params):
        cherrypy.response.status = 204
        return {}

    @cherrypy.tools.json_out()
    def GET(self, *uri, **_params):
        if not uri:
            return {"ok": True, "endpoints": ENDPOINTS}
        path = uri[0].lower()
        snapshot = self.store.read()
        if path == "latest":
            return snapshot.to_dict()
        if path == "temperature":
            return {"temperature": snapshot.temperature, "timestamp": snapshot.timestamp}
        if path == "humidity":
            return {"humidity": snapshot.humidity, "timestamp": snapshot.timestamp}
        if path == "co2":
            return {"co2_eq_ppm": snapshot.co2_eq_ppm, "timestamp": snapshot.timestamp}
        if path == "mqtt-health":
            connected = self.mqtt.is_connected() if self.mqtt is not None else False
            return {"connected": connected, "broker": self.broker_url}
        if path == "stats":
            return self.stats.snapshot() if self.stats else {}
        cherrypy.response.status = 404
        return {"error": "invalid endpoint"}


def mount(store: SnapshotStore, mqtt_client: Optional[MqttClient] = None, stats: Optional[IngestStats] = None):
    conf = {
        "/": {
            "request.dispatch": cherrypy.dispatch.MethodDispatcher(),
            "tools.cors.on": True,
        }
    }
    cherrypy.tree.mount(LivenessRoot(), "/", conf)
    cherrypy.tree.mount(AirAPI(store, mqtt_client, stats), "/api/air", conf)


def _start_simulator(settings: BridgeSettings):
    try:
        from simulators.air_simulator import AirSimulator
    except ImportError as exc:
        logger.error("Simulator import failed: %s", exc)
        return None
    simulator = AirSimulator(
        settings.mqtt_host,
        settings.mqtt_port,
        layout=settings.topic_layout,
        loop_sec=settings.sim_loop_sec,
    )
    simulator.start()
    thread = threading.Thread(target=simulator.run_forever, name="air_simulator", daemon=True)
    thread.start()
    logger.info("Mock sensor simulator started (interval=%ss)", settings.sim_loop_sec)
    return simulator


def run():
    configure_logging()
    settings = BridgeSettings.from_env()
    store = get_store()
    stats = IngestStats()
    pipeline = IngestPipeline(store, layout=settings.topic_layout, stats=stats)

    client = MqttClient(
        client_id=settings.mqtt_client_id,
        host=settings.mqtt_host,
        port=settings.mqtt_port,
        keepalive=settings.mqtt_keepalive,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
    )
    air_bridge.wire(client, pipeline)
    client.connect()
    cherrypy.engine.subscribe("stop", client.disconnect)

    if settings.mock_sensors:
        simulator = _start_simulator(settings)
        if simulator is not None:
            cherrypy.engine.subscribe("stop", simulator.stop)

    cherrypy.config.update({"server.socket_host": settings.http_host, "server.socket_port": settings.http_port})
    mount(store, client, stats)
    logger.info("HTTP API running at http://%s:%s", settings.http_host, settings.http_port)
    cherrypy.engine.start()
    cherrypy.engine.block()


if __name__ == "__main__":
    run()
