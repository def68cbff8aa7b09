"""Local ESP32 stand-in that publishes air-quality telemetry in every supported format."""

from __future__ import annotations

import logging
import os
import random
import threading
from typing import Optional

from air_ingest.topics import TopicLayout
from Device_connectors.mqtt_client import MqttClient


logger = logging.getLogger("AirSimulator")


class AirSimulator:
    def __init__(self, mqtt_host: str, mqtt_port: int, layout: Optional[TopicLayout] = None, loop_sec: int = 5):
        self.mqtt_host = mqtt_host
        self.mqtt_port = mqtt_port
        self.layout = layout or TopicLayout()
        self.loop_sec = loop_sec
        self._mqtt = MqttClient(client_id="air_simulator", host=mqtt_host, port=mqtt_port)
        self._lock = threading.Lock()
        self._temp = random.uniform(21.0, 24.0)
        self._hum = random.uniform(45.0, 55.0)
        self._co2 = random.uniform(400.0, 600.0)
        self._relay_on = False
        self._stop = threading.Event()

    # ------------------------------------------------------------------ setup
    def start(self):
        self._mqtt.connect()
        logger.info("Simulator connected to MQTT %s:%s", self.mqtt_host, self.mqtt_port)

    # ------------------------------------------------------------------ simulation step
    def step(self) -> dict:
        with self._lock:
            if self._relay_on:
                self._co2 -= random.uniform(5.0, 20.0)
            else:
                self._co2 += random.uniform(-5.0, 15.0)
            self._temp += random.uniform(-0.2, 0.2)
            self._hum += random.uniform(-0.5, 0.5)
            self._temp = max(15.0, min(35.0, self._temp))
            self._hum = max(20.0, min(90.0, self._hum))
            self._co2 = max(400.0, min(2000.0, self._co2))
            # ventilation relay with hysteresis
            if self._co2 > 1000.0:
                self._relay_on = True
            elif self._co2 < 700.0:
                self._relay_on = False
            return {
                "temperature": round(self._temp, 2),
                "humidity": round(self._hum, 1),
                "gas_mq135": round(self._co2),
                "state": "ON" if self._relay_on else "OFF",
                "status": "ok",
            }

    def publish_once(self):
        reading = self.step()
        self._mqtt.publish_json(self.layout.structured_base + "telemetry", reading)
        # legacy firmware still publishes one bare number per topic
        legacy = {field: topic for topic, field in self.layout.legacy_topics.items()}
        self._mqtt.publish(legacy["temperature"], str(reading["temperature"]))
        self._mqtt.publish(legacy["humidity"], str(reading["humidity"]))
        self._mqtt.publish(legacy["co2_eq_ppm"], str(reading["gas_mq135"]))
        logger.info(
            "Published t=%.2f h=%.1f co2=%s relay=%s",
            reading["temperature"],
            reading["humidity"],
            reading["gas_mq135"],
            reading["state"],
        )

    def run_forever(self):
        while not self._stop.is_set():
            self.publish_once()
            sleep_for = max(1.0, self.loop_sec + random.uniform(-1.0, 1.0))
            if self._stop.wait(sleep_for):
                break

    def stop(self):
        self._stop.set()
        self._mqtt.disconnect()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    mqtt_host = os.getenv("MQTT_HOST", "localhost")
    mqtt_port = int(os.getenv("MQTT_PORT", "1883"))
    loop_sec = int(os.getenv("SIM_LOOP_SEC", "5"))
    layout = TopicLayout(
        structured_prefix=os.getenv("STRUCTURED_TOPIC_PREFIX", "esp32/"),
        legacy_base=os.getenv("LEGACY_TOPIC_BASE", "home/air/"),
    )
    simulator = AirSimulator(mqtt_host, mqtt_port, layout=layout, loop_sec=loop_sec)
    simulator.start()
    try:
        simulator.run_forever()
    except KeyboardInterrupt:
        simulator.stop()


if __name__ == "__main__":
    main()
