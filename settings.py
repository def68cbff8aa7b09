"""Environment-driven configuration for the bridge process."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from air_ingest.topics import TopicLayout

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class BridgeSettings:
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_client_id: str = "air_bridge"
    mqtt_keepalive: int = 60
    structured_prefix: str = "esp32/"
    legacy_base: str = "home/air/"
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    mock_sensors: bool = False
    sim_loop_sec: int = 5

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        env = os.environ if env is None else env
        return cls(
            mqtt_host=env.get("MQTT_HOST", "localhost"),
            mqtt_port=_env_int(env, "MQTT_PORT", 1883),
            mqtt_username=env.get("MQTT_USERNAME") or None,
            mqtt_password=env.get("MQTT_PASSWORD") or None,
            mqtt_client_id=env.get("MQTT_CLIENT_ID", "air_bridge"),
            mqtt_keepalive=_env_int(env, "MQTT_KEEPALIVE", 60),
            structured_prefix=env.get("STRUCTURED_TOPIC_PREFIX", "esp32/"),
            legacy_base=env.get("LEGACY_TOPIC_BASE", "home/air/"),
            http_host=env.get("HTTP_HOST", "0.0.0.0"),
            http_port=_env_int(env, "HTTP_PORT", 3000),
            mock_sensors=env.get("MOCK_SENSORS", "0").lower() in _TRUTHY,
            sim_loop_sec=_env_int(env, "SIM_LOOP_SEC", 5),
        )

    @property
    def broker_url(self) -> str:
        return f"mqtt://{self.mqtt_host}:{self.mqtt_port}"

    @property
    def topic_layout(self) -> TopicLayout:
        return TopicLayout(structured_prefix=self.structured_prefix, legacy_base=self.legacy_base)
