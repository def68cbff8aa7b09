"""Thin wrapper around paho-mqtt delivering raw payloads to wildcard subscriptions."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import paho.mqtt.client as mqtt


logger = logging.getLogger(__name__)


RawCallback = Callable[[str, bytes], None]


@dataclass
class _Subscription:
    topic: str
    callback: RawCallback


class MqttClient:
    """MQTT helper that handles auto-reconnects, resubscription and connection state."""

    def __init__(
        self,
        client_id: str,
        host: str = "localhost",
        port: int = 1883,
        keepalive: int = 60,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True)
        if username:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message
        self.host, self.port, self.keepalive = host, port, keepalive
        self._subs: List[_Subscription] = []
        self._lock = threading.Lock()
        self._connected = threading.Event()

    @property
    def broker_url(self) -> str:
        return f"mqtt://{self.host}:{self.port}"

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # --------------------------------------------------------------------- #
    # MQTT event handlers
    # --------------------------------------------------------------------- #
    def _on_connect(self, _client, _userdata, _flags, reason_code, _properties=None):
        if getattr(reason_code, "is_failure", False):
            logger.error("MQTT connect refused by %s: %s", self.broker_url, reason_code)
            return
        self._connected.set()
        logger.info("Connected to MQTT broker %s", self.broker_url)
        # resubscribe on reconnect
        with self._lock:
            topics = [sub.topic for sub in self._subs]
        for topic in dict.fromkeys(topics):
            result, _mid = self.client.subscribe(topic, qos=1)
            if result != mqtt.MQTT_ERR_SUCCESS:
                logger.error("MQTT subscribe error topic=%s rc=%s", topic, result)

    def _on_disconnect(self, _client, _userdata, _flags, reason_code, _properties=None):
        self._connected.clear()
        # paho's loop thread reconnects on its own (see reconnect_delay_set)
        logger.warning("Disconnected from MQTT broker %s: %s", self.broker_url, reason_code)

    def _on_message(self, _client, _userdata, msg):
        callbacks: List[RawCallback] = []
        with self._lock:
            for sub in self._subs:
                if mqtt.topic_matches_sub(sub.topic, msg.topic) and sub.callback not in callbacks:
                    callbacks.append(sub.callback)
        if not callbacks:
            return
        logger.debug("MQTT message topic=%s matched_callbacks=%s", msg.topic, len(callbacks))
        for cb in callbacks:
            try:
                cb(msg.topic, bytes(msg.payload))
            except Exception as exc:
                logger.exception("MQTT callback error for topic %s: %s", msg.topic, exc)

    # ------------------------------------------------------------------ API
    def connect(self):
        self.client.reconnect_delay_set(min_delay=2, max_delay=30)
        self.client.loop_start()
        try:
            # connect_async avoids raising when broker is temporarily unavailable
            self.client.connect_async(self.host, self.port, self.keepalive)
        except Exception as exc:
            logger.warning("Initial MQTT connection failed: %s", exc)
        else:
            logger.info("Connecting to MQTT broker at %s", self.broker_url)

    def subscribe(self, topic: str, callback: RawCallback):
        """Subscribe to a topic pattern (`+`/`#` supported) with a raw-payload callback."""
        with self._lock:
            self._subs.append(_Subscription(topic=topic, callback=callback))
        if self.is_connected():
            self.client.subscribe(topic, qos=1)
        logger.info("Subscribed to %s", topic)

    def publish(self, topic: str, payload: str, retain: bool = False):
        logger.debug("Publishing to %s payload=%s", topic, payload)
        self.client.publish(topic, payload, qos=1, retain=retain)

    def publish_json(self, topic: str, obj: dict, retain: bool = False):
        self.publish(topic, json.dumps(obj), retain=retain)

    def disconnect(self):
        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()
