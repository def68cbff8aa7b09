# air_ingest/diagnostics.py
"""Counters and log output for messages the pipeline drops."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict

logger = logging.getLogger(__name__)

# distinct topics remembered in last_drop_reason
MAX_DROP_TOPICS = 64


class IngestStats:
    def __init__(self, max_drop_topics: int = MAX_DROP_TOPICS):
        self._lock = threading.Lock()
        self._counts = {
            "received": 0,
            "accepted": 0,
            "rejected": 0,
            "unrecognized": 0,
            "empty": 0,
        }
        self._max_drop_topics = max_drop_topics
        self._last_drop: "OrderedDict[str, str]" = OrderedDict()

    def record_received(self, topic: str) -> None:
        with self._lock:
            self._counts["received"] += 1

    def record_accepted(self, topic: str) -> None:
        with self._lock:
            self._counts["accepted"] += 1

    def record_drop(self, kind: str, topic: str, reason: str) -> None:
        with self._lock:
            self._counts[kind] = self._counts.get(kind, 0) + 1
            self._last_drop[topic] = reason
            self._last_drop.move_to_end(topic)
            while len(self._last_drop) > self._max_drop_topics:
                self._last_drop.popitem(last=False)
            total = self._counts[kind]
        logger.warning("Dropped payload kind=%s total=%s topic=%s reason=%s", kind, total, topic, reason)

    def record_empty(self, topic: str) -> None:
        with self._lock:
            self._counts["empty"] += 1
        logger.info("Payload on %s carried no recognized fields", topic)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            out: Dict[str, Any] = dict(self._counts)
            out["last_drop_reason"] = dict(self._last_drop)
            return out
