# air_store/snapshot_store.py
"""Process-wide latest-reading record with copy-on-write snapshots.

Writers are serialized by a lock and work on a private draft; once the
mutator returns, the draft is frozen and published in one reference swap.
Readers only ever pick up a published snapshot, so they never wait on a
merge and never see half of one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]

TEMPERATURE = "temperature"
HUMIDITY = "humidity"
CO2_EQ_PPM = "co2_eq_ppm"
RELAY_PIN = "relay_pin"
DEVICE_STATUS = "device_status"
UNKNOWN_TOPICS = "unknown_topics"

DATA_FIELDS = (TEMPERATURE, HUMIDITY, CO2_EQ_PPM, RELAY_PIN, DEVICE_STATUS)


@dataclass
class LatestReading:
    """Mutable draft handed to writers inside :meth:`SnapshotStore.write`."""

    temperature: Optional[Number] = None
    humidity: Optional[Number] = None
    co2_eq_ppm: Optional[Number] = None
    relay_pin: Optional[int] = None
    device_status: Optional[str] = None
    timestamp: Optional[str] = None
    last_topic: Optional[str] = None
    unknown_topics: Dict[str, Number] = field(default_factory=dict)

    def freeze(self) -> "ReadingSnapshot":
        return ReadingSnapshot(
            temperature=self.temperature,
            humidity=self.humidity,
            co2_eq_ppm=self.co2_eq_ppm,
            relay_pin=self.relay_pin,
            device_status=self.device_status,
            timestamp=self.timestamp,
            last_topic=self.last_topic,
            unknown_topics=MappingProxyType(dict(self.unknown_topics)),
        )


@dataclass(frozen=True)
class ReadingSnapshot:
    """Read-only copy of the record as of the last completed merge."""

    temperature: Optional[Number] = None
    humidity: Optional[Number] = None
    co2_eq_ppm: Optional[Number] = None
    relay_pin: Optional[int] = None
    device_status: Optional[str] = None
    timestamp: Optional[str] = None
    last_topic: Optional[str] = None
    unknown_topics: Mapping[str, Number] = field(default_factory=lambda: MappingProxyType({}))

    def thaw(self) -> LatestReading:
        return LatestReading(
            temperature=self.temperature,
            humidity=self.humidity,
            co2_eq_ppm=self.co2_eq_ppm,
            relay_pin=self.relay_pin,
            device_status=self.device_status,
            timestamp=self.timestamp,
            last_topic=self.last_topic,
            unknown_topics=dict(self.unknown_topics),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {name: getattr(self, name) for name in DATA_FIELDS}
        out["timestamp"] = self.timestamp
        out["last_topic"] = self.last_topic
        out[UNKNOWN_TOPICS] = dict(self.unknown_topics)
        return out


Mutator = Callable[[LatestReading], None]


class SnapshotStore:
    """Single owner of the latest reading."""

    def __init__(self):
        self._write_lock = threading.Lock()
        self._current = ReadingSnapshot()

    def write(self, mutator: Mutator) -> ReadingSnapshot:
        """Run ``mutator`` on a draft and publish the result atomically.

        If the mutator raises, nothing is published and the previous
        snapshot stays current.
        """
        with self._write_lock:
            draft = self._current.thaw()
            mutator(draft)
            published = draft.freeze()
            self._current = published
        return published

    def read(self) -> ReadingSnapshot:
        return self._current

    def as_dict(self) -> Dict[str, Any]:
        return self.read().to_dict()


_GLOBAL_STORE: Optional[SnapshotStore] = None
_GLOBAL_LOCK = threading.Lock()


def get_store() -> SnapshotStore:
    global _GLOBAL_STORE
    with _GLOBAL_LOCK:
        if _GLOBAL_STORE is None:
            _GLOBAL_STORE = SnapshotStore()
            logger.info("Snapshot store created")
        return _GLOBAL_STORE
