# air_ingest/pipeline.py
"""Decoder -> mapper -> merger, one message at a time."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Union

from air_ingest import decoder, field_mapper, merger
from air_ingest.diagnostics import IngestStats
from air_ingest.topics import TopicLayout
from air_store.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Feeds transport events into the snapshot store.

    Callers must deliver events serially; the paho network thread does.
    """

    def __init__(
        self,
        store: SnapshotStore,
        layout: Optional[TopicLayout] = None,
        stats: Optional[IngestStats] = None,
        clock: Callable[[], datetime] = merger.utc_now,
    ):
        self.store = store
        self.layout = layout or TopicLayout()
        self.stats = stats or IngestStats()
        self._clock = clock

    def handle(self, topic: str, payload: Union[bytes, str]) -> bool:
        self.stats.record_received(topic)
        logger.debug("MQTT message topic=%s payload=%r", topic, payload)
        result = decoder.decode(topic, payload, self.layout)
        updates = field_mapper.resolve(result, sink=self.stats)
        if not updates:
            return False
        accepted = merger.apply(self.store, updates, topic, self._clock())
        if accepted:
            self.stats.record_accepted(topic)
        return accepted

    __call__ = handle
