# air_ingest/merger.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from air_ingest.field_mapper import FieldUpdate
from air_store.snapshot_store import DATA_FIELDS, UNKNOWN_TOPICS, LatestReading, SnapshotStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def apply(
    store: SnapshotStore,
    updates: Sequence[FieldUpdate],
    source_topic: str,
    now: Optional[datetime] = None,
) -> bool:
    """Merge ``updates`` in order; returns True if anything was written.

    timestamp and last_topic move only when at least one field was written.
    """
    if not updates:
        return False
    stamp = format_instant(now or utc_now())
    written = []

    def _mutate(reading: LatestReading) -> None:
        for update in updates:
            if update.field == UNKNOWN_TOPICS and update.key:
                reading.unknown_topics[update.key] = update.value
            elif update.field in DATA_FIELDS:
                setattr(reading, update.field, update.value)
            else:
                logger.error("Skipping non-canonical field %s from %s", update.field, source_topic)
                continue
            written.append(update.field)
        if written:
            reading.timestamp = stamp
            reading.last_topic = source_topic

    store.write(_mutate)
    if written:
        logger.info("Merged topic=%s fields=%s ts=%s", source_topic, ",".join(written), stamp)
    return bool(written)
