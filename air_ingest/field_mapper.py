# air_ingest/field_mapper.py
"""Turn decode results into canonical (field, value) updates.

Each wire representation goes through its own coercion function that
returns the canonical value or None; None means the key is treated as
absent, never as zero.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from air_ingest.decoder import (
    DecodeResult,
    NumericUpdate,
    Number,
    Rejected,
    StructuredUpdate,
    UnknownNumericUpdate,
    Unrecognized,
    parse_number,
)
from air_ingest.diagnostics import IngestStats
from air_store.snapshot_store import (
    CO2_EQ_PPM,
    DEVICE_STATUS,
    HUMIDITY,
    RELAY_PIN,
    TEMPERATURE,
    UNKNOWN_TOPICS,
)

logger = logging.getLogger(__name__)


class FieldUpdate(NamedTuple):
    field: str
    value: Any
    # only set for UNKNOWN_TOPICS entries
    key: Optional[str] = None


# ---------------------------------------------------------------------- coercions
def coerce_number(raw: Any) -> Optional[Number]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        return parse_number(raw)
    return None


def coerce_relay_pin(raw: Any) -> Optional[int]:
    """Direct pin flag: bool, 0/1, or "0"/"1"/"ON"/"OFF" in any case."""
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        if raw == 1:
            return 1
        if raw == 0:
            return 0
        return None
    if isinstance(raw, str):
        text = raw.strip().upper()
        if text in ("1", "ON"):
            return 1
        if text in ("0", "OFF"):
            return 0
    return None


def coerce_relay_state(raw: Any) -> Optional[int]:
    """Named state string: "ON" means closed, any other string means open."""
    if not isinstance(raw, str):
        return None
    return 1 if raw.strip().upper() == "ON" else 0


def coerce_status(raw: Any) -> Optional[str]:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return str(raw)
    return None


# (json key, canonical field, coercion); later rows win on the same field
STRUCTURED_RULES: List[Tuple[str, str, Callable[[Any], Any]]] = [
    ("temperature", TEMPERATURE, coerce_number),
    ("humidity", HUMIDITY, coerce_number),
    ("gas_mq135", CO2_EQ_PPM, coerce_number),
    ("co2_eq_ppm", CO2_EQ_PPM, coerce_number),
    ("relay_pin", RELAY_PIN, coerce_relay_pin),
    ("state", RELAY_PIN, coerce_relay_state),
    ("status", DEVICE_STATUS, coerce_status),
]


def _resolve_structured(result: StructuredUpdate) -> List[FieldUpdate]:
    resolved: dict = {}
    for key, canonical, coerce in STRUCTURED_RULES:
        if key not in result.fields:
            continue
        value = coerce(result.fields[key])
        if value is None:
            logger.debug("Ignoring %s=%r on %s", key, result.fields[key], result.topic)
            continue
        resolved[canonical] = value
    return [FieldUpdate(name, value) for name, value in resolved.items()]


def resolve(result: DecodeResult, sink: Optional[IngestStats] = None) -> List[FieldUpdate]:
    if isinstance(result, StructuredUpdate):
        updates = _resolve_structured(result)
        if not updates and sink is not None:
            sink.record_empty(result.topic)
        return updates
    if isinstance(result, NumericUpdate):
        return [FieldUpdate(result.field, result.value)]
    if isinstance(result, UnknownNumericUpdate):
        return [FieldUpdate(UNKNOWN_TOPICS, result.value, key=result.topic)]
    if isinstance(result, Rejected):
        if sink is not None:
            sink.record_drop("rejected", result.topic, result.reason)
        else:
            logger.warning("Rejected payload topic=%s reason=%s", result.topic, result.reason)
        return []
    if isinstance(result, Unrecognized):
        if sink is not None:
            sink.record_drop("unrecognized", result.topic, result.reason)
        else:
            logger.warning("Unrecognized payload topic=%s reason=%s", result.topic, result.reason)
        return []
    logger.error("Unexpected decode result %r", result)
    return []
