# air_ingest/decoder.py
"""Classify raw (topic, payload) pairs into typed decode results.

Nothing in here raises for bad input: every branch returns one of the
result dataclasses below.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from air_ingest.topics import TopicLayout

logger = logging.getLogger(__name__)

Number = Union[int, float]

# keys picked out of a structured JSON object; everything else is ignored
STRUCTURED_KEYS = (
    "temperature",
    "humidity",
    "co2_eq_ppm",
    "gas_mq135",
    "relay_pin",
    "state",
    "status",
)

REASON_NON_NUMERIC = "non-numeric"
REASON_NON_NUMERIC_UNKNOWN = "non-numeric-unknown-topic"
REASON_NOT_JSON_OBJECT = "not-json-object"
REASON_UNKNOWN_METRIC_TOPIC = "unknown-metric-topic"


@dataclass(frozen=True)
class StructuredUpdate:
    topic: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NumericUpdate:
    topic: str
    field: str
    value: Number


@dataclass(frozen=True)
class UnknownNumericUpdate:
    topic: str
    value: Number


@dataclass(frozen=True)
class Rejected:
    topic: str
    reason: str


@dataclass(frozen=True)
class Unrecognized:
    topic: str
    reason: str


DecodeResult = Union[StructuredUpdate, NumericUpdate, UnknownNumericUpdate, Rejected, Unrecognized]


def payload_text(payload: Union[bytes, bytearray, str]) -> str:
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode("utf-8", errors="replace")
    return payload.strip()


def parse_number(text: str) -> Optional[Number]:
    """Parse the whole string as a finite decimal number, or return None."""
    text = text.strip()
    if not text or "_" in text or not text.isascii():
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(text)
    except (ValueError, RecursionError):
        # deeply nested input overflows the scanner
        return None
    return obj if isinstance(obj, dict) else None


# ---------------------------------------------------------------------- handlers
def _decode_structured(topic: str, text: str, layout: TopicLayout) -> DecodeResult:
    obj = parse_object(text)
    if obj is not None:
        present = {key: obj[key] for key in STRUCTURED_KEYS if key in obj}
        return StructuredUpdate(topic=topic, fields=present)
    value = parse_number(text)
    metric = layout.structured_metric_topics.get(topic)
    if value is None:
        return Unrecognized(topic=topic, reason=REASON_NOT_JSON_OBJECT)
    if metric is None:
        return Unrecognized(topic=topic, reason=REASON_UNKNOWN_METRIC_TOPIC)
    return NumericUpdate(topic=topic, field=metric, value=value)


def _decode_legacy(topic: str, text: str, layout: TopicLayout) -> DecodeResult:
    value = parse_number(text)
    if value is None:
        return Rejected(topic=topic, reason=REASON_NON_NUMERIC)
    return NumericUpdate(topic=topic, field=layout.legacy_topics[topic], value=value)


def _decode_unknown(topic: str, text: str, layout: TopicLayout) -> DecodeResult:
    value = parse_number(text)
    if value is None:
        return Rejected(topic=topic, reason=REASON_NON_NUMERIC_UNKNOWN)
    return UnknownNumericUpdate(topic=topic, value=value)


Matcher = Callable[[str, TopicLayout], bool]
Handler = Callable[[str, str, TopicLayout], DecodeResult]

# evaluated top to bottom, first match wins
DISPATCH_TABLE: List[Tuple[str, Matcher, Handler]] = [
    ("structured", lambda topic, layout: layout.is_structured(topic), _decode_structured),
    ("legacy", lambda topic, layout: layout.is_legacy(topic), _decode_legacy),
    ("fallback", lambda topic, layout: True, _decode_unknown),
]


def classify(topic: str, layout: TopicLayout) -> str:
    for name, matches, _ in DISPATCH_TABLE:
        if matches(topic, layout):
            return name
    return "fallback"


def decode(topic: str, payload: Union[bytes, bytearray, str], layout: Optional[TopicLayout] = None) -> DecodeResult:
    layout = layout or TopicLayout()
    text = payload_text(payload)
    for name, matches, handler in DISPATCH_TABLE:
        if matches(topic, layout):
            result = handler(topic, text, layout)
            logger.debug("Decoded topic=%s branch=%s result=%s", topic, name, type(result).__name__)
            return result
    return _decode_unknown(topic, text, layout)
