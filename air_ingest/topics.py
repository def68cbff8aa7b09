# air_ingest/topics.py
"""Topic namespaces the bridge listens on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from air_store.snapshot_store import CO2_EQ_PPM, HUMIDITY, TEMPERATURE


def _as_base(prefix: str) -> str:
    prefix = prefix.strip()
    return prefix if prefix.endswith("/") else prefix + "/"


@dataclass(frozen=True)
class TopicLayout:
    structured_prefix: str = "esp32/"
    legacy_base: str = "home/air/"

    @property
    def structured_base(self) -> str:
        return _as_base(self.structured_prefix)

    @property
    def flat_base(self) -> str:
        return _as_base(self.legacy_base)

    @property
    def structured_metric_topics(self) -> Dict[str, str]:
        """Per-metric topics inside the structured namespace that may carry a bare number."""
        base = self.structured_base
        return {
            base + "temperature": TEMPERATURE,
            base + "humidity": HUMIDITY,
            base + "co2": CO2_EQ_PPM,
        }

    @property
    def legacy_topics(self) -> Dict[str, str]:
        base = self.flat_base
        return {
            base + "temperature": TEMPERATURE,
            base + "humidity": HUMIDITY,
            base + "co2_eq_ppm": CO2_EQ_PPM,
        }

    def is_structured(self, topic: str) -> bool:
        return topic.startswith(self.structured_base)

    def is_legacy(self, topic: str) -> bool:
        return topic in self.legacy_topics

    def subscriptions(self) -> List[str]:
        return [self.structured_base + "#", self.flat_base + "#"]
