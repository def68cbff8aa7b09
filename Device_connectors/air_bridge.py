# Device_connectors/air_bridge.py

from __future__ import annotations

import logging

from air_ingest.pipeline import IngestPipeline


logger = logging.getLogger(__name__)


def wire(mqtt_client, pipeline: IngestPipeline):
    for topic_filter in pipeline.layout.subscriptions():
        mqtt_client.subscribe(topic_filter, pipeline.handle)
        logger.info("Air bridge listening on %s", topic_filter)
