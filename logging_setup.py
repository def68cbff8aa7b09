"""Central logging configuration for the air telemetry bridge.

Routes ingestion, transport, and HTTP logs to separate files while keeping stdout output.
"""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

_CONFIGURED = False


def _pipeline(file_handler: str) -> Dict[str, Any]:
    return {
        "handlers": [file_handler, "console"],
        "level": "INFO",
        "propagate": False,
    }


def configure_logging(log_dir: Optional[str] = None) -> None:
    """Set up log handlers only once."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_dir = log_dir or os.environ.get("LOG_DIR", "/tmp/logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        log_dir = "/tmp"
        os.makedirs(log_dir, exist_ok=True)

    def _file(name: str) -> Dict[str, Any]:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": os.path.join(log_dir, f"{name}.log"),
            "maxBytes": 1_000_000,
            "backupCount": 3,
            "encoding": "utf-8",
            "formatter": "detailed",
        }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d]: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "level": os.environ.get("LOG_LEVEL", "WARNING"),
            },
            "ingest_file": _file("ingest"),
            "transport_file": _file("transport"),
            "api_file": _file("api"),
        },
        "root": {
            "handlers": ["console"],
            "level": os.environ.get("LOG_LEVEL_ROOT", "WARNING"),
        },
        "loggers": {
            # Decode / map / merge
            "air_ingest": _pipeline("ingest_file"),
            "air_store": _pipeline("ingest_file"),
            # Broker connection
            "Device_connectors": _pipeline("transport_file"),
            "simulators": _pipeline("transport_file"),
            "paho": {"level": "WARNING"},
            # HTTP surface
            "air_api": _pipeline("api_file"),
            "settings": _pipeline("api_file"),
        },
    }

    dictConfig(config)
    _CONFIGURED = True
