"""Contract for runtime telemetry and structured logging sinks."""

from __future__ import annotations

import logging
from typing import Protocol

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Telemetry(Protocol):
    """Reports operational events and action outcomes."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler for the ``tickbot`` loggers."""
    logging.basicConfig(level=level.upper(), format=_FORMAT)
    logging.getLogger("tickbot").setLevel(level.upper())
