"""Transient user notifications (success, warning and error messages)."""

from __future__ import annotations

__all__ = ("Level", "LogNotifier", "Notifier")

from enum import Enum
from typing import Any, Protocol

import structlog


class Level(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notifier(Protocol):
    """Sink for messages shown to the operator.

    Notifications are informational; nothing in the tracker depends on them
    being delivered.
    """

    def notify(self, level: Level, text: str) -> None: ...


class LogNotifier:
    """Notifier that writes messages to a logger."""

    def __init__(self, logger: Any | None = None) -> None:
        if logger is None:
            logger = structlog.getLogger(__name__)
        self._logger = logger

    def notify(self, level: Level, text: str) -> None:
        if level is Level.ERROR:
            self._logger.error(text)
        elif level is Level.WARNING:
            self._logger.warning(text)
        else:
            self._logger.info(text)
