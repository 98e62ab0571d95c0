"""
Side channel for scores and status messages.

The engine only calls notify_score / notify_status; how (or whether)
those are shown is up to whoever is listening.
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)


class StatusSeverity(str, Enum):
    NEUTRAL = "neutral"
    ACTIVE = "active"
    STOPPED = "stopped"
    INFO = "info"


ScoreListener = Callable[[int, str], None]
StatusListener = Callable[[str, StatusSeverity], None]


class Notifier(Protocol):
    def notify_score(self, score: int, level: str) -> None:
        ...

    def notify_status(self, message: str, severity: StatusSeverity) -> None:
        ...


class LoggingNotifier:
    """Default notifier: everything goes to the log."""

    def notify_score(self, score: int, level: str) -> None:
        logger.info(f"Stress: {score}/100 ({level})")

    def notify_status(self, message: str, severity: StatusSeverity) -> None:
        logger.info(f"Status [{severity.value}]: {message}")


class SubscriptionNotifier(LoggingNotifier):
    """
    Fans notifications out to subscribed callbacks (push instead of poll).

    A failing listener is logged and skipped so it cannot break the
    transition that triggered the notification.
    """

    def __init__(self):
        self._score_listeners: List[ScoreListener] = []
        self._status_listeners: List[StatusListener] = []
        self._lock = threading.Lock()
        self.last_score = None
        self.last_status = None

    def subscribe_scores(self, listener: ScoreListener) -> Callable[[], None]:
        with self._lock:
            self._score_listeners.append(listener)
        return lambda: self._remove(self._score_listeners, listener)

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        with self._lock:
            self._status_listeners.append(listener)
        return lambda: self._remove(self._status_listeners, listener)

    def notify_score(self, score: int, level: str) -> None:
        super().notify_score(score, level)
        self.last_score = (score, level)
        for listener in self._snapshot(self._score_listeners):
            try:
                listener(score, level)
            except Exception as e:
                logger.error(f"Score listener failed: {e}", exc_info=True)

    def notify_status(self, message: str, severity: StatusSeverity) -> None:
        super().notify_status(message, severity)
        self.last_status = (message, severity)
        for listener in self._snapshot(self._status_listeners):
            try:
                listener(message, severity)
            except Exception as e:
                logger.error(f"Status listener failed: {e}", exc_info=True)

    def _snapshot(self, listeners: list) -> list:
        with self._lock:
            return list(listeners)

    def _remove(self, listeners: list, listener) -> None:
        with self._lock:
            if listener in listeners:
                listeners.remove(listener)
