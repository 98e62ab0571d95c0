"""
Turns raw interaction events into the live session counters.

Each recording is a read-modify-write against the store, done under the
lock of the counter it touches. Lifecycle transitions take every lock, so
an event that lands after Stop/Reset is applied to the fresh counters and
never to the session that was just committed.
"""

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from app.services.behavior_engine.metrics import (
    LIVE_METRICS_KEY,
    TAB_SWITCH_KEY,
    TRACKING_KEY,
    LiveMetrics,
)
from app.services.behavior_engine.store import KeyValueStore

logger = logging.getLogger(__name__)

JITTER_DISTANCE = 60  # pointer displacement that counts as a jitter event
BACKSPACE_KEY = "Backspace"


@dataclass
class SessionState:
    """
    Handle on the active session's mutable state.

    Owned by SessionLifecycle and shared with the EventAccumulator. The
    counters themselves live in the store; this object carries the locks
    guarding them and the last pointer sample.
    """
    store: KeyValueStore
    metrics_lock: threading.Lock = field(default_factory=threading.Lock)
    tabs_lock: threading.Lock = field(default_factory=threading.Lock)
    last_position: Optional[Tuple[float, float]] = None

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold every counter lock, for transitions that rewrite the session."""
        with self.metrics_lock, self.tabs_lock:
            yield


class EventAccumulator:
    """Records keydown, pointer and tab-activation events while tracking is on."""

    def __init__(self, state: SessionState):
        self.state = state

    def record_keydown(self, key: str) -> bool:
        """Count a key press. Returns False when tracking is off."""
        with self.state.metrics_lock:
            metrics = self._read_metrics()
            if metrics is None:
                return False
            metrics.keystrokes += 1
            if key == BACKSPACE_KEY:
                metrics.backspaces += 1
            self.state.store.set({LIVE_METRICS_KEY: metrics.to_dict()})
        return True

    def record_mouse_move(self, x: float, y: float) -> bool:
        """
        Count a pointer sample and flag it as jitter when it lies more than
        JITTER_DISTANCE away from the previous one.
        """
        with self.state.metrics_lock:
            metrics = self._read_metrics()
            if metrics is None:
                return False
            metrics.mouse_moves += 1

            last = self.state.last_position
            if last is not None:
                distance = math.hypot(x - last[0], y - last[1])
                if distance > JITTER_DISTANCE:
                    metrics.mouse_jitter += 1

            self.state.last_position = (x, y)
            self.state.store.set({LIVE_METRICS_KEY: metrics.to_dict()})
        return True

    def record_tab_switch(self) -> bool:
        with self.state.tabs_lock:
            data = self.state.store.get([TRACKING_KEY, TAB_SWITCH_KEY])
            if data.get(TRACKING_KEY) is not True:
                return False
            count = (data.get(TAB_SWITCH_KEY) or 0) + 1
            self.state.store.set({TAB_SWITCH_KEY: count})
        return True

    def record_event(self, event: Dict[str, Any]) -> bool:
        """Dispatch a raw event dict ({"type": "keydown", "key": ...} etc.)."""
        kind = event.get("type")
        if kind == "keydown":
            return self.record_keydown(event.get("key", ""))
        if kind == "mousemove":
            return self.record_mouse_move(event.get("x", 0), event.get("y", 0))
        if kind in ("tabswitch", "tab-switch"):
            return self.record_tab_switch()
        logger.warning(f"Ignoring unknown event type: {kind!r}")
        return False

    def _read_metrics(self) -> Optional[LiveMetrics]:
        # Caller holds metrics_lock
        data = self.state.store.get([TRACKING_KEY, LIVE_METRICS_KEY])
        if data.get(TRACKING_KEY) is not True:
            return None
        return LiveMetrics.from_dict(data.get(LIVE_METRICS_KEY))
