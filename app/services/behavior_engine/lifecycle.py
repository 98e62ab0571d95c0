"""
Session lifecycle: Idle -> Tracking -> Idle.

Start  - Idle only. Turns tracking on with fresh counters.
Stop   - Tracking only. Commits the session when it saw at least one
         keystroke, then clears the counters and turns tracking off.
Reset  - Tracking, or Idle with leftover counters. Always commits what it
         has (no keystroke gate), clears the counters, leaves tracking as is.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from app.services.behavior_engine.accumulator import SessionState
from app.services.behavior_engine.baseline import BaselineEstimator
from app.services.behavior_engine.errors import InvalidTransitionError
from app.services.behavior_engine.metrics import (
    DEFAULT_DURATION_MS,
    HISTORY_KEY,
    LIVE_METRICS_KEY,
    MS_PER_MINUTE,
    SESSION_START_KEY,
    TAB_SWITCH_KEY,
    TRACKING_KEY,
    LiveMetrics,
    LiveSnapshot,
    Session,
)
from app.services.behavior_engine.notifier import LoggingNotifier, Notifier, StatusSeverity
from app.services.behavior_engine.scoring import RiskScore, StressScorer

logger = logging.getLogger(__name__)

ALL_KEYS = [LIVE_METRICS_KEY, TAB_SWITCH_KEY, HISTORY_KEY, TRACKING_KEY, SESSION_START_KEY]


def now_ms() -> int:
    return int(time.time() * 1000)


def _fresh_session_values() -> Dict[str, Any]:
    return {
        LIVE_METRICS_KEY: LiveMetrics().to_dict(),
        TAB_SWITCH_KEY: 0,
    }


class SessionLifecycle:
    def __init__(
        self,
        state: SessionState,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], int] = now_ms,
        estimator: Optional[BaselineEstimator] = None,
        scorer: Optional[StressScorer] = None,
    ):
        self.state = state
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.estimator = estimator or BaselineEstimator()
        self.scorer = scorer or StressScorer()

    @property
    def store(self):
        return self.state.store

    def is_tracking(self) -> bool:
        return self.store.get([TRACKING_KEY]).get(TRACKING_KEY) is True

    def status_message(self) -> str:
        """Ready before the first start, then active/stopped."""
        tracking = self.store.get([TRACKING_KEY]).get(TRACKING_KEY)
        if tracking is True:
            return "Tracking active"
        if tracking is False:
            return "Tracking stopped"
        return "Ready"

    # --- TRANSITIONS ---

    def start(self) -> int:
        """Begin tracking. Returns the session start timestamp."""
        with self.state.exclusive():
            if self.is_tracking():
                logger.warning("Start rejected: already tracking")
                raise InvalidTransitionError("start", tracking=True)

            started_at = self.clock()
            values = _fresh_session_values()
            values.update({TRACKING_KEY: True, SESSION_START_KEY: started_at})
            self.store.set(values)
            self.state.last_position = None

        logger.info(f"Tracking started at {started_at}")
        self.notifier.notify_status("Tracking active", StatusSeverity.ACTIVE)
        return started_at

    def stop(self) -> Optional[Session]:
        """
        End tracking. Returns the committed Session, or None when the
        session had no keystrokes and was discarded.
        """
        with self.state.exclusive():
            data = self.store.get(ALL_KEYS)
            if data.get(TRACKING_KEY) is not True:
                logger.warning("Stop rejected: not tracking")
                raise InvalidTransitionError("stop", tracking=False)

            history = list(data.get(HISTORY_KEY) or [])
            metrics = data.get(LIVE_METRICS_KEY)
            session = None

            if metrics and LiveMetrics.from_dict(metrics).keystrokes > 0:
                ended_at = self.clock()
                started_at = data.get(SESSION_START_KEY) or ended_at - DEFAULT_DURATION_MS
                session = self._build_session(metrics, data, started_at, ended_at)
                history.append(session.to_dict())

            values = _fresh_session_values()
            values.update({
                HISTORY_KEY: history,
                TRACKING_KEY: False,
                SESSION_START_KEY: None,
            })
            self.store.set(values)
            self.state.last_position = None

        if session is None:
            logger.info("Tracking stopped, empty session discarded")
        else:
            logger.info(f"Tracking stopped, session saved ({session.keystrokes} keystrokes, {len(history)} in history)")
        self.notifier.notify_status("Tracking stopped & session saved", StatusSeverity.STOPPED)
        return session

    def reset(self) -> Session:
        """Checkpoint the current counters into history and start them over."""
        with self.state.exclusive():
            data = self.store.get(ALL_KEYS)
            metrics = data.get(LIVE_METRICS_KEY)
            tracking = data.get(TRACKING_KEY) is True
            pending = not LiveMetrics.from_dict(metrics).is_empty() or bool(data.get(TAB_SWITCH_KEY))
            if not tracking and not pending:
                logger.warning("Reset rejected: idle with nothing pending")
                raise InvalidTransitionError("reset", tracking=False)

            ended_at = self.clock()
            session = self._build_session(metrics, data, data.get(SESSION_START_KEY), ended_at)
            history = list(data.get(HISTORY_KEY) or [])
            history.append(session.to_dict())

            values = _fresh_session_values()
            values.update({HISTORY_KEY: history, SESSION_START_KEY: None})
            self.store.set(values)

        logger.info(f"Session checkpointed by reset ({len(history)} in history)")
        self.notifier.notify_status("Session saved & reset", StatusSeverity.INFO)
        return session

    # --- READS ---

    def history(self) -> List[Session]:
        raw = self.store.get([HISTORY_KEY]).get(HISTORY_KEY) or []
        return [Session.from_dict(item) for item in raw]

    def snapshot(self) -> LiveSnapshot:
        data = self.store.get(ALL_KEYS)
        metrics = data.get(LIVE_METRICS_KEY)
        return LiveSnapshot(
            metrics=LiveMetrics.from_dict(metrics) if metrics else None,
            tab_switch_count=data.get(TAB_SWITCH_KEY) or 0,
            tracking=data.get(TRACKING_KEY) is True,
            session_start=data.get(SESSION_START_KEY),
            history=[Session.from_dict(item) for item in data.get(HISTORY_KEY) or []],
        )

    def live_score(self, snapshot: Optional[LiveSnapshot] = None) -> Optional[RiskScore]:
        """Stress score of the running session; None when there is nothing to score yet."""
        snapshot = snapshot or self.snapshot()
        if snapshot.metrics is None or not snapshot.session_start:
            return None

        elapsed_min = (self.clock() - snapshot.session_start) / MS_PER_MINUTE
        baseline = self.estimator.compute_baseline(snapshot.history)
        return self.scorer.calculate(snapshot.metrics, baseline, snapshot.tab_switch_count, elapsed_min)

    def refresh(self) -> Optional[RiskScore]:
        """One tick of the live poll: score and notify, or skip silently."""
        result = self.live_score()
        if result is None:
            logger.debug("Live refresh skipped, no snapshot")
            return None
        self.notifier.notify_score(result.score, result.level.value)
        return result

    def _build_session(
        self,
        metrics: Optional[Dict[str, Any]],
        data: Dict[str, Any],
        started_at: Optional[int],
        ended_at: int,
    ) -> Session:
        live = LiveMetrics.from_dict(metrics)
        return Session(
            keystrokes=live.keystrokes,
            backspaces=live.backspaces,
            mouse_moves=live.mouse_moves,
            mouse_jitter=live.mouse_jitter,
            tab_switch_count=data.get(TAB_SWITCH_KEY) or 0,
            started_at=started_at,
            ended_at=ended_at,
            duration=ended_at - started_at if started_at is not None else None,
        )
