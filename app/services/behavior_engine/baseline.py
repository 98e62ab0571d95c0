from typing import List, Sequence

from app.services.behavior_engine.metrics import (
    DEFAULT_BASELINE,
    Baseline,
    BurnoutBaseline,
    EnrichedSession,
    Session,
)


class BaselineEstimator:
    """
    Builds the "normal" behavioral profile that scores are compared against.

    Two profiles exist and they are deliberately not the same:
    - compute_baseline(): live scoring. Averages over ALL sessions, needs at
      least MIN_SESSIONS, otherwise the fixed default profile is returned.
      Typing speed is plain keystrokes per minute.
    - compute_burnout_baseline(): history analysis. Averages over the first
      BURNOUT_WINDOW sessions (chronological), whatever is available.
      Typing speed there is keystrokes per minute / 5.
    """

    MIN_SESSIONS = 3
    BURNOUT_WINDOW = 20

    def compute_baseline(self, history: Sequence[Session]) -> Baseline:
        if not history or len(history) < self.MIN_SESSIONS:
            return DEFAULT_BASELINE

        total_typing = 0.0
        total_error = 0.0
        total_switch = 0.0
        total_jitter = 0.0

        for session in history:
            duration_min = session.duration_min
            total_typing += session.keystrokes / duration_min
            total_error += session.backspaces / max(session.keystrokes, 1)
            total_switch += session.tab_switch_count / duration_min
            total_jitter += session.mouse_jitter / duration_min

        n = len(history)
        return Baseline(
            error_rate=total_error / n,
            tab_switch_rate=total_switch / n,
            mouse_jitter=total_jitter / n,
            typing_speed=total_typing / n,
        )

    def compute_burnout_baseline(self, enriched: Sequence[EnrichedSession]) -> BurnoutBaseline:
        """enriched must already be sorted by end time."""
        window: List[EnrichedSession] = list(enriched[: self.BURNOUT_WINDOW])
        return BurnoutBaseline(
            typing=_average(s.typing_speed for s in window),
            error=_average(s.error_ratio for s in window),
            jitter=_average(s.jitter_rate for s in window),
            tabs=_average(s.tab_rate for s in window),
            sample_size=len(window),
        )


def _average(values) -> float:
    values = list(values)
    return sum(values) / max(len(values), 1)
