"""
Derived views over the stored session history.

Nothing here is cached: every call recomputes from the raw sessions, so
the summary can never drift from what is actually stored.
"""

import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from app.services.behavior_engine.baseline import BaselineEstimator
from app.services.behavior_engine.metrics import (
    MS_PER_MINUTE,
    BurnoutBaseline,
    EnrichedSession,
    Session,
)
from app.services.behavior_engine.scoring import BurnoutLevel, BurnoutScorer, round_half_up

TREND_WINDOW = 8
TYPING_SCALE = 5  # history typing speed is keystrokes / minute / 5
MS_PER_DAY = 24 * 60 * 60 * 1000


@dataclass
class TrendSeries:
    """Rates of the most recent sessions, oldest first."""
    session_numbers: List[int] = field(default_factory=list)
    typing_speed: List[float] = field(default_factory=list)
    error_ratio: List[float] = field(default_factory=list)
    tab_rate: List[float] = field(default_factory=list)
    jitter_rate: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Any]]:
        return {
            "sessionNumbers": self.session_numbers,
            "typingSpeed": self.typing_speed,
            "errorRatio": self.error_ratio,
            "tabRate": self.tab_rate,
            "jitterRate": self.jitter_rate,
        }


@dataclass
class HistorySummary:
    total_sessions: int
    average_burnout: float
    burnout_score: int
    burnout_level: BurnoutLevel
    baseline: BurnoutBaseline
    latest: Optional[EnrichedSession]
    trend: TrendSeries
    sessions: List[EnrichedSession] = field(default_factory=list)


class HistoryAggregator:
    """Enriches raw history and reduces it to the dashboard summary."""

    def __init__(
        self,
        estimator: Optional[BaselineEstimator] = None,
        scorer: Optional[BurnoutScorer] = None,
    ):
        self.estimator = estimator or BaselineEstimator()
        self.scorer = scorer or BurnoutScorer()

    def enrich(self, history: Sequence[Session]) -> List[EnrichedSession]:
        """
        Sort by end time and attach per-minute rates and burnout scores.

        Sessions without an end time sort first; ties keep stored order.
        """
        ordered = sorted(history, key=lambda s: s.ended_at or 0)

        enriched = []
        for session in ordered:
            duration_min = session.duration_min
            enriched.append(EnrichedSession(
                session=session,
                duration_min=duration_min,
                typing_speed=session.keystrokes / duration_min / TYPING_SCALE,
                error_ratio=session.backspaces / max(session.keystrokes, 1),
                jitter_rate=session.mouse_jitter / duration_min,
                tab_rate=session.tab_switch_count / duration_min,
            ))

        baseline = self.estimator.compute_burnout_baseline(enriched)
        self.scorer.score_sessions(enriched, baseline)
        return enriched

    def summarize(self, history: Sequence[Session]) -> HistorySummary:
        enriched = self.enrich(history)
        baseline = self.estimator.compute_burnout_baseline(enriched)

        if not enriched:
            return HistorySummary(
                total_sessions=0,
                average_burnout=0.0,
                burnout_score=0,
                burnout_level=self.scorer.level(0),
                baseline=baseline,
                latest=None,
                trend=TrendSeries(),
            )

        average = sum(s.burnout_score for s in enriched) / len(enriched)
        return HistorySummary(
            total_sessions=len(enriched),
            average_burnout=average,
            burnout_score=round_half_up(average),
            burnout_level=self.scorer.level(average),
            baseline=baseline,
            latest=enriched[-1],
            trend=self.trend(enriched),
            sessions=enriched,
        )

    def trend(self, enriched: Sequence[EnrichedSession], window: int = TREND_WINDOW) -> TrendSeries:
        recent = list(enriched[-window:])
        first_number = len(enriched) - len(recent) + 1
        return TrendSeries(
            session_numbers=[first_number + i for i in range(len(recent))],
            typing_speed=[s.typing_speed for s in recent],
            error_ratio=[s.error_ratio for s in recent],
            tab_rate=[s.tab_rate for s in recent],
            jitter_rate=[s.jitter_rate for s in recent],
        )


def generate_demo_history(count: int = 25, seed: Optional[int] = None, now_ms: Optional[int] = None) -> List[Session]:
    """Synthetic sessions, one per day ending today, for showing the summary without data."""
    rng = random.Random(seed)
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)

    sessions = []
    for i in range(count):
        duration = int((10 + rng.random() * 30) * MS_PER_MINUTE)
        ended_at = now_ms - (count - i) * MS_PER_DAY
        sessions.append(Session(
            keystrokes=int(200 + rng.random() * 100),
            backspaces=int(rng.random() * 20),
            mouse_jitter=int(50 + rng.random() * 100),
            tab_switch_count=int(rng.random() * 5),
            started_at=ended_at - duration,
            ended_at=ended_at,
            duration=duration,
        ))
    return sessions
