import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from app.services.behavior_engine.metrics import (
    MIN_DURATION_MIN,
    Baseline,
    BurnoutBaseline,
    EnrichedSession,
    LiveMetrics,
)

# --- LEVELS ---

class RiskLevel(str, Enum):
    LOW = "LOW"
    ELEVATED = "ELEVATED"
    DANGER = "DANGER"

class BurnoutLevel(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"

class StrainLevel(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    ELEVATED = "elevated"


@dataclass
class LiveRates:
    """Per-minute view of the live counters."""
    duration_min: float
    typing_speed: float
    error_ratio: float
    jitter_rate: float
    tab_rate: float

    @classmethod
    def from_metrics(cls, metrics: LiveMetrics, tab_switch_count: int, duration_min: float) -> "LiveRates":
        duration_min = max(duration_min, MIN_DURATION_MIN)
        return cls(
            duration_min=duration_min,
            typing_speed=metrics.keystrokes / duration_min,
            error_ratio=metrics.backspaces / max(metrics.keystrokes, 1),
            jitter_rate=metrics.mouse_jitter / duration_min,
            tab_rate=tab_switch_count / duration_min,
        )


@dataclass
class RiskScore:
    score: int
    level: RiskLevel
    rates: Optional[LiveRates] = None


@dataclass
class StrainResult:
    score: int
    level: StrainLevel


def round_half_up(value: float) -> int:
    """Rounds .5 upwards (2.5 -> 3), unlike the builtin round()."""
    return int(math.floor(value + 0.5))


def logistic(x: float, steepness: float) -> float:
    """1 / (1 + e^(-k*x)), evaluated so that large |x| saturates instead of overflowing."""
    z = steepness * x
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class StressScorer:
    """
    Live stress score for the session being tracked.

    Relative deviation of each rate from the baseline, weighted, then
    squashed through a logistic curve onto 0-100. Faster typing than
    usual lowers the score, everything else raises it.
    """

    W_ERROR = 0.4
    W_TABS = 0.3
    W_JITTER = 0.2
    W_TYPING = 0.3
    STEEPNESS = 3.0

    ELEVATED_FROM = 40
    DANGER_FROM = 70

    def calculate(
        self,
        metrics: LiveMetrics,
        baseline: Baseline,
        tab_switch_count: int,
        duration_min: float,
    ) -> RiskScore:
        rates = LiveRates.from_metrics(metrics, tab_switch_count, duration_min)

        d_error = self._normalize(rates.error_ratio, baseline.error_rate)
        d_switch = self._normalize(rates.tab_rate, baseline.tab_switch_rate)
        d_jitter = self._normalize(rates.jitter_rate, baseline.mouse_jitter)
        # The default profile carries no typing speed; compare against 1 then
        d_typing = self._normalize(rates.typing_speed, baseline.typing_speed or 1)

        weighted = (
            self.W_ERROR * d_error
            + self.W_TABS * d_switch
            + self.W_JITTER * d_jitter
            - self.W_TYPING * d_typing
        )

        probability = logistic(weighted, self.STEEPNESS)
        score = round_half_up(probability * 100)
        return RiskScore(score=score, level=self.level(score), rates=rates)

    def score(self, metrics: LiveMetrics, baseline: Baseline, tab_switch_count: int, duration_min: float) -> int:
        return self.calculate(metrics, baseline, tab_switch_count, duration_min).score

    def level(self, score: float) -> RiskLevel:
        if score < self.ELEVATED_FROM:
            return RiskLevel.LOW
        if score < self.DANGER_FROM:
            return RiskLevel.ELEVATED
        return RiskLevel.DANGER

    def _normalize(self, value: float, baseline: Optional[float]) -> float:
        # Unclamped relative deviation
        if not baseline:
            return 0.0
        return (value - baseline) / baseline


class BurnoutScorer:
    """
    Per-session burnout score used for history analysis.

    Same shape as the live stress score but with its own weights, a
    gentler curve, and deviations clamped to +/-1.5. The first
    WARMUP_SESSIONS sessions only feed the baseline and score a flat 50.
    """

    W_ERROR = 0.35
    W_TABS = 0.25
    W_JITTER = 0.25
    W_TYPING = 0.25
    STEEPNESS = 1.2
    DEVIATION_LIMIT = 1.5

    NEUTRAL_SCORE = 50
    WARMUP_SESSIONS = 20

    LOW_UP_TO = 40
    MODERATE_UP_TO = 70

    def score(self, session: EnrichedSession, baseline: BurnoutBaseline) -> int:
        d_error = self._deviation(session.error_ratio, baseline.error)
        d_tabs = self._deviation(session.tab_rate, baseline.tabs)
        d_jitter = self._deviation(session.jitter_rate, baseline.jitter)
        d_typing = self._deviation(session.typing_speed, baseline.typing)

        s = (
            self.W_ERROR * d_error
            + self.W_TABS * d_tabs
            + self.W_JITTER * d_jitter
            - self.W_TYPING * d_typing
        )

        value = round_half_up(50 + (logistic(s, self.STEEPNESS) - 0.5) * 100)
        return int(clamp(value, 0, 100))

    def score_sessions(self, enriched: Sequence[EnrichedSession], baseline: BurnoutBaseline) -> List[int]:
        """Scores a chronologically sorted history, writing burnout_score onto each entry."""
        scores = []
        for index, session in enumerate(enriched):
            if index < self.WARMUP_SESSIONS:
                session.burnout_score = self.NEUTRAL_SCORE
            else:
                session.burnout_score = self.score(session, baseline)
            scores.append(session.burnout_score)
        return scores

    def level(self, score: float) -> BurnoutLevel:
        if score <= self.LOW_UP_TO:
            return BurnoutLevel.LOW
        if score <= self.MODERATE_UP_TO:
            return BurnoutLevel.MODERATE
        return BurnoutLevel.HIGH

    def _deviation(self, value: float, baseline: float) -> float:
        if not baseline:
            return 0.0
        return clamp((value - baseline) / baseline, -self.DEVIATION_LIMIT, self.DEVIATION_LIMIT)


class StrainScorer:
    """
    Quick threshold check: one point per rate that runs well above its
    baseline. A rate whose baseline value is unknown never scores.
    """

    TYPING_FACTOR = 1.3
    ERROR_FACTOR = 1.25
    JITTER_FACTOR = 1.3

    def calculate(self, rates: LiveRates, baseline: Baseline) -> StrainResult:
        score = 0
        if baseline.typing_speed is not None and rates.typing_speed > baseline.typing_speed * self.TYPING_FACTOR:
            score += 1
        if rates.error_ratio > baseline.error_rate * self.ERROR_FACTOR:
            score += 1
        if rates.jitter_rate > baseline.mouse_jitter * self.JITTER_FACTOR:
            score += 1
        return StrainResult(score=score, level=self._get_label(score))

    def _get_label(self, score: int) -> StrainLevel:
        if score >= 2: return StrainLevel.ELEVATED
        if score == 1: return StrainLevel.MILD
        return StrainLevel.NORMAL
