from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Store keys. Names are shared with exported report files, do not rename.
LIVE_METRICS_KEY = "liveMetrics"
TAB_SWITCH_KEY = "tabSwitchCount"
HISTORY_KEY = "history"
TRACKING_KEY = "trackingState"
SESSION_START_KEY = "sessionStart"

MS_PER_MINUTE = 60000
DEFAULT_DURATION_MS = 60000  # assumed when a stored session has no duration
MIN_DURATION_MIN = 0.5


def duration_minutes(duration_ms: Optional[float]) -> float:
    """Session length in minutes, never below half a minute."""
    if duration_ms is None:
        duration_ms = DEFAULT_DURATION_MS
    return max(duration_ms / MS_PER_MINUTE, MIN_DURATION_MIN)


@dataclass
class LiveMetrics:
    """
    Raw counters of the session currently being tracked.
    Mutated only through the EventAccumulator while tracking is on.
    """
    keystrokes: int = 0
    backspaces: int = 0
    mouse_moves: int = 0
    # Pointer moves that jumped more than JITTER_DISTANCE from the previous sample
    mouse_jitter: int = 0

    def is_empty(self) -> bool:
        return not (self.keystrokes or self.backspaces or self.mouse_moves or self.mouse_jitter)

    def to_dict(self) -> Dict[str, int]:
        return {
            "keystrokes": self.keystrokes,
            "backspaces": self.backspaces,
            "mouseMoves": self.mouse_moves,
            "mouseJitter": self.mouse_jitter,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LiveMetrics":
        data = data or {}
        return cls(
            keystrokes=data.get("keystrokes") or 0,
            backspaces=data.get("backspaces") or 0,
            mouse_moves=data.get("mouseMoves") or 0,
            mouse_jitter=data.get("mouseJitter") or 0,
        )


@dataclass(frozen=True)
class Session:
    """
    A finished tracking interval as it is stored in history.

    started_at / ended_at are epoch milliseconds. started_at and duration
    may be missing on checkpoints taken by Reset before a start time
    was known; readers then assume a one-minute session.
    """
    keystrokes: int = 0
    backspaces: int = 0
    mouse_moves: int = 0
    mouse_jitter: int = 0
    tab_switch_count: int = 0
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    duration: Optional[int] = None

    @property
    def duration_min(self) -> float:
        return duration_minutes(self.duration)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "keystrokes": self.keystrokes,
            "backspaces": self.backspaces,
            "mouseMoves": self.mouse_moves,
            "mouseJitter": self.mouse_jitter,
            "tabSwitchCount": self.tab_switch_count,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "duration": self.duration,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            keystrokes=data.get("keystrokes") or 0,
            backspaces=data.get("backspaces") or 0,
            mouse_moves=data.get("mouseMoves") or 0,
            mouse_jitter=data.get("mouseJitter") or 0,
            tab_switch_count=data.get("tabSwitchCount") or 0,
            started_at=data.get("startedAt"),
            ended_at=data.get("endedAt"),
            duration=data.get("duration"),
        )


@dataclass
class EnrichedSession:
    """Session plus the per-minute rates used by history analysis."""
    session: Session
    duration_min: float
    typing_speed: float   # keystrokes / minute / 5
    error_ratio: float    # backspaces / keystrokes
    jitter_rate: float    # jitter events / minute
    tab_rate: float       # tab switches / minute
    burnout_score: int = 50

    def to_dict(self) -> Dict[str, Any]:
        data = self.session.to_dict()
        data.update({
            "durationMin": self.duration_min,
            "typingSpeed": self.typing_speed,
            "errorRatio": self.error_ratio,
            "jitterRate": self.jitter_rate,
            "tabRate": self.tab_rate,
            "burnoutScore": self.burnout_score,
        })
        return data


@dataclass(frozen=True)
class Baseline:
    """
    Reference profile for live stress scoring.
    typing_speed is None for the fixed default profile.
    """
    error_rate: float = 0.1
    tab_switch_rate: float = 2.0
    mouse_jitter: float = 100.0
    typing_speed: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "errorRate": self.error_rate,
            "tabSwitchRate": self.tab_switch_rate,
            "mouseJitter": self.mouse_jitter,
        }
        if self.typing_speed is not None:
            data["typingSpeed"] = self.typing_speed
        return data


DEFAULT_BASELINE = Baseline()


@dataclass(frozen=True)
class BurnoutBaseline:
    """Reference profile built from the earliest sessions in history."""
    typing: float = 0.0
    error: float = 0.0
    jitter: float = 0.0
    tabs: float = 0.0
    sample_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typing": self.typing,
            "error": self.error,
            "jitter": self.jitter,
            "tabs": self.tabs,
            "sampleSize": self.sample_size,
        }


@dataclass
class LiveSnapshot:
    """Everything the live score needs, read from the store in one call."""
    metrics: Optional[LiveMetrics]
    tab_switch_count: int
    tracking: bool
    session_start: Optional[int]
    history: list = field(default_factory=list)
