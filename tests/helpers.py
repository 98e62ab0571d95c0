"""Test helpers: a fake clock and a session factory."""

from app.services.behavior_engine.metrics import Session

START_MS = 1_700_000_000_000


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float = 0, ms: int = 0) -> int:
        self.now += int(minutes * 60000) + ms
        return self.now


def make_session(
    keystrokes=100,
    backspaces=0,
    mouse_jitter=0,
    tab_switch_count=0,
    minutes=10,
    ended_at=START_MS,
    mouse_moves=0,
) -> Session:
    duration = int(minutes * 60000)
    return Session(
        keystrokes=keystrokes,
        backspaces=backspaces,
        mouse_moves=mouse_moves,
        mouse_jitter=mouse_jitter,
        tab_switch_count=tab_switch_count,
        started_at=ended_at - duration,
        ended_at=ended_at,
        duration=duration,
    )
