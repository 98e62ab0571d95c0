"""Session lifecycle tests: start / stop / reset and the live score."""

import pytest

from app.services.behavior_engine.errors import InvalidTransitionError
from app.services.behavior_engine.metrics import (
    HISTORY_KEY,
    LIVE_METRICS_KEY,
    SESSION_START_KEY,
    TAB_SWITCH_KEY,
    TRACKING_KEY,
)
from app.services.behavior_engine.notifier import StatusSeverity
from app.services.behavior_engine.scoring import RiskLevel

from helpers import START_MS


def _type(engine, count, key="a"):
    for _ in range(count):
        engine.accumulator.record_keydown(key)


def test_status_message_before_first_start(engine):
    assert engine.lifecycle.status_message() == "Ready"
    engine.lifecycle.start()
    assert engine.lifecycle.status_message() == "Tracking active"
    engine.lifecycle.stop()
    assert engine.lifecycle.status_message() == "Tracking stopped"


def test_start_sets_tracking_and_fresh_counters(engine, store):
    store.set({LIVE_METRICS_KEY: {"keystrokes": 9}, TAB_SWITCH_KEY: 4})

    started_at = engine.lifecycle.start()

    data = store.get([TRACKING_KEY, SESSION_START_KEY, LIVE_METRICS_KEY, TAB_SWITCH_KEY])
    assert started_at == START_MS
    assert data[TRACKING_KEY] is True
    assert data[SESSION_START_KEY] == START_MS
    assert data[LIVE_METRICS_KEY]["keystrokes"] == 0
    assert data[TAB_SWITCH_KEY] == 0


def test_start_while_tracking_is_rejected(engine):
    engine.lifecycle.start()
    with pytest.raises(InvalidTransitionError):
        engine.lifecycle.start()


def test_stop_while_idle_is_rejected(engine):
    with pytest.raises(InvalidTransitionError):
        engine.lifecycle.stop()


def test_stop_commits_session(engine, clock, store):
    engine.lifecycle.start()
    _type(engine, 40)
    _type(engine, 5, key="Backspace")
    engine.accumulator.record_tab_switch()
    clock.advance(minutes=12)

    session = engine.lifecycle.stop()

    assert session.keystrokes == 45
    assert session.backspaces == 5
    assert session.tab_switch_count == 1
    assert session.started_at == START_MS
    assert session.ended_at == START_MS + 12 * 60000
    assert session.duration == 12 * 60000

    data = store.get([HISTORY_KEY, TRACKING_KEY, SESSION_START_KEY, LIVE_METRICS_KEY, TAB_SWITCH_KEY])
    assert data[HISTORY_KEY] == [session.to_dict()]
    assert data[TRACKING_KEY] is False
    assert data[SESSION_START_KEY] is None
    assert data[LIVE_METRICS_KEY]["keystrokes"] == 0
    assert data[TAB_SWITCH_KEY] == 0


def test_stop_without_keystrokes_discards_session(engine, store):
    engine.lifecycle.start()
    engine.accumulator.record_mouse_move(0, 0)
    engine.accumulator.record_mouse_move(500, 500)
    engine.accumulator.record_tab_switch()

    assert engine.lifecycle.stop() is None

    data = store.get([HISTORY_KEY, TRACKING_KEY, TAB_SWITCH_KEY])
    assert data[HISTORY_KEY] == []
    assert data[TRACKING_KEY] is False
    assert data[TAB_SWITCH_KEY] == 0


def test_stop_without_session_start_assumes_one_minute(engine, clock, store):
    engine.lifecycle.start()
    _type(engine, 3)
    store.set({SESSION_START_KEY: None})
    clock.advance(minutes=30)

    session = engine.lifecycle.stop()

    assert session.started_at == session.ended_at - 60000
    assert session.duration == 60000


def test_events_after_stop_do_not_touch_committed_session(engine, store):
    engine.lifecycle.start()
    _type(engine, 10)
    session = engine.lifecycle.stop()

    _type(engine, 10)

    assert engine.lifecycle.history() == [session]
    assert store.get([LIVE_METRICS_KEY])[LIVE_METRICS_KEY]["keystrokes"] == 0


def test_reset_always_commits_and_keeps_tracking(engine, clock, store):
    engine.lifecycle.start()
    engine.accumulator.record_tab_switch()
    clock.advance(minutes=2)

    session = engine.lifecycle.reset()

    assert session.keystrokes == 0
    assert session.tab_switch_count == 1
    assert session.ended_at == START_MS + 2 * 60000
    assert len(engine.lifecycle.history()) == 1

    data = store.get([TRACKING_KEY, SESSION_START_KEY, TAB_SWITCH_KEY])
    assert data[TRACKING_KEY] is True
    assert data[SESSION_START_KEY] is None
    assert data[TAB_SWITCH_KEY] == 0

    # Counting continues into the fresh counters
    _type(engine, 2)
    assert store.get([LIVE_METRICS_KEY])[LIVE_METRICS_KEY]["keystrokes"] == 2


def test_reset_while_idle_needs_pending_counters(engine, store):
    with pytest.raises(InvalidTransitionError):
        engine.lifecycle.reset()

    store.set({LIVE_METRICS_KEY: {"keystrokes": 3, "backspaces": 0, "mouseMoves": 0, "mouseJitter": 0}})
    session = engine.lifecycle.reset()

    assert session.keystrokes == 3
    assert session.started_at is None
    assert session.duration is None
    assert engine.lifecycle.is_tracking() is False


def test_transitions_notify_status(engine):
    seen = []
    engine.notifier.subscribe_status(lambda message, severity: seen.append((message, severity)))

    engine.lifecycle.start()
    _type(engine, 1)
    engine.lifecycle.reset()
    engine.lifecycle.stop()

    assert seen == [
        ("Tracking active", StatusSeverity.ACTIVE),
        ("Session saved & reset", StatusSeverity.INFO),
        ("Tracking stopped & session saved", StatusSeverity.STOPPED),
    ]


def test_refresh_skips_without_snapshot(engine):
    scores = []
    engine.notifier.subscribe_scores(lambda score, level: scores.append(score))

    assert engine.lifecycle.refresh() is None
    assert scores == []


def test_refresh_scores_running_session(engine, clock):
    scores = []
    engine.notifier.subscribe_scores(lambda score, level: scores.append((score, level)))
    engine.lifecycle.start()
    clock.advance(minutes=1)

    result = engine.lifecycle.refresh()

    # Nothing typed yet: every deviation is at or below baseline
    assert result is not None
    assert 0 <= result.score <= 100
    assert scores == [(result.score, result.level.value)]


def test_live_score_is_low_for_calm_session(engine, clock):
    engine.lifecycle.start()
    _type(engine, 200)
    clock.advance(minutes=10)

    result = engine.lifecycle.live_score()

    # typing 20/min against the default typing reference of 1/min pulls the score down
    assert result.level == RiskLevel.LOW
