"""Baseline estimator tests."""

import pytest

from app.services.behavior_engine.baseline import BaselineEstimator
from app.services.behavior_engine.history import HistoryAggregator
from app.services.behavior_engine.metrics import DEFAULT_BASELINE, Baseline, LiveMetrics, Session, duration_minutes
from app.services.behavior_engine.scoring import StressScorer

from helpers import START_MS, make_session

estimator = BaselineEstimator()


@pytest.mark.parametrize("count", [0, 1, 2])
def test_short_history_returns_default(count):
    history = [make_session() for _ in range(count)]
    baseline = estimator.compute_baseline(history)
    assert baseline == DEFAULT_BASELINE
    assert baseline.to_dict() == {"errorRate": 0.1, "tabSwitchRate": 2, "mouseJitter": 100}


def test_averages_over_all_sessions():
    history = [
        make_session(keystrokes=100, backspaces=10, mouse_jitter=50, tab_switch_count=5, minutes=10),
        make_session(keystrokes=200, backspaces=40, mouse_jitter=100, tab_switch_count=10, minutes=10),
        make_session(keystrokes=300, backspaces=0, mouse_jitter=150, tab_switch_count=15, minutes=10),
        make_session(keystrokes=400, backspaces=40, mouse_jitter=200, tab_switch_count=20, minutes=20),
    ]

    baseline = estimator.compute_baseline(history)

    assert baseline.error_rate == pytest.approx((0.1 + 0.2 + 0.0 + 0.1) / 4)
    assert baseline.tab_switch_rate == pytest.approx((0.5 + 1.0 + 1.5 + 1.0) / 4)
    assert baseline.mouse_jitter == pytest.approx((5 + 10 + 15 + 10) / 4)
    assert baseline.typing_speed == pytest.approx((10 + 20 + 30 + 20) / 4)


def test_zero_backspace_history_gives_zero_error_baseline():
    history = [make_session(keystrokes=k, minutes=10) for k in (100, 200, 300)]

    baseline = estimator.compute_baseline(history)

    assert baseline.error_rate == 0
    assert baseline.typing_speed == pytest.approx(20)
    # The zero error baseline is skipped, not divided by
    score = StressScorer().score(LiveMetrics(keystrokes=50, backspaces=25), baseline, 0, 5)
    assert 0 <= score <= 100


def test_sessions_without_duration_count_as_one_minute():
    history = [Session(keystrokes=60, mouse_jitter=6, tab_switch_count=3) for _ in range(3)]
    baseline = estimator.compute_baseline(history)
    assert baseline.typing_speed == 60
    assert baseline.mouse_jitter == 6
    assert baseline.tab_switch_rate == 3


@pytest.mark.parametrize("duration,expected", [
    (0, 0.5),
    (-60000, 0.5),
    (1, 0.5),
    (30000, 0.5),
    (45000, 0.75),
    (600000, 10),
    (None, 1),
])
def test_duration_minutes_floor(duration, expected):
    assert duration_minutes(duration) == expected


def test_burnout_baseline_uses_first_twenty_chronologically():
    # Stored newest first; first twenty by end time have 100 keystrokes in 10 minutes
    early = [make_session(keystrokes=100, minutes=10, ended_at=START_MS + i) for i in range(20)]
    late = [make_session(keystrokes=1000, backspaces=500, minutes=10, ended_at=START_MS + 100 + i) for i in range(5)]
    enriched = HistoryAggregator().enrich(list(reversed(early + late)))

    baseline = estimator.compute_burnout_baseline(enriched)

    assert baseline.sample_size == 20
    assert baseline.typing == pytest.approx(2.0)   # 100 / 10 / 5
    assert baseline.error == 0


def test_burnout_baseline_with_short_history_uses_everything():
    enriched = HistoryAggregator().enrich([make_session(keystrokes=50, minutes=10), make_session(keystrokes=150, minutes=10)])
    baseline = estimator.compute_burnout_baseline(enriched)
    assert baseline.sample_size == 2
    assert baseline.typing == pytest.approx(2.0)


def test_burnout_baseline_of_nothing_is_zero():
    baseline = estimator.compute_burnout_baseline([])
    assert baseline.typing == baseline.error == baseline.jitter == baseline.tabs == 0


def test_live_and_burnout_typing_scales_differ():
    history = [make_session(keystrokes=100, minutes=10) for _ in range(3)]
    live = estimator.compute_baseline(history)
    burnout = estimator.compute_burnout_baseline(HistoryAggregator().enrich(history))
    assert live.typing_speed == pytest.approx(burnout.typing * 5)


def test_default_baseline_typing_reference():
    assert isinstance(DEFAULT_BASELINE, Baseline)
    assert DEFAULT_BASELINE.typing_speed is None
