"""Report export/import and store tests."""

import json

import pytest

from app.services.behavior_engine.errors import MalformedImportError
from app.services.behavior_engine.metrics import HISTORY_KEY, TAB_SWITCH_KEY, Session
from app.services.behavior_engine.reports import export_report, import_report, parse_report
from app.services.behavior_engine.store import InMemoryStore, JsonFileStore

from helpers import make_session


def test_export_has_exact_top_level_shape():
    history = [make_session(keystrokes=12, backspaces=1, mouse_moves=40, mouse_jitter=3, tab_switch_count=2)]
    store = InMemoryStore({HISTORY_KEY: [s.to_dict() for s in history], TAB_SWITCH_KEY: 4, "trackingState": True})

    text = export_report(store)
    data = json.loads(text)

    assert set(data) == {"history", "tabSwitchCount"}
    assert data["tabSwitchCount"] == 4
    assert data["history"][0] == {
        "keystrokes": 12,
        "backspaces": 1,
        "mouseMoves": 40,
        "mouseJitter": 3,
        "tabSwitchCount": 2,
        "startedAt": history[0].started_at,
        "endedAt": history[0].ended_at,
        "duration": history[0].duration,
    }
    assert text == json.dumps(data, indent=2)


def test_export_of_empty_store():
    assert json.loads(export_report(InMemoryStore())) == {"history": [], "tabSwitchCount": 0}


def test_export_then_import_round_trip():
    history = [make_session(keystrokes=k, ended_at=1000 + k) for k in (5, 50, 500)]
    history.append(Session(keystrokes=7, tab_switch_count=1, ended_at=99))  # reset checkpoint without start
    source = InMemoryStore({HISTORY_KEY: [s.to_dict() for s in history], TAB_SWITCH_KEY: 0})
    target = InMemoryStore()

    report = import_report(export_report(source), target)

    assert report.history == history
    assert target.get([HISTORY_KEY])[HISTORY_KEY] == source.get([HISTORY_KEY])[HISTORY_KEY]


@pytest.mark.parametrize("text", [
    "not json",
    "",
    "[1, 2, 3]",
    '{"history": {"keystrokes": 1}}',
    '{"history": [1, 2]}',
    '{"history": [], "tabSwitchCount": "3"}',
    '{"history": [], "tabSwitchCount": true}',
    '{"history": [{"keystrokes": "100", "endedAt": 5}]}',
    '{"history": [{"keystrokes": 3, "endedAt": "yesterday"}]}',
    '{"history": [{"duration": true}]}',
    '{"history": [{"backspaces": NaN}]}',
    '{"history": [{"startedAt": [1, 2]}]}',
    '{"history": [{"endedAt": 1}, {"mouseJitter": {"n": 2}}]}',
])
def test_malformed_import_commits_nothing(text):
    store = InMemoryStore({HISTORY_KEY: [make_session().to_dict()]})
    before = store.get([HISTORY_KEY])

    with pytest.raises(MalformedImportError):
        import_report(text, store)

    assert store.get([HISTORY_KEY]) == before


def test_parse_report_fills_missing_counters():
    report = parse_report('{"history": [{"endedAt": 5}]}')
    assert report.history == [Session(ended_at=5)]
    assert report.tab_switch_count == 0


def test_in_memory_store_returns_copies():
    store = InMemoryStore()
    store.set({HISTORY_KEY: []})

    store.get([HISTORY_KEY])[HISTORY_KEY].append("leak")

    assert store.get([HISTORY_KEY, "missing"]) == {HISTORY_KEY: []}


def test_json_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "state" / "store.json"
    JsonFileStore(path).set({TAB_SWITCH_KEY: 3, HISTORY_KEY: [{"keystrokes": 1}]})

    reopened = JsonFileStore(path)

    assert reopened.get([TAB_SWITCH_KEY, HISTORY_KEY]) == {TAB_SWITCH_KEY: 3, HISTORY_KEY: [{"keystrokes": 1}]}
    assert not path.with_suffix(".json.tmp").exists()


def test_json_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken")

    store = JsonFileStore(path)

    assert store.get([HISTORY_KEY]) == {}
