"""
Report files: {"history": [Session, ...], "tabSwitchCount": n}, pretty-printed.

Field names follow the store layout so reports can be exchanged with
other tools reading the same format.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List

from app.services.behavior_engine.errors import MalformedImportError
from app.services.behavior_engine.metrics import HISTORY_KEY, TAB_SWITCH_KEY, Session
from app.services.behavior_engine.store import KeyValueStore

logger = logging.getLogger(__name__)

REPORT_FILENAME = "neuroflow-report.json"

# Session fields that feed arithmetic; when present they must be finite numbers
NUMERIC_SESSION_FIELDS = (
    "keystrokes",
    "backspaces",
    "mouseMoves",
    "mouseJitter",
    "tabSwitchCount",
    "startedAt",
    "endedAt",
    "duration",
)


@dataclass
class Report:
    history: List[Session]
    tab_switch_count: int = 0


def export_report(store: KeyValueStore) -> str:
    data = store.get([HISTORY_KEY, TAB_SWITCH_KEY])
    payload = {
        HISTORY_KEY: data.get(HISTORY_KEY) or [],
        TAB_SWITCH_KEY: data.get(TAB_SWITCH_KEY) or 0,
    }
    logger.info(f"Exporting report with {len(payload[HISTORY_KEY])} sessions")
    return json.dumps(payload, indent=2)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _check_session(index: int, item: Dict[str, Any]) -> None:
    for name in NUMERIC_SESSION_FIELDS:
        value = item.get(name)
        if value is not None and not _is_number(value):
            raise MalformedImportError(f"Session {index}: '{name}' must be a number, got {value!r}")


def parse_report(text: str) -> Report:
    """Parse and validate report text without touching any store."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedImportError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedImportError("Report must be a JSON object")

    history = data.get(HISTORY_KEY, [])
    if not isinstance(history, list) or not all(isinstance(item, dict) for item in history):
        raise MalformedImportError(f"'{HISTORY_KEY}' must be a list of session objects")
    for index, item in enumerate(history):
        _check_session(index, item)

    tab_switch_count = data.get(TAB_SWITCH_KEY, 0)
    if isinstance(tab_switch_count, bool) or not isinstance(tab_switch_count, int):
        raise MalformedImportError(f"'{TAB_SWITCH_KEY}' must be an integer")

    return Report(
        history=[Session.from_dict(item) for item in history],
        tab_switch_count=tab_switch_count,
    )


def import_report(text: str, store: KeyValueStore) -> Report:
    """
    Replace the stored history with the one in the report.

    The live tab-switch counter is left alone; it belongs to whatever
    session is running now, not to the imported one.
    """
    try:
        report = parse_report(text)
    except MalformedImportError as e:
        logger.warning(f"Report import rejected: {e}")
        raise

    store.set({HISTORY_KEY: [session.to_dict() for session in report.history]})
    logger.info(f"Imported report with {len(report.history)} sessions")
    return report
