"""
Behavior Engine - Behavioral Signal Aggregation & Risk Scoring

Counts interaction events per session, keeps the session history, and
scores live and historical sessions against a baseline.
"""

from .engine import BehaviorEngine, build_engine
from .errors import BehaviorEngineError, InvalidTransitionError, MalformedImportError

__all__ = [
    "BehaviorEngine",
    "build_engine",
    "BehaviorEngineError",
    "InvalidTransitionError",
    "MalformedImportError",
]
