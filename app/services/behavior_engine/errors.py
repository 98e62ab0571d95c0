"""
Exceptions raised by the behavior engine.

Missing baseline data and zero denominators are handled in place and
never show up here.
"""


class BehaviorEngineError(Exception):
    """Base class for behavior engine failures."""


class InvalidTransitionError(BehaviorEngineError):
    """A lifecycle transition was requested from a state that does not allow it."""

    def __init__(self, action: str, tracking: bool):
        self.action = action
        self.tracking = tracking
        state = "tracking" if tracking else "idle"
        super().__init__(f"Cannot {action} while {state}")


class MalformedImportError(BehaviorEngineError):
    """An imported report could not be parsed; nothing was written."""
