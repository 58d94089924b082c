"""
Exception hierarchy for BlinkUp Bridge.
"""

from __future__ import annotations


class BlinkUpError(Exception):
    """Base class for all bridge errors."""


class InvalidArgumentsError(BlinkUpError):
    """The invocation payload is missing a position or has the wrong type."""

    def __init__(self, position: int | None, reason: str):
        self.position = position
        self.reason = reason
        if position is None:
            super().__init__(f"Invalid arguments: {reason}")
        else:
            super().__init__(f"Invalid argument at position {position}: {reason}")


class ResultAlreadyDeliveredError(BlinkUpError):
    """A second terminal result was pushed through a latched result channel."""


class InvocationInProgressError(BlinkUpError):
    """Another invocation is still in flight on this controller."""
