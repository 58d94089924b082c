"""Core modules for BlinkUp Bridge."""

from blinkup_bridge.core.arguments import InvocationRequest, parse_arguments
from blinkup_bridge.core.channel import CallbackContext, ResultChannel
from blinkup_bridge.core.errors import (
    BlinkUpError,
    InvalidArgumentsError,
    InvocationInProgressError,
    ResultAlreadyDeliveredError,
)
from blinkup_bridge.core.outcome import ErrorCode, FailureKind, OnboardingOutcome

__all__ = [
    "InvocationRequest",
    "parse_arguments",
    "CallbackContext",
    "ResultChannel",
    "BlinkUpError",
    "InvalidArgumentsError",
    "InvocationInProgressError",
    "ResultAlreadyDeliveredError",
    "ErrorCode",
    "FailureKind",
    "OnboardingOutcome",
]
