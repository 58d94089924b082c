"""
Result delivery for BlinkUp invocations.

A ResultChannel forwards exactly one terminal result per invocation to the
caller's callback context. It latches on first delivery: later attempts
either raise (strict mode) or are logged and dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

from blinkup_bridge.core.errors import ResultAlreadyDeliveredError
from blinkup_bridge.core.outcome import FailureKind, OnboardingOutcome

logger = logging.getLogger(__name__)


class CallbackContext(ABC):
    """Caller-side receiver of invocation results."""

    @abstractmethod
    def success(self, payload: dict[str, Any] | None = None) -> None:
        """Invocation succeeded."""
        pass

    @abstractmethod
    def error(self, code: str) -> None:
        """Invocation failed with an error code."""
        pass


class RecordingCallbackContext(CallbackContext):
    """
    Callback context that stores what it receives.

    Used by the HTTP surface (results are polled) and the CLI. Counts every
    call so a double delivery is visible.
    """

    def __init__(self):
        self.status = "pending"
        self.code: str | None = None
        self.payload: dict[str, Any] | None = None
        self.calls = 0
        self.completed_at: float | None = None

    def success(self, payload: dict[str, Any] | None = None) -> None:
        self.calls += 1
        self.status = "success"
        self.payload = payload or {}
        self.completed_at = time.time()

    def error(self, code: str) -> None:
        self.calls += 1
        self.status = "error"
        self.code = code
        self.completed_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "code": self.code,
            "payload": self.payload,
            "completed_at": self.completed_at,
        }


class ResultChannel:
    """
    At-most-once sink for one invocation's terminal result.

    Usage:
        channel = ResultChannel(callback_context)
        channel.fail(FailureKind.INVALID_API_KEY)
        channel.delivered  # True
    """

    def __init__(self, callback: CallbackContext, strict: bool = False):
        """
        Args:
            callback: Caller's callback context
            strict: Raise ResultAlreadyDeliveredError on a second delivery
                instead of logging and ignoring it
        """
        self._callback = callback
        self._strict = strict
        self._lock = threading.Lock()
        self._outcome: OnboardingOutcome | None = None

    @property
    def callback(self) -> CallbackContext:
        return self._callback

    @property
    def delivered(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> OnboardingOutcome | None:
        return self._outcome

    def succeed(self, payload: dict[str, Any] | None = None) -> bool:
        """Deliver success. Returns False if a result was already delivered."""
        return self.deliver(OnboardingOutcome.success(payload))

    def fail(self, kind: FailureKind, message: str = "") -> bool:
        """Deliver a failure. Returns False if a result was already delivered."""
        return self.deliver(OnboardingOutcome.failure(kind, message))

    def deliver(self, outcome: OnboardingOutcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                if self._strict:
                    raise ResultAlreadyDeliveredError(
                        f"Result already delivered ({self._describe(self._outcome)}), "
                        f"rejected {self._describe(outcome)}"
                    )
                logger.warning(
                    f"Ignoring second result {self._describe(outcome)}, "
                    f"already delivered {self._describe(self._outcome)}"
                )
                return False
            self._outcome = outcome

        if outcome.is_success:
            self._callback.success(outcome.payload)
        else:
            self._callback.error(outcome.error_code.value)
        logger.info(f"Delivered result: {self._describe(outcome)}")
        return True

    @staticmethod
    def _describe(outcome: OnboardingOutcome) -> str:
        return "success" if outcome.is_success else outcome.error_code.value
