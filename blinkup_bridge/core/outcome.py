"""
Onboarding outcomes and the error codes reported to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorCode(str, Enum):
    """Error codes sent back through the caller's callback context."""

    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    INVALID_API_KEY = "INVALID_API_KEY"
    VERIFY_API_KEY_FAIL = "VERIFY_API_KEY_FAIL"
    # Only used when flow.report_transport_errors is enabled
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


class FailureKind(Enum):
    """Why an invocation failed."""

    INVALID_ARGUMENTS = auto()
    INVALID_API_KEY = auto()
    SERVER_VERIFICATION_FAILED = auto()
    OTHER_TRANSPORT_ERROR = auto()

    @property
    def error_code(self) -> ErrorCode:
        return _ERROR_CODES[self]


_ERROR_CODES = {
    FailureKind.INVALID_ARGUMENTS: ErrorCode.INVALID_ARGUMENTS,
    FailureKind.INVALID_API_KEY: ErrorCode.INVALID_API_KEY,
    FailureKind.SERVER_VERIFICATION_FAILED: ErrorCode.VERIFY_API_KEY_FAIL,
    FailureKind.OTHER_TRANSPORT_ERROR: ErrorCode.TRANSPORT_ERROR,
}


@dataclass(frozen=True)
class OnboardingOutcome:
    """
    Terminal result of one invocation.

    Either a success (with an optional payload for the caller) or a
    failure of a specific kind. Transport failures keep the SDK's message.
    """

    kind: FailureKind | None = None
    message: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, payload: dict[str, Any] | None = None) -> OnboardingOutcome:
        return cls(payload=dict(payload or {}))

    @classmethod
    def failure(cls, kind: FailureKind, message: str = "") -> OnboardingOutcome:
        return cls(kind=kind, message=message)

    @property
    def is_success(self) -> bool:
        return self.kind is None

    @property
    def error_code(self) -> ErrorCode | None:
        """Error code for the caller, or None on success."""
        return None if self.kind is None else self.kind.error_code

    def to_dict(self) -> dict[str, Any]:
        if self.is_success:
            return {"status": "success", "payload": self.payload}
        return {
            "status": "error",
            "code": self.error_code.value,
            "message": self.message,
        }
