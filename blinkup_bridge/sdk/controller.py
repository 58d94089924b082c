"""
Boundary to the BlinkUp SDK controller.

The SDK performs the optical pairing, the token exchange with the remote
service and the device setup itself. This module defines the narrow
interface the bridge drives, the activity-result dispatch that fires the
completion continuations, and the one place SDK error text is classified.
"""

from __future__ import annotations

import importlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from blinkup_bridge.core.outcome import FailureKind

logger = logging.getLogger(__name__)

# Callback signatures
TokenSuccessCallback = Callable[[str, str], None]  # (plan_id, token_id)
ErrorCallback = Callable[[str], None]  # (message)


@dataclass(frozen=True)
class SetupResult:
    """Device details reported when a BlinkUp completes."""

    plan_id: str | None = None
    device_id: str | None = None
    agent_url: str | None = None
    verification_date: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": "completed",
            "planId": self.plan_id,
            "deviceId": self.device_id,
            "agentURL": self.agent_url,
            "verificationDate": self.verification_date,
        }


class ActivityResultKind(str, Enum):
    """Which SDK activity finished."""

    BLINKUP = "blinkup"
    CLEAR = "clear"


@dataclass(frozen=True)
class ActivityResult:
    """Result of an SDK activity, as reported by the host platform."""

    kind: ActivityResultKind
    ok: bool = True
    data: dict[str, Any] = field(default_factory=dict)


def classify_token_error(message: str) -> FailureKind:
    """
    Classify a token-acquisition error message.

    The SDK only reports free text. A "401" anywhere in it is taken as an
    authentication failure; this is a heuristic on the message format and
    will misfire if the SDK changes its wording.
    """
    if "401" in message:
        return FailureKind.INVALID_API_KEY
    return FailureKind.OTHER_TRANSPORT_ERROR


class BlinkUpController(ABC):
    """
    Abstract BlinkUp SDK controller.

    The completion continuations are assigned by the orchestrator before
    the flow starts and fired from handle_activity_result() once the host
    platform reports that the SDK activity finished.
    """

    def __init__(self):
        self.on_setup_complete: Callable[[SetupResult], None] | None = None
        self.on_clear_complete: Callable[[], None] | None = None
        self.on_setup_cancelled: Callable[[], None] | None = None

    @abstractmethod
    def configure_plan_id(self, plan_id: str) -> None:
        """Set the plan ID used for the next BlinkUp."""
        pass

    @abstractmethod
    def acquire_token(
        self,
        api_key: str,
        on_success: TokenSuccessCallback,
        on_error: ErrorCallback,
        timeout_ms: int = 0,
    ) -> None:
        """Start acquiring a setup token. Returns immediately."""
        pass

    @abstractmethod
    def start_device_setup(
        self,
        api_key: str,
        on_server_error: ErrorCallback,
        timeout_ms: int = 0,
    ) -> None:
        """Present network selection and run the device setup. Returns immediately."""
        pass

    def cancel(self) -> None:
        """Ask the SDK to abandon in-flight work. Best-effort, may be a no-op."""
        pass

    def handle_activity_result(self, result: ActivityResult) -> bool:
        """
        Dispatch a finished SDK activity to the registered continuation.

        Args:
            result: What the host platform reported

        Returns:
            True if a continuation was invoked
        """
        if not result.ok:
            logger.info(f"{result.kind.value} activity cancelled by user")
            if self.on_setup_cancelled is None:
                return False
            self.on_setup_cancelled()
            return True

        if result.kind is ActivityResultKind.BLINKUP:
            if self.on_setup_complete is None:
                logger.warning("BlinkUp finished with no completion target registered")
                return False
            self.on_setup_complete(
                SetupResult(
                    plan_id=result.data.get("planId"),
                    device_id=result.data.get("deviceId"),
                    agent_url=result.data.get("agentURL"),
                    verification_date=result.data.get("verificationDate"),
                )
            )
            return True

        if self.on_clear_complete is None:
            logger.warning("Clear finished with no completion target registered")
            return False
        self.on_clear_complete()
        return True


def load_controller(path: str) -> BlinkUpController:
    """
    Instantiate a controller from a "package.module:ClassName" path.

    Raises:
        ValueError: If the path is malformed or does not name a BlinkUpController
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ValueError(f"Controller must be given as 'module:ClassName', got '{path}'")

    module = importlib.import_module(module_name)
    controller_class = getattr(module, class_name, None)
    if not isinstance(controller_class, type) or not issubclass(controller_class, BlinkUpController):
        raise ValueError(f"{path} is not a BlinkUpController")

    logger.info(f"Loaded BlinkUp controller {path}")
    return controller_class()
