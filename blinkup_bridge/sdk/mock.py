"""
Mock BlinkUp controller for development and testing.

Plays back a named scenario with realistic delays instead of talking to
the SDK, similar to the real controller's callback ordering: the token
result arrives first and the setup activity finishes later.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from blinkup_bridge.sdk.controller import (
    ActivityResult,
    ActivityResultKind,
    BlinkUpController,
    ErrorCallback,
    TokenSuccessCallback,
)

logger = logging.getLogger(__name__)

SCENARIOS = (
    "success",
    "invalid_api_key",
    "network_error",
    "server_error",
    "clear",
    "user_cancel",
)


@dataclass
class MockCall:
    """A recorded controller call."""

    method: str
    args: tuple[Any, ...] = field(default_factory=tuple)


class MockBlinkUpController(BlinkUpController):
    """
    Scripted controller.

    Scenarios:
        success: token acquired, then the BlinkUp completes
        invalid_api_key: token request rejected with a 401, later a server error
        network_error: token request fails without a 401, setup never finishes
        server_error: token acquired, then setup reports a server error
        clear: token acquired, then the device's Wi-Fi settings are cleared
        user_cancel: token acquired, then the user backs out of the activity
    """

    def __init__(
        self,
        scenario: str = "success",
        token_delay: float = 0.5,
        setup_delay: float = 2.0,
    ):
        super().__init__()
        if scenario not in SCENARIOS:
            raise ValueError(f"Unknown scenario '{scenario}', expected one of {SCENARIOS}")
        self.scenario = scenario
        self.token_delay = token_delay
        self.setup_delay = setup_delay
        self.plan_id: str | None = None
        self.calls: list[MockCall] = []
        self._handles: list[asyncio.TimerHandle] = []

    def configure_plan_id(self, plan_id: str) -> None:
        self.calls.append(MockCall("configure_plan_id", (plan_id,)))
        self.plan_id = plan_id

    def acquire_token(
        self,
        api_key: str,
        on_success: TokenSuccessCallback,
        on_error: ErrorCallback,
        timeout_ms: int = 0,
    ) -> None:
        self.calls.append(MockCall("acquire_token", (api_key, timeout_ms)))

        if self.scenario == "invalid_api_key":
            self._later(self.token_delay, on_error, "HTTP 401 Unauthorized")
        elif self.scenario == "network_error":
            self._later(self.token_delay, on_error, "network unreachable")
        else:
            if self.plan_id is None:
                self.plan_id = uuid.uuid4().hex
            self._later(self.token_delay, on_success, self.plan_id, uuid.uuid4().hex)

    def start_device_setup(
        self,
        api_key: str,
        on_server_error: ErrorCallback,
        timeout_ms: int = 0,
    ) -> None:
        self.calls.append(MockCall("start_device_setup", (api_key, timeout_ms)))

        if self.scenario in ("server_error", "invalid_api_key"):
            self._later(self.setup_delay, on_server_error, "Server verification failed")
        elif self.scenario == "success":
            self._later(self.setup_delay, self.handle_activity_result, self._blinkup_result())
        elif self.scenario == "clear":
            self._later(
                self.setup_delay,
                self.handle_activity_result,
                ActivityResult(ActivityResultKind.CLEAR),
            )
        elif self.scenario == "user_cancel":
            self._later(
                self.setup_delay,
                self.handle_activity_result,
                ActivityResult(ActivityResultKind.BLINKUP, ok=False),
            )
        # network_error: the operator never finishes the flow

    def cancel(self) -> None:
        self.calls.append(MockCall("cancel"))
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        logger.info("Mock controller cancelled pending callbacks")

    def _blinkup_result(self) -> ActivityResult:
        return ActivityResult(
            ActivityResultKind.BLINKUP,
            data={
                "planId": self.plan_id,
                "deviceId": uuid.uuid4().hex[:16],
                "agentURL": f"https://agent.electricimp.com/{uuid.uuid4().hex[:12]}",
                "verificationDate": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            },
        )

    def _later(self, delay: float, callback: Any, *args: Any) -> None:
        loop = asyncio.get_running_loop()
        self._handles.append(loop.call_later(delay, callback, *args))
