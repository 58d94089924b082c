"""
Plugin entry point called by the script layer.

execute() validates the arguments, then presents BlinkUp on the UI loop
and lets the orchestrator report the result through the caller's callback
context.
"""

from __future__ import annotations

import logging
from typing import Any

from blinkup_bridge.core.arguments import InvocationRequest, parse_arguments
from blinkup_bridge.core.channel import CallbackContext, ResultChannel
from blinkup_bridge.core.config import Config
from blinkup_bridge.core.errors import InvalidArgumentsError
from blinkup_bridge.core.orchestrator import InvocationContext, OnboardingOrchestrator
from blinkup_bridge.core.outcome import FailureKind
from blinkup_bridge.platform.display import MessageDisplay
from blinkup_bridge.platform.preferences import PreferenceStore, create_store
from blinkup_bridge.platform.ui import UiExecutor
from blinkup_bridge.sdk.controller import BlinkUpController

logger = logging.getLogger(__name__)

ACTION_INVOKE_BLINKUP = "invokeBlinkUp"


class BlinkUpPlugin:
    """Dispatches script-layer actions to the onboarding orchestrator."""

    def __init__(
        self,
        orchestrator: OnboardingOrchestrator,
        ui: UiExecutor,
        strict_delivery: bool = False,
    ):
        self._orchestrator = orchestrator
        self._ui = ui
        self._strict_delivery = strict_delivery
        self._last_context: InvocationContext | None = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        controller: BlinkUpController,
        display: MessageDisplay,
        store: PreferenceStore | None = None,
        ui: UiExecutor | None = None,
    ) -> BlinkUpPlugin:
        """Wire a plugin and its orchestrator from configuration."""
        ui = ui or UiExecutor()
        if store is None:
            prefs = config.preferences
            store = create_store(prefs.backend, prefs.directory, prefs.name)
        orchestrator = OnboardingOrchestrator.from_config(config, controller, store, display, ui)
        return cls(orchestrator, ui, strict_delivery=config.flow.strict_delivery)

    @property
    def orchestrator(self) -> OnboardingOrchestrator:
        return self._orchestrator

    @property
    def last_context(self) -> InvocationContext | None:
        return self._last_context

    def execute(self, action: str, args: Any, callback: CallbackContext) -> bool:
        """
        Handle an action from the script layer.

        An unfinished earlier invocation is cancelled and replaced; its
        caller receives nothing.

        Args:
            action: Action name; only "invokeBlinkUp" (any case) is handled
            args: Positional payload [api_key, developer_plan_id, timeout_ms,
                use_cached_plan_id]
            callback: Receives exactly one result for a started invocation

        Returns:
            False if the arguments were invalid, True otherwise
        """
        if action.lower() != ACTION_INVOKE_BLINKUP.lower():
            # Acknowledged but ignored, matching the platform plugin contract
            logger.warning(f"Ignoring unknown action: {action}")
            return True

        channel = ResultChannel(callback, strict=self._strict_delivery)

        try:
            request = parse_arguments(args)
        except InvalidArgumentsError as e:
            logger.warning(str(e))
            channel.fail(FailureKind.INVALID_ARGUMENTS, str(e))
            return False

        # BlinkUp has UI, so it must run on the UI loop
        self._ui.run_on_ui_thread(self._present_blinkup, request, channel)
        return True

    def _present_blinkup(self, request: InvocationRequest, channel: ResultChannel) -> None:
        # Checked on the UI loop so invocations queued from other threads
        # replace each other in order
        previous = self._orchestrator.current
        if self._orchestrator.cancel():
            logger.warning(f"BlinkUp {previous.id} superseded by a new invocation")
        self._last_context = self._orchestrator.start(request, channel)
