"""
Onboarding orchestrator for BlinkUp Bridge.

The central coordinator that:
- Configures the controller's plan ID before anything else runs
- Registers the completion continuations for the SDK activity
- Starts token acquisition and device setup, which then run concurrently
- Turns SDK callbacks into exactly one result on the invocation's channel

Flow states:

    IDLE -> TOKEN_PENDING -> (TOKEN_ACQUIRED) -> SETUP_PENDING -> DONE
                                                              \\-> CANCELLED

TOKEN_ACQUIRED is only visible when the SDK reports the token before setup
has been started. The token phase itself is tracked on the context.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from blinkup_bridge.core.arguments import InvocationRequest, mask_api_key
from blinkup_bridge.core.channel import ResultChannel
from blinkup_bridge.core.config import Config
from blinkup_bridge.core.errors import InvocationInProgressError
from blinkup_bridge.core.outcome import FailureKind, OnboardingOutcome
from blinkup_bridge.core.plan_id import (
    NO_PLAN_ID,
    PLAN_ID_KEY,
    PlanIdSelection,
    PlanIdSource,
    resolve_plan_id,
)
from blinkup_bridge.platform.display import MessageDisplay, MessageDuration
from blinkup_bridge.platform.preferences import PreferenceStore
from blinkup_bridge.platform.ui import UiExecutor
from blinkup_bridge.sdk.controller import BlinkUpController, SetupResult, classify_token_error

logger = logging.getLogger(__name__)

DEFAULT_INVALID_API_KEY_MESSAGE = "Error. Invalid BlinkUp API key."
DEFAULT_ERROR_MESSAGE_PREFIX = "Error. "


class FlowState(str, Enum):
    """Overall state of one invocation."""

    IDLE = "idle"
    TOKEN_PENDING = "token_pending"
    TOKEN_ACQUIRED = "token_acquired"
    SETUP_PENDING = "setup_pending"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PhaseResult:
    """Result of one asynchronous phase (token or setup)."""

    ok: bool
    message: str = ""
    data: Any = None


@dataclass
class InvocationContext:
    """
    Everything one invocation owns.

    SDK callbacks are bound to their context, so a late callback from an
    earlier invocation can never touch a newer one.
    """

    request: InvocationRequest
    channel: ResultChannel
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: FlowState = FlowState.IDLE
    plan: PlanIdSelection = NO_PLAN_ID
    started_at: float = field(default_factory=time.time)
    token: asyncio.Future | None = None
    setup: asyncio.Future | None = None
    outcome: asyncio.Future | None = None

    @property
    def finished(self) -> bool:
        return self.state in (FlowState.DONE, FlowState.CANCELLED)

    @property
    def token_acquired(self) -> bool:
        return _phase_ok(self.token)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "plan_id_source": self.plan.source.value,
            "token_acquired": self.token_acquired,
            "started_at": self.started_at,
        }


def _phase_ok(future: asyncio.Future | None) -> bool:
    if future is None or not future.done() or future.cancelled():
        return False
    return future.result().ok


def _resolve(future: asyncio.Future | None, result: Any) -> None:
    if future is not None and not future.done():
        future.set_result(result)


class OnboardingOrchestrator:
    """
    Drives one BlinkUp invocation at a time against an SDK controller.

    Must be started from the UI loop. Callbacks may arrive on any thread;
    they are routed back onto the UI loop before touching state.
    """

    def __init__(
        self,
        controller: BlinkUpController,
        store: PreferenceStore,
        display: MessageDisplay,
        ui: UiExecutor | None = None,
        debug: bool = False,
        report_transport_errors: bool = False,
        plan_id_key: str = PLAN_ID_KEY,
        invalid_api_key_message: str = DEFAULT_INVALID_API_KEY_MESSAGE,
        error_message_prefix: str = DEFAULT_ERROR_MESSAGE_PREFIX,
    ):
        """
        Args:
            controller: BlinkUp SDK controller
            store: Preference store holding the cached plan ID
            display: Transient message display for the operator
            ui: UI loop executor
            debug: Debug build; developer plan IDs are honoured
            report_transport_errors: Deliver non-401 token errors as
                TRANSPORT_ERROR instead of only showing them
            plan_id_key: Preference key of the cached plan ID
            invalid_api_key_message: Message shown for a rejected API key
            error_message_prefix: Prefix for other token error messages
        """
        self._controller = controller
        self._store = store
        self._display = display
        self._ui = ui or UiExecutor()
        self._debug = debug
        self._report_transport_errors = report_transport_errors
        self._plan_id_key = plan_id_key
        self._invalid_api_key_message = invalid_api_key_message
        self._error_message_prefix = error_message_prefix
        self._current: InvocationContext | None = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        controller: BlinkUpController,
        store: PreferenceStore,
        display: MessageDisplay,
        ui: UiExecutor | None = None,
    ) -> OnboardingOrchestrator:
        return cls(
            controller=controller,
            store=store,
            display=display,
            ui=ui,
            debug=config.system.debug,
            report_transport_errors=config.flow.report_transport_errors,
            plan_id_key=config.preferences.plan_id_key,
            invalid_api_key_message=config.flow.invalid_api_key_message,
            error_message_prefix=config.flow.error_message_prefix,
        )

    @property
    def controller(self) -> BlinkUpController:
        return self._controller

    @property
    def store(self) -> PreferenceStore:
        return self._store

    @property
    def current(self) -> InvocationContext | None:
        """Most recent invocation, finished or not."""
        return self._current

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.finished

    # ========================================================================
    # Invocation
    # ========================================================================

    def start(self, request: InvocationRequest, channel: ResultChannel) -> InvocationContext:
        """
        Start the onboarding flow for a validated request.

        Runs the start sequence in order: resolve plan ID, configure the
        controller, register completion targets, start token acquisition,
        start device setup. Returns once both asynchronous phases are issued.

        Raises:
            InvocationInProgressError: If another invocation is in flight
        """
        if self.in_flight:
            raise InvocationInProgressError(
                f"Invocation {self._current.id} is still {self._current.state.value}"
            )

        context = InvocationContext(request=request, channel=channel)
        loop = self._ui.loop
        context.token = loop.create_future()
        context.setup = loop.create_future()
        context.outcome = loop.create_future()
        self._current = context

        logger.info(
            f"Starting BlinkUp {context.id} (api key {mask_api_key(request.api_key)}, "
            f"timeout {request.timeout_ms} ms)"
        )

        # Plan ID is written once, before either phase starts
        context.plan = resolve_plan_id(request, self._store, self._debug, self._plan_id_key)
        if not context.plan.is_none:
            self._controller.configure_plan_id(context.plan.plan_id)

        # Fired by the controller's activity-result handling, not by us
        self._controller.on_setup_complete = self._bind(self._on_setup_complete, context)
        self._controller.on_clear_complete = self._bind(self._on_clear_complete, context)
        self._controller.on_setup_cancelled = self._bind(self._on_setup_cancelled, context)

        context.state = FlowState.TOKEN_PENDING
        self._controller.acquire_token(
            request.api_key,
            self._bind(self._on_token_success, context),
            self._bind(self._on_token_error, context),
            request.timeout_ms,
        )

        # Setup is issued even if the token phase already finished the
        # invocation; its callbacks are then ignored
        if not context.finished:
            context.state = FlowState.SETUP_PENDING
        self._controller.start_device_setup(
            request.api_key,
            self._bind(self._on_server_error, context),
            request.timeout_ms,
        )
        return context

    def cancel(self, context: InvocationContext | None = None) -> bool:
        """
        Abandon an in-flight invocation.

        Nothing is delivered on the channel. The controller is asked to
        cancel, but it may keep running; its callbacks are ignored.

        Returns:
            True if an in-flight invocation was cancelled
        """
        context = context or self._current
        if context is None or context.finished:
            return False

        context.state = FlowState.CANCELLED
        for future in (context.token, context.setup, context.outcome):
            if future is not None and not future.done():
                future.cancel()

        self._controller.cancel()
        logger.info(f"BlinkUp {context.id} cancelled")
        return True

    async def wait(
        self, context: InvocationContext, timeout: float | None = None
    ) -> OnboardingOutcome:
        """
        Wait for an invocation's terminal outcome.

        Raises:
            asyncio.TimeoutError: If no outcome arrives within timeout
            asyncio.CancelledError: If the invocation was cancelled
        """
        return await asyncio.wait_for(asyncio.shield(context.outcome), timeout)

    # ========================================================================
    # SDK Callbacks
    # ========================================================================

    def _bind(self, handler: Any, context: InvocationContext) -> Any:
        return self._ui.bind(functools.partial(handler, context))

    def _on_token_success(self, context: InvocationContext, plan_id: str, token_id: str) -> None:
        if context.finished:
            logger.debug(f"Ignoring token for finished BlinkUp {context.id}")
            return

        _resolve(context.token, PhaseResult(True, data={"plan_id": plan_id, "token_id": token_id}))
        if context.state is FlowState.TOKEN_PENDING:
            context.state = FlowState.TOKEN_ACQUIRED
        # Not a result for the caller
        logger.info(f"Setup token acquired for BlinkUp {context.id}")

    def _on_token_error(self, context: InvocationContext, message: str) -> None:
        if context.finished:
            logger.debug(f"Ignoring token error for finished BlinkUp {context.id}: {message}")
            return

        _resolve(context.token, PhaseResult(False, message=message))
        kind = classify_token_error(message)

        if kind is FailureKind.INVALID_API_KEY:
            self._display.show(self._invalid_api_key_message, MessageDuration.LONG)
            self._finish(context, OnboardingOutcome.failure(kind, message))
            return

        self._display.show(f"{self._error_message_prefix}{message}", MessageDuration.SHORT)
        if self._report_transport_errors:
            self._finish(context, OnboardingOutcome.failure(kind, message))
        else:
            logger.warning(
                f"Token acquisition failed for BlinkUp {context.id}: {message} "
                "(not reported, waiting on device setup)"
            )

    def _on_server_error(self, context: InvocationContext, message: str) -> None:
        if context.finished:
            logger.debug(f"Ignoring server error for finished BlinkUp {context.id}: {message}")
            return

        _resolve(context.setup, PhaseResult(False, message=message))
        logger.error(f"Server verification failed for BlinkUp {context.id}: {message}")
        self._finish(
            context,
            OnboardingOutcome.failure(FailureKind.SERVER_VERIFICATION_FAILED, message),
        )

    def _on_setup_complete(self, context: InvocationContext, result: SetupResult) -> None:
        if context.finished:
            logger.debug(f"Ignoring setup completion for finished BlinkUp {context.id}")
            return

        _resolve(context.setup, PhaseResult(True, data=result))

        # A developer plan ID must never end up in the cache
        if result.plan_id and context.plan.source is not PlanIdSource.DEVELOPER:
            self._store.set(self._plan_id_key, result.plan_id)
            logger.info(f"Cached plan ID from BlinkUp {context.id}")

        self._finish(context, OnboardingOutcome.success(result.to_payload()))

    def _on_clear_complete(self, context: InvocationContext) -> None:
        if context.finished:
            logger.debug(f"Ignoring clear completion for finished BlinkUp {context.id}")
            return

        _resolve(context.setup, PhaseResult(True, data=None))
        # Cleared devices start over with a fresh plan ID
        self._store.remove(self._plan_id_key)
        self._finish(context, OnboardingOutcome.success({"status": "cleared"}))

    def _on_setup_cancelled(self, context: InvocationContext) -> None:
        # The user backed out of the SDK activity; nothing is reported
        if self.cancel(context):
            logger.info(f"BlinkUp {context.id} abandoned by the user")

    def _finish(self, context: InvocationContext, outcome: OnboardingOutcome) -> None:
        context.state = FlowState.DONE
        for future in (context.token, context.setup):
            if future is not None and not future.done():
                future.cancel()
        _resolve(context.outcome, outcome)

        context.channel.deliver(outcome)
        elapsed = time.time() - context.started_at
        logger.info(f"BlinkUp {context.id} done in {elapsed:.1f}s")
