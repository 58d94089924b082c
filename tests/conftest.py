"""Pytest configuration and fixtures."""

import asyncio

import pytest

from blinkup_bridge.core.arguments import InvocationRequest
from blinkup_bridge.core.channel import RecordingCallbackContext, ResultChannel
from blinkup_bridge.core.orchestrator import OnboardingOrchestrator
from blinkup_bridge.platform.display import RecordingMessageDisplay
from blinkup_bridge.platform.preferences import MemoryPreferenceStore
from blinkup_bridge.platform.ui import UiExecutor
from blinkup_bridge.sdk.controller import BlinkUpController


class FakeController(BlinkUpController):
    """Controller that records calls and hands the callbacks to the test."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []
        self.token_success = None
        self.token_error = None
        self.server_error = None
        self.cancelled = False

    def configure_plan_id(self, plan_id):
        self.calls.append(("configure_plan_id", plan_id))

    def acquire_token(self, api_key, on_success, on_error, timeout_ms=0):
        self.calls.append(("acquire_token", api_key, timeout_ms))
        self.token_success = on_success
        self.token_error = on_error

    def start_device_setup(self, api_key, on_server_error, timeout_ms=0):
        self.calls.append(("start_device_setup", api_key, timeout_ms))
        self.server_error = on_server_error

    def cancel(self):
        self.calls.append(("cancel",))
        self.cancelled = True

    def called(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    @property
    def methods(self) -> list[str]:
        return [call[0] for call in self.calls]


async def _drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    """Await to let callbacks posted from other threads run on the loop."""
    return _drain


@pytest.fixture
def controller():
    """Recording BlinkUp controller."""
    return FakeController()


@pytest.fixture
def store():
    """Empty in-memory preference store."""
    return MemoryPreferenceStore()


@pytest.fixture
def display():
    """Message display that records what was shown."""
    return RecordingMessageDisplay()


@pytest.fixture
def ui():
    """UI executor bound lazily to the test's event loop."""
    return UiExecutor()


@pytest.fixture
def callback():
    """Caller callback context that records results."""
    return RecordingCallbackContext()


@pytest.fixture
def channel(callback):
    """Strict result channel: a second delivery fails the test."""
    return ResultChannel(callback, strict=True)


@pytest.fixture
def orchestrator(controller, store, display, ui):
    """Orchestrator for a release build with default flow settings."""
    return OnboardingOrchestrator(controller, store, display, ui)


@pytest.fixture
def sample_request():
    """Valid request with no plan ID preferences."""
    return InvocationRequest(
        api_key="sk_live_abc",
        developer_plan_id="",
        timeout_ms=30000,
        use_cached_plan_id=False,
    )
