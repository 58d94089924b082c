"""
Tests for UI-loop scheduling and message display.

Covers:
- Inline execution on the UI loop
- Posting from other threads
- Message display recording
"""

from __future__ import annotations

import asyncio
import logging
import threading

import pytest

from blinkup_bridge.platform.display import (
    LoggingMessageDisplay,
    MessageDuration,
    RecordingMessageDisplay,
)
from blinkup_bridge.platform.ui import UiExecutor


class TestUiExecutor:
    """Tests for UiExecutor."""

    @pytest.mark.asyncio
    async def test_binds_to_running_loop(self, ui):
        assert ui.loop is asyncio.get_running_loop()
        assert ui.is_ui_thread()

    @pytest.mark.asyncio
    async def test_runs_inline_on_ui_loop(self, ui):
        calls = []

        ui.run_on_ui_thread(calls.append, "now")

        assert calls == ["now"]

    @pytest.mark.asyncio
    async def test_posts_from_other_thread(self, ui, drain):
        ui.loop  # bind
        calls = []

        def worker():
            assert not ui.is_ui_thread()
            ui.run_on_ui_thread(lambda: calls.append(threading.current_thread().name))

        thread = threading.Thread(target=worker, name="sdk-thread")
        thread.start()
        thread.join()
        assert calls == []

        await drain()

        assert calls == [threading.current_thread().name]

    @pytest.mark.asyncio
    async def test_bind_wraps_callable(self, ui):
        calls = []

        def record(a, b):
            calls.append((a, b))

        bound = ui.bind(record)
        bound(1, 2)

        assert calls == [(1, 2)]
        assert bound.__name__ == "record"

    def test_explicit_loop(self):
        loop = asyncio.new_event_loop()
        try:
            executor = UiExecutor(loop)
            assert executor.loop is loop
            assert not executor.is_ui_thread()
        finally:
            loop.close()


class TestMessageDisplay:
    """Tests for message displays."""

    def test_recording_display(self):
        display = RecordingMessageDisplay()

        display.show("Error. network unreachable")
        display.show("Error. Invalid BlinkUp API key.", MessageDuration.LONG)

        assert [m.text for m in display.messages] == [
            "Error. network unreachable",
            "Error. Invalid BlinkUp API key.",
        ]
        assert display.messages[0].duration is MessageDuration.SHORT
        assert display.messages[1].duration is MessageDuration.LONG

    def test_recording_display_limit(self):
        display = RecordingMessageDisplay(limit=2)

        for i in range(5):
            display.show(f"message {i}")

        assert [m.text for m in display.messages] == ["message 3", "message 4"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_recording_display_limit_must_be_positive(self, limit):
        with pytest.raises(ValueError):
            RecordingMessageDisplay(limit=limit)

    def test_recording_display_limit_after_many_messages(self):
        display = RecordingMessageDisplay(limit=3)

        for i in range(1000):
            display.show(f"message {i}")

        assert len(display.messages) == 3
        assert display.messages[-1].text == "message 999"

    def test_recording_display_clear(self):
        display = RecordingMessageDisplay()
        display.show("hello")
        display.clear()

        assert display.messages == []

    def test_logging_display(self, caplog):
        display = LoggingMessageDisplay()

        with caplog.at_level(logging.WARNING):
            display.show("Error. timeout", MessageDuration.LONG)

        assert "[long] Error. timeout" in caplog.text
