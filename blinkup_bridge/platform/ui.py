"""
UI-thread scheduling.

All work that touches interactive state runs on one asyncio event loop,
the bridge's equivalent of a platform UI thread. SDK callbacks may fire on
any thread and are posted back to that loop.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class UiExecutor:
    """
    Runs callables on the UI event loop.

    If no loop is given, the executor binds to the running loop the first
    time it is used from inside one.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def is_ui_thread(self) -> bool:
        """Whether the caller is running on the UI loop."""
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def run_on_ui_thread(self, func: Callable[..., Any], *args: Any) -> None:
        """
        Run func on the UI loop.

        Runs immediately when already on the UI loop, otherwise it is
        queued and runs on the loop's next iteration.
        """
        if self.is_ui_thread():
            func(*args)
        else:
            self.loop.call_soon_threadsafe(functools.partial(func, *args))

    def bind(self, func: Callable[..., Any]) -> Callable[..., None]:
        """Wrap func so every call is routed onto the UI loop."""

        @functools.wraps(func)
        def wrapper(*args: Any) -> None:
            self.run_on_ui_thread(func, *args)

        return wrapper
