"""
Transient user-facing messages ("toasts").

Only used for human-readable diagnostics. Nothing shown here is a result
for the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class MessageDuration(str, Enum):
    """How long a message stays on screen."""

    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class DisplayedMessage:
    """A message that was shown."""

    text: str
    duration: MessageDuration


class MessageDisplay(ABC):
    """Abstract transient message display."""

    @abstractmethod
    def show(self, text: str, duration: MessageDuration = MessageDuration.SHORT) -> None:
        """Show a message to the operator."""
        pass


class LoggingMessageDisplay(MessageDisplay):
    """Writes messages to the log. Used when no screen is attached."""

    def show(self, text: str, duration: MessageDuration = MessageDuration.SHORT) -> None:
        logger.warning(f"[{duration.value}] {text}")


class RecordingMessageDisplay(MessageDisplay):
    """Keeps shown messages so the HTTP surface and tests can read them."""

    def __init__(self, limit: int = 50):
        if limit < 1:
            raise ValueError(f"Message limit must be at least 1, got {limit}")
        self._messages: deque[DisplayedMessage] = deque(maxlen=limit)

    def show(self, text: str, duration: MessageDuration = MessageDuration.SHORT) -> None:
        logger.info(f"Message shown: {text}")
        self._messages.append(DisplayedMessage(text, duration))

    @property
    def messages(self) -> list[DisplayedMessage]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()
