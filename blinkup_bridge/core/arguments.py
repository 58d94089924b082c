"""
Argument validation for BlinkUp invocations.

The script layer sends four positional values:

    [api_key, developer_plan_id, timeout_ms, use_cached_plan_id]

Every position is required and strictly typed. Nothing is defaulted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from blinkup_bridge.core.errors import InvalidArgumentsError

logger = logging.getLogger(__name__)

# Argument positions
ARG_API_KEY = 0
ARG_DEVELOPER_PLAN_ID = 1
ARG_TIMEOUT_MS = 2
ARG_USE_CACHED_PLAN_ID = 3


@dataclass(frozen=True)
class InvocationRequest:
    """Validated arguments for one BlinkUp invocation."""

    api_key: str
    developer_plan_id: str  # "" means not set
    timeout_ms: int
    use_cached_plan_id: bool


def parse_arguments(args: Any) -> InvocationRequest:
    """
    Validate a positional payload into an InvocationRequest.

    Args:
        args: List (or tuple) of positional values from the caller.
            Positions past the fourth are ignored.

    Returns:
        The validated request

    Raises:
        InvalidArgumentsError: If a position is missing or has the wrong type
    """
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise InvalidArgumentsError(None, f"expected a list, got {type(args).__name__}")

    api_key = _get_string(args, ARG_API_KEY)
    developer_plan_id = _get_string(args, ARG_DEVELOPER_PLAN_ID)
    timeout_ms = _get_int(args, ARG_TIMEOUT_MS)
    use_cached_plan_id = _get_bool(args, ARG_USE_CACHED_PLAN_ID)

    if timeout_ms < 0:
        raise InvalidArgumentsError(ARG_TIMEOUT_MS, f"timeout must be >= 0, got {timeout_ms}")

    return InvocationRequest(
        api_key=api_key,
        developer_plan_id=developer_plan_id,
        timeout_ms=timeout_ms,
        use_cached_plan_id=use_cached_plan_id,
    )


def _get(args: Sequence[Any], position: int) -> Any:
    if position >= len(args):
        raise InvalidArgumentsError(position, "missing")
    return args[position]


def _get_string(args: Sequence[Any], position: int) -> str:
    value = _get(args, position)
    if not isinstance(value, str):
        raise InvalidArgumentsError(position, f"expected string, got {type(value).__name__}")
    return value


def _get_int(args: Sequence[Any], position: int) -> int:
    value = _get(args, position)
    # bool is an int subclass; a flag is never a timeout
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentsError(position, f"expected integer, got {type(value).__name__}")
    return value


def _get_bool(args: Sequence[Any], position: int) -> bool:
    value = _get(args, position)
    if not isinstance(value, bool):
        raise InvalidArgumentsError(position, f"expected boolean, got {type(value).__name__}")
    return value


def mask_api_key(api_key: str) -> str:
    """Shorten an API key for log output."""
    if len(api_key) <= 4:
        return "*" * len(api_key)
    return f"{api_key[:4]}{'*' * (len(api_key) - 4)}"
