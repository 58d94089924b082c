"""
BlinkUp SDK boundary.

The controller interface the bridge drives and a mock for development.
"""

from blinkup_bridge.sdk.controller import (
    ActivityResult,
    ActivityResultKind,
    BlinkUpController,
    SetupResult,
)
from blinkup_bridge.sdk.mock import MockBlinkUpController

__all__ = [
    "ActivityResult",
    "ActivityResultKind",
    "BlinkUpController",
    "SetupResult",
    "MockBlinkUpController",
]
