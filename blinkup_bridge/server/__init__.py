"""HTTP surface for the script layer."""

from blinkup_bridge.server.app import BridgeServer

__all__ = ["BridgeServer"]
