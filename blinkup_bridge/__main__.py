"""
BlinkUp Bridge entry point.

Run with: python -m blinkup_bridge
Or: blinkup-bridge (if installed)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path

from blinkup_bridge import __version__
from blinkup_bridge.core.channel import RecordingCallbackContext
from blinkup_bridge.core.config import Config
from blinkup_bridge.core.orchestrator import FlowState
from blinkup_bridge.platform.display import RecordingMessageDisplay
from blinkup_bridge.plugin import ACTION_INVOKE_BLINKUP, BlinkUpPlugin
from blinkup_bridge.sdk.controller import BlinkUpController, load_controller
from blinkup_bridge.sdk.mock import SCENARIOS, MockBlinkUpController
from blinkup_bridge.server.app import BridgeServer

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_controller(config: Config) -> BlinkUpController:
    """Create the SDK controller named by configuration."""
    if config.mock.enabled:
        return MockBlinkUpController(
            scenario=config.mock.scenario,
            token_delay=config.mock.token_delay_seconds,
            setup_delay=config.mock.setup_delay_seconds,
        )
    if not config.system.controller:
        raise ValueError("No BlinkUp controller configured (set system.controller or use --mock)")
    return load_controller(config.system.controller)


async def run_server(config: Config) -> None:
    """Run the bridge HTTP server until interrupted."""
    display = RecordingMessageDisplay()
    plugin = BlinkUpPlugin.from_config(config, create_controller(config), display)
    server = BridgeServer(plugin, config=config.server, display=display)

    print(f"🔆 BlinkUp Bridge v{__version__}")
    print("=" * 40)
    if config.mock.enabled:
        print(f"📁 Mock controller: scenario '{config.mock.scenario}'")

    await server.start()
    print(f"🌐 Bridge running at http://{config.server.host}:{config.server.port}")
    print("Press Ctrl+C to stop")

    shutdown_event = asyncio.Event()

    def signal_handler():
        print("\n🛑 Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await shutdown_event.wait()
    finally:
        plugin.orchestrator.cancel()
        await server.stop()


async def run_invoke(config: Config, args: list, wait_seconds: float) -> int:
    """
    Run a single invocation and print its result as JSON.

    Returns:
        Process exit code
    """
    display = RecordingMessageDisplay()
    plugin = BlinkUpPlugin.from_config(config, create_controller(config), display)
    callback = RecordingCallbackContext()

    if not plugin.execute(ACTION_INVOKE_BLINKUP, args, callback):
        print(json.dumps(callback.to_dict(), indent=2))
        return 1

    context = plugin.last_context
    try:
        outcome = await plugin.orchestrator.wait(context, timeout=wait_seconds)
    except asyncio.TimeoutError:
        # The flow can legitimately end without a result
        plugin.orchestrator.cancel(context)
        print(json.dumps({"status": "no_result", "messages": [m.text for m in display.messages]}, indent=2))
        return 2
    except asyncio.CancelledError:
        if context.state is not FlowState.CANCELLED:
            raise
        # The user backed out of the BlinkUp screen
        print(json.dumps({"status": "cancelled", "messages": [m.text for m in display.messages]}, indent=2))
        return 2

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.is_success else 1


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="blinkup-bridge",
        description="Drive BlinkUp device onboarding from a script layer",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Configuration file path",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the mock BlinkUp controller",
    )
    parser.add_argument(
        "--scenario",
        choices=SCENARIOS,
        help="Mock controller scenario",
    )
    parser.add_argument(
        "--debug-build",
        action="store_true",
        help="Behave as a debug build (honour developer plan IDs)",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("serve", help="Run the bridge HTTP server (default)")

    invoke_parser = subparsers.add_parser("invoke", help="Run one BlinkUp invocation")
    invoke_parser.add_argument("api_key", help="BlinkUp API key")
    invoke_parser.add_argument("--plan-id", default="", help="Developer plan ID")
    invoke_parser.add_argument("--timeout-ms", type=int, default=60000, help="SDK timeout")
    invoke_parser.add_argument(
        "--use-cached-plan-id",
        action="store_true",
        help="Reuse the plan ID cached by a previous BlinkUp",
    )
    invoke_parser.add_argument(
        "--wait",
        type=float,
        default=120.0,
        help="Seconds to wait for a result",
    )

    args = parser.parse_args()

    # Command-line flags win over the file and the environment
    overrides: dict = {}
    if args.mock or os.environ.get("BLINKUP_MOCK", "").lower() in ("1", "true", "yes"):
        overrides.setdefault("mock", {})["enabled"] = True
    if args.scenario:
        overrides.setdefault("mock", {})["scenario"] = args.scenario
    if args.debug_build:
        overrides.setdefault("system", {})["debug"] = True

    config_paths = [
        args.config,
        Path("config/blinkup-bridge.yaml"),
        Path.home() / ".config/blinkup-bridge/config.yaml",
    ]
    config_path = next((p for p in config_paths if p and p.exists()), None)

    try:
        if config_path:
            print(f"Loading config from: {config_path}")
            config = Config.load(config_path, overrides)
        else:
            config = Config.default(overrides)
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(config.system.log_level)

    try:
        if args.command == "invoke":
            payload = [args.api_key, args.plan_id, args.timeout_ms, args.use_cached_plan_id]
            sys.exit(asyncio.run(run_invoke(config, payload, args.wait)))

        asyncio.run(run_server(config))
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
