"""
HTTP server for BlinkUp Bridge.

Lets the script layer drive the plugin over HTTP:
- Execute actions and poll for their result
- Cancel an in-flight invocation
- Report SDK activity results from the host platform
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request

from blinkup_bridge import __version__
from blinkup_bridge.core.channel import RecordingCallbackContext
from blinkup_bridge.core.config import ServerConfig
from blinkup_bridge.core.orchestrator import InvocationContext
from blinkup_bridge.platform.display import RecordingMessageDisplay
from blinkup_bridge.plugin import BlinkUpPlugin
from blinkup_bridge.sdk.controller import ActivityResult, ActivityResultKind


@dataclass
class InvocationRecord:
    """One execute() call as seen over HTTP."""

    id: str
    action: str
    accepted: bool
    callback: RecordingCallbackContext
    context: InvocationContext | None = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "invocation_id": self.id,
            "action": self.action,
            "accepted": self.accepted,
            "created_at": self.created_at,
            "result": self.callback.to_dict(),
            "flow": self.context.to_dict() if self.context else None,
        }


class BridgeServer:
    """
    Web server exposing the BlinkUp plugin.

    Request handlers run on the server's event loop, which doubles as the
    plugin's UI loop.
    """

    def __init__(
        self,
        plugin: BlinkUpPlugin,
        config: ServerConfig | None = None,
        display: RecordingMessageDisplay | None = None,
    ):
        self._plugin = plugin
        self._config = config or ServerConfig()
        self._display = display
        self._records: OrderedDict[str, InvocationRecord] = OrderedDict()
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task | None = None
        self._app = FastAPI(
            title="BlinkUp Bridge",
            description="Drive BlinkUp device onboarding from a script layer",
            version=__version__,
        )
        self._setup_routes()

    @property
    def app(self) -> FastAPI:
        """Get FastAPI app instance."""
        return self._app

    def _setup_routes(self) -> None:
        """Configure API routes."""
        self._app.get("/health")(self._health_check)
        self._app.post("/api/blinkup/execute")(self._execute)
        self._app.get("/api/blinkup/invocations")(self._list_invocations)
        self._app.get("/api/blinkup/invocations/{invocation_id}")(self._get_invocation)
        self._app.post("/api/blinkup/invocations/{invocation_id}/cancel")(self._cancel_invocation)
        self._app.post("/api/blinkup/activity-result")(self._activity_result)
        self._app.get("/api/blinkup/messages")(self._get_messages)

    # ========================================================================
    # Route Handlers
    # ========================================================================

    async def _health_check(self) -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": __version__,
            "in_flight": self._plugin.orchestrator.in_flight,
            "timestamp": time.time(),
        }

    async def _execute(self, request: Request) -> dict[str, Any]:
        """Run a plugin action. The args are passed through unvalidated."""
        body = await self._json_body(request)
        action = body.get("action")
        if not isinstance(action, str):
            raise HTTPException(status_code=400, detail="'action' must be a string")

        callback = RecordingCallbackContext()
        accepted = self._plugin.execute(action, body.get("args"), callback)

        record = InvocationRecord(
            id=uuid.uuid4().hex,
            action=action,
            accepted=accepted,
            callback=callback,
            context=self._find_context(callback),
        )
        self._remember(record)
        return record.to_dict()

    async def _list_invocations(self, limit: int = 20) -> dict[str, Any]:
        """Most recent invocations, newest first."""
        records = list(self._records.values())[-limit:]
        return {"invocations": [r.to_dict() for r in reversed(records)]}

    async def _get_invocation(self, invocation_id: str) -> dict[str, Any]:
        """Current status of one invocation."""
        return self._get_record(invocation_id).to_dict()

    async def _cancel_invocation(self, invocation_id: str) -> dict[str, Any]:
        """Cancel an invocation that is still in flight."""
        record = self._get_record(invocation_id)
        cancelled = False
        if record.context is not None:
            cancelled = self._plugin.orchestrator.cancel(record.context)
        return {"cancelled": cancelled, **record.to_dict()}

    async def _activity_result(self, request: Request) -> dict[str, Any]:
        """Forward a finished SDK activity to the controller."""
        body = await self._json_body(request)
        try:
            kind = ActivityResultKind(body.get("kind"))
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"'kind' must be one of {[k.value for k in ActivityResultKind]}",
            )

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="'data' must be an object")

        result = ActivityResult(kind=kind, ok=bool(body.get("ok", True)), data=data)
        handled = self._plugin.orchestrator.controller.handle_activity_result(result)
        return {"handled": handled}

    async def _get_messages(self) -> dict[str, Any]:
        """Messages shown to the operator."""
        if self._display is None:
            return {"messages": []}
        return {
            "messages": [
                {"text": m.text, "duration": m.duration.value} for m in self._display.messages
            ]
        }

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _json_body(self, request: Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Request body must be JSON")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Request body must be an object")
        return body

    def _find_context(self, callback: RecordingCallbackContext) -> InvocationContext | None:
        context = self._plugin.orchestrator.current
        if context is not None and context.channel.callback is callback:
            return context
        return None

    def _get_record(self, invocation_id: str) -> InvocationRecord:
        record = self._records.get(invocation_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Unknown invocation: {invocation_id}")
        return record

    def _remember(self, record: InvocationRecord) -> None:
        self._records[record.id] = record
        while len(self._records) > self._config.history_limit:
            self._records.popitem(last=False)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Start the server in background."""
        config = uvicorn.Config(
            self._app,
            host=self._config.host,
            port=self._config.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())

    async def stop(self) -> None:
        """Stop the server."""
        if self._server:
            self._server.should_exit = True
            if self._server_task:
                try:
                    await asyncio.wait_for(self._server_task, timeout=5.0)
                except asyncio.TimeoutError:
                    self._server_task.cancel()
                except asyncio.CancelledError:
                    pass

    def run(self) -> None:
        """Run server synchronously (for standalone use)."""
        uvicorn.run(self._app, host=self._config.host, port=self._config.port)
