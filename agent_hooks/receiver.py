"""HTTP receiver for host hook calls and lifecycle events.

The host plugin shim forwards every hook invocation here as JSON:
- POST /hooks/tool/before - tool.execute.before (input + args)
- POST /hooks/tool/after  - tool.execute.after; responds with the tool output
- POST /event             - lifecycle events ({"type": ..., "properties": ...})
- GET  /health            - health check with registry and session counters

Each request is handled in its own task, so a slow session.idle decision
does not hold up events for other sessions or for the same session.
"""

import json
import logging
from typing import TYPE_CHECKING, Optional

from aiohttp import web

from . import __version__

if TYPE_CHECKING:
    from .pending_registry import PendingCallRegistry
    from .router import EventRouter
    from .todo_continuation import TodoContinuationEnforcer

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4319


class HookReceiver:
    """HTTP server that feeds host hook calls into the event router."""

    def __init__(
        self,
        router: "EventRouter",
        registry: Optional["PendingCallRegistry"] = None,
        enforcer: Optional["TodoContinuationEnforcer"] = None,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ) -> None:
        """Initialize the hook receiver.

        Args:
            router: Event router to dispatch to
            registry: Pending call registry, reported on /health
            enforcer: Continuation enforcer, reported on /health
            host: Interface to bind
            port: HTTP port to listen on
        """
        self.router = router
        self.registry = registry
        self.enforcer = enforcer
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes."""
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_post("/hooks/tool/before", self._handle_tool_before)
        self.app.router.add_post("/hooks/tool/after", self._handle_tool_after)
        self.app.router.add_post("/event", self._handle_event)

    async def start(self) -> None:
        """Start the HTTP server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        logger.info(f"Hook receiver listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Hook receiver stopped")

    async def _read_json(self, request: web.Request) -> Optional[dict]:
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug(f"Rejecting {request.path}: invalid JSON ({e})")
            return None
        if not isinstance(data, dict):
            logger.debug(f"Rejecting {request.path}: body is not an object")
            return None
        return data

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        body: dict = {"status": "ok", "version": __version__}
        if self.registry is not None:
            body["pending_calls"] = self.registry.get_stats().model_dump()
        if self.enforcer is not None:
            body["sessions"] = {
                "tracked": self.enforcer.session_count,
                "reminders_sent": self.enforcer.total_reminders,
            }
        return web.json_response(body)

    async def _handle_tool_before(self, request: web.Request) -> web.Response:
        data = await self._read_json(request)
        if data is None:
            return web.json_response({"error": "invalid JSON object"}, status=400)

        await self.router.tool_execute_before(data)
        return web.json_response({"status": "ok"})

    async def _handle_tool_after(self, request: web.Request) -> web.Response:
        data = await self._read_json(request)
        if data is None:
            return web.json_response({"error": "invalid JSON object"}, status=400)

        output = await self.router.tool_execute_after(data)
        if output is None:
            return web.json_response({"error": "malformed tool.execute.after payload"}, status=400)
        return web.json_response({"status": "ok", "output": output})

    async def _handle_event(self, request: web.Request) -> web.Response:
        data = await self._read_json(request)
        if data is None:
            return web.json_response({"error": "invalid JSON object"}, status=400)

        logger.debug(f"Received event {data.get('type')}")
        await self.router.handle_event(data)
        return web.json_response({"status": "ok"})
