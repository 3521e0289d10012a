"""aiohttp server exposing the control surface and the event stream to local views."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from aiohttp import WSMsgType, web

from tabtimer.config import settings
from tabtimer.control.surface import ControlSurface
from tabtimer.notifications.events import EventBus

logger = logging.getLogger(__name__)

SURFACE_KEY = web.AppKey("surface", ControlSurface)
EVENTS_KEY = web.AppKey("events", EventBus)

# Events buffered per WebSocket client before new ones are dropped
EVENT_QUEUE_SIZE = 100


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _handle_control(request: web.Request) -> web.Response:
    """POST /control — one control-surface request per call."""
    try:
        payload: Any = await request.json()
    except Exception:
        logger.warning("Control request rejected: invalid JSON")
        return web.json_response({"success": False, "error": "invalid JSON"}, status=400)

    if not isinstance(payload, dict):
        return web.json_response({"success": False, "error": "expected an object"}, status=400)

    response = await request.app[SURFACE_KEY].handle(payload)
    return web.json_response(response)


async def _handle_events(request: web.Request) -> web.WebSocketResponse:
    """GET /events — WebSocket stream of broadcast events."""
    ws = web.WebSocketResponse(heartbeat=30)
    await ws.prepare(request)

    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)

    def _enqueue(event: dict[str, Any]) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Event stream client is not keeping up, dropping %s", event["event"])

    unsubscribe = request.app[EVENTS_KEY].subscribe(_enqueue)
    sender = asyncio.create_task(_pump(ws, queue))
    logger.info("Event stream client connected")
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.warning("Event stream closed with error: %s", ws.exception())
    finally:
        unsubscribe()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        logger.info("Event stream client disconnected")
    return ws


async def _pump(ws: web.WebSocketResponse, queue: asyncio.Queue[dict[str, Any]]) -> None:
    while True:
        event = await queue.get()
        if ws.closed:
            return
        try:
            await ws.send_json(event)
        except (ConnectionResetError, RuntimeError) as exc:
            logger.info("Event stream send failed, closing: %s", exc)
            return


def _create_web_app(surface: ControlSurface, events: EventBus) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[SURFACE_KEY] = surface
    app[EVENTS_KEY] = events
    app.router.add_get("/health", _health)
    app.router.add_post("/control", _handle_control)
    app.router.add_get("/events", _handle_events)
    return app


class ControlServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        surface: ControlSurface,
        events: EventBus,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self._surface = surface
        self._events = events
        self.host = host or settings.control_host
        self.port = port or settings.control_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for control requests."""
        app = _create_web_app(self._surface, self._events)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Control server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Control server stopped")
