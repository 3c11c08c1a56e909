"""Websocket endpoint streaming timer events and accepting timer commands."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.ui_protocol import EVENT_ERROR, EVENT_HELLO, EVENT_TIMER

from .clients import ClientRegistry
from .config import HEALTHZ_PATH, UIServerConfig
from .events import StickyEventStore, make_event, parse_client_message

CommandHandler = Callable[[Mapping[str, Any]], None]

CLOSE_POLICY_VIOLATION = 1008


class UIServer:
    """Runs a websockets server on its own event loop thread.

    `publish` may be called from any thread. Timer and error events are
    kept and replayed to clients that connect later. Incoming command
    messages are validated here and handed to the command handler, which
    runs on the server thread and must not block.
    """

    def __init__(
        self,
        config: UIServerConfig,
        logger: Optional[logging.Logger] = None,
        *,
        command_handler: Optional[CommandHandler] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger("ui_server")
        self._command_handler = command_handler
        self._sticky = StickyEventStore()
        self._clients = ClientRegistry(self._logger)

        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._failure: Optional[BaseException] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and self._failure is None

    def sticky_events(self) -> list[str]:
        return self._sticky.snapshot()

    def set_command_handler(self, handler: Optional[CommandHandler]) -> None:
        self._command_handler = handler

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("UI server already started")
            return

        self._failure = None
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, name="ui-server", daemon=True)
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server not ready after {timeout_seconds:.1f}s")
        if self._failure is not None:
            raise RuntimeError(f"UI server could not start: {self._failure}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None and not loop.is_closed():
            loop.call_soon_threadsafe(shutdown.set)

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread still alive after %.1fs", timeout_seconds)
        self._thread = None

    def publish(self, event_type: str, **payload: Any) -> None:
        message = make_event(event_type, **payload)
        self._sticky.remember(event_type, message)

        loop = self._loop
        if loop is None or not self.is_running:
            return
        try:
            future = asyncio.run_coroutine_threadsafe(self._clients.broadcast(message), loop)
        except RuntimeError as error:
            self._logger.debug("Dropped %s event, loop is closing: %s", event_type, error)
            return
        future.add_done_callback(self._log_broadcast_failure)

    def handle_client_message(self, raw: str | bytes) -> Optional[str]:
        """Route one client message; returns an error text for the sender, if any."""
        try:
            message = parse_client_message(raw)
        except ValueError as error:
            self._logger.warning("Rejected UI message: %s", error)
            return str(error)

        if self._command_handler is None:
            return "Commands are not accepted by this server"
        self._command_handler(message)
        return None

    def health_status(self) -> dict[str, Any]:
        """Body of the health endpoint: client count and the last timer event."""
        status: dict[str, Any] = {"status": "ok", "clients": len(self._clients)}
        timer = self._sticky.latest(EVENT_TIMER)
        if timer is not None:
            status["timer"] = {
                key: timer[key]
                for key in ("state", "elapsed", "elapsed_limit", "session")
                if key in timer
            }
        return status

    def _log_broadcast_failure(self, future: "asyncio.Future[int]") -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.debug("Broadcast failed: %s", error)

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._serve())
        except Exception as error:  # pragma: no cover - depends on socket environment
            self._failure = error
            self._logger.error("UI server stopped with error: %s", error, exc_info=True)
        finally:
            self._ready.set()
            leftovers = asyncio.all_tasks(loop)
            for task in leftovers:
                task.cancel()
            loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
            loop.close()
            self._loop = None
            self._shutdown = None

    async def _serve(self) -> None:
        shutdown = asyncio.Event()
        self._shutdown = shutdown
        async with websockets.serve(
            self._on_connection,
            host=self._config.host,
            port=self._config.port,
            process_request=self._route_http,
            logger=self._logger,
        ):
            self._logger.info("UI server listening on %s", self._config.url)
            self._ready.set()
            await shutdown.wait()
            await self._clients.close_all("Timer service stopping")

    async def _on_connection(self, websocket: ServerConnection) -> None:
        request = websocket.request
        if request is None or urlsplit(request.path).path != self._config.websocket_path:
            await websocket.close(code=CLOSE_POLICY_VIOLATION, reason="Invalid websocket path")
            return

        self._clients.add(websocket)
        try:
            await websocket.send(make_event(EVENT_HELLO, message="Timer websocket connected"))
            for message in self._sticky.snapshot():
                await websocket.send(message)

            async for raw in websocket:
                self._logger.debug("UI message: %s", raw)
                error = self.handle_client_message(raw)
                if error is not None:
                    await websocket.send(make_event(EVENT_ERROR, message=error))
        except websockets.exceptions.ConnectionClosed as closed:
            self._logger.debug("UI connection closed: %s", closed)
        finally:
            self._clients.discard(websocket)

    async def _route_http(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Optional[Response]:
        del connection
        path = urlsplit(request.path).path
        if path == self._config.websocket_path:
            return None
        if path == HEALTHZ_PATH:
            body = (json.dumps(self.health_status()) + "\n").encode("utf-8")
            return _plain_response(200, "OK", body, "application/json")
        return _plain_response(404, "Not Found", b"not found\n", "text/plain; charset=utf-8")


def _plain_response(status: int, reason: str, body: bytes, content_type: str) -> Response:
    headers = Headers()
    headers["Content-Type"] = content_type
    headers["Content-Length"] = str(len(body))
    headers["Cache-Control"] = "no-store"
    return Response(status, reason, headers, body)
