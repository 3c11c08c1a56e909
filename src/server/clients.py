"""Bookkeeping for connected websocket clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from websockets.asyncio.server import ServerConnection

CLOSE_GOING_AWAY = 1001


class ClientRegistry:
    """Connected UI clients; only touched from the server's event loop."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger
        self._clients: set[ServerConnection] = set()

    def __len__(self) -> int:
        return len(self._clients)

    def add(self, client: ServerConnection) -> None:
        self._clients.add(client)
        self._logger.info("UI client connected: %s (%d total)", client.remote_address, len(self))

    def discard(self, client: ServerConnection) -> None:
        if client in self._clients:
            self._clients.discard(client)
            self._logger.info("UI client left: %s (%d total)", client.remote_address, len(self))

    async def broadcast(self, message: str) -> int:
        """Send `message` to every client, dropping those that fail. Returns deliveries."""
        clients = tuple(self._clients)
        if not clients:
            return 0
        results = await asyncio.gather(
            *(client.send(message) for client in clients),
            return_exceptions=True,
        )
        delivered = 0
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                self._logger.warning("Dropping UI client %s: %s", client.remote_address, result)
                self.discard(client)
            else:
                delivered += 1
        return delivered

    async def close_all(self, reason: str) -> None:
        clients: Iterable[ServerConnection] = tuple(self._clients)
        self._clients.clear()
        await asyncio.gather(
            *(client.close(code=CLOSE_GOING_AWAY, reason=reason) for client in clients),
            return_exceptions=True,
        )
