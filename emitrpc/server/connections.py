"""In-memory registry of live connections keyed by client id."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterator

from loguru import logger

if TYPE_CHECKING:
    from emitrpc.server.connection import Connection


class ConnectionRegistry:
    """Tracks open connections. Owned by one RpcApp; never process-global."""

    def __init__(self):
        self._connections: dict[str, "Connection"] = {}
        self._lock = asyncio.Lock()

    async def register(self, connection: "Connection") -> None:
        async with self._lock:
            previous = self._connections.get(connection.client_id)
            if previous is not None and previous is not connection:
                logger.warning("Client id {} reused; replacing the live connection", connection.client_id)
            self._connections[connection.client_id] = connection

    async def unregister(self, client_id: str, connection: "Connection | None" = None) -> bool:
        """Remove an entry; with ``connection`` given, only if the id still maps to it."""
        async with self._lock:
            current = self._connections.get(client_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            del self._connections[client_id]
            return True

    def get(self, client_id: str) -> "Connection | None":
        return self._connections.get(client_id)

    def is_registered(self, connection: "Connection") -> bool:
        return self._connections.get(connection.client_id) is connection

    def client_ids(self) -> list[str]:
        return list(self._connections)

    async def close_all(self) -> None:
        """Close every live connection and wait for each teardown to finish."""
        connections = list(self._connections.values())
        await asyncio.gather(*(_close_and_wait(c) for c in connections), return_exceptions=True)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._connections))


async def _close_and_wait(connection: "Connection") -> None:
    await connection.close()
    await connection.wait_removed()
