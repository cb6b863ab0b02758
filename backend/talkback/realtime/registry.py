"""Who is online: userId -> the one live connection for that user."""

import asyncio
import logging
from typing import Callable, Optional

from talkback.realtime.connection import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    In-memory map of user ids to their live connection.

    One connection per user: registering again replaces the previous entry.
    Writes are serialized; reads return snapshots and never wait. Each write
    that actually changes the map calls ``on_change`` (the presence
    broadcaster's trigger).
    """

    def __init__(self, on_change: Optional[Callable[[], None]] = None):
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._on_change = on_change

    def set_listener(self, on_change: Optional[Callable[[], None]]) -> None:
        self._on_change = on_change

    async def register(self, user_id: str, connection: Connection) -> Optional[Connection]:
        """Map *user_id* to *connection*; returns the connection it replaced."""
        async with self._lock:
            previous = self._connections.pop(user_id, None)
            # Re-insert so the snapshot order follows connect order
            self._connections[user_id] = connection

        if previous is not None and previous is not connection:
            logger.info(f"{user_id} reconnected, replacing {previous!r}")
        self._notify()
        return previous

    async def unregister(self, user_id: str, connection: Connection) -> bool:
        """Remove *user_id* only while it still maps to *connection*."""
        async with self._lock:
            if self._connections.get(user_id) is not connection:
                return False
            del self._connections[user_id]

        self._notify()
        return True

    def lookup(self, user_id: str) -> Optional[Connection]:
        return self._connections.get(user_id)

    def online_users(self) -> list[str]:
        return list(self._connections)

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, user_id) -> bool:
        return user_id in self._connections

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
