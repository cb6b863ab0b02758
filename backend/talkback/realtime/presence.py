import asyncio
import logging
from contextlib import suppress

from talkback.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

ONLINE_USERS_EVENT = "getOnlineUsers"


class PresenceBroadcaster:
    """Owns the task that tells every connection who is online.

    ``announce_presence`` is safe to call from anywhere on the loop; it only
    records a request. The owner task answers each request with a fresh
    snapshot of the registry sent to every live connection.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        self._requests: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def announce_presence(self) -> None:
        self._requests.put_nowait(None)

    def broadcast_snapshot(self) -> list[str]:
        online = self.registry.online_users()
        for connection in self.registry.connections():
            connection.send(ONLINE_USERS_EVENT, online)
        logger.debug(f"Presence broadcast: {len(online)} online")
        return online

    async def _run(self) -> None:
        while True:
            await self._requests.get()
            try:
                self.broadcast_snapshot()
            except Exception:
                logger.exception("Presence broadcast failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="presence-broadcaster")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
