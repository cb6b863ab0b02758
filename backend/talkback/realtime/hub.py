import logging

from talkback.infra.postgres import db_session
from talkback.realtime.connection import Connection
from talkback.realtime.presence import PresenceBroadcaster
from talkback.realtime.receipts import ReceiptService
from talkback.realtime.registry import ConnectionRegistry
from talkback.realtime.router import DeliveryRouter

logger = logging.getLogger(__name__)


class ChatHub:
    """Wires the realtime pieces together; one per running app."""

    def __init__(self, session_factory=db_session):
        self.registry = ConnectionRegistry()
        self.presence = PresenceBroadcaster(self.registry)
        self.registry.set_listener(self.presence.announce_presence)
        self.router = DeliveryRouter(self.registry)
        self.receipts = ReceiptService(self.registry, session_factory=session_factory)

    async def start(self) -> None:
        self.presence.start()

    async def stop(self) -> None:
        await self.presence.stop()
        for connection in self.registry.connections():
            await connection.close()

    async def connect(self, user_id: str, connection: Connection) -> None:
        connection.start()
        await self.registry.register(user_id, connection)
        logger.info(f"User {user_id} connected ({len(self.registry)} online)")

    async def disconnect(self, user_id: str, connection: Connection) -> None:
        """Release everything tied to *connection* before returning."""
        removed = await self.registry.unregister(user_id, connection)
        await connection.close()
        logger.info(
            f"User {user_id} disconnected"
            + ("" if removed else " (stale connection, registry untouched)")
        )
