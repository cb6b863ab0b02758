import asyncio
import logging
import weakref
from typing import Callable

from fastapi.concurrency import run_in_threadpool

from talkback.models.schemas import MessageRecord
from talkback.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "newMessage"


class DeliveryRouter:
    """Pushes freshly persisted messages to the receiver, if they're online."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        # A receiver's lock lives only while some send to them holds or awaits it
        self._receiver_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def _lock_for(self, receiver_id: str) -> asyncio.Lock:
        lock = self._receiver_locks.get(receiver_id)
        if lock is None:
            lock = asyncio.Lock()
            self._receiver_locks[receiver_id] = lock
        return lock

    async def deliver(self, receiver_id: str, persist: Callable[[], MessageRecord]) -> tuple[MessageRecord, bool]:
        """
        Run the blocking *persist* callable, then route what it stored.

        Sends to one receiver are serialized, so pushes reach their
        connection in commit order. Nothing is routed if *persist* raises.
        """
        async with self._lock_for(receiver_id):
            message = await run_in_threadpool(persist)
            return message, self.route(message)

    def route(self, message: MessageRecord) -> bool:
        """
        Enqueue ``newMessage`` on the receiver's connection.

        Call only after the message is persisted. There is no retry: an
        offline receiver picks the message up from the conversation history.
        """
        connection = self.registry.lookup(message.receiver_id)
        if connection is None:
            logger.debug(f"Receiver {message.receiver_id} offline, message {message.id} stays stored")
            return False
        return connection.send(NEW_MESSAGE_EVENT, message.to_wire())
