"""Per-connection outbound channel.

Every push to a client goes through ``Connection.send``, which only enqueues.
A single writer task drains the queue onto the WebSocket, so frames reach the
client in the order they were sent and a slow socket never blocks the caller.
"""

import asyncio
import logging
import uuid
from contextlib import suppress

from fastapi import WebSocket

from talkback.config import OUTBOX_MAXSIZE

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, user_id: str, websocket: WebSocket, maxsize: int = OUTBOX_MAXSIZE):
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.websocket = websocket
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._writer: asyncio.Task | None = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<Connection user={self.user_id} id={self.id[:8]}>"

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"ws-writer-{self.id}")

    def send(self, event: str, data) -> bool:
        """Queue one frame; False if the connection is closed or backed up."""
        if self._closed:
            return False
        try:
            self._outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for {self!r}, dropping {event}")
            return False
        return True

    async def _drain(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_json(frame)
            except Exception:
                # The reader side sees the disconnect and unregisters us
                logger.warning(f"Send to {self!r} failed, writer stopping", exc_info=True)
                self._closed = True
                return

    async def close(self) -> None:
        """Stop the writer and drop anything still queued."""
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            with suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None
        while not self._outbox.empty():
            self._outbox.get_nowait()
