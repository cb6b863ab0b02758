import logging
from datetime import datetime

from fastapi.concurrency import run_in_threadpool

from talkback.core.message import update_receipt
from talkback.core.receipts import ReceiptTransition, parse_status
from talkback.infra.postgres import db_session
from talkback.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

RECEIPT_UPDATED_EVENT = "receiptUpdated"


class ReceiptService:
    """Persists receipt transitions and tells the sender about them."""

    def __init__(self, registry: ConnectionRegistry, session_factory=db_session):
        self.registry = registry
        self.session_factory = session_factory

    def _persist(self, message_id: int, status, now: datetime | None) -> ReceiptTransition:
        with self.session_factory() as db:
            return update_receipt(db, message_id, status, now=now)

    async def update(self, message_id: int, status, now: datetime | None = None) -> ReceiptTransition:
        """
        Apply *status* to a message and notify its sender.

        Raises ``InvalidReceiptStatusError`` or ``MessageNotFoundError``
        before anything is written or pushed.
        """
        status = parse_status(status)
        transition = await run_in_threadpool(self._persist, message_id, status, now)
        self.notify_sender(transition)
        return transition

    def notify_sender(self, transition: ReceiptTransition) -> bool:
        record = transition.notification
        if record is None:
            return False
        connection = self.registry.lookup(record.sender_id)
        if connection is None:
            return False
        return connection.send(RECEIPT_UPDATED_EVENT, record.to_wire())
