# talkback/core/receipts.py
"""
Receipt state machine.

A message moves ``sent -> delivered -> seen``; ``received`` is tracked on its
own and neither gates nor is gated by the other two. Every receipt column goes
from NULL to a timestamp exactly once, so replaying an event is a no-op.

``apply_receipt`` is pure: it never touches the database or a socket. The
store persists ``transition.changes`` with a conditional UPDATE and the
realtime layer pushes ``transition.notification`` to the sender.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from talkback.core.errors import InvalidReceiptStatusError
from talkback.models.schemas import MessageRecord


class ReceiptStatus(str, Enum):
    DELIVERED = "delivered"
    RECEIVED = "received"
    SEEN = "seen"


# Statuses a client may drive over the socket; "received" is HTTP-only
SOCKET_STATUSES = frozenset({ReceiptStatus.DELIVERED, ReceiptStatus.SEEN})


def parse_status(value) -> ReceiptStatus:
    """Return the ``ReceiptStatus`` for *value* or raise ``InvalidReceiptStatusError``."""
    if isinstance(value, ReceiptStatus):
        return value
    try:
        return ReceiptStatus(value)
    except ValueError:
        raise InvalidReceiptStatusError(value) from None


@dataclass(frozen=True)
class ReceiptTransition:
    record: MessageRecord
    changes: dict = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    @property
    def notification(self) -> MessageRecord | None:
        """The record to push to the sender, or None when nothing moved."""
        return self.record if self.changes else None


def _utc(value: datetime) -> datetime:
    # sqlite hands stored timestamps back without tzinfo; they are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def receipt_changes(record: MessageRecord, status: ReceiptStatus, now: datetime) -> dict:
    """Columns to set for *status*; only columns that are still unset."""
    if status is ReceiptStatus.DELIVERED:
        wanted = ("delivered_at",)
    elif status is ReceiptStatus.RECEIVED:
        wanted = ("received_at",)
    else:
        # Seen without delivered gets delivered backfilled at the same instant
        wanted = ("delivered_at", "seen_at")

    changes = {column: now for column in wanted if getattr(record, column) is None}

    # seen_at never lands before a delivered_at written by someone else
    delivered_at = record.delivered_at
    if "seen_at" in changes and delivered_at is not None and _utc(delivered_at) > _utc(now):
        changes["seen_at"] = delivered_at
    return changes


def apply_receipt(record: MessageRecord, status, now: datetime) -> ReceiptTransition:
    status = parse_status(status)
    changes = receipt_changes(record, status, now)
    if not changes:
        return ReceiptTransition(record=record)
    return ReceiptTransition(record=record.model_copy(update=changes), changes=changes)
