import logging
from datetime import datetime

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from talkback.core.errors import EmptyMessageError, MessageNotFoundError
from talkback.core.receipts import ReceiptTransition, apply_receipt, parse_status
from talkback.models.message import Message
from talkback.models.schemas import Location, MessageRecord
from talkback.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Conditional receipt writes retried when another writer got there first
RECEIPT_WRITE_ATTEMPTS = 3


def _location_to_column(location):
    if location is None:
        return None
    if isinstance(location, Location):
        return location.model_dump()
    return Location.model_validate(location).model_dump()


def store_message(
    db: Session,
    sender_id: str,
    receiver_id: str,
    text: str | None = None,
    image: str | None = None,
    location=None,
    audio: str | None = None,
) -> MessageRecord:
    """Persist a new message and return its record (all receipts unset)."""
    if text is not None and not text.strip():
        text = None
    if not (text or image or location or audio):
        raise EmptyMessageError()

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        image=image or None,
        location=_location_to_column(location),
        audio=audio or None,
    )

    db.add(message)
    db.commit()
    db.refresh(message)
    return MessageRecord.model_validate(message)


def get_message(db: Session, message_id: int) -> MessageRecord:
    message = db.get(Message, message_id)
    if message is None:
        raise MessageNotFoundError(message_id)
    return MessageRecord.model_validate(message)


def fetch_conversation(db: Session, user_id: str, other_id: str) -> list[MessageRecord]:
    """All messages exchanged between two users, oldest first."""
    messages = (
        db.query(Message)
        .filter(
            or_(
                and_(Message.sender_id == user_id, Message.receiver_id == other_id),
                and_(Message.sender_id == other_id, Message.receiver_id == user_id),
            )
        )
        .order_by(Message.created_at, Message.id)
        .all()
    )
    return [MessageRecord.model_validate(m) for m in messages]


def update_receipt(
    db: Session,
    message_id: int,
    status,
    now: datetime | None = None,
) -> ReceiptTransition:
    """
    Advance a message's receipts and persist the change.

    The write only touches columns that are still NULL, so a concurrent
    writer can never have its timestamp overwritten. If the conditional
    UPDATE matches no row, the message is re-read and the transition
    recomputed against the fresher state.
    """
    status = parse_status(status)
    now = now or utcnow()

    for _ in range(RECEIPT_WRITE_ATTEMPTS):
        current = get_message(db, message_id)
        transition = apply_receipt(current, status, now)
        if not transition.changed:
            return transition

        guards = [getattr(Message, column).is_(None) for column in transition.changes]
        result = db.execute(
            update(Message)
            .where(Message.id == message_id, *guards)
            .values(**transition.changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            db.commit()
            db.expire_all()
            return ReceiptTransition(
                record=get_message(db, message_id),
                changes=transition.changes,
            )

        db.rollback()
        logger.debug(f"Receipt write for message {message_id} lost a race, retrying")

    # Another writer kept winning; whatever is stored now is authoritative
    db.expire_all()
    return ReceiptTransition(record=get_message(db, message_id))
