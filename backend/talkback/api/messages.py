import logging
from functools import partial

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from talkback.api.deps import get_current_user_id, get_hub
from talkback.config import SEND_RATE_LIMIT
from talkback.core.errors import EmptyMessageError, InvalidReceiptStatusError, MessageNotFoundError
from talkback.core.message import fetch_conversation, store_message
from talkback.core.rate_limit import limiter
from talkback.core.user import list_contacts
from talkback.infra.postgres import db_session, get_db
from talkback.models.schemas import CamelModel, Location, MessageRecord
from talkback.realtime.hub import ChatHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages")


class SendMessageSchema(CamelModel):
    text: str | None = None
    image: str | None = None  # already uploaded, blob store URL
    location: Location | None = None
    audio: str | None = None  # already uploaded, blob store URL

    @model_validator(mode="after")
    def require_payload(self):
        if self.text is not None and not self.text.strip():
            self.text = None
        if not (self.text or self.image or self.location or self.audio):
            raise ValueError("Message needs text, image, location or audio")
        return self


class ReceiptUpdateSchema(CamelModel):
    message_id: int
    status: str


@router.get("/users")
def get_users_for_sidebar(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        contacts = list_contacts(db, user_id)
    except SQLAlchemyError:
        logger.exception("Error loading sidebar users")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return [c.model_dump(mode="json", by_alias=True) for c in contacts]


@router.get("/{other_id}")
def get_messages(
    other_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Conversation history between the caller and *other_id*."""
    try:
        messages = fetch_conversation(db, user_id, other_id)
    except SQLAlchemyError:
        logger.exception(f"Error loading conversation {user_id} <-> {other_id}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return [m.to_wire() for m in messages]


def _persist_message(sender_id: str, receiver_id: str, payload: SendMessageSchema) -> MessageRecord:
    with db_session() as db:
        return store_message(
            db,
            sender_id,
            receiver_id,
            text=payload.text,
            image=payload.image,
            location=payload.location,
            audio=payload.audio,
        )


@router.post("/send/{receiver_id}", status_code=201)
@limiter.limit(SEND_RATE_LIMIT)
async def send_message(
    request: Request,
    receiver_id: str,
    payload: SendMessageSchema,
    user_id: str = Depends(get_current_user_id),
    hub: ChatHub = Depends(get_hub),
):
    try:
        message, pushed = await hub.router.deliver(
            receiver_id, partial(_persist_message, user_id, receiver_id, payload)
        )
    except EmptyMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SQLAlchemyError:
        # Nothing was stored, so nothing is pushed
        logger.exception(f"Error storing message {user_id} -> {receiver_id}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    logger.info(f"Message {message.id} {user_id} -> {receiver_id} stored (pushed={pushed})")
    return message.to_wire()


@router.patch("/receipt")
async def update_message_receipt(
    payload: ReceiptUpdateSchema,
    user_id: str = Depends(get_current_user_id),
    hub: ChatHub = Depends(get_hub),
):
    """Set delivered, received or seen on a message; the sender is notified."""
    try:
        transition = await hub.receipts.update(payload.message_id, payload.status)
    except InvalidReceiptStatusError:
        raise HTTPException(status_code=400, detail="Invalid status provided")
    except MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    except SQLAlchemyError:
        logger.exception(f"Error updating receipt for message {payload.message_id}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return transition.record.to_wire()
