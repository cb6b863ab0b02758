# talkback/api/realtime.py
"""
The realtime channel.

Frames are JSON objects ``{"event": ..., "data": ...}``. The client names
itself with the ``userId`` query parameter at connect time; after that the
only thing it sends is ``updateReceipt``. Everything else flows server to
client: ``getOnlineUsers``, ``newMessage``, ``receiptUpdated`` and
``receiptError``.
"""

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.exc import SQLAlchemyError

from talkback.core.errors import MessageNotFoundError
from talkback.core.receipts import SOCKET_STATUSES, ReceiptStatus
from talkback.realtime.connection import Connection
from talkback.realtime.hub import ChatHub

logger = logging.getLogger(__name__)

router = APIRouter()

UPDATE_RECEIPT_EVENT = "updateReceipt"
RECEIPT_ERROR_EVENT = "receiptError"


def _socket_status(value) -> ReceiptStatus | None:
    try:
        parsed = ReceiptStatus(value)
    except ValueError:
        return None
    return parsed if parsed in SOCKET_STATUSES else None


def _message_id(value) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def handle_update_receipt(hub: ChatHub, connection: Connection, data) -> None:
    if not isinstance(data, dict):
        logger.warning(f"Malformed {UPDATE_RECEIPT_EVENT} from {connection!r}: {data!r}")
        return

    message_id = _message_id(data.get("messageId"))
    receipt_status = _socket_status(data.get("status"))
    if message_id is None or receipt_status is None:
        # Protocol violation, not a user-facing error
        logger.warning(f"Dropping {UPDATE_RECEIPT_EVENT} from {connection!r}: {data!r}")
        return

    try:
        await hub.receipts.update(message_id, receipt_status)
    except MessageNotFoundError as e:
        connection.send(RECEIPT_ERROR_EVENT, {"messageId": message_id, "detail": str(e)})
    except SQLAlchemyError:
        logger.exception(f"Receipt update for message {message_id} failed")


async def handle_frame(hub: ChatHub, connection: Connection, raw: str) -> None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Non-JSON frame from {connection!r}")
        return

    if not isinstance(frame, dict):
        logger.warning(f"Unexpected frame from {connection!r}: {frame!r}")
        return

    event = frame.get("event")
    if event == UPDATE_RECEIPT_EVENT:
        await handle_update_receipt(hub, connection, frame.get("data"))
    else:
        logger.warning(f"Unknown event {event!r} from {connection!r}")


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket, user_id: str | None = Query(default=None, alias="userId")):
    if not user_id or not user_id.strip():
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = user_id.strip()

    await websocket.accept()
    hub: ChatHub = websocket.app.state.hub
    connection = Connection(user_id, websocket)
    await hub.connect(user_id, connection)

    try:
        while True:
            raw = await websocket.receive_text()
            await handle_frame(hub, connection, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(f"Realtime channel for {user_id} crashed")
    finally:
        await hub.disconnect(user_id, connection)
