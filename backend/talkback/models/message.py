# talkback/models/message.py

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from talkback.models.base import Base
from talkback.utils.clock import utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)

    sender_id = Column(String(100), nullable=False, index=True)
    receiver_id = Column(String(100), nullable=False, index=True)

    # Payload: at least one of these is set when the row is created
    text = Column(Text, nullable=True)
    image = Column(String(1024), nullable=True)  # blob store URL
    location = Column(JSON, nullable=True)  # {latitude, longitude, address}
    audio = Column(String(1024), nullable=True)  # blob store URL

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Receipts only ever go from NULL to a timestamp
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    seen_at = Column(DateTime(timezone=True), nullable=True)
