# talkback/models/user.py

from sqlalchemy import Column, DateTime, String

from talkback.models.base import Base
from talkback.utils.clock import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(100), primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    profile_pic = Column(String(1024), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
