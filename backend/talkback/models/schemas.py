# talkback/models/schemas.py

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Location(CamelModel):
    latitude: float
    longitude: float
    address: str = ""


class MessageRecord(CamelModel):
    """The full message as stored, sent over HTTP and pushed over sockets."""

    id: int
    sender_id: str
    receiver_id: str
    text: str | None = None
    image: str | None = None
    location: Location | None = None
    audio: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    delivered_at: datetime | None = None
    received_at: datetime | None = None
    seen_at: datetime | None = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UserRecord(CamelModel):
    id: str
    full_name: str
    profile_pic: str = ""
    created_at: datetime | None = None
