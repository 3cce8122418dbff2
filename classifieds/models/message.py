from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ContactRequest(BaseModel):
    ad_id: str


class FavoriteCreate(BaseModel):
    ad_id: str


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    sender_id: str
    receiver_id: str
    ad_id: str | None = None
    message: str
    read: bool = False
    created_at: datetime | None = None
    sender_name: str | None = None
    ad_title: str | None = None


def message_from_row(row) -> Message:
    data = dict(row)
    for key in ("id", "ad_id"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return Message.model_validate(data)
