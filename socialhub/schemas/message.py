from typing import Optional

from pydantic import Field

from socialhub.schemas.base import BaseSchema, TimestampedSchema


class MessageSendRequest(BaseSchema):
    to_user_id: Optional[int] = None
    text: str = Field(..., min_length=1)


class MarkAsReadRequest(BaseSchema):
    from_id: Optional[int] = None
    to_id: Optional[int] = None


class MessageOut(TimestampedSchema):
    id: int
    from_user_id: int
    to_user_id: int
    text: str
    is_read: bool
