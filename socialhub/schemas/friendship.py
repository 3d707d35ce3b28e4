from typing import Optional

from socialhub.schemas.base import BaseSchema, TimestampedSchema
from socialhub.schemas.enums import FriendshipStatus
from socialhub.schemas.user import UserOut


class FriendshipRequest(BaseSchema):
    to_user_id: Optional[int] = None


class FriendshipOut(TimestampedSchema):
    id: int
    from_user_id: int
    to_user_id: int
    status: FriendshipStatus
    from_user: Optional[UserOut] = None
    to_user: Optional[UserOut] = None
