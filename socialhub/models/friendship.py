from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from socialhub.core.db import Base
from socialhub.schemas.enums import FriendshipStatus


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # unordered pair, so a reverse-direction duplicate also hits a constraint
    user_low = Column(Integer, nullable=False)
    user_high = Column(Integer, nullable=False)

    status = Column(
        Enum(FriendshipStatus, name="friendship_status_enum"),
        nullable=False,
        default=FriendshipStatus.requested,
    )

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    from_user = relationship("User", foreign_keys=[from_user_id], lazy="joined")
    to_user = relationship("User", foreign_keys=[to_user_id], lazy="joined")

    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", name="uq_friendship_direction"),
        UniqueConstraint("user_low", "user_high", name="uq_friendship_pair"),
        CheckConstraint("from_user_id != to_user_id", name="ck_friendship_not_self"),
    )

    def involves(self, user_id: int) -> bool:
        return user_id in (self.from_user_id, self.to_user_id)


def pair_low_high(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)
