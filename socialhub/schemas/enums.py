from enum import Enum


class FriendshipStatus(str, Enum):
    requested = "requested"
    accepted = "accepted"
    rejected = "rejected"


PENDING_STATUSES = (FriendshipStatus.requested, FriendshipStatus.rejected)
