from typing import Optional

from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialhub.core.errors import (
    FriendshipAlreadyAcceptedError,
    FriendshipAlreadyExistsError,
    FriendshipAlreadyRejectedError,
    FriendshipNotFoundError,
    WrongFriendshipTargetError,
)
from socialhub.models.friendship import Friendship, pair_low_high
from socialhub.schemas.enums import PENDING_STATUSES, FriendshipStatus
from socialhub.services.users import get_user


# ---------- REQUEST ----------

def request_friendship(db: Session, from_user_id: int, to_user_id: Optional[int]) -> Friendship:
    if from_user_id == to_user_id:
        raise WrongFriendshipTargetError("You can not be a friend to yourself")

    get_user(db, to_user_id)

    low, high = pair_low_high(from_user_id, to_user_id)
    existing = (
        db.query(Friendship)
        .filter(Friendship.user_low == low, Friendship.user_high == high)
        .first()
    )
    if existing:
        raise FriendshipAlreadyExistsError()

    friendship = Friendship(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        user_low=low,
        user_high=high,
        status=FriendshipStatus.requested,
    )
    db.add(friendship)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request for the same pair got there first
        db.rollback()
        raise FriendshipAlreadyExistsError()
    db.refresh(friendship)

    logger.info(f"Friendship requested | id={friendship.id} from={from_user_id} to={to_user_id}")
    return friendship


# ---------- ACCEPT / REJECT ----------

def _get_incoming(db: Session, friendship_id: int, acting_user_id: int) -> Friendship:
    friendship = db.get(Friendship, friendship_id)

    # someone else's request is reported as missing, not forbidden
    if not friendship or friendship.to_user_id != acting_user_id:
        raise FriendshipNotFoundError()

    if friendship.status == FriendshipStatus.accepted:
        raise FriendshipAlreadyAcceptedError()
    if friendship.status == FriendshipStatus.rejected:
        raise FriendshipAlreadyRejectedError()

    return friendship


def _transition(db: Session, friendship_id: int, acting_user_id: int, status: FriendshipStatus) -> Friendship:
    friendship = _get_incoming(db, friendship_id, acting_user_id)

    friendship.status = status
    db.commit()
    db.refresh(friendship)

    logger.info(f"Friendship {status.value} | id={friendship.id} by={acting_user_id}")
    return friendship


def accept_friendship(db: Session, friendship_id: int, acting_user_id: int) -> Friendship:
    return _transition(db, friendship_id, acting_user_id, FriendshipStatus.accepted)


def reject_friendship(db: Session, friendship_id: int, acting_user_id: int) -> Friendship:
    return _transition(db, friendship_id, acting_user_id, FriendshipStatus.rejected)


# ---------- REMOVE ----------

def remove_friendship(db: Session, friendship_id: int, acting_user_id: int) -> None:
    friendship = db.get(Friendship, friendship_id)
    if not friendship or not friendship.involves(acting_user_id):
        raise FriendshipNotFoundError()

    db.delete(friendship)
    db.commit()

    logger.info(f"Friendship removed | id={friendship_id} by={acting_user_id}")


# ---------- LISTING ----------

def _touching(db: Session, user_id: int):
    return db.query(Friendship).filter(
        or_(Friendship.from_user_id == user_id, Friendship.to_user_id == user_id)
    )


def list_requests(db: Session, user_id: int) -> list[Friendship]:
    return (
        _touching(db, user_id)
        .filter(Friendship.status.in_(PENDING_STATUSES))
        .order_by(Friendship.id.asc())
        .all()
    )


def list_friends(db: Session, user_id: int) -> list[Friendship]:
    return (
        _touching(db, user_id)
        .filter(Friendship.status == FriendshipStatus.accepted)
        .order_by(Friendship.id.asc())
        .all()
    )
