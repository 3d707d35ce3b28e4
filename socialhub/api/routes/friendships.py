from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from socialhub.core.auth import get_current_user_id
from socialhub.core.db import get_db
from socialhub.schemas.friendship import FriendshipOut, FriendshipRequest
from socialhub.services import friendships as friendship_service

router = APIRouter(prefix="/friendship", tags=["friendship"])


@router.get("/requests", response_model=list[FriendshipOut])
def list_requests(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return friendship_service.list_requests(db, user_id)


@router.get("/friends", response_model=list[FriendshipOut])
def list_friends(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return friendship_service.list_friends(db, user_id)


@router.post("/request", response_model=FriendshipOut)
def request_friendship(
    payload: FriendshipRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return friendship_service.request_friendship(db, user_id, payload.to_user_id)


@router.put("/{friendship_id}/accept", response_model=FriendshipOut)
def accept_friendship(
    friendship_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return friendship_service.accept_friendship(db, friendship_id, user_id)


@router.put("/{friendship_id}/reject", response_model=FriendshipOut)
def reject_friendship(
    friendship_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return friendship_service.reject_friendship(db, friendship_id, user_id)


@router.delete("/{friendship_id}", status_code=204)
def remove_friendship(
    friendship_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    friendship_service.remove_friendship(db, friendship_id, user_id)
    return Response(status_code=204)
