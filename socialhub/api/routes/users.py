from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from socialhub.core.auth import create_auth_header, get_current_user_id
from socialhub.core.db import get_db
from socialhub.schemas.user import UserLoginRequest, UserOut, UserRegisterRequest
from socialhub.services import users as user_service

router = APIRouter(prefix="/user", tags=["user"])


# ----------------------------
# REGISTER
# ----------------------------
@router.post("/register", response_model=UserOut)
def register(
    payload: UserRegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    user = user_service.register_user(db, payload.email, payload.full_name, payload.password)
    response.headers["Authorization"] = create_auth_header(user.id)
    return user


# ----------------------------
# LOGIN
# ----------------------------
@router.post("/login")
def login(
    payload: UserLoginRequest,
    db: Session = Depends(get_db),
):
    token = user_service.login_user(db, payload.email, payload.password)
    return Response(status_code=200, headers={"Authorization": f"Bearer {token}"})


# ----------------------------
# LOOKUP
# ----------------------------
@router.get("/me", response_model=UserOut)
def me(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return user_service.get_user(db, user_id)


@router.get("", response_model=list[UserOut])
def search(
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return user_service.search_users(db, q, exclude_user_id=user_id)


@router.get("/{target_user_id}", response_model=UserOut)
def get_user(
    target_user_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return user_service.get_user(db, target_user_id)
