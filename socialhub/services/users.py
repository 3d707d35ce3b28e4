from typing import Optional

from email_validator import EmailNotValidError, validate_email
from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialhub.core.auth import create_token, hash_password, verify_password
from socialhub.core.errors import (
    BadCredentialsError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from socialhub.models.user import User

MIN_PASSWORD_LENGTH = 8


def _validate_registration(email: Optional[str], full_name: Optional[str], password: Optional[str]) -> None:
    if not email:
        raise ValidationError('"email" is required')
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError('"email" must be a valid email')

    if not full_name or not full_name.strip():
        raise ValidationError('"fullName" is required')

    if not password:
        raise ValidationError('"password" is required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'"password" length must be at least {MIN_PASSWORD_LENGTH} characters long')


def get_user(db: Session, user_id: Optional[int]) -> User:
    user = db.get(User, user_id) if user_id is not None else None
    if not user:
        raise UserNotFoundError()
    return user


def register_user(db: Session, email: Optional[str], full_name: Optional[str], password: Optional[str]) -> User:
    _validate_registration(email, full_name, password)

    if db.query(User).filter(User.email == email).first():
        raise UserAlreadyExistsError()

    user = User(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise UserAlreadyExistsError()
    db.refresh(user)

    logger.info(f"User registered | user={user.id}")
    return user


def login_user(db: Session, email: Optional[str], password: Optional[str]) -> str:
    user = db.query(User).filter(User.email == email).first() if email else None

    # same error either way so callers can't probe for emails
    if not user or not password or not verify_password(password, user.password_hash):
        logger.info("Login rejected")
        raise BadCredentialsError()

    logger.info(f"User logged in | user={user.id}")
    return create_token(user.id)


def search_users(db: Session, query: Optional[str], exclude_user_id: int) -> list[User]:
    q = db.query(User).filter(User.id != exclude_user_id)

    if query:
        pattern = f"%{query}%"
        q = q.filter(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))

    return q.order_by(User.id.asc()).all()
