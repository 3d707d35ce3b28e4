from typing import Any, Dict, Optional

import bcrypt
from fastapi import Header
from jose import jwt, JWTError
from loguru import logger

from socialhub.core.config import BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_SECRET
from socialhub.core.errors import NotAuthorizedError

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


# ------------------------------------------------------------
# Passwords
# ------------------------------------------------------------
def _password_bytes(raw_password: str) -> bytes:
    return raw_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(raw_password: str) -> str:
    hashed = bcrypt.hashpw(_password_bytes(raw_password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(raw_password), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


# ------------------------------------------------------------
# Tokens
# ------------------------------------------------------------
def create_token(user_id: int) -> str:
    return jwt.encode({"userId": user_id}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_auth_header(user_id: int) -> str:
    return f"Bearer {create_token(user_id)}"


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise NotAuthorizedError(str(e) or "Invalid token")


def _get_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise NotAuthorizedError("No authorization token was found")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise NotAuthorizedError("Format is Authorization: Bearer [token]")

    token = parts[1].strip()
    if not token:
        raise NotAuthorizedError("No authorization token was found")

    return token


# ------------------------------------------------------------
# Main Dependency
# ------------------------------------------------------------
def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
) -> int:
    token = _get_bearer_token(authorization)
    payload = decode_token(token)

    user_id = payload.get("userId")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise NotAuthorizedError("Token missing userId claim")

    return user_id
