from typing import Optional

from socialhub.schemas.base import BaseSchema, TimestampedSchema


# ---------- requests ----------
# Fields stay optional here; the service reports what is missing.
class UserRegisterRequest(BaseSchema):
    email: Optional[str] = None
    full_name: Optional[str] = None
    password: Optional[str] = None


class UserLoginRequest(BaseSchema):
    email: Optional[str] = None
    password: Optional[str] = None


# ---------- responses ----------
class UserOut(TimestampedSchema):
    id: int
    email: str
    full_name: str
